"""Shared test fixtures."""
from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator, Callable

import pytest

from rpm_builder.core.config import BuilderConfig
from rpm_builder.core.constants import SourceType
from rpm_builder.core.service import RPMBuildService
from rpm_builder.core.types import BuildRequest, SourceFile
from rpm_builder.gateway.mock import MockClusterGateway

NAMESPACE = "rpm-builds"


def sequential_ids(start: int = 1700000000000) -> Callable[[], str]:
    """Deterministic build-id generator: ``1700000000000-abcdefghi``, ``...001-...``."""
    counter = itertools.count(start)
    return lambda: f"{next(counter)}-abcdefghi"


@pytest.fixture
def mock_gateway() -> MockClusterGateway:
    return MockClusterGateway()


@pytest.fixture
async def connected_mock_gateway() -> AsyncGenerator[MockClusterGateway, None]:
    gw = MockClusterGateway()
    await gw.connect()
    yield gw
    await gw.close()


@pytest.fixture
def id_generator() -> Callable[[], str]:
    return sequential_ids()


@pytest.fixture
def service(
    connected_mock_gateway: MockClusterGateway, id_generator: Callable[[], str]
) -> RPMBuildService:
    return RPMBuildService(
        connected_mock_gateway,
        config=BuilderConfig(default_namespace=NAMESPACE),
        id_generator=id_generator,
    )


@pytest.fixture
def upload_request() -> BuildRequest:
    return BuildRequest(
        name="hello",
        version="2.10",
        description="GNU hello world\nLonger text.",
        source_type=SourceType.UPLOAD,
        files=[
            SourceFile.from_bytes("hello-2.10.tar.gz", b"\x1f\x8b fake tarball"),
            SourceFile.from_bytes("hello.patch", b"--- a\n+++ b\n"),
        ],
        target_os="centos-stream-9",
        architecture="x86_64",
        dependencies=["gcc", "make"],
        build_options=["--with-tests"],
    )


@pytest.fixture
def git_request() -> BuildRequest:
    return BuildRequest(
        name="tool",
        version="0.4.1",
        source_type=SourceType.GIT,
        git_repository="https://github.com/example/tool.git",
        git_branch="release",
        target_os="fedora-40",
        architecture="aarch64",
    )
