"""Tests for gateway/fallback.py: create through the strategy chain."""
from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from rpm_builder.core.exceptions import ConflictError, GatewayError, ServerError
from rpm_builder.gateway.base import CONFIG_MAP, PIPELINE_RUN
from rpm_builder.gateway.fallback import (
    FallbackGateway,
    OutcomeKind,
    StrategyChain,
    StrategyOutcome,
)
from rpm_builder.gateway.http import HttpClusterGateway

PR_PATH = "/apis/tekton.dev/v1beta1/namespaces/ns/pipelineruns"
PROXY = "/api/kubernetes"
RUN = {"metadata": {"name": "rpm-build-1"}, "spec": {}}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _fallback(
    handler: Callable[[httpx.Request], httpx.Response],
    seen: list[httpx.Request],
    **kwargs: Any,
) -> FallbackGateway:
    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    primary = HttpClusterGateway(
        "https://console.example.com", transport=httpx.MockTransport(record)
    )
    kwargs.setdefault("environ", {})
    gw = FallbackGateway(primary, **kwargs)
    await gw.connect()
    return gw


def _created(request: httpx.Request) -> httpx.Response:
    return httpx.Response(201, json=json.loads(request.content))


def _status(code: int, message: str = "") -> httpx.Response:
    return httpx.Response(code, json={"kind": "Status", "message": message})


def _requires_csrf(request: httpx.Request) -> httpx.Response:
    """Console-style backend: canonical path exists, but writes need a CSRF header."""
    if request.url.path.startswith(PROXY):
        return _status(404, "page not found")
    if "X-CSRFToken" not in request.headers:
        return _status(403, "CSRF token missing")
    return _created(request)


# ---------------------------------------------------------------------------
# Chain behaviour
# ---------------------------------------------------------------------------


async def test_primary_success_stops_chain() -> None:
    seen: list[httpx.Request] = []
    gw = await _fallback(_created, seen)

    created = await gw.create(PIPELINE_RUN, RUN, "ns")

    assert created["metadata"]["name"] == "rpm-build-1"
    assert len(seen) == 1
    assert seen[0].url.path == PR_PATH
    assert "X-CSRFToken" not in seen[0].headers


async def test_rejected_primary_falls_back_to_direct_with_csrf_cookie() -> None:
    seen: list[httpx.Request] = []
    gw = await _fallback(_requires_csrf, seen)
    gw.primary.client.cookies.set("csrf-token", "cookie-token")

    created = await gw.create(PIPELINE_RUN, RUN, "ns")

    assert created["metadata"]["namespace"] == "ns"
    assert [r.url.path for r in seen] == [PR_PATH, PROXY + PR_PATH, PR_PATH]
    assert seen[2].headers["X-CSRFToken"] == "cookie-token"


async def test_proxy_path_tried_first() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith(PROXY):
            return _created(request)
        return _status(403, "forbidden")

    gw = await _fallback(handler, seen, environ={"RPM_BUILDER_CSRF_TOKEN": "env-token"})
    await gw.create(CONFIG_MAP, {"metadata": {"name": "cm"}}, "ns")

    assert [r.url.path for r in seen] == [
        "/api/v1/namespaces/ns/configmaps",
        PROXY + "/api/v1/namespaces/ns/configmaps",
    ]
    assert seen[1].headers["X-CSRFToken"] == "env-token"


async def test_csrf_from_metadata_and_custom_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "X-XSRF" in request.headers:
            return _created(request)
        return _status(403)

    gw = await _fallback(
        handler,
        seen,
        candidate_base_paths=[""],
        csrf_header_name="X-XSRF",
        metadata={"csrf-token": "meta-token"},
    )
    await gw.create(PIPELINE_RUN, RUN, "ns")
    assert seen[-1].headers["X-XSRF"] == "meta-token"


async def test_no_token_sends_no_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if len(seen) == 1:
            return _status(403)
        return _created(request)

    gw = await _fallback(handler, seen, candidate_base_paths=[""])
    await gw.create(PIPELINE_RUN, RUN, "ns")
    assert "X-CSRFToken" not in seen[1].headers


async def test_all_not_found_is_definitive() -> None:
    seen: list[httpx.Request] = []
    gw = await _fallback(lambda r: _status(404, "no such resource"), seen)

    with pytest.raises(GatewayError) as exc_info:
        await gw.create(PIPELINE_RUN, RUN, "ns")

    assert exc_info.value.code == "no_endpoint"
    assert "No API endpoint found" in str(exc_info.value)
    assert len(exc_info.value.details["attempts"]) == 3
    assert len(seen) == 3


async def test_concurrent_creates_report_their_own_attempts() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "/namespaces/missing/" in request.url.path:
            return _status(404)
        return _created(request)

    gw = await _fallback(handler, seen)
    ok, failed = await asyncio.gather(
        gw.create(PIPELINE_RUN, RUN, "ns"),
        gw.create(PIPELINE_RUN, RUN, "missing"),
        return_exceptions=True,
    )

    assert isinstance(ok, dict)
    assert isinstance(failed, GatewayError)
    assert [a["kind"] for a in failed.details["attempts"]] == [
        OutcomeKind.NOT_FOUND,
        OutcomeKind.NOT_FOUND,
        OutcomeKind.NOT_FOUND,
    ]
    assert not hasattr(gw, "last_chain")


async def test_primary_error_reported_when_direct_paths_missing() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if len(seen) == 1:
            return _status(403, "pipelineruns is forbidden")
        return _status(404)

    gw = await _fallback(handler, seen)
    with pytest.raises(GatewayError) as exc_info:
        await gw.create(PIPELINE_RUN, RUN, "ns")

    assert exc_info.value.code == "no_endpoint"
    assert "pipelineruns is forbidden" in str(exc_info.value)


async def test_direct_failure_stops_chain() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if len(seen) == 1:
            return _status(403)
        return _status(409, 'pipelineruns "rpm-build-1" already exists')

    gw = await _fallback(handler, seen)
    with pytest.raises(ConflictError, match="already exists"):
        await gw.create(PIPELINE_RUN, RUN, "ns")
    assert len(seen) == 2


async def test_direct_transport_error_stops_chain() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if len(seen) == 1:
            return _status(500, "primary broke")
        raise httpx.ConnectError("connection reset", request=request)

    gw = await _fallback(handler, seen)
    with pytest.raises(GatewayError, match="connection reset"):
        await gw.create(PIPELINE_RUN, RUN, "ns")
    assert len(seen) == 2


# ---------------------------------------------------------------------------
# Delegation
# ---------------------------------------------------------------------------


async def test_reads_and_updates_go_to_primary() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            return httpx.Response(200, json=json.loads(request.content))
        if request.url.path.endswith("/pipelineruns"):
            return httpx.Response(200, json={"items": [RUN]})
        return httpx.Response(200, json=RUN)

    gw = await _fallback(handler, seen)
    assert (await gw.get(PIPELINE_RUN, "rpm-build-1", "ns"))["metadata"]["name"] == "rpm-build-1"
    assert len(await gw.list(PIPELINE_RUN, "ns")) == 1
    await gw.update(PIPELINE_RUN, RUN, "ns")

    assert [r.method for r in seen] == ["GET", "GET", "PUT"]
    assert all(not r.url.path.startswith(PROXY) for r in seen)
    await gw.close()


# ---------------------------------------------------------------------------
# StrategyChain with stub strategies
# ---------------------------------------------------------------------------


class _Stub:
    def __init__(
        self, name: str, outcome: StrategyOutcome, fall_through: bool = False
    ) -> None:
        self.name = name
        self.fall_through_on_failure = fall_through
        self.outcome = outcome
        self.calls = 0

    async def attempt(
        self, model: Any, document: dict[str, Any], namespace: str
    ) -> StrategyOutcome:
        self.calls += 1
        return self.outcome


async def test_chain_skips_later_strategies_after_success() -> None:
    first = _Stub("a", StrategyOutcome(OutcomeKind.NOT_FOUND))
    second = _Stub("b", StrategyOutcome(OutcomeKind.OK, resource={"ok": True}))
    third = _Stub("c", StrategyOutcome(OutcomeKind.OK, resource={"ok": False}))

    result = await StrategyChain([first, second, third]).create(CONFIG_MAP, {}, "ns")

    assert result == {"ok": True}
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


async def test_chain_raises_failure_of_non_fall_through_strategy() -> None:
    error = ServerError("boom")
    chain = StrategyChain(
        [
            _Stub("a", StrategyOutcome(OutcomeKind.FAILED, error=error)),
            _Stub("b", StrategyOutcome(OutcomeKind.OK, resource={})),
        ]
    )
    with pytest.raises(ServerError) as exc_info:
        await chain.create(CONFIG_MAP, {}, "ns")
    assert exc_info.value is error
    assert [a.strategy for a in chain.attempts] == ["a"]


async def test_empty_chain_raises_no_endpoint() -> None:
    with pytest.raises(GatewayError, match="No API endpoint"):
        await StrategyChain([]).create(CONFIG_MAP, {}, "ns")
