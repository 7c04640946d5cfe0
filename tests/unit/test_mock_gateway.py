"""Tests for MockClusterGateway."""
from __future__ import annotations

import pytest

from rpm_builder.core.exceptions import ConflictError, GatewayError, ResourceNotFoundError
from rpm_builder.gateway.base import CONFIG_MAP, PIPELINE_RUN, GatewayProtocol
from rpm_builder.gateway.mock import MockClusterGateway


def _cm(name: str, **labels: str) -> dict:
    return {"metadata": {"name": name, "labels": dict(labels)}, "data": {}}


# ------------------------------------------------------------------ #
# connect / close
# ------------------------------------------------------------------ #


async def test_connect_sets_connected() -> None:
    gw = MockClusterGateway()
    assert not gw._connected
    await gw.connect()
    assert gw._connected


async def test_calls_require_connection() -> None:
    gw = MockClusterGateway()
    with pytest.raises(RuntimeError, match="not connected"):
        await gw.get(CONFIG_MAP, "cm", "ns")


async def test_async_context_manager() -> None:
    async with MockClusterGateway() as gw:
        assert gw._connected
    assert not gw._connected


def test_satisfies_protocol() -> None:
    assert isinstance(MockClusterGateway(), GatewayProtocol)


# ------------------------------------------------------------------ #
# CRUD
# ------------------------------------------------------------------ #


async def test_create_then_get(connected_mock_gateway: MockClusterGateway) -> None:
    created = await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "ns")
    assert created["kind"] == "ConfigMap"
    assert created["metadata"]["namespace"] == "ns"
    assert created["metadata"]["creationTimestamp"]

    fetched = await connected_mock_gateway.get(CONFIG_MAP, "cm-1", "ns")
    assert fetched == created


async def test_create_duplicate_conflicts(connected_mock_gateway: MockClusterGateway) -> None:
    await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "ns")
    with pytest.raises(ConflictError):
        await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "ns")


async def test_same_name_in_other_namespace(connected_mock_gateway: MockClusterGateway) -> None:
    await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "a")
    await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "b")
    assert len(connected_mock_gateway.resources(CONFIG_MAP)) == 2


async def test_get_missing_raises_not_found(connected_mock_gateway: MockClusterGateway) -> None:
    with pytest.raises(ResourceNotFoundError):
        await connected_mock_gateway.get(PIPELINE_RUN, "nope", "ns")


async def test_returned_documents_are_copies(connected_mock_gateway: MockClusterGateway) -> None:
    created = await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "ns")
    created["data"]["x"] = "mutated"
    fetched = await connected_mock_gateway.get(CONFIG_MAP, "cm-1", "ns")
    assert fetched["data"] == {}


async def test_update_replaces_and_bumps_version(
    connected_mock_gateway: MockClusterGateway,
) -> None:
    created = await connected_mock_gateway.create(CONFIG_MAP, _cm("cm-1"), "ns")
    created["data"] = {"k": "v"}
    updated = await connected_mock_gateway.update(CONFIG_MAP, created, "ns")
    assert updated["data"] == {"k": "v"}
    assert int(updated["metadata"]["resourceVersion"]) > int(
        created["metadata"]["resourceVersion"]
    )


async def test_update_missing_raises(connected_mock_gateway: MockClusterGateway) -> None:
    with pytest.raises(ResourceNotFoundError):
        await connected_mock_gateway.update(CONFIG_MAP, _cm("ghost"), "ns")


@pytest.mark.parametrize(
    ("selector", "expected"),
    [
        (None, ["a", "b", "c"]),
        ("app", ["a", "b"]),
        ("!app", ["c"]),
        ("app=x", ["a"]),
        ("app==x", ["a"]),
        ("app!=x", ["b", "c"]),
        ("app=y,tier=web", ["b"]),
    ],
)
async def test_list_label_selectors(
    connected_mock_gateway: MockClusterGateway, selector: str | None, expected: list[str]
) -> None:
    gw = connected_mock_gateway
    await gw.create(CONFIG_MAP, _cm("a", app="x"), "ns")
    await gw.create(CONFIG_MAP, _cm("b", app="y", tier="web"), "ns")
    await gw.create(CONFIG_MAP, _cm("c"), "ns")
    await gw.create(CONFIG_MAP, _cm("other-ns", app="x"), "elsewhere")

    items = await gw.list(CONFIG_MAP, "ns", selector)
    assert [i["metadata"]["name"] for i in items] == expected


# ------------------------------------------------------------------ #
# Scripting helpers
# ------------------------------------------------------------------ #


async def test_fail_on_raises_given_times(connected_mock_gateway: MockClusterGateway) -> None:
    gw = connected_mock_gateway
    gw.fail_on("create", "ConfigMap", GatewayError("quota exceeded"), times=2)

    for _ in range(2):
        with pytest.raises(GatewayError, match="quota"):
            await gw.create(CONFIG_MAP, _cm("cm"), "ns")
    await gw.create(CONFIG_MAP, _cm("cm"), "ns")
    assert gw.call_count("create", "ConfigMap") == 3


async def test_set_status(connected_mock_gateway: MockClusterGateway) -> None:
    gw = connected_mock_gateway
    await gw.create(PIPELINE_RUN, {"metadata": {"name": "run"}, "spec": {}}, "ns")
    gw.set_status("run", "ns", {"conditions": []})
    assert (await gw.get(PIPELINE_RUN, "run", "ns"))["status"] == {"conditions": []}
    gw.set_status("run", "ns", None)
    assert "status" not in await gw.get(PIPELINE_RUN, "run", "ns")


async def test_logs(connected_mock_gateway: MockClusterGateway) -> None:
    gw = connected_mock_gateway
    assert await gw.read_logs("ns", "sel=1") is None
    gw.set_logs("ns", "sel=1", "output")
    assert await gw.read_logs("ns", "sel=1") == "output"
    gw.assert_called("logs", "Pod")


async def test_reset(connected_mock_gateway: MockClusterGateway) -> None:
    gw = connected_mock_gateway
    await gw.create(CONFIG_MAP, _cm("cm"), "ns")
    gw.reset()
    assert gw.calls == []
    assert gw.resources(CONFIG_MAP) == []
