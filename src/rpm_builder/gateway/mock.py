from __future__ import annotations

import copy
import itertools
from datetime import datetime, timezone
from typing import Any

from rpm_builder.core.exceptions import ConflictError, ResourceNotFoundError
from rpm_builder.gateway.base import ClusterGateway, ResourceModel


def _matches(labels: dict[str, str], selector: str | None) -> bool:
    """Evaluate an equality-based label selector (``k``, ``!k``, ``k=v``, ``k!=v``)."""
    if not selector:
        return True
    for term in (t.strip() for t in selector.split(",")):
        if not term:
            continue
        if "!=" in term:
            key, value = term.split("!=", 1)
            if labels.get(key.strip()) == value.strip():
                return False
        elif "=" in term:
            sep = "==" if "==" in term else "="
            key, value = term.split(sep, 1)
            if labels.get(key.strip()) != value.strip():
                return False
        elif term.startswith("!"):
            if term[1:] in labels:
                return False
        elif term not in labels:
            return False
    return True


class MockClusterGateway(ClusterGateway):
    """In-memory cluster for testing.

    Usage::

        gw = MockClusterGateway()
        await gw.connect()
        gw.fail_on("create", "PipelineRun", GatewayError("quota exceeded"))

        service = RPMBuildService(gw, config=BuilderConfig(default_namespace="demo"))
        ...
        gw.set_status("rpm-build-123-abc", "demo", {"conditions": []})

    Every call is recorded in :attr:`calls` as ``(operation, kind, name, namespace)``.
    """

    def __init__(self) -> None:
        self._connected = False
        self._store: dict[tuple[str, str, str], dict[str, Any]] = {}
        self._failures: dict[tuple[str, str], list[Exception]] = {}
        self._logs: dict[tuple[str, str], str] = {}
        self._versions = itertools.count(1)
        self.calls: list[tuple[str, str, str | None, str]] = []

    # ------------------------------------------------------------------ #
    # Setup helpers
    # ------------------------------------------------------------------ #

    def fail_on(
        self, operation: str, kind: str, error: Exception, *, times: int = 1
    ) -> None:
        """Make the next *times* ``operation`` calls for *kind* raise *error*."""
        self._failures.setdefault((operation, kind), []).extend([error] * times)

    def put(self, model: ResourceModel, resource: dict[str, Any]) -> None:
        """Store *resource* directly, bypassing call recording."""
        meta = resource["metadata"]
        key = (model.plural, meta["namespace"], meta["name"])
        self._store[key] = copy.deepcopy(resource)

    def set_status(
        self,
        name: str,
        namespace: str,
        status: dict[str, Any] | None,
        plural: str = "pipelineruns",
    ) -> None:
        """Replace the ``status`` block of a stored resource (``None`` removes it)."""
        resource = self._store[(plural, namespace, name)]
        if status is None:
            resource.pop("status", None)
        else:
            resource["status"] = copy.deepcopy(status)

    def set_logs(self, namespace: str, label_selector: str, text: str) -> None:
        self._logs[(namespace, label_selector)] = text

    def resources(
        self, model: ResourceModel, namespace: str | None = None
    ) -> list[dict[str, Any]]:
        """Stored resources of *model*, in creation order."""
        return [
            copy.deepcopy(r)
            for (plural, ns, _), r in self._store.items()
            if plural == model.plural and (namespace is None or ns == namespace)
        ]

    # ------------------------------------------------------------------ #
    # ClusterGateway ABC implementation
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    def _enter(
        self, operation: str, model: ResourceModel, name: str | None, namespace: str
    ) -> None:
        if not self._connected:
            raise RuntimeError(
                "MockClusterGateway not connected. Call await gw.connect() first."
            )
        self.calls.append((operation, model.kind, name, namespace))
        pending = self._failures.get((operation, model.kind))
        if pending:
            raise pending.pop(0)

    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        name = document["metadata"]["name"]
        self._enter("create", model, name, namespace)
        key = (model.plural, namespace, name)
        if key in self._store:
            raise ConflictError(
                f'{model.plural} "{name}" already exists', code="409", status_code=409
            )
        resource = copy.deepcopy(document)
        resource.setdefault("apiVersion", model.api_version)
        resource.setdefault("kind", model.kind)
        meta = resource["metadata"]
        meta["namespace"] = namespace
        meta["creationTimestamp"] = datetime.now(timezone.utc).isoformat()
        meta["resourceVersion"] = str(next(self._versions))
        self._store[key] = resource
        return copy.deepcopy(resource)

    async def get(
        self, model: ResourceModel, name: str, namespace: str
    ) -> dict[str, Any]:
        self._enter("get", model, name, namespace)
        try:
            return copy.deepcopy(self._store[(model.plural, namespace, name)])
        except KeyError:
            raise ResourceNotFoundError(
                f'{model.plural} "{name}" not found', code="404", status_code=404
            ) from None

    async def list(
        self, model: ResourceModel, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        self._enter("list", model, None, namespace)
        return [
            r
            for r in self.resources(model, namespace)
            if _matches(r["metadata"].get("labels") or {}, label_selector)
        ]

    async def update(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        name = document["metadata"]["name"]
        self._enter("update", model, name, namespace)
        key = (model.plural, namespace, name)
        if key not in self._store:
            raise ResourceNotFoundError(
                f'{model.plural} "{name}" not found', code="404", status_code=404
            )
        resource = copy.deepcopy(document)
        resource["metadata"]["resourceVersion"] = str(next(self._versions))
        self._store[key] = resource
        return copy.deepcopy(resource)

    async def read_logs(self, namespace: str, label_selector: str) -> str | None:
        if not self._connected:
            raise RuntimeError("MockClusterGateway not connected.")
        self.calls.append(("logs", "Pod", label_selector, namespace))
        return self._logs.get((namespace, label_selector))

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def call_count(self, operation: str, kind: str | None = None) -> int:
        return sum(
            1
            for op, k, _, _ in self.calls
            if op == operation and (kind is None or k == kind)
        )

    def assert_called(self, operation: str, kind: str) -> None:
        seen = [(op, k) for op, k, _, _ in self.calls]
        assert (operation, kind) in seen, f"Expected {operation} {kind}, got: {seen}"

    def reset(self) -> None:
        self.calls.clear()
        self._store.clear()
        self._failures.clear()
        self._logs.clear()
