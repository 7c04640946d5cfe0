from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


class ResourceModel(BaseModel):
    """Identifies a namespaced resource type on the cluster API.

    ``group`` is empty for the core API (``/api/v1``).
    """

    group: str = ""
    version: str
    kind: str
    plural: str

    model_config = {"frozen": True}

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def collection_path(self, namespace: str, prefix: str = "") -> str:
        """``{prefix}/api[s]/.../namespaces/{namespace}/{plural}``."""
        if self.group:
            root = f"{prefix}/apis/{self.group}/{self.version}"
        else:
            root = f"{prefix}/api/{self.version}"
        return f"{root}/namespaces/{namespace}/{self.plural}"

    def item_path(self, namespace: str, name: str, prefix: str = "") -> str:
        return f"{self.collection_path(namespace, prefix)}/{name}"


CONFIG_MAP = ResourceModel(version="v1", kind="ConfigMap", plural="configmaps")
POD = ResourceModel(version="v1", kind="Pod", plural="pods")
PIPELINE_RUN = ResourceModel(
    group="tekton.dev", version="v1beta1", kind="PipelineRun", plural="pipelineruns"
)


@runtime_checkable
class GatewayProtocol(Protocol):
    """Structural type for any cluster gateway.

    The build service accepts this Protocol so it works with any backend
    (HttpClusterGateway, FallbackGateway, MockClusterGateway) without
    importing concrete classes.
    """

    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]: ...

    async def get(
        self, model: ResourceModel, name: str, namespace: str
    ) -> dict[str, Any]: ...

    async def list(
        self, model: ResourceModel, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def update(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]: ...

    async def read_logs(self, namespace: str, label_selector: str) -> str | None: ...


class ClusterGateway(ABC):
    """Abstract base for cluster resource gateways.

    Every call either returns the resource as the API server stored it or
    raises a :class:`~rpm_builder.core.exceptions.GatewayError` subclass;
    a missing resource raises
    :class:`~rpm_builder.core.exceptions.ResourceNotFoundError`.
    """

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    async def __aenter__(self) -> ClusterGateway:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Resource primitives
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]: ...

    @abstractmethod
    async def get(
        self, model: ResourceModel, name: str, namespace: str
    ) -> dict[str, Any]: ...

    @abstractmethod
    async def list(
        self, model: ResourceModel, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def update(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]: ...

    # ------------------------------------------------------------------ #
    # Logs
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def read_logs(self, namespace: str, label_selector: str) -> str | None:
        """Return the log text of the first pod matching *label_selector*.

        ``None`` when no pod matches yet.
        """
