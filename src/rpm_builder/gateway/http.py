from __future__ import annotations

from typing import Any

import httpx
import structlog

from rpm_builder.core.exceptions import (
    APIConnectionError,
    AuthenticationError,
    ConflictError,
    GatewayError,
    ResourceNotFoundError,
    ServerError,
)
from rpm_builder.gateway.base import POD, ClusterGateway, ResourceModel
from rpm_builder.resilience.retry import RetryPolicy

logger = structlog.get_logger(__name__)


def _error_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except Exception:  # noqa: BLE001
        return {"raw": resp.text[:500]}
    return body if isinstance(body, dict) else {"raw": body}


def raise_for_status(resp: httpx.Response, operation: str) -> None:
    """Translate an error response into the matching :class:`GatewayError`.

    The API server's ``Status.message`` is kept in the exception message so
    the cause reaches the caller.
    """
    code = resp.status_code
    if code < 400:
        return

    body = _error_body(resp)
    reason = body.get("message") or body.get("raw") or resp.reason_phrase
    message = f"{operation} failed with HTTP {code}: {reason}"
    kwargs: dict[str, Any] = {"code": str(code), "details": body, "status_code": code}

    if code == 404:
        raise ResourceNotFoundError(message, **kwargs)
    if code == 409:
        raise ConflictError(message, **kwargs)
    if code in (401, 403):
        raise AuthenticationError(message, **kwargs)
    if code >= 500:
        raise ServerError(message, **kwargs)
    raise GatewayError(message, **kwargs)


def with_identity(
    model: ResourceModel, document: dict[str, Any], namespace: str
) -> dict[str, Any]:
    doc = dict(document)
    doc.setdefault("apiVersion", model.api_version)
    doc.setdefault("kind", model.kind)
    metadata = dict(doc.get("metadata") or {})
    metadata["namespace"] = namespace
    doc["metadata"] = metadata
    return doc


def _resource_name(document: dict[str, Any]) -> str:
    name = (document.get("metadata") or {}).get("name")
    if not name:
        raise GatewayError("Resource document has no metadata.name")
    return str(name)


class HttpClusterGateway(ClusterGateway):
    """Cluster API client over HTTP.

    Knows the canonical REST layout of every :class:`ResourceModel`
    (``/api/v1/...`` for core kinds, ``/apis/{group}/{version}/...`` for
    custom resources) and classifies failures into the gateway error
    hierarchy.  Reads go through the optional :class:`RetryPolicy`; creates
    and updates are sent once.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        path_prefix: str = "",
        timeout: float = 30.0,
        verify_ssl: bool = True,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create an HttpClusterGateway.

        Args:
            base_url: Base URL of the API server or console proxy,
                e.g. ``"https://api.cluster.example:6443"``.
            token: Optional bearer token.
            path_prefix: Prefix placed before ``/api`` and ``/apis``
                (``"/api/kubernetes"`` behind the console proxy).
            timeout: HTTP request timeout in seconds.
            verify_ssl: Verify the server certificate.
            retry_policy: Retry policy for get/list/log reads.
            transport: Custom httpx transport (tests use ``httpx.MockTransport``).
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._path_prefix = path_prefix.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._retry_policy = retry_policy
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        """Create the underlying :class:`httpx.AsyncClient`."""
        if self._client is not None:
            return
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            verify=self._verify_ssl,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The shared HTTP client (cookie jar included)."""
        if self._client is None:
            raise GatewayError(
                "HttpClusterGateway not connected. Call await gw.connect() first."
            )
        return self._client

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            resp = await self.client.request(method, path, json=json, params=params)
        except httpx.RequestError as exc:
            raise APIConnectionError(f"{operation} failed: {exc}") from exc
        raise_for_status(resp, operation)
        return resp

    async def _read(
        self, path: str, operation: str, params: dict[str, str] | None = None
    ) -> httpx.Response:
        if self._retry_policy is None:
            return await self._send("GET", path, operation, params=params)
        return await self._retry_policy.execute(
            self._send, "GET", path, operation, params=params
        )

    @staticmethod
    def _json(resp: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            result: dict[str, Any] = resp.json()
        except Exception as exc:  # noqa: BLE001
            raise GatewayError(
                f"Non-JSON response for {operation}: {resp.text[:200]}"
            ) from exc
        return result

    # ------------------------------------------------------------------ #
    # Resource primitives
    # ------------------------------------------------------------------ #

    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        doc = with_identity(model, document, namespace)
        operation = f"create {model.kind} {_resource_name(doc)}"
        resp = await self._send(
            "POST",
            model.collection_path(namespace, self._path_prefix),
            operation,
            json=doc,
        )
        logger.debug(
            "resource_created",
            kind=model.kind,
            name=_resource_name(doc),
            namespace=namespace,
        )
        return self._json(resp, operation)

    async def get(
        self, model: ResourceModel, name: str, namespace: str
    ) -> dict[str, Any]:
        operation = f"get {model.kind} {name}"
        resp = await self._read(
            model.item_path(namespace, name, self._path_prefix), operation
        )
        return self._json(resp, operation)

    async def list(
        self, model: ResourceModel, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        operation = f"list {model.plural}"
        params = {"labelSelector": label_selector} if label_selector else None
        resp = await self._read(
            model.collection_path(namespace, self._path_prefix), operation, params
        )
        items: list[dict[str, Any]] = self._json(resp, operation).get("items") or []
        return items

    async def update(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        doc = with_identity(model, document, namespace)
        name = _resource_name(doc)
        operation = f"update {model.kind} {name}"
        resp = await self._send(
            "PUT",
            model.item_path(namespace, name, self._path_prefix),
            operation,
            json=doc,
        )
        return self._json(resp, operation)

    # ------------------------------------------------------------------ #
    # Logs
    # ------------------------------------------------------------------ #

    async def read_logs(self, namespace: str, label_selector: str) -> str | None:
        pods = await self.list(POD, namespace, label_selector)
        if not pods:
            return None
        pods.sort(key=lambda p: (p.get("metadata") or {}).get("creationTimestamp") or "")
        pod_name = pods[0]["metadata"]["name"]
        resp = await self._read(
            f"{POD.item_path(namespace, pod_name, self._path_prefix)}/log",
            f"read logs of pod {pod_name}",
        )
        return resp.text
