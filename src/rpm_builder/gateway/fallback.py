"""Create with fallback across API call strategies.

A create is tried by an ordered chain of strategies:

1. the primary client (canonical API paths, no CSRF header)
2. one direct request per candidate base path, each carrying the CSRF
   token when one can be found

The chain stops at the first outcome that is not "not found".  A failure
of the primary client always moves on to the direct requests.  "Not
found" on every candidate is a definitive failure: the endpoint does not
exist, and probing again would not change that.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Protocol

import httpx
import structlog

from rpm_builder.core.exceptions import (
    APIConnectionError,
    GatewayError,
    ResourceNotFoundError,
)
from rpm_builder.gateway.base import ClusterGateway, ResourceModel
from rpm_builder.gateway.csrf import CSRF_COOKIE_NAME, resolve_csrf_token
from rpm_builder.gateway.http import HttpClusterGateway, raise_for_status, with_identity

logger = structlog.get_logger(__name__)


class OutcomeKind(StrEnum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class StrategyOutcome:
    kind: OutcomeKind
    resource: dict[str, Any] | None = None
    error: Exception | None = None


@dataclass
class ChainAttempt:
    strategy: str
    kind: OutcomeKind
    error: str | None = None


class CreateStrategy(Protocol):
    name: str
    fall_through_on_failure: bool

    async def attempt(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> StrategyOutcome: ...


def _outcome_for(exc: Exception) -> StrategyOutcome:
    if isinstance(exc, ResourceNotFoundError):
        return StrategyOutcome(OutcomeKind.NOT_FOUND, error=exc)
    return StrategyOutcome(OutcomeKind.FAILED, error=exc)


class PrimaryClientStrategy:
    """Create through a gateway's own ``create``."""

    fall_through_on_failure = True

    def __init__(self, gateway: ClusterGateway, name: str = "primary") -> None:
        self._gateway = gateway
        self.name = name

    async def attempt(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> StrategyOutcome:
        try:
            resource = await self._gateway.create(model, document, namespace)
        except GatewayError as exc:
            return _outcome_for(exc)
        return StrategyOutcome(OutcomeKind.OK, resource=resource)


class DirectRequestStrategy:
    """POST the document under one candidate base path with a CSRF header."""

    fall_through_on_failure = False

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_path: str,
        *,
        csrf_header_name: str = "X-CSRFToken",
        csrf_cookie_name: str = CSRF_COOKIE_NAME,
        metadata: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._client = client
        self._base_path = base_path.rstrip("/")
        self._csrf_header_name = csrf_header_name
        self._csrf_cookie_name = csrf_cookie_name
        self._metadata = metadata
        self._environ = environ
        self.name = f"direct:{self._base_path or '/'}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = resolve_csrf_token(
            self._client.cookies,
            self._metadata,
            os.environ if self._environ is None else self._environ,
            cookie_name=self._csrf_cookie_name,
        )
        if token:
            headers[self._csrf_header_name] = token
        return headers

    async def attempt(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> StrategyOutcome:
        doc = with_identity(model, document, namespace)
        path = model.collection_path(namespace, self._base_path)
        try:
            resp = await self._client.post(path, json=doc, headers=self._headers())
        except httpx.RequestError as exc:
            return _outcome_for(APIConnectionError(f"POST {path} failed: {exc}"))
        try:
            raise_for_status(resp, f"create {model.kind} via {path}")
        except GatewayError as exc:
            return _outcome_for(exc)
        try:
            resource: dict[str, Any] = resp.json()
        except Exception:  # noqa: BLE001
            resource = doc
        return StrategyOutcome(OutcomeKind.OK, resource=resource)


@dataclass
class StrategyChain:
    strategies: list[CreateStrategy]
    attempts: list[ChainAttempt] = field(default_factory=list)

    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        self.attempts = []
        last_failure: Exception | None = None

        for strategy in self.strategies:
            outcome = await strategy.attempt(model, document, namespace)
            self.attempts.append(
                ChainAttempt(
                    strategy.name,
                    outcome.kind,
                    str(outcome.error) if outcome.error else None,
                )
            )
            if outcome.kind is OutcomeKind.OK:
                assert outcome.resource is not None  # noqa: S101
                return outcome.resource
            if outcome.kind is OutcomeKind.NOT_FOUND:
                continue
            assert outcome.error is not None  # noqa: S101
            if strategy.fall_through_on_failure:
                logger.warning(
                    "create_strategy_failed",
                    strategy=strategy.name,
                    kind=model.kind,
                    error=str(outcome.error),
                )
                last_failure = outcome.error
                continue
            raise outcome.error

        details = {"attempts": [asdict(a) for a in self.attempts]}
        if last_failure is not None:
            raise GatewayError(
                f"create {model.kind} failed on every endpoint; "
                f"primary client error: {last_failure}",
                code="no_endpoint",
                details=details,
            ) from last_failure
        raise GatewayError(
            f"No API endpoint found for {model.kind} ({model.api_version}) "
            f"under any candidate base path",
            code="no_endpoint",
            details=details,
        )


class FallbackGateway(ClusterGateway):
    """Gateway whose creates survive a rejecting primary client.

    Reads, updates and logs go straight to the primary gateway.
    """

    def __init__(
        self,
        primary: HttpClusterGateway,
        *,
        candidate_base_paths: list[str] | None = None,
        csrf_header_name: str = "X-CSRFToken",
        csrf_cookie_name: str = CSRF_COOKIE_NAME,
        metadata: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._primary = primary
        self._candidate_base_paths = (
            list(candidate_base_paths)
            if candidate_base_paths is not None
            else ["/api/kubernetes", ""]
        )
        self._csrf_header_name = csrf_header_name
        self._csrf_cookie_name = csrf_cookie_name
        self._metadata = metadata
        self._environ = environ

    @property
    def primary(self) -> HttpClusterGateway:
        return self._primary

    async def connect(self) -> None:
        await self._primary.connect()

    async def close(self) -> None:
        await self._primary.close()

    def create_chain(self) -> StrategyChain:
        strategies: list[CreateStrategy] = [PrimaryClientStrategy(self._primary)]
        for base_path in self._candidate_base_paths:
            strategies.append(
                DirectRequestStrategy(
                    self._primary.client,
                    base_path,
                    csrf_header_name=self._csrf_header_name,
                    csrf_cookie_name=self._csrf_cookie_name,
                    metadata=self._metadata,
                    environ=self._environ,
                )
            )
        return StrategyChain(strategies)

    async def create(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        return await self.create_chain().create(model, document, namespace)

    async def get(
        self, model: ResourceModel, name: str, namespace: str
    ) -> dict[str, Any]:
        return await self._primary.get(model, name, namespace)

    async def list(
        self, model: ResourceModel, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        return await self._primary.list(model, namespace, label_selector)

    async def update(
        self, model: ResourceModel, document: dict[str, Any], namespace: str
    ) -> dict[str, Any]:
        return await self._primary.update(model, document, namespace)

    async def read_logs(self, namespace: str, label_selector: str) -> str | None:
        return await self._primary.read_logs(namespace, label_selector)
