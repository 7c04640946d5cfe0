"""FastAPI integration for the RPM builder.

Usage::

    from rpm_builder.integrations.fastapi import create_build_router

    app = FastAPI()
    app.include_router(create_build_router(client.builds, prefix="/builds"))

The namespace of each call comes from the ``X-Namespace`` header or the
``namespace`` query parameter; when neither is given, a console
``Referer`` of the form ``.../k8s/ns/<namespace>/...`` is used, then the
service's default namespace.

Requires the ``fastapi`` extra::

    pip install rpm-builder-sdk[fastapi]
"""

from __future__ import annotations

from typing import Any

try:
    from fastapi import APIRouter, Header, HTTPException, Query
    from fastapi.responses import JSONResponse, PlainTextResponse
except ImportError as _err:  # pragma: no cover
    raise ImportError(
        "FastAPI is required for rpm_builder.integrations.fastapi. "
        "Install it with: pip install rpm-builder-sdk[fastapi]"
    ) from _err

from rpm_builder.core.constants import ALL_NAMESPACES
from rpm_builder.core.exceptions import (
    BuildNotFoundError,
    GatewayError,
    NamespaceError,
    RPMBuilderError,
    ValidationError,
)
from rpm_builder.core.service import RPMBuildService
from rpm_builder.core.types import BuildJob, BuildRequest


def _status_for(exc: RPMBuilderError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, NamespaceError):
        return 400
    if isinstance(exc, BuildNotFoundError):
        return 404
    if isinstance(exc, GatewayError):
        return 502
    return 500


def _http_error(exc: RPMBuilderError) -> HTTPException:
    detail: dict[str, Any] = {"message": str(exc)}
    if exc.code:
        detail["code"] = exc.code
    if exc.details:
        detail["details"] = exc.details
    return HTTPException(status_code=_status_for(exc), detail=detail)


def _namespace(header: str | None, query: str | None) -> str | None:
    """``X-Namespace`` wins over ``?namespace=``; blank and all-namespaces values are skipped."""
    for value in (header, query):
        if value and value.strip() and value != ALL_NAMESPACES:
            return value
    return None


def _job_body(job: BuildJob) -> dict[str, Any]:
    body = job.model_dump(mode="json")
    body["phase"] = str(job.phase)
    return body


def create_build_router(
    service: RPMBuildService,
    prefix: str = "/builds",
) -> APIRouter:
    """Return an :class:`APIRouter` exposing the build service.

    Endpoints:
        - ``POST {prefix}/``: submit a build (201)
        - ``GET  {prefix}/``: list builds, newest first
        - ``GET  {prefix}/{build_id}``: one build with its phase
        - ``GET  {prefix}/{build_id}/request``: the submitted request
        - ``POST {prefix}/{build_id}/cancel``: cancel a running build
        - ``GET  {prefix}/{build_id}/logs``: raw log text
    """
    router = APIRouter(prefix=prefix, tags=["builds"])

    @router.post("/", status_code=201)
    async def submit_build(
        body: BuildRequest,
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> JSONResponse:
        try:
            job = await service.create_build_job(
                body, _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return JSONResponse(status_code=201, content=_job_body(job))

    @router.get("/")
    async def list_builds(
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> JSONResponse:
        try:
            jobs = await service.list_build_jobs(
                _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return JSONResponse(content=[_job_body(job) for job in jobs])

    @router.get("/{build_id}")
    async def get_build(
        build_id: str,
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> JSONResponse:
        try:
            job = await service.get_build_job(
                build_id, _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return JSONResponse(content=_job_body(job))

    @router.get("/{build_id}/request")
    async def get_build_request(
        build_id: str,
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> JSONResponse:
        try:
            request = await service.get_build_request(
                build_id, _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return JSONResponse(content=request.model_dump(mode="json", by_alias=True))

    @router.post("/{build_id}/cancel")
    async def cancel_build(
        build_id: str,
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> JSONResponse:
        try:
            cancelled = await service.cancel_build_job(
                build_id, _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return JSONResponse(content={"build_id": build_id, "cancelled": cancelled})

    @router.get("/{build_id}/logs", response_class=PlainTextResponse)
    async def build_logs(
        build_id: str,
        namespace: str | None = Query(default=None),
        x_namespace: str | None = Header(default=None),
        referer: str | None = Header(default=None),
    ) -> PlainTextResponse:
        try:
            text = await service.get_build_logs(
                build_id, _namespace(x_namespace, namespace), context_path=referer
            )
        except RPMBuilderError as exc:
            raise _http_error(exc) from exc
        return PlainTextResponse(text)

    return router
