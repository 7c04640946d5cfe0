from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Callable
from typing import Any

import structlog

from rpm_builder.core.config import BuilderConfig
from rpm_builder.core.constants import (
    ANNOTATION_ARCHITECTURE,
    ANNOTATION_BUILD_CONFIG,
    ANNOTATION_TARGET_OS,
    LABEL_BUILD_ID,
    LABEL_FILE_INDEX,
    LABEL_PACKAGE_NAME,
    LABEL_TEKTON_PIPELINE_RUN,
    NO_LOGS_MESSAGE,
    PIPELINE_RUN_CANCELLED,
    PIPELINE_RUN_PREFIX,
    BuildPhase,
    build_config_name,
    pipeline_run_name,
)
from rpm_builder.core.exceptions import (
    BuildNotFoundError,
    BuildSubmissionError,
    GatewayError,
    ResourceNotFoundError,
)
from rpm_builder.core.ids import generate_build_id
from rpm_builder.core.namespace import NamespaceResolver
from rpm_builder.core.status import job_status_from
from rpm_builder.core.types import BuildJob, BuildJobStatus, BuildRequest, SourceFile
from rpm_builder.gateway.base import CONFIG_MAP, PIPELINE_RUN, GatewayProtocol
from rpm_builder.resources.builder import (
    BUILD_CONFIG_KEY,
    build_config_resource,
    pipeline_run_resource,
    source_file_resources,
)
from rpm_builder.resources.images import DEFAULT_OS_IMAGES, OSImageMap
from rpm_builder.utils.logging import build_context

logger = structlog.get_logger(__name__)


def _build_id_of(run: dict[str, Any]) -> str:
    metadata = run.get("metadata") or {}
    labels = metadata.get("labels") or {}
    build_id = labels.get(LABEL_BUILD_ID)
    if build_id:
        return str(build_id)
    name = str(metadata.get("name") or "")
    return name[len(PIPELINE_RUN_PREFIX):] if name.startswith(PIPELINE_RUN_PREFIX) else name


def _recorded_config(annotations: dict[str, Any]) -> dict[str, Any]:
    raw = annotations.get(ANNOTATION_BUILD_CONFIG)
    if not raw or not isinstance(raw, str):
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("invalid_build_config_annotation", value=raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _text(*candidates: Any) -> str:
    """First non-empty string among *candidates*; anything else is skipped."""
    for value in candidates:
        if isinstance(value, str) and value:
            return value
    return ""


def build_job_from_pipeline_run(run: dict[str, Any]) -> BuildJob:
    """Project a PipelineRun document into a :class:`BuildJob`.

    Target OS and architecture come from the ``build-config`` annotation,
    then from the individual annotations.  The package name comes from its
    label.  Values that are not strings are ignored, so any PipelineRun
    the cluster returns projects to a job.
    """
    metadata = run.get("metadata") or {}
    labels = metadata.get("labels") or {}
    annotations = metadata.get("annotations") or {}
    recorded = _recorded_config(annotations)

    target_os = _text(recorded.get("targetOS"), annotations.get(ANNOTATION_TARGET_OS))
    architecture = _text(
        recorded.get("architecture"), annotations.get(ANNOTATION_ARCHITECTURE)
    )
    build_config = dict(recorded)
    build_config["targetOS"] = target_os
    build_config["architecture"] = architecture
    created_at = metadata.get("creationTimestamp")

    return BuildJob(
        name=str(metadata.get("name") or ""),
        namespace=str(metadata.get("namespace") or ""),
        build_id=_build_id_of(run),
        package_name=_text(labels.get(LABEL_PACKAGE_NAME)),
        target_os=target_os,
        architecture=architecture,
        build_config=build_config,
        status=job_status_from(run.get("status")),
        created_at=created_at if isinstance(created_at, str) else None,
    )


class RPMBuildService:
    """Submits RPM builds to the cluster and reads their state back.

    Usage::

        service = RPMBuildService(gateway, config=BuilderConfig(default_namespace="demo"))
        job = await service.create_build_job(request)
        job = await service.get_build_job(job.build_id)

    Every operation takes an optional *namespace*; when it is omitted (or
    is the console's all-namespaces sentinel) the namespace is resolved
    from *context_path* and then from ``config.default_namespace``.
    """

    def __init__(
        self,
        gateway: GatewayProtocol,
        *,
        config: BuilderConfig | None = None,
        image_map: OSImageMap | None = None,
        id_generator: Callable[[], str] | None = None,
        namespace_resolver: NamespaceResolver | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config or BuilderConfig()
        self._image_map = image_map if image_map is not None else DEFAULT_OS_IMAGES
        self._generate_id = id_generator or generate_build_id
        self._resolver = namespace_resolver or NamespaceResolver(
            self._config.default_namespace
        )

    @property
    def config(self) -> BuilderConfig:
        return self._config

    def resolve_namespace(
        self, namespace: str | None = None, *, context_path: str | None = None
    ) -> str:
        return self._resolver.resolve(namespace, context_path=context_path)

    # ------------------------------------------------------------------ #
    # Submission
    # ------------------------------------------------------------------ #

    async def create_build_job(
        self,
        request: BuildRequest,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> BuildJob:
        """Create the ConfigMaps and the PipelineRun of a new build.

        Resources are created in order: build-config ConfigMap, one
        ConfigMap per uploaded file, PipelineRun.  The first failure stops
        the chain; resources already created are left in place and named
        in the raised error's ``details["created"]``.

        Returns:
            The submitted job, in phase ``Pending``.

        Raises:
            ValidationError: The request is incomplete or a payload is too
                large.  No cluster call has been made.
            NamespaceError: No namespace could be resolved.
            BuildSubmissionError: A create call failed.
        """
        request.validate_for_submission()
        request = request.normalized()
        ns = self.resolve_namespace(namespace, context_path=context_path)
        build_id = self._generate_id()

        # Every document is built up front so payload errors surface
        # before the first create.
        documents = [
            (CONFIG_MAP, build_config_resource(build_id, request, namespace=ns)),
            *(
                (CONFIG_MAP, doc)
                for doc in source_file_resources(build_id, request.files, namespace=ns)
            ),
            (
                PIPELINE_RUN,
                pipeline_run_resource(
                    build_id,
                    request,
                    namespace=ns,
                    pipeline_name=self._config.pipeline_name,
                    image_map=self._image_map,
                ),
            ),
        ]

        created: list[str] = []
        with build_context(build_id, ns):
            for model, document in documents:
                name = document["metadata"]["name"]
                try:
                    await self._gateway.create(model, document, ns)
                except GatewayError as exc:
                    logger.error(
                        "build_submission_failed",
                        kind=model.kind,
                        resource=name,
                        created=created,
                        error=str(exc),
                    )
                    raise BuildSubmissionError(
                        f"Failed to create {model.kind} {name}: {exc}",
                        code=exc.code,
                        details={
                            "build_id": build_id,
                            "namespace": ns,
                            "failed": name,
                            "created": list(created),
                        },
                        status_code=exc.status_code,
                    ) from exc
                created.append(name)

            logger.info("build_submitted", package=request.name, resources=len(created))
        return BuildJob(
            name=pipeline_run_name(build_id),
            namespace=ns,
            build_id=build_id,
            package_name=request.name,
            target_os=request.target_os,
            architecture=request.architecture,
            build_config=request.to_document(),
            status=BuildJobStatus(phase=BuildPhase.PENDING),
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def _get_pipeline_run(self, build_id: str, ns: str) -> dict[str, Any]:
        try:
            return await self._gateway.get(PIPELINE_RUN, pipeline_run_name(build_id), ns)
        except ResourceNotFoundError as exc:
            raise BuildNotFoundError(
                f"Build {build_id} not found in namespace {ns}",
                code="404",
                details={"build_id": build_id, "namespace": ns},
                status_code=404,
            ) from exc

    async def get_build_job(
        self,
        build_id: str,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> BuildJob:
        """Fetch a build and translate its PipelineRun status.

        Raises:
            BuildNotFoundError: No PipelineRun exists for *build_id*.
        """
        ns = self.resolve_namespace(namespace, context_path=context_path)
        run = await self._get_pipeline_run(build_id, ns)
        return build_job_from_pipeline_run(run)

    async def list_build_jobs(
        self,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> list[BuildJob]:
        """All builds in the namespace, newest first."""
        ns = self.resolve_namespace(namespace, context_path=context_path)
        runs = await self._gateway.list(PIPELINE_RUN, ns, LABEL_BUILD_ID)
        runs.sort(
            key=lambda r: (r.get("metadata") or {}).get("creationTimestamp") or "",
            reverse=True,
        )
        return [build_job_from_pipeline_run(run) for run in runs]

    async def get_build_request(
        self,
        build_id: str,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> BuildRequest:
        """Recover the submitted request from the build's ConfigMaps.

        Uploaded file contents are read back from the per-file ConfigMaps,
        in upload order.

        Raises:
            BuildNotFoundError: The build-config ConfigMap does not exist.
        """
        ns = self.resolve_namespace(namespace, context_path=context_path)
        name = build_config_name(build_id)
        try:
            config_map = await self._gateway.get(CONFIG_MAP, name, ns)
        except ResourceNotFoundError as exc:
            raise BuildNotFoundError(
                f"Build configuration {name} not found in namespace {ns}",
                code="404",
                details={"build_id": build_id, "namespace": ns},
                status_code=404,
            ) from exc

        raw = (config_map.get("data") or {}).get(BUILD_CONFIG_KEY)
        if not raw:
            raise GatewayError(
                f"ConfigMap {name} has no {BUILD_CONFIG_KEY} entry",
                details={"build_id": build_id, "namespace": ns},
            )
        try:
            document: dict[str, Any] = json.loads(raw)
        except ValueError as exc:
            raise GatewayError(
                f"ConfigMap {name} holds invalid JSON: {exc}",
                details={"build_id": build_id, "namespace": ns},
            ) from exc

        document["files"] = await self._read_source_files(build_id, ns)
        return BuildRequest.model_validate(document)

    async def _read_source_files(self, build_id: str, ns: str) -> list[SourceFile]:
        selector = f"{LABEL_BUILD_ID}={build_id},{LABEL_FILE_INDEX}"
        config_maps = await self._gateway.list(CONFIG_MAP, ns, selector)
        config_maps.sort(
            key=lambda cm: int(cm["metadata"]["labels"].get(LABEL_FILE_INDEX, "0"))
        )
        files: list[SourceFile] = []
        for cm in config_maps:
            for file_name, content in (cm.get("binaryData") or {}).items():
                try:
                    size = len(base64.b64decode(content))
                except (binascii.Error, ValueError):
                    size = 0
                files.append(SourceFile(name=file_name, size=size, content=content))
        return files

    async def get_build_logs(
        self,
        build_id: str,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> str:
        """Raw log text of the build's first pod, or a placeholder when none exists yet."""
        ns = self.resolve_namespace(namespace, context_path=context_path)
        selector = f"{LABEL_TEKTON_PIPELINE_RUN}={pipeline_run_name(build_id)}"
        text = await self._gateway.read_logs(ns, selector)
        if text is None:
            return NO_LOGS_MESSAGE
        return text

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    async def cancel_build_job(
        self,
        build_id: str,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> bool:
        """Ask the pipeline engine to stop a running build.

        The PipelineRun is re-submitted with ``spec.status`` set to the
        cancellation marker; nothing is deleted.

        Returns:
            ``True`` when the update was sent, ``False`` when the build had
            already finished.
        """
        ns = self.resolve_namespace(namespace, context_path=context_path)
        run = await self._get_pipeline_run(build_id, ns)
        job = build_job_from_pipeline_run(run)
        with build_context(build_id, ns):
            if job.is_terminal:
                logger.info("build_cancel_skipped", phase=job.phase)
                return False

            spec = dict(run.get("spec") or {})
            spec["status"] = PIPELINE_RUN_CANCELLED
            run["spec"] = spec
            await self._gateway.update(PIPELINE_RUN, run, ns)
            logger.info("build_cancelled")
        return True
