"""Desired-state documents for one build.

Pure functions: given the same build identifier and request they return
the same documents (the changelog date of a generated spec file aside).
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import date, datetime, timezone
from typing import Any

from rpm_builder.core.constants import (
    ANNOTATION_ARCHITECTURE,
    ANNOTATION_BUILD_CONFIG,
    ANNOTATION_TARGET_OS,
    CONFIGMAP_MAX_BYTES,
    DEFAULT_PIPELINE_NAME,
    LABEL_BUILD_ID,
    LABEL_FILE_INDEX,
    LABEL_PACKAGE_NAME,
    OUTPUT_WORKSPACE,
    OUTPUT_WORKSPACE_SIZE,
    SOURCE_WORKSPACE,
    SOURCE_WORKSPACE_SIZE,
    build_config_name,
    build_files_name,
    pipeline_run_name,
)
from rpm_builder.core.exceptions import PayloadTooLargeError, ValidationError
from rpm_builder.core.types import BuildRequest, SourceFile
from rpm_builder.resources.images import DEFAULT_OS_IMAGES, OSImageMap, map_os_to_image

BUILD_CONFIG_KEY = "build-config.json"
SPEC_FILE_KEY = "spec-file"
DEFAULT_GIT_BRANCH = "main"

CHANGELOG_AUTHOR = "RPM Builder <rpm-builder@openshift.local>"

# RPM changelog dates are always English ("%a %b %d %Y").
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _common_labels(build_id: str, component: str, k8s_component: str) -> dict[str, str]:
    return {
        LABEL_BUILD_ID: build_id,
        "app": "rpm-builder",
        "component": component,
        "app.kubernetes.io/name": "rpm-builder",
        "app.kubernetes.io/component": k8s_component,
        "app.kubernetes.io/part-of": "rpm-builder-plugin",
    }


def changelog_date(day: date) -> str:
    return f"{_WEEKDAYS[day.weekday()]} {_MONTHS[day.month - 1]} {day.day:02d} {day.year}"


def generate_spec_file(request: BuildRequest, *, today: date | None = None) -> str:
    """Generate a minimal RPM spec file from the request fields.

    The ``Requires:`` line is only emitted when there are dependencies.
    """
    day = today or datetime.now(timezone.utc).date()
    description = request.description.strip()
    summary = description.splitlines()[0] if description else request.name

    lines = [
        f"Name: {request.name}",
        f"Version: {request.version}",
        "Release: 1%{?dist}",
        f"Summary: {summary}",
        "License: GPL",
        "Group: Applications/System",
    ]
    if request.dependencies:
        lines.append(f"Requires: {', '.join(request.dependencies)}")
    lines += [
        "",
        "%description",
        description or f"RPM package for {request.name}",
        "",
        "%prep",
        "%setup -q",
        "",
        "%build",
        " ".join(request.build_options),
        "",
        "%install",
        "rm -rf %{buildroot}",
        "mkdir -p %{buildroot}%{_bindir}",
        "",
        "%clean",
        "rm -rf %{buildroot}",
        "",
        "%files",
        "%defattr(-,root,root,-)",
        "",
        "%changelog",
        f"* {changelog_date(day)} {CHANGELOG_AUTHOR} - {request.version}-1",
        "- Initial package build",
    ]
    return "\n".join(lines) + "\n"


def _check_size(name: str, size: int) -> None:
    if size > CONFIGMAP_MAX_BYTES:
        raise PayloadTooLargeError(
            f"{name} would hold {size} bytes; a ConfigMap holds at most "
            f"{CONFIGMAP_MAX_BYTES} bytes",
            code="payload_too_large",
            details={"resource": name, "size": size, "limit": CONFIGMAP_MAX_BYTES},
        )


def build_config_resource(
    build_id: str,
    request: BuildRequest,
    *,
    namespace: str,
    today: date | None = None,
) -> dict[str, Any]:
    """ConfigMap holding the serialized request and the spec file text."""
    name = build_config_name(build_id)
    data = {
        BUILD_CONFIG_KEY: json.dumps(request.to_document(), indent=2),
        SPEC_FILE_KEY: request.spec_file or generate_spec_file(request, today=today),
    }
    _check_size(name, sum(len(k) + len(v.encode("utf-8")) for k, v in data.items()))
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": _common_labels(build_id, "build-config", "configmap"),
        },
        "data": data,
    }


def _decoded_size(file: SourceFile) -> int:
    try:
        return len(base64.b64decode(file.content, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(
            f"Content of {file.name!r} is not valid base64",
            code="files",
        ) from exc


def source_file_resources(
    build_id: str,
    files: list[SourceFile],
    *,
    namespace: str,
) -> list[dict[str, Any]]:
    """One ConfigMap per uploaded file, named by the file's position."""
    documents: list[dict[str, Any]] = []
    for index, file in enumerate(files):
        name = build_files_name(build_id, index)
        _check_size(name, len(file.name) + _decoded_size(file))
        labels = _common_labels(build_id, "source-files", "configmap")
        labels[LABEL_FILE_INDEX] = str(index)
        documents.append(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {
                    "name": name,
                    "namespace": namespace,
                    "labels": labels,
                },
                "binaryData": {file.name: file.content},
            }
        )
    return documents


def _workspace(name: str, storage: str) -> dict[str, Any]:
    return {
        "name": name,
        "volumeClaimTemplate": {
            "spec": {
                "accessModes": ["ReadWriteOnce"],
                "resources": {"requests": {"storage": storage}},
            }
        },
    }


def pipeline_params(
    build_id: str,
    request: BuildRequest,
    image_map: OSImageMap = DEFAULT_OS_IMAGES,
) -> list[dict[str, str]]:
    """PipelineRun parameters in their fixed order."""
    return [
        {"name": "package-name", "value": request.name},
        {"name": "package-version", "value": request.version},
        {"name": "target-os", "value": map_os_to_image(request.target_os, image_map)},
        {"name": "architecture", "value": request.architecture},
        {"name": "build-id", "value": build_id},
        {"name": "source-type", "value": str(request.source_type)},
        {"name": "git-repository", "value": request.git_repository or ""},
        {"name": "git-branch", "value": request.git_branch or DEFAULT_GIT_BRANCH},
        {"name": "dependencies", "value": ",".join(request.dependencies)},
        {"name": "build-options", "value": " ".join(request.build_options)},
    ]


def pipeline_run_resource(
    build_id: str,
    request: BuildRequest,
    *,
    namespace: str,
    pipeline_name: str = DEFAULT_PIPELINE_NAME,
    image_map: OSImageMap = DEFAULT_OS_IMAGES,
) -> dict[str, Any]:
    """Tekton PipelineRun for the build.

    Workspace sizes are fixed and do not follow the upload size.
    """
    labels = _common_labels(build_id, "pipeline-run", "pipelinerun")
    labels[LABEL_PACKAGE_NAME] = request.name
    return {
        "apiVersion": "tekton.dev/v1beta1",
        "kind": "PipelineRun",
        "metadata": {
            "name": pipeline_run_name(build_id),
            "namespace": namespace,
            "labels": labels,
            "annotations": {
                ANNOTATION_TARGET_OS: request.target_os,
                ANNOTATION_ARCHITECTURE: request.architecture,
                ANNOTATION_BUILD_CONFIG: json.dumps(
                    {
                        "targetOS": request.target_os,
                        "architecture": request.architecture,
                    }
                ),
            },
        },
        "spec": {
            "pipelineRef": {"name": pipeline_name},
            "params": pipeline_params(build_id, request, image_map),
            "workspaces": [
                _workspace(SOURCE_WORKSPACE, SOURCE_WORKSPACE_SIZE),
                _workspace(OUTPUT_WORKSPACE, OUTPUT_WORKSPACE_SIZE),
            ],
        },
    }
