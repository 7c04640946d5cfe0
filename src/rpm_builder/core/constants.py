from __future__ import annotations

from enum import StrEnum


class BuildPhase(StrEnum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildPhase.SUCCEEDED, BuildPhase.FAILED)


class SourceType(StrEnum):
    UPLOAD = "upload"
    GIT = "git"


# Label / annotation keys (part of the resource naming contract)
LABEL_BUILD_ID = "rpm-builder.io/build-id"
LABEL_PACKAGE_NAME = "rpm-builder.io/package-name"
LABEL_FILE_INDEX = "rpm-builder.io/file-index"
ANNOTATION_TARGET_OS = "rpm-builder.io/target-os"
ANNOTATION_ARCHITECTURE = "rpm-builder.io/architecture"
ANNOTATION_BUILD_CONFIG = "rpm-builder.io/build-config"

# Tekton labels its TaskRun pods with the owning PipelineRun name.
LABEL_TEKTON_PIPELINE_RUN = "tekton.dev/pipelineRun"

# Resource name prefixes: rpm-build-config-{id}, rpm-build-files-{id}-{i}, rpm-build-{id}
BUILD_CONFIG_PREFIX = "rpm-build-config-"
BUILD_FILES_PREFIX = "rpm-build-files-"
PIPELINE_RUN_PREFIX = "rpm-build-"

DEFAULT_PIPELINE_NAME = "rpm-build-pipeline"

# Console sentinel for "all namespaces"
ALL_NAMESPACES = "#ALL_NS#"

# Tekton v1beta1 cancellation marker written to spec.status
PIPELINE_RUN_CANCELLED = "PipelineRunCancelled"

# Condition type Tekton uses to report overall completion
COMPLETION_CONDITION = "Succeeded"

# Kubernetes rejects ConfigMaps whose combined data exceeds 1 MiB.
CONFIGMAP_MAX_BYTES = 1024 * 1024

SOURCE_WORKSPACE = "source-workspace"
OUTPUT_WORKSPACE = "output-workspace"
SOURCE_WORKSPACE_SIZE = "1Gi"
OUTPUT_WORKSPACE_SIZE = "500Mi"

NO_LOGS_MESSAGE = "No logs available yet."


def build_config_name(build_id: str) -> str:
    return f"{BUILD_CONFIG_PREFIX}{build_id}"


def build_files_name(build_id: str, index: int) -> str:
    return f"{BUILD_FILES_PREFIX}{build_id}-{index}"


def pipeline_run_name(build_id: str) -> str:
    return f"{PIPELINE_RUN_PREFIX}{build_id}"
