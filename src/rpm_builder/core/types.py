from __future__ import annotations

import base64
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from rpm_builder.core.constants import (
    ANNOTATION_ARCHITECTURE,
    ANNOTATION_TARGET_OS,
    LABEL_BUILD_ID,
    LABEL_PACKAGE_NAME,
    BuildPhase,
    SourceType,
)
from rpm_builder.core.exceptions import ValidationError

LABEL_VALUE_MAX_LENGTH = 63
LABEL_VALUE_PATTERN = re.compile(r"^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?\Z")


class SourceFile(BaseModel):
    """One uploaded source file.

    ``content`` is base64 text so it can be stored as ConfigMap
    ``binaryData``; ``size`` is the size of the raw (decoded) bytes.
    """

    name: str
    size: int = Field(ge=0)
    content: str

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> SourceFile:
        return cls(
            name=name,
            size=len(data),
            content=base64.b64encode(data).decode("ascii"),
        )

    @classmethod
    def from_path(cls, path: str | Path, name: str | None = None) -> SourceFile:
        p = Path(path)
        return cls.from_bytes(name or p.name, p.read_bytes())


class BuildRequest(BaseModel):
    """User-authored description of one package build.

    Field aliases are the camelCase names used in the serialized
    ``build-config.json`` document.
    """

    name: str = ""
    version: str = "1.0.0"
    description: str = ""
    source_type: SourceType = Field(default=SourceType.UPLOAD, alias="sourceType")
    git_repository: str | None = Field(default=None, alias="gitRepository")
    git_branch: str | None = Field(default=None, alias="gitBranch")
    files: list[SourceFile] = Field(default_factory=list)
    target_os: str = Field(default="rhivos", alias="targetOS")
    architecture: str = "aarch64"
    dependencies: list[str] = Field(default_factory=list)
    build_options: list[str] = Field(default_factory=list, alias="buildOptions")
    spec_file: str | None = Field(default=None, alias="specFile")

    model_config = {"populate_by_name": True}

    def validate_for_submission(self) -> None:
        """Raise :class:`ValidationError` unless the request can be submitted.

        Exactly one source mode is active; its required fields must be set.
        The package name must also be usable as a Kubernetes label value.
        """
        name = self.name.strip()
        if not name:
            raise ValidationError("Package name is required", code="name")
        if len(name) > LABEL_VALUE_MAX_LENGTH or not LABEL_VALUE_PATTERN.match(name):
            raise ValidationError(
                f"Package name {name!r} must be at most {LABEL_VALUE_MAX_LENGTH} "
                "characters of letters, digits, '-', '_' or '.', "
                "starting and ending with a letter or digit",
                code="name",
            )
        if not self.version.strip():
            raise ValidationError("Package version is required", code="version")
        if self.source_type == SourceType.UPLOAD and not self.files:
            raise ValidationError(
                "At least one file must be uploaded", code="files"
            )
        if self.source_type == SourceType.GIT and not (self.git_repository or "").strip():
            raise ValidationError(
                "Git repository URL is required", code="gitRepository"
            )
        if not self.target_os.strip():
            raise ValidationError("Target OS is required", code="targetOS")
        if not self.architecture.strip():
            raise ValidationError("Architecture is required", code="architecture")

    def normalized(self) -> BuildRequest:
        """Return a copy with trimmed fields and de-duplicated dependencies.

        Dependencies are compared case-insensitively and keep their first
        spelling and position.  Build options keep duplicates (flag order
        and repetition can matter to a build system).
        """
        seen: set[str] = set()
        deps: list[str] = []
        for dep in self.dependencies:
            dep = dep.strip()
            if dep and dep.lower() not in seen:
                seen.add(dep.lower())
                deps.append(dep)
        options = [opt.strip() for opt in self.build_options if opt.strip()]
        return self.model_copy(
            update={
                "name": self.name.strip(),
                "version": self.version.strip(),
                "git_repository": (
                    self.git_repository.strip() if self.git_repository else None
                ),
                "git_branch": self.git_branch.strip() if self.git_branch else None,
                "dependencies": deps,
                "build_options": options,
            }
        )

    def to_document(self) -> dict[str, Any]:
        """Serializable form for ``build-config.json``.

        File contents are left out (they live in the per-file ConfigMaps);
        names and sizes are kept so the request can be shown again.
        """
        doc = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        doc["files"] = [{"name": f.name, "size": f.size} for f in self.files]
        return doc


class Condition(BaseModel):
    """A typed status entry reported by the pipeline engine."""

    type: str
    status: str
    last_transition_time: str | None = Field(default=None, alias="lastTransitionTime")
    reason: str | None = None
    message: str | None = None

    model_config = {"populate_by_name": True}


class BuildJobStatus(BaseModel):
    phase: BuildPhase = BuildPhase.PENDING
    start_time: str | None = Field(default=None, alias="startTime")
    completion_time: str | None = Field(default=None, alias="completionTime")
    conditions: list[Condition] = Field(default_factory=list)
    message: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}


class BuildJob(BaseModel):
    """Externally visible projection of one build.

    ``build_config`` holds the full request at submission time and the
    recoverable subset (target OS, architecture) when read back from the
    PipelineRun.  Use :meth:`RPMBuildService.get_build_request` for the
    full request of an existing build.
    """

    name: str
    namespace: str
    build_id: str
    package_name: str = ""
    target_os: str = ""
    architecture: str = ""
    build_config: dict[str, Any] = Field(default_factory=dict)
    status: BuildJobStatus = Field(default_factory=BuildJobStatus)
    created_at: str | None = None
    """The PipelineRun's ``creationTimestamp`` (unset on a freshly submitted job)."""

    model_config = {"frozen": True}

    @property
    def phase(self) -> BuildPhase:
        return self.status.phase

    @property
    def is_terminal(self) -> bool:
        return self.status.phase.is_terminal

    @property
    def labels(self) -> dict[str, str]:
        return {LABEL_BUILD_ID: self.build_id, LABEL_PACKAGE_NAME: self.package_name}

    @property
    def annotations(self) -> dict[str, str]:
        return {
            ANNOTATION_TARGET_OS: self.target_os,
            ANNOTATION_ARCHITECTURE: self.architecture,
        }
