"""Status Translator: PipelineRun status → :class:`BuildPhase`.

The PipelineRun ``status`` block is loosely typed, so it is first
classified into one of three shapes and the phase is derived from the
shape alone:

* :class:`StatusAbsent`: no ``status`` at all → ``Pending``
* :class:`StatusInProgress`: status without a completion condition → ``Running``
* :class:`StatusCompleted`: completion condition present; ``True`` →
  ``Succeeded``, ``False`` → ``Failed``, anything else → ``Running``
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from rpm_builder.core.constants import COMPLETION_CONDITION, BuildPhase
from rpm_builder.core.types import BuildJobStatus, Condition


class StatusAbsent(BaseModel):
    kind: Literal["absent"] = "absent"


class StatusInProgress(BaseModel):
    kind: Literal["in_progress"] = "in_progress"
    conditions: list[Condition] = Field(default_factory=list)


class StatusCompleted(BaseModel):
    kind: Literal["completed"] = "completed"
    value: str
    """The completion condition's ``status`` verbatim (``True``, ``False``, ``Unknown``, …)."""
    condition: Condition
    conditions: list[Condition] = Field(default_factory=list)


ExecutionStatus = Annotated[
    Union[StatusAbsent, StatusInProgress, StatusCompleted],
    Field(discriminator="kind"),
]


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _parse_conditions(raw: Any) -> list[Condition]:
    if not isinstance(raw, list):
        return []
    conditions: list[Condition] = []
    for item in raw:
        if isinstance(item, dict) and "type" in item:
            conditions.append(
                Condition(
                    type=str(item["type"]),
                    status=str(item.get("status", "")),
                    lastTransitionTime=_optional_text(item.get("lastTransitionTime")),
                    reason=_optional_text(item.get("reason")),
                    message=_optional_text(item.get("message")),
                )
            )
    return conditions


def classify_status(raw: dict[str, Any] | None) -> ExecutionStatus:
    """Classify a raw PipelineRun ``status`` block.

    An empty ``status`` object counts as present: the engine has seen the
    run but not reported completion yet.
    """
    if raw is None:
        return StatusAbsent()
    if not isinstance(raw, dict):
        return StatusInProgress()

    conditions = _parse_conditions(raw.get("conditions"))
    completion = next(
        (c for c in conditions if c.type == COMPLETION_CONDITION), None
    )
    if completion is None:
        return StatusInProgress(conditions=conditions)
    return StatusCompleted(
        value=completion.status, condition=completion, conditions=conditions
    )


def translate(status: ExecutionStatus) -> BuildPhase:
    """Map a classified status to a phase.  Pure and total."""
    if isinstance(status, StatusAbsent):
        return BuildPhase.PENDING
    if isinstance(status, StatusInProgress):
        return BuildPhase.RUNNING
    if status.value == "True":
        return BuildPhase.SUCCEEDED
    if status.value == "False":
        return BuildPhase.FAILED
    return BuildPhase.RUNNING


def phase_for(raw: dict[str, Any] | None) -> BuildPhase:
    return translate(classify_status(raw))


def job_status_from(raw: dict[str, Any] | None) -> BuildJobStatus:
    """Project a raw PipelineRun ``status`` block into a :class:`BuildJobStatus`."""
    status = classify_status(raw)
    if isinstance(status, StatusAbsent):
        return BuildJobStatus(phase=BuildPhase.PENDING)

    fields = raw if isinstance(raw, dict) else {}
    message = status.condition.message if isinstance(status, StatusCompleted) else None
    return BuildJobStatus(
        phase=translate(status),
        start_time=_optional_text(fields.get("startTime")),
        completion_time=_optional_text(fields.get("completionTime")),
        conditions=status.conditions,
        message=message,
    )
