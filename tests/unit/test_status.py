"""Tests for core/status.py: PipelineRun status translation."""
from __future__ import annotations

import pytest

from rpm_builder.core.constants import BuildPhase
from rpm_builder.core.status import (
    StatusAbsent,
    StatusCompleted,
    StatusInProgress,
    classify_status,
    job_status_from,
    phase_for,
    translate,
)


def _succeeded(value: str, message: str | None = None) -> dict:
    condition = {"type": "Succeeded", "status": value, "reason": "Reason"}
    if message:
        condition["message"] = message
    return {"conditions": [condition]}


# ------------------------------------------------------------------ #
# classify_status
# ------------------------------------------------------------------ #


def test_missing_status_is_absent() -> None:
    assert isinstance(classify_status(None), StatusAbsent)


def test_empty_status_is_in_progress() -> None:
    assert isinstance(classify_status({}), StatusInProgress)


def test_empty_conditions_is_in_progress() -> None:
    assert isinstance(classify_status({"conditions": []}), StatusInProgress)


def test_other_condition_types_are_in_progress() -> None:
    status = classify_status(
        {"conditions": [{"type": "Ready", "status": "True"}]}
    )
    assert isinstance(status, StatusInProgress)
    assert status.conditions[0].type == "Ready"


def test_malformed_conditions_are_ignored() -> None:
    status = classify_status({"conditions": ["junk", {"status": "True"}, 7]})
    assert isinstance(status, StatusInProgress)
    assert status.conditions == []


def test_completion_condition_is_completed() -> None:
    status = classify_status(_succeeded("True"))
    assert isinstance(status, StatusCompleted)
    assert status.value == "True"


# ------------------------------------------------------------------ #
# translate / phase_for
# ------------------------------------------------------------------ #


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, BuildPhase.PENDING),
        ({}, BuildPhase.RUNNING),
        ({"conditions": []}, BuildPhase.RUNNING),
        (_succeeded("True"), BuildPhase.SUCCEEDED),
        (_succeeded("False"), BuildPhase.FAILED),
        (_succeeded("Unknown"), BuildPhase.RUNNING),
        (_succeeded(""), BuildPhase.RUNNING),
        (_succeeded("true"), BuildPhase.RUNNING),
    ],
)
def test_phase_for(raw: dict | None, expected: BuildPhase) -> None:
    assert phase_for(raw) == expected


def test_translate_is_idempotent() -> None:
    status = classify_status(_succeeded("False"))
    assert translate(status) == translate(status) == BuildPhase.FAILED


def test_terminal_phases() -> None:
    assert BuildPhase.SUCCEEDED.is_terminal
    assert BuildPhase.FAILED.is_terminal
    assert not BuildPhase.PENDING.is_terminal
    assert not BuildPhase.RUNNING.is_terminal


# ------------------------------------------------------------------ #
# job_status_from
# ------------------------------------------------------------------ #


def test_job_status_from_absent() -> None:
    status = job_status_from(None)
    assert status.phase == BuildPhase.PENDING
    assert status.start_time is None
    assert status.conditions == []


def test_job_status_from_completed_carries_times_and_message() -> None:
    raw = _succeeded("False", message="Tasks Completed: 1 (Failed: 1)")
    raw["startTime"] = "2026-01-05T10:00:00Z"
    raw["completionTime"] = "2026-01-05T10:04:00Z"

    status = job_status_from(raw)

    assert status.phase == BuildPhase.FAILED
    assert status.start_time == "2026-01-05T10:00:00Z"
    assert status.completion_time == "2026-01-05T10:04:00Z"
    assert status.message == "Tasks Completed: 1 (Failed: 1)"
    assert status.conditions[0].reason == "Reason"


def test_job_status_from_running_has_no_message() -> None:
    status = job_status_from({"startTime": "2026-01-05T10:00:00Z"})
    assert status.phase == BuildPhase.RUNNING
    assert status.start_time == "2026-01-05T10:00:00Z"
    assert status.message is None
