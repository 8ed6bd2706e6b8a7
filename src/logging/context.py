# src/logging/context.py - v2
"""Contextual logging support: attach job, case and stage to log records.

The executor sets the job context once per run and the stage context before
each wave, so every process log line emitted while a stage runs carries the
ids needed to correlate it with the persisted LogEntry stream.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables are task-local: concurrent jobs never see each other's ids.
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_case_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "case_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_stage_index: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "stage_index", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of current logging context."""

    job_id: str | None = None
    case_id: str | None = None
    stage: str | None = None
    stage_index: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        job_id=_job_id.get(),
        case_id=_case_id.get(),
        stage=_stage.get(),
        stage_index=_stage_index.get(),
    )


def set_job_context(job_id: str, case_id: str) -> None:
    """Set job-level context (called once per pipeline run)."""
    _job_id.set(job_id)
    _case_id.set(case_id)
    _stage.set(None)
    _stage_index.set(None)


def set_stage_context(stage: str, stage_index: int) -> None:
    """Set stage-level context (called before each stage executes)."""
    _stage.set(stage)
    _stage_index.set(stage_index)


def clear_context() -> None:
    """Reset all context variables."""
    _job_id.set(None)
    _case_id.set(None)
    _stage.set(None)
    _stage_index.set(None)
