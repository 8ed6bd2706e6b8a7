# src/api/models.py - v2
"""API-level models: JobSubmission, JobStatusView, ThoughtView, ThoughtsView."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from wavebrief.core.models import GenerationJob, JobStatus, LogEntry, StageRun


class JobSubmission(BaseModel):
    """Returned by job creation. Nothing has run yet."""

    job_id: str
    status: Literal["queued"] = "queued"
    stages_total: int
    estimated_completion_minutes: int


class JobStatusView(BaseModel):
    """Read-only snapshot of a job with its stage runs and log entries."""

    job: GenerationJob
    stage_runs: list[StageRun] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)

    @property
    def progress(self) -> float:
        """Fraction of stages completed, 0.0 to 1.0."""
        done = sum(1 for r in self.stage_runs if r.status == "completed")
        return done / self.job.stages_total


class ThoughtView(BaseModel):
    id: int | None = None
    timestamp: datetime
    type: str
    stage_index: int
    stage_name: str | None = None
    thought: str
    details: str | None = None
    mood: str | None = None

    @classmethod
    def from_entry(cls, entry: LogEntry) -> ThoughtView:
        return cls(
            id=entry.id,
            timestamp=entry.timestamp,
            type=entry.metadata.get("type", "thinking"),
            stage_index=entry.stage_index,
            stage_name=entry.stage_name,
            thought=entry.message,
            details=entry.metadata.get("details"),
            mood=entry.metadata.get("mood"),
        )


class ThoughtsView(BaseModel):
    """Narrative progress feed for a job."""

    job_id: str
    status: JobStatus
    current_stage: int
    stages_total: int
    thoughts: list[ThoughtView] = Field(default_factory=list)
