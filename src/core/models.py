# src/core/models.py - v4
"""Persisted pipeline records: GenerationJob, StageRun, LogEntry, Artifact.

A job owns one StageRun per attempted stage and an append-only stream of
LogEntry records. Artifacts are the versioned work product; version i is
produced by stage i.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from wavebrief.config.stages import STAGE_NAMES

JobStatus = Literal["queued", "running", "completed", "failed"]
StageStatus = Literal["pending", "running", "completed", "failed"]
LogLevel = Literal["info", "debug", "error"]

TERMINAL_JOB_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Stage index used for log entries that belong to the job rather than a stage.
JOB_LEVEL_STAGE = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StageOptions(BaseModel):
    """Per-stage options. Stages without tunables accept no keys."""

    model_config = ConfigDict(extra="forbid")


class DocumentIntegrationOptions(StageOptions):
    max_document_chars: int | None = Field(default=None, ge=1)


class StyleConformanceOptions(StageOptions):
    reference_sample_chars: int | None = Field(default=None, ge=1)


class FinalConsolidationOptions(StageOptions):
    tolerance_words: int | None = Field(default=None, ge=0)


STAGE_OPTION_MODELS: dict[str, type[StageOptions]] = {
    "document_integration": DocumentIntegrationOptions,
    "style_conformance": StyleConformanceOptions,
    "final_consolidation": FinalConsolidationOptions,
}


class JobConfig(BaseModel):
    """Options resolved at job creation. Immutable for the job's lifetime."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    target_word_count: int = Field(default=6000, ge=500, le=50_000)
    aggressive_inclusion: bool = True
    stage_options: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("stage_options")
    @classmethod
    def validate_stage_options(
        cls, v: dict[str, dict[str, Any]]
    ) -> dict[str, dict[str, Any]]:
        unknown = sorted(set(v) - set(STAGE_NAMES))
        if unknown:
            raise ValueError(f"unknown stage(s) in stage_options: {', '.join(unknown)}")
        validated: dict[str, dict[str, Any]] = {}
        errors: list[str] = []
        for stage, options in v.items():
            model = STAGE_OPTION_MODELS.get(stage, StageOptions)
            try:
                parsed = model.model_validate(options)
            except PydanticValidationError as exc:
                errors.extend(
                    f"{stage}.{'.'.join(str(p) for p in e['loc'])}: {e['msg']}"
                    for e in exc.errors()
                )
                continue
            # Unset options fall back to the stage's own defaults.
            validated[stage] = parsed.model_dump(exclude_none=True)
        if errors:
            raise ValueError("invalid stage_options: " + "; ".join(errors))
        return validated

    def options_for(self, stage_name: str) -> dict[str, Any]:
        """Return the option dict for a stage (empty if none given)."""
        return dict(self.stage_options.get(stage_name, {}))


class GenerationJob(BaseModel):
    """One end-to-end run of the stage pipeline for a case."""

    id: str
    case_id: str
    owner_id: str
    status: JobStatus = "queued"
    config: JobConfig = Field(default_factory=JobConfig)
    stages_total: int = Field(default=len(STAGE_NAMES), ge=1)
    current_stage: int = 0
    final_artifact_ref: str | None = None
    final_word_count: int | None = None
    error_message: str | None = None
    error_stage_index: int | None = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def validate_terminal_fields(self) -> GenerationJob:
        """Terminal-only fields are set exactly when the status allows them."""
        if (self.final_artifact_ref is not None) != (self.status == "completed"):
            raise ValueError("final_artifact_ref must be set iff status is completed")
        if (self.error_message is not None) != (self.status == "failed"):
            raise ValueError("error_message must be set iff status is failed")
        if (self.completed_at is not None) != self.is_terminal:
            raise ValueError("completed_at must be set iff status is terminal")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES


class StageRun(BaseModel):
    """Persisted record of one stage's execution within one job."""

    job_id: str
    stage_index: int = Field(ge=1)
    stage_name: str
    status: StageStatus = "pending"
    attempts: int = 0
    artifacts: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class LogEntry(BaseModel):
    """Append-only structured log line keyed by job and stage."""

    id: int | None = None
    job_id: str
    stage_index: int = JOB_LEVEL_STAGE
    stage_name: str | None = None
    level: LogLevel = "info"
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class BriefSection(BaseModel):
    """One headed section of a brief."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str


class Artifact(BaseModel):
    """One version of the evolving brief."""

    model_config = ConfigDict(frozen=True)

    ref: str
    job_id: str
    version: int = Field(ge=1)
    stage_name: str
    content: str
    sections: tuple[BriefSection, ...] = ()
    word_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)


def artifact_ref(job_id: str, version: int) -> str:
    """Build the reference string for an artifact version."""
    return f"{job_id}/v{version}"
