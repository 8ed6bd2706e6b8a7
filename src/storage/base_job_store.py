# src/storage/base_job_store.py - v1
"""Abstract persistence interface for jobs, stage runs, artifacts and logs.

Logical layout:
  jobs        keyed by job id
  stage_runs  keyed by (job id, stage index)
  artifacts   keyed by artifact ref
  logs        append order, indexed by job id

Each write is a single record; implementations serialize individual writes.
Returned models are copies, so callers never share mutable state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from wavebrief.core.models import Artifact, GenerationJob, LogEntry, StageRun


class BaseJobStore(ABC):
    """Unified interface for job persistence backends."""

    # --- Jobs ---

    @abstractmethod
    async def create_job(self, job: GenerationJob) -> None:
        """Insert a new job record. Raises ValueError if the id exists."""

    @abstractmethod
    async def get_job(self, job_id: str) -> GenerationJob | None:
        """Fetch a job by id."""

    @abstractmethod
    async def update_job(self, job: GenerationJob) -> None:
        """Replace an existing job record."""

    @abstractmethod
    async def list_jobs_by_case(self, case_id: str) -> list[GenerationJob]:
        """All jobs for a case, most recent first."""

    @abstractmethod
    async def list_jobs_by_status(self, statuses: Iterable[str]) -> list[GenerationJob]:
        """All jobs whose status is in statuses, oldest first."""

    # --- Stage runs ---

    @abstractmethod
    async def save_stage_run(self, run: StageRun) -> None:
        """Upsert the stage run keyed by (job_id, stage_index)."""

    @abstractmethod
    async def list_stage_runs(self, job_id: str) -> list[StageRun]:
        """Stage runs for a job in ascending stage index."""

    # --- Artifacts ---

    @abstractmethod
    async def save_artifact(self, artifact: Artifact) -> None:
        """Persist one artifact version."""

    @abstractmethod
    async def get_artifact(self, ref: str) -> Artifact | None:
        """Fetch an artifact version by ref."""

    # --- Logs ---

    @abstractmethod
    async def append_log(self, entry: LogEntry) -> LogEntry:
        """Append a log entry and return it with its sequence id assigned."""

    @abstractmethod
    async def read_logs(
        self, job_id: str, stage_index: int | None = None
    ) -> list[LogEntry]:
        """Log entries for a job (optionally one stage) in append order."""

    @abstractmethod
    async def count_logs(self, job_id: str) -> int:
        """Number of log entries stored for a job."""

    def close(self) -> None:
        """Release backend resources."""
