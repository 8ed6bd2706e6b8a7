# src/jobs/lifecycle.py - v1
"""Job status transitions.

Every change to a GenerationJob's status goes through JobLifecycle, which
checks the transition table, re-validates the record's invariants and
persists it before returning the new copy.

    queued  -> running | failed
    running -> running | completed | failed
    completed, failed: terminal
"""

from __future__ import annotations

import logging
from typing import Any

from wavebrief.core.errors import InvalidTransitionError
from wavebrief.core.models import Artifact, GenerationJob, utc_now
from wavebrief.storage.base_job_store import BaseJobStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "queued": frozenset({"running", "failed"}),
    "running": frozenset({"running", "completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


class JobLifecycle:
    """Apply and persist job status transitions."""

    def __init__(self, store: BaseJobStore) -> None:
        self._store = store

    async def transition(
        self, job: GenerationJob, target: str, **changes: Any
    ) -> GenerationJob:
        """Move job to target status with extra field changes.

        Raises:
            InvalidTransitionError: If the move is not in the table.
        """
        if target not in ALLOWED_TRANSITIONS.get(job.status, frozenset()):
            raise InvalidTransitionError(job.id, job.status, target)
        data = job.model_dump()
        data.update(changes, status=target, updated_at=utc_now())
        updated = GenerationJob.model_validate(data)
        await self._store.update_job(updated)
        if target != job.status:
            logger.info("Job %s: %s -> %s", job.id, job.status, target)
        return updated

    async def mark_running(self, job: GenerationJob) -> GenerationJob:
        return await self.transition(job, "running", started_at=job.started_at or utc_now())

    async def set_current_stage(self, job: GenerationJob, stage_index: int) -> GenerationJob:
        return await self.transition(job, "running", current_stage=stage_index)

    async def mark_completed(self, job: GenerationJob, artifact: Artifact) -> GenerationJob:
        return await self.transition(
            job,
            "completed",
            final_artifact_ref=artifact.ref,
            final_word_count=artifact.word_count,
            completed_at=utc_now(),
        )

    async def mark_failed(
        self,
        job: GenerationJob,
        message: str,
        stage_index: int | None = None,
    ) -> GenerationJob:
        return await self.transition(
            job,
            "failed",
            error_message=message or "Unknown error",
            error_stage_index=stage_index,
            completed_at=utc_now(),
        )
