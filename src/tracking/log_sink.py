# src/tracking/log_sink.py - v1
"""Append-only job log sink written by the executor.

Fire-and-forget from the pipeline's point of view: a failing store or
notifier is reported on the process logger and never propagates. Each job
keeps at most max_entries_per_job entries; past the cap, info and debug
entries are dropped while error entries are still written.
"""

from __future__ import annotations

import logging
from typing import Any

from wavebrief.core.models import JOB_LEVEL_STAGE, LogEntry, LogLevel
from wavebrief.storage.base_job_store import BaseJobStore
from wavebrief.tracking.notifier import LogNotifier

logger = logging.getLogger(__name__)

THOUGHT_KIND = "thought"


class StageLogSink:
    """Persist LogEntry records and publish them to live subscribers.

    Args:
        store: Job store holding the log stream.
        notifier: Optional live channel; None disables publishing.
        max_entries_per_job: Cap on stored entries per job.
    """

    def __init__(
        self,
        store: BaseJobStore,
        notifier: LogNotifier | None = None,
        max_entries_per_job: int = 2000,
    ) -> None:
        if max_entries_per_job < 1:
            raise ValueError("max_entries_per_job must be >= 1")
        self._store = store
        self._notifier = notifier
        self._max_entries = max_entries_per_job
        self._dropped: dict[str, int] = {}

    @property
    def notifier(self) -> LogNotifier | None:
        return self._notifier

    async def append(
        self,
        job_id: str,
        stage_index: int = JOB_LEVEL_STAGE,
        level: LogLevel = "info",
        message: str = "",
        metadata: dict[str, Any] | None = None,
        stage_name: str | None = None,
    ) -> LogEntry | None:
        """Append one entry. Returns the stored entry, or None if it was not stored."""
        try:
            if level != "error" and await self._store.count_logs(job_id) >= self._max_entries:
                self._dropped[job_id] = self._dropped.get(job_id, 0) + 1
                return None
            entry = LogEntry(
                job_id=job_id,
                stage_index=stage_index,
                stage_name=stage_name,
                level=level,
                message=message,
                metadata=dict(metadata or {}),
            )
            stored = await self._store.append_log(entry)
        except Exception:
            logger.exception("Failed to append log entry for job %s", job_id)
            return None

        if self._notifier is not None:
            try:
                self._notifier.publish(stored)
            except Exception:
                logger.exception("Failed to publish log entry for job %s", job_id)
        return stored

    async def thought(
        self,
        job_id: str,
        stage_index: int,
        thought: str,
        thought_type: str = "analysis",
        details: str | None = None,
        mood: str | None = None,
        stage_name: str | None = None,
    ) -> LogEntry | None:
        """Append a narrative progress note shown in the thoughts feed."""
        metadata: dict[str, Any] = {"kind": THOUGHT_KIND, "type": thought_type}
        if details:
            metadata["details"] = details
        if mood:
            metadata["mood"] = mood
        return await self.append(
            job_id, stage_index, "debug", thought, metadata, stage_name=stage_name
        )

    async def read(self, job_id: str, stage_index: int | None = None) -> list[LogEntry]:
        """Return entries in append order. Only status queries call this."""
        return await self._store.read_logs(job_id, stage_index)

    async def thoughts(self, job_id: str) -> list[LogEntry]:
        return [
            e for e in await self._store.read_logs(job_id)
            if e.metadata.get("kind") == THOUGHT_KIND
        ]

    def dropped(self, job_id: str) -> int:
        """Number of entries refused by the cap for a job in this process."""
        return self._dropped.get(job_id, 0)

    def close(self, job_id: str) -> None:
        """End the live stream for a job."""
        self._dropped.pop(job_id, None)
        if self._notifier is not None:
            self._notifier.close(job_id)
