# src/storage/memory_store.py - v1
"""In-process job store (STORE_BACKEND=memory).

Useful for tests and single-process embedding. Nothing survives a restart.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable

from wavebrief.core.models import Artifact, GenerationJob, LogEntry, StageRun
from wavebrief.storage.base_job_store import BaseJobStore


class MemoryJobStore(BaseJobStore):
    """Dict-backed store. Models are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._jobs: dict[str, GenerationJob] = {}
        self._stage_runs: dict[str, dict[int, StageRun]] = {}
        self._artifacts: dict[str, Artifact] = {}
        self._logs: dict[str, list[LogEntry]] = {}
        self._log_seq = itertools.count(1)

    async def create_job(self, job: GenerationJob) -> None:
        if job.id in self._jobs:
            raise ValueError(f"Job {job.id} already exists")
        self._jobs[job.id] = job.model_copy(deep=True)

    async def get_job(self, job_id: str) -> GenerationJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    async def update_job(self, job: GenerationJob) -> None:
        if job.id not in self._jobs:
            raise KeyError(job.id)
        self._jobs[job.id] = job.model_copy(deep=True)

    async def list_jobs_by_case(self, case_id: str) -> list[GenerationJob]:
        # Insertion order breaks created_at ties.
        jobs = [j for j in self._jobs.values() if j.case_id == case_id]
        ordered = sorted(enumerate(jobs), key=lambda p: (p[1].created_at, p[0]), reverse=True)
        return [j.model_copy(deep=True) for _, j in ordered]

    async def list_jobs_by_status(self, statuses: Iterable[str]) -> list[GenerationJob]:
        wanted = set(statuses)
        jobs = [j for j in self._jobs.values() if j.status in wanted]
        jobs.sort(key=lambda j: j.created_at)
        return [j.model_copy(deep=True) for j in jobs]

    async def save_stage_run(self, run: StageRun) -> None:
        self._stage_runs.setdefault(run.job_id, {})[run.stage_index] = run.model_copy(deep=True)

    async def list_stage_runs(self, job_id: str) -> list[StageRun]:
        runs = self._stage_runs.get(job_id, {})
        return [runs[i].model_copy(deep=True) for i in sorted(runs)]

    async def save_artifact(self, artifact: Artifact) -> None:
        self._artifacts[artifact.ref] = artifact

    async def get_artifact(self, ref: str) -> Artifact | None:
        return self._artifacts.get(ref)

    async def append_log(self, entry: LogEntry) -> LogEntry:
        stored = entry.model_copy(update={"id": next(self._log_seq)}, deep=True)
        self._logs.setdefault(entry.job_id, []).append(stored)
        return stored.model_copy(deep=True)

    async def read_logs(
        self, job_id: str, stage_index: int | None = None
    ) -> list[LogEntry]:
        return [
            e.model_copy(deep=True)
            for e in self._logs.get(job_id, [])
            if stage_index is None or e.stage_index == stage_index
        ]

    async def count_logs(self, job_id: str) -> int:
        return len(self._logs.get(job_id, []))
