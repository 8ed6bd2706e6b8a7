# src/storage/redis_store.py - v1
"""Redis-based job store (STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Lets several processes read one job registry. Only one process may run
recover() against it: recovery treats every unfinished job without a task in
the current process as interrupted.

Key layout (prefix "wavebrief:"):
    job:{id}            JSON job record
    case:{case_id}      sorted set of job ids scored by created_at
    jobs:__index__      set of all job ids
    runs:{id}           hash stage_index -> JSON stage run
    artifact:{ref}      JSON artifact
    logs:{id}           list of JSON log entries in append order
    logs:__seq__        counter used to assign log ids
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from wavebrief.core.models import Artifact, GenerationJob, LogEntry, StageRun
from wavebrief.storage.base_job_store import BaseJobStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "wavebrief:"
_INDEX_KEY = "wavebrief:jobs:__index__"
_LOG_SEQ_KEY = "wavebrief:logs:__seq__"


class RedisJobStore(BaseJobStore):
    """Redis-backed job store."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    # --- Jobs ---

    async def create_job(self, job: GenerationJob) -> None:
        created = self._client.set(
            f"{_KEY_PREFIX}job:{job.id}", job.model_dump_json(), nx=True
        )
        if not created:
            raise ValueError(f"Job {job.id} already exists")
        self._client.zadd(
            f"{_KEY_PREFIX}case:{job.case_id}", {job.id: job.created_at.timestamp()}
        )
        self._client.sadd(_INDEX_KEY, job.id)

    async def get_job(self, job_id: str) -> GenerationJob | None:
        data = self._client.get(f"{_KEY_PREFIX}job:{job_id}")
        if data is None:
            return None
        return GenerationJob.model_validate_json(data)

    async def update_job(self, job: GenerationJob) -> None:
        updated = self._client.set(
            f"{_KEY_PREFIX}job:{job.id}", job.model_dump_json(), xx=True
        )
        if not updated:
            raise KeyError(job.id)

    async def list_jobs_by_case(self, case_id: str) -> list[GenerationJob]:
        job_ids = self._client.zrevrange(f"{_KEY_PREFIX}case:{case_id}", 0, -1)
        return await self._load_jobs(job_ids)

    async def list_jobs_by_status(self, statuses: Iterable[str]) -> list[GenerationJob]:
        wanted = set(statuses)
        jobs = [
            job
            for job in await self._load_jobs(self._client.smembers(_INDEX_KEY))
            if job.status in wanted
        ]
        jobs.sort(key=lambda j: j.created_at)
        return jobs

    async def _load_jobs(self, job_ids: Iterable[str]) -> list[GenerationJob]:
        jobs: list[GenerationJob] = []
        for job_id in job_ids:
            job = await self.get_job(job_id)
            if job is not None:
                jobs.append(job)
        return jobs

    # --- Stage runs ---

    async def save_stage_run(self, run: StageRun) -> None:
        self._client.hset(
            f"{_KEY_PREFIX}runs:{run.job_id}", str(run.stage_index), run.model_dump_json()
        )

    async def list_stage_runs(self, job_id: str) -> list[StageRun]:
        raw = self._client.hgetall(f"{_KEY_PREFIX}runs:{job_id}")
        return [StageRun.model_validate_json(raw[k]) for k in sorted(raw, key=int)]

    # --- Artifacts ---

    async def save_artifact(self, artifact: Artifact) -> None:
        self._client.set(f"{_KEY_PREFIX}artifact:{artifact.ref}", artifact.model_dump_json())

    async def get_artifact(self, ref: str) -> Artifact | None:
        data = self._client.get(f"{_KEY_PREFIX}artifact:{ref}")
        if data is None:
            return None
        return Artifact.model_validate_json(data)

    # --- Logs ---

    async def append_log(self, entry: LogEntry) -> LogEntry:
        stored = entry.model_copy(update={"id": int(self._client.incr(_LOG_SEQ_KEY))})
        self._client.rpush(f"{_KEY_PREFIX}logs:{entry.job_id}", stored.model_dump_json())
        return stored

    async def read_logs(
        self, job_id: str, stage_index: int | None = None
    ) -> list[LogEntry]:
        raw = self._client.lrange(f"{_KEY_PREFIX}logs:{job_id}", 0, -1)
        entries = [LogEntry.model_validate_json(item) for item in raw]
        if stage_index is not None:
            entries = [e for e in entries if e.stage_index == stage_index]
        return entries

    async def count_logs(self, job_id: str) -> int:
        return int(self._client.llen(f"{_KEY_PREFIX}logs:{job_id}"))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
