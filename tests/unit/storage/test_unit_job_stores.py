# tests/unit/storage/test_unit_job_stores.py - v1
"""Behaviour shared by every job store backend.

Runs the same cases against the memory store, a SQLite file and the Redis
store with its client replaced by an in-process fake.
"""

from __future__ import annotations

import sys
from datetime import timedelta
from unittest.mock import patch

import pytest

from wavebrief.core.models import Artifact, GenerationJob, LogEntry, StageRun, utc_now
from wavebrief.storage.memory_store import MemoryJobStore
from wavebrief.storage.redis_store import RedisJobStore
from wavebrief.storage.sqlite_store import SqliteJobStore


class FakeRedisClient:
    """Just enough of redis.Redis (decode_responses=True) for RedisJobStore."""

    def __init__(self) -> None:
        self.strings: dict[str, str] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.sets: dict[str, set[str]] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.lists: dict[str, list[str]] = {}
        self.closed = False

    def set(self, key, value, nx=False, xx=False):
        exists = key in self.strings
        if (nx and exists) or (xx and not exists):
            return None
        self.strings[key] = value
        return True

    def get(self, key):
        return self.strings.get(key)

    def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)

    def zrevrange(self, key, start, end):
        items = sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]), reverse=True)
        return [member for member, _ in items]

    def sadd(self, key, member):
        self.sets.setdefault(key, set()).add(member)

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def incr(self, key):
        value = int(self.strings.get(key, "0")) + 1
        self.strings[key] = str(value)
        return value

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)

    def lrange(self, key, start, end):
        return list(self.lists.get(key, []))

    def llen(self, key):
        return len(self.lists.get(key, []))

    def close(self):
        self.closed = True


def _redis_store() -> RedisJobStore:
    with patch("wavebrief.storage.redis_store.RedisJobStore.__init__", return_value=None):
        store = RedisJobStore.__new__(RedisJobStore)
    store._client = FakeRedisClient()
    return store


@pytest.fixture(params=["memory", "sqlite", "redis"])
def store(request, tmp_path):
    if request.param == "memory":
        backend = MemoryJobStore()
    elif request.param == "sqlite":
        backend = SqliteJobStore(tmp_path / "jobs.db")
    else:
        backend = _redis_store()
    yield backend
    backend.close()


def _job(job_id: str = "job-1", case_id: str = "case-1", **fields) -> GenerationJob:
    return GenerationJob(id=job_id, case_id=case_id, owner_id="user-1", **fields)


class TestJobs:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        await store.create_job(_job())
        job = await store.get_job("job-1")
        assert job.case_id == "case-1"
        assert job.status == "queued"

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get_job("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_create(self, store):
        await store.create_job(_job())
        with pytest.raises(ValueError, match="already exists"):
            await store.create_job(_job())

    @pytest.mark.asyncio
    async def test_update(self, store):
        job = _job()
        await store.create_job(job)
        await store.update_job(job.model_copy(update={"status": "running", "current_stage": 2}))
        stored = await store.get_job("job-1")
        assert stored.status == "running"
        assert stored.current_stage == 2

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        with pytest.raises(KeyError):
            await store.update_job(_job("ghost"))

    @pytest.mark.asyncio
    async def test_returned_copy_is_detached(self, store):
        await store.create_job(_job())
        job = await store.get_job("job-1")
        job.current_stage = 5
        assert (await store.get_job("job-1")).current_stage == 0

    @pytest.mark.asyncio
    async def test_list_by_case_newest_first(self, store):
        base = utc_now()
        for i in range(3):
            await store.create_job(_job(f"job-{i}", created_at=base + timedelta(seconds=i)))
        await store.create_job(_job("other", case_id="case-2"))
        jobs = await store.list_jobs_by_case("case-1")
        assert [j.id for j in jobs] == ["job-2", "job-1", "job-0"]
        assert await store.list_jobs_by_case("case-3") == []

    @pytest.mark.asyncio
    async def test_list_by_status_oldest_first(self, store):
        base = utc_now()
        await store.create_job(_job("b", created_at=base + timedelta(seconds=1)))
        await store.create_job(_job("a", created_at=base))
        await store.create_job(_job("c", created_at=base + timedelta(seconds=2), status="running"))
        await store.create_job(_job(
            "done", status="failed", error_message="x", completed_at=base,
        ))
        jobs = await store.list_jobs_by_status(["queued", "running"])
        assert [j.id for j in jobs] == ["a", "b", "c"]
        assert await store.list_jobs_by_status([]) == []


class TestStageRuns:
    @pytest.mark.asyncio
    async def test_upsert_by_index(self, store):
        await store.save_stage_run(StageRun(job_id="job-1", stage_index=2, stage_name="b",
                                            status="running"))
        await store.save_stage_run(StageRun(job_id="job-1", stage_index=1, stage_name="a",
                                            status="completed", attempts=1))
        await store.save_stage_run(StageRun(job_id="job-1", stage_index=2, stage_name="b",
                                            status="failed", error_message="boom"))
        runs = await store.list_stage_runs("job-1")
        assert [(r.stage_index, r.status) for r in runs] == [(1, "completed"), (2, "failed")]

    @pytest.mark.asyncio
    async def test_ordering_beyond_nine(self, store):
        for i in (10, 2, 1):
            await store.save_stage_run(StageRun(job_id="j", stage_index=i, stage_name=f"s{i}"))
        assert [r.stage_index for r in await store.list_stage_runs("j")] == [1, 2, 10]

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.list_stage_runs("nope") == []


class TestArtifacts:
    @pytest.mark.asyncio
    async def test_save_and_get(self, store, make_artifact):
        artifact = make_artifact(version=2)
        await store.save_artifact(artifact)
        loaded = await store.get_artifact("job-1/v2")
        assert loaded.content == artifact.content
        assert loaded.sections == artifact.sections
        assert await store.get_artifact("job-1/v3") is None


class TestLogs:
    @pytest.mark.asyncio
    async def test_append_assigns_increasing_ids(self, store):
        first = await store.append_log(LogEntry(job_id="j", message="one"))
        second = await store.append_log(LogEntry(job_id="j", message="two"))
        assert first.id is not None
        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_read_in_append_order(self, store):
        for i, stage in enumerate([0, 1, 1, 2]):
            await store.append_log(LogEntry(job_id="j", stage_index=stage, message=f"m{i}"))
        await store.append_log(LogEntry(job_id="other", message="x"))
        entries = await store.read_logs("j")
        assert [e.message for e in entries] == ["m0", "m1", "m2", "m3"]
        assert all(e.id is not None for e in entries)
        assert [e.message for e in await store.read_logs("j", 1)] == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_count(self, store):
        assert await store.count_logs("j") == 0
        await store.append_log(LogEntry(job_id="j", message="one"))
        assert await store.count_logs("j") == 1

    @pytest.mark.asyncio
    async def test_metadata_preserved(self, store):
        await store.append_log(LogEntry(job_id="j", message="m", metadata={"words": 10}))
        assert (await store.read_logs("j"))[0].metadata == {"words": 10}


class TestSqliteDurability:
    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = tmp_path / "nested" / "jobs.db"
        first = SqliteJobStore(path)
        await first.create_job(_job())
        await first.append_log(LogEntry(job_id="job-1", message="queued"))
        first.close()

        second = SqliteJobStore(path)
        try:
            assert (await second.get_job("job-1")).id == "job-1"
            assert [e.message for e in await second.read_logs("job-1")] == ["queued"]
        finally:
            second.close()

    @pytest.mark.asyncio
    async def test_in_memory_path(self):
        store = SqliteJobStore(":memory:")
        await store.create_job(_job())
        assert await store.get_job("job-1") is not None
        store.close()


class TestRedisStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            with pytest.raises(ImportError, match="redis"):
                RedisJobStore(redis_url="redis://localhost")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    @pytest.mark.asyncio
    async def test_key_layout(self):
        store = _redis_store()
        await store.create_job(_job())
        client = store._client
        assert "wavebrief:job:job-1" in client.strings
        assert "job-1" in client.zsets["wavebrief:case:case-1"]
        assert client.sets["wavebrief:jobs:__index__"] == {"job-1"}

    def test_close(self):
        store = _redis_store()
        store.close()
        assert store._client.closed
