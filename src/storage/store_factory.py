# src/storage/store_factory.py - v1
"""Factory for job store instantiation."""

from __future__ import annotations

from wavebrief.config.settings import Settings
from wavebrief.storage.base_job_store import BaseJobStore


def create_job_store(settings: Settings | None = None) -> BaseJobStore:
    """Instantiate the configured job store backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseJobStore implementation.
    """
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from wavebrief.storage.memory_store import MemoryJobStore
        return MemoryJobStore()

    if backend == "sqlite":
        from wavebrief.storage.sqlite_store import SqliteJobStore
        return SqliteJobStore(db_path=settings.store_sqlite_path)

    if backend == "redis":
        from wavebrief.storage.redis_store import RedisJobStore
        if not settings.store_redis_url:
            raise ValueError(
                "STORE_REDIS_URL must be set when STORE_BACKEND=redis"
            )
        return RedisJobStore(redis_url=settings.store_redis_url)

    raise ValueError(f"Unsupported store backend: {backend!r}")
