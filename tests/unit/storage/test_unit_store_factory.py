# tests/unit/storage/test_unit_store_factory.py - v1
"""Tests for storage/store_factory.py."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from wavebrief.config.settings import Settings
from wavebrief.storage.memory_store import MemoryJobStore
from wavebrief.storage.sqlite_store import SqliteJobStore
from wavebrief.storage.store_factory import create_job_store


class TestCreateJobStore:
    def test_default_is_memory(self):
        assert isinstance(create_job_store(), MemoryJobStore)

    def test_memory(self):
        settings = Settings(_env_file=None, store_backend="memory")
        assert isinstance(create_job_store(settings), MemoryJobStore)

    def test_sqlite(self, tmp_path):
        settings = Settings(_env_file=None, store_backend="sqlite",
                            store_sqlite_path=tmp_path / "db" / "jobs.db")
        store = create_job_store(settings)
        try:
            assert isinstance(store, SqliteJobStore)
            assert (tmp_path / "db" / "jobs.db").exists()
        finally:
            store.close()

    def test_redis(self):
        settings = Settings(_env_file=None, store_backend="redis",
                            store_redis_url="redis://localhost:6379/0")
        with patch("wavebrief.storage.redis_store.RedisJobStore.__init__",
                   return_value=None) as init:
            store = create_job_store(settings)
        init.assert_called_once_with(redis_url="redis://localhost:6379/0")
        assert type(store).__name__ == "RedisJobStore"

    def test_unknown_backend(self):
        settings = MagicMock(store_backend="postgres")
        with pytest.raises(ValueError, match="Unsupported store backend"):
            create_job_store(settings)

    def test_redis_without_url(self):
        settings = MagicMock(store_backend="redis", store_redis_url="")
        with pytest.raises(ValueError, match="STORE_REDIS_URL"):
            create_job_store(settings)
