# tests/integration/conftest.py - v8
"""Shared fixtures for integration tests.

Everything runs in-process against a sqlite job store on tmp_path. Stage
plans are built from StubStage or from the real stages with a mocked LLM
client, so no network is needed.
"""

from __future__ import annotations

import asyncio

import pytest

from wavebrief.api.facade import WaveBriefService
from wavebrief.config.settings import Settings
from wavebrief.pipeline.registry import build_default_plan, build_stage_plan
from wavebrief.storage.sqlite_store import SqliteJobStore


@pytest.fixture
def sqlite_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        store_backend="sqlite",
        store_sqlite_path=tmp_path / "jobs.db",
        case_data_root=tmp_path / "cases",
        stage_retry_delay_s=0.0,
    )


@pytest.fixture
def build_service(sqlite_settings, repository):
    """Factory: a service over the shared sqlite file with the given stages."""

    def _build(stages=None, plan=None, **overrides) -> WaveBriefService:
        settings = sqlite_settings.model_copy(update=overrides) if overrides else sqlite_settings
        return WaveBriefService.from_settings(
            settings,
            cases=repository,
            documents=repository,
            results=repository,
            discussions=repository,
            plan=plan or build_stage_plan(stages),
            store=SqliteJobStore(settings.store_sqlite_path),
        )

    return _build


@pytest.fixture
def three_stage_plan(stub_stage):
    def _plan(**failures):
        """failures maps a stage name to the exception it raises."""
        return [stub_stage(name, fail_with=failures.get(name)) for name in ("draft", "enrich", "polish")]
    return _plan


@pytest.fixture
def full_plan(mock_llm_client):
    return build_default_plan(lambda stage: mock_llm_client)


@pytest.fixture
def wait_for():
    async def _wait(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not await predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)
    return _wait
