# tests/unit/api/test_unit_facade.py - v2
"""Tests for api/facade.py - service wiring, submit, status, logs, streaming."""

from __future__ import annotations

import json

import pytest

from wavebrief.api.facade import WaveBriefService
from wavebrief.api.models import JobSubmission
from wavebrief.core.errors import NotFoundError, UnauthorizedError, ValidationError
from wavebrief.pipeline.registry import build_stage_plan
from wavebrief.storage.memory_store import MemoryJobStore


@pytest.fixture
def make_service(settings, repository, stub_stage):
    def _make(stages=None, store=None, **overrides) -> WaveBriefService:
        stages = stages or [stub_stage("alpha"), stub_stage("beta"), stub_stage("gamma")]
        return WaveBriefService.from_settings(
            settings.model_copy(update=overrides) if overrides else settings,
            cases=repository,
            documents=repository,
            results=repository,
            discussions=repository,
            plan=build_stage_plan(stages),
            store=store,
        )
    return _make


class TestFromSettings:
    def test_injected_parts(self, make_service):
        service = make_service()
        assert service.manager.stages_total == 3

    @pytest.mark.asyncio
    async def test_json_repository_default(self, settings, stub_stage):
        root = settings.case_data_root
        root.mkdir(parents=True)
        (root / "case-9.json").write_text(json.dumps({
            "case": {"owner_id": "user-9", "case_name": "Doe v. Roe"},
        }))
        service = WaveBriefService.from_settings(
            settings, plan=build_stage_plan([stub_stage("only")]),
        )
        submission = await service.submit("case-9", "user-9")
        job = await service.wait(submission.job_id)
        assert job.status == "completed"
        await service.close()

    @pytest.mark.asyncio
    async def test_stage_policy_from_settings(self, make_service, stub_stage):
        flaky = stub_stage("flaky", fail_with=RuntimeError("hiccup"), fail_times=1)
        service = make_service(stages=[flaky], stage_max_retries=1)
        submission = await service.submit("case-1", "user-1")
        job = await service.wait(submission.job_id)
        assert job.status == "completed"
        assert len(flaky.calls) == 2
        await service.close()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_returns_submission(self, make_service, settings):
        service = make_service()
        submission = await service.submit("case-1", "user-1", {"target_word_count": 2500})
        assert isinstance(submission, JobSubmission)
        assert submission.status == "queued"
        assert submission.stages_total == 3
        assert submission.estimated_completion_minutes == settings.estimated_completion_minutes
        job = await service.wait(submission.job_id)
        assert job.config.target_word_count == 2500
        await service.close()

    @pytest.mark.asyncio
    async def test_settings_defaults_applied(self, make_service):
        service = make_service(job_default_target_word_count=9000)
        submission = await service.submit("case-1", "user-1")
        job = await service.wait(submission.job_id)
        assert job.config.target_word_count == 9000
        await service.close()

    @pytest.mark.asyncio
    async def test_errors_propagate(self, make_service):
        service = make_service()
        with pytest.raises(ValidationError):
            await service.submit("case-1", "user-1", {"target_word_count": 60000})
        with pytest.raises(NotFoundError):
            await service.submit("missing", "user-1")
        with pytest.raises(UnauthorizedError):
            await service.submit("case-1", "user-2")
        await service.close()


class TestStatus:
    @pytest.mark.asyncio
    async def test_selector_required(self, make_service):
        service = make_service()
        with pytest.raises(ValidationError):
            await service.status()
        with pytest.raises(ValidationError):
            await service.status(job_id="a", case_id="b")

    @pytest.mark.asyncio
    async def test_by_job_and_case(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        await service.wait(submission.job_id)
        by_job = await service.status(job_id=submission.job_id, user_id="user-1")
        by_case = await service.status(case_id="case-1")
        assert len(by_job) == 1
        assert by_job[0].job.status == "completed"
        assert [v.job.id for v in by_case] == [submission.job_id]
        await service.close()

    @pytest.mark.asyncio
    async def test_unknown_case_is_empty(self, make_service):
        assert await make_service().status(case_id="nobody") == []


class TestLogs:
    @pytest.mark.asyncio
    async def test_logs_by_stage(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        await service.wait(submission.job_id)
        all_logs = await service.logs(submission.job_id, "user-1")
        stage_two = await service.logs(submission.job_id, "user-1", stage_index=2)
        assert len(stage_two) < len(all_logs)
        assert {e.stage_index for e in stage_two} == {2}
        await service.close()

    @pytest.mark.asyncio
    async def test_logs_other_user(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        await service.wait(submission.job_id)
        with pytest.raises(UnauthorizedError):
            await service.logs(submission.job_id, "user-2")
        await service.close()

    @pytest.mark.asyncio
    async def test_thoughts_feed(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        await service.wait(submission.job_id)
        feed = await service.thoughts(submission.job_id, "user-1")
        assert feed.status == "completed"
        assert feed.stages_total == 3
        assert [t.stage_index for t in feed.thoughts] == [1, 2, 3]
        assert feed.thoughts[0].type == "working"
        assert feed.thoughts[0].thought == "Working on alpha"
        await service.close()


class TestStreamLogs:
    @pytest.mark.asyncio
    async def test_streams_until_close(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        messages = [e.message async for e in service.stream_logs(submission.job_id)]
        assert messages[0].startswith("Starting 3-stage")
        assert messages[-1].startswith("Brief generation completed")
        assert service._sink.notifier.subscriber_count(submission.job_id) == 0
        await service.close()

    @pytest.mark.asyncio
    async def test_terminal_job_ends_immediately(self, make_service):
        service = make_service()
        submission = await service.submit("case-1", "user-1")
        await service.wait(submission.job_id)
        assert [e async for e in service.stream_logs(submission.job_id)] == []
        await service.close()

    @pytest.mark.asyncio
    async def test_unknown_job(self, make_service):
        service = make_service()
        with pytest.raises(NotFoundError):
            async for _ in service.stream_logs("missing"):
                pass


class TestStartAndClose:
    @pytest.mark.asyncio
    async def test_start_recovers(self, make_service):
        from wavebrief.core.models import GenerationJob

        store = MemoryJobStore()
        await store.create_job(GenerationJob(id="old", case_id="case-1", owner_id="user-1"))
        service = make_service(store=store)
        assert await service.start() == ["old"]
        assert (await store.get_job("old")).status == "failed"

    @pytest.mark.asyncio
    async def test_start_disabled(self, make_service):
        from wavebrief.core.models import GenerationJob

        store = MemoryJobStore()
        await store.create_job(GenerationJob(id="old", case_id="case-1", owner_id="user-1"))
        service = make_service(store=store, recover_on_startup=False)
        assert await service.start() == []
        assert (await store.get_job("old")).status == "queued"

    @pytest.mark.asyncio
    async def test_close_waits_for_jobs(self, make_service, stub_stage):
        service = make_service(stages=[stub_stage("slow", delay=0.05)])
        submission = await service.submit("case-1", "user-1")
        await service.close()
        assert service.manager.active_job_ids == []
        assert (await service.manager.get_job(submission.job_id)).status == "completed"
