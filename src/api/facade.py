# src/api/facade.py - v2
"""Public API facade: single entry point for brief generation.

Usage:
    service = WaveBriefService.from_settings()
    await service.start()
    submission = await service.submit(case_id, user_id)
    views = await service.status(job_id=submission.job_id, user_id=user_id)

Wires the job store, log sink, aggregator, stage plan, executor and job
manager from Settings. Tests and embedders can pass their own parts.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from wavebrief.api.models import JobStatusView, JobSubmission, ThoughtsView, ThoughtView
from wavebrief.config.settings import Settings
from wavebrief.context.aggregator import ContextAggregator
from wavebrief.context.base_sources import (
    BaseAccessPolicy,
    BaseCaseStore,
    BaseDiscussionStore,
    BaseDocumentStore,
    BaseResultsStore,
)
from wavebrief.core.errors import ValidationError
from wavebrief.core.models import GenerationJob, JobConfig, LogEntry
from wavebrief.jobs.lifecycle import JobLifecycle
from wavebrief.jobs.manager import JobManager
from wavebrief.pipeline.executor import StagePipelineExecutor
from wavebrief.pipeline.policy import StagePolicy
from wavebrief.pipeline.registry import StageDescriptor, build_default_plan
from wavebrief.storage.base_job_store import BaseJobStore
from wavebrief.storage.store_factory import create_job_store
from wavebrief.tracking.log_sink import StageLogSink
from wavebrief.tracking.notifier import LogNotifier

logger = logging.getLogger(__name__)


class WaveBriefService:
    """Brief generation service: submit jobs, query status, read logs."""

    def __init__(
        self,
        settings: Settings,
        manager: JobManager,
        store: BaseJobStore,
        sink: StageLogSink,
    ) -> None:
        self._settings = settings
        self._manager = manager
        self._store = store
        self._sink = sink

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        cases: BaseCaseStore | None = None,
        documents: BaseDocumentStore | None = None,
        results: BaseResultsStore | None = None,
        discussions: BaseDiscussionStore | None = None,
        plan: Sequence[StageDescriptor] | None = None,
        store: BaseJobStore | None = None,
        access_policy: BaseAccessPolicy | None = None,
    ) -> WaveBriefService:
        """Build the full service graph.

        Collaborators not given are served from JSON case files under
        CASE_DATA_ROOT. The default plan routes each stage to the LLM
        resolved by llm/config.py.
        """
        settings = settings or Settings()

        if None in (cases, documents, results, discussions):
            from wavebrief.context.json_sources import JsonCaseRepository

            repository = JsonCaseRepository(settings.case_data_root)
            cases = cases or repository
            documents = documents or repository
            results = results or repository
            discussions = discussions or repository

        if plan is None:
            from wavebrief.llm.client_factory import create_stage_client

            plan = build_default_plan(
                lambda stage: create_stage_client(stage, settings),
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            )

        store = store or create_job_store(settings)
        sink = StageLogSink(
            store,
            notifier=LogNotifier(settings.log_notifier_queue_size),
            max_entries_per_job=settings.log_sink_max_entries_per_job,
        )
        lifecycle = JobLifecycle(store)
        executor = StagePipelineExecutor(
            store=store,
            aggregator=ContextAggregator(cases, documents, results, discussions),
            plan=plan,
            lifecycle=lifecycle,
            sink=sink,
            policy=StagePolicy.from_settings(settings),
        )
        manager = JobManager(
            store=store,
            cases=cases,
            executor=executor,
            lifecycle=lifecycle,
            sink=sink,
            access_policy=access_policy,
            config_defaults=settings.job_defaults(),
            recovery_mode=settings.recovery_mode,
        )
        return cls(settings, manager, store, sink)

    @property
    def manager(self) -> JobManager:
        return self._manager

    async def start(self) -> list[str]:
        """Run startup recovery if enabled. Returns recovered job ids."""
        if not self._settings.recover_on_startup:
            return []
        return await self._manager.recover()

    async def submit(
        self,
        case_id: str,
        user_id: str,
        config: JobConfig | Mapping[str, Any] | None = None,
    ) -> JobSubmission:
        job = await self._manager.create(case_id, user_id, config)
        return JobSubmission(
            job_id=job.id,
            stages_total=job.stages_total,
            estimated_completion_minutes=self._settings.estimated_completion_minutes,
        )

    async def status(
        self,
        job_id: str | None = None,
        case_id: str | None = None,
        user_id: str | None = None,
    ) -> list[JobStatusView]:
        """Status by job id (one view) or by case id (newest first).

        Raises:
            ValidationError: Neither or both selectors given.
        """
        if (job_id is None) == (case_id is None):
            raise ValidationError("Provide exactly one of job_id or case_id")
        if job_id is not None:
            return [await self._manager.get_status(job_id, user_id)]
        return await self._manager.status_by_case(case_id, user_id)

    async def logs(
        self, job_id: str, user_id: str, stage_index: int | None = None
    ) -> list[LogEntry]:
        """Log entries of a job, optionally for one stage."""
        await self._manager.get_job(job_id, user_id)
        return await self._sink.read(job_id, stage_index)

    async def thoughts(self, job_id: str, user_id: str) -> ThoughtsView:
        job = await self._manager.get_job(job_id, user_id)
        return ThoughtsView(
            job_id=job.id,
            status=job.status,
            current_stage=job.current_stage,
            stages_total=job.stages_total,
            thoughts=[ThoughtView.from_entry(e) for e in await self._sink.thoughts(job_id)],
        )

    async def stream_logs(self, job_id: str) -> AsyncIterator[LogEntry]:
        """Yield live log entries until the job's stream closes.

        Only entries appended after subscription are delivered; read
        earlier ones with logs(). Ends immediately for terminal jobs.
        """
        notifier = self._sink.notifier
        if notifier is None:
            return
        queue = notifier.subscribe(job_id)
        try:
            job = await self._manager.get_job(job_id)
            if job.is_terminal:
                return
            while True:
                entry = await queue.get()
                if entry is None:
                    return
                yield entry
        finally:
            notifier.unsubscribe(job_id, queue)

    async def wait(self, job_id: str, timeout: float | None = None) -> GenerationJob:
        return await self._manager.wait(job_id, timeout)

    async def close(self, cancel: bool = False) -> None:
        """Wait for (or cancel) running jobs, then close the store."""
        await self._manager.shutdown(cancel=cancel)
        self._store.close()
