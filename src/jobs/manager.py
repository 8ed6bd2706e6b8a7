# src/jobs/manager.py - v1
"""Job manager: create jobs, launch them in the background, answer queries.

create() is fast: it validates, authorizes, writes one queued record and
schedules the executor as a detached asyncio task. Everything after that
is observed by polling get_status().
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError

from wavebrief.api.models import JobStatusView
from wavebrief.context.base_sources import BaseAccessPolicy, BaseCaseStore, OwnerAccessPolicy
from wavebrief.core.errors import NotFoundError, UnauthorizedError, ValidationError
from wavebrief.core.models import (
    JOB_LEVEL_STAGE,
    Artifact,
    GenerationJob,
    JobConfig,
    utc_now,
)
from wavebrief.jobs.lifecycle import JobLifecycle
from wavebrief.pipeline.executor import StagePipelineExecutor
from wavebrief.storage.base_job_store import BaseJobStore
from wavebrief.tracking.log_sink import StageLogSink

logger = logging.getLogger(__name__)

RECOVERY_ERROR = "Interrupted by process restart before completion"


class JobManager:
    """Owns job creation, background execution and status queries.

    Args:
        store: Job store.
        cases: Parent-record store used to check the case exists.
        executor: Runs the stage plan for one job.
        lifecycle: Job status transitions, shared with the executor.
        sink: Job log sink.
        access_policy: Authorization check. Defaults to owner-only.
        config_defaults: Values merged under caller-provided job config.
        recovery_mode: "fail" or "resume" for jobs interrupted by a restart.
    """

    def __init__(
        self,
        store: BaseJobStore,
        cases: BaseCaseStore,
        executor: StagePipelineExecutor,
        lifecycle: JobLifecycle,
        sink: StageLogSink,
        access_policy: BaseAccessPolicy | None = None,
        config_defaults: Mapping[str, Any] | None = None,
        recovery_mode: Literal["fail", "resume"] = "fail",
    ) -> None:
        self._store = store
        self._cases = cases
        self._executor = executor
        self._lifecycle = lifecycle
        self._sink = sink
        self._access = access_policy or OwnerAccessPolicy()
        self._defaults = dict(config_defaults or {})
        self._recovery_mode = recovery_mode
        self._tasks: dict[str, asyncio.Task[GenerationJob]] = {}

    @property
    def stages_total(self) -> int:
        return self._executor.stages_total

    @property
    def active_job_ids(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        case_id: str,
        user_id: str,
        config: JobConfig | Mapping[str, Any] | None = None,
    ) -> GenerationJob:
        """Validate, persist a queued job and schedule its execution.

        Raises:
            ValidationError: Config is malformed. No job is written.
            NotFoundError: The case does not exist.
            UnauthorizedError: user_id does not own the case.
        """
        job_config = self._resolve_config(config)

        case = await self._cases.get_by_id(case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")
        if not self._access.is_authorized(user_id, case):
            raise UnauthorizedError(f"User {user_id} may not generate briefs for case {case_id}")

        job = GenerationJob(
            id=_generate_job_id(),
            case_id=case_id,
            owner_id=user_id,
            config=job_config,
            stages_total=self._executor.stages_total,
        )
        await self._store.create_job(job)
        await self._sink.append(
            job.id, JOB_LEVEL_STAGE, "info", "Job queued",
            {"case_id": case_id, "stages_total": job.stages_total},
        )
        logger.info("Job %s queued for case %s", job.id, case_id)

        self._launch(job)
        return job

    def _resolve_config(self, config: JobConfig | Mapping[str, Any] | None) -> JobConfig:
        if isinstance(config, JobConfig):
            return config
        data = {**self._defaults, **dict(config or {})}
        try:
            return JobConfig.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid job config: {exc.error_count()} error(s)",
                errors=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            ) from exc

    def _launch(
        self, job: GenerationJob, resume_from: int = 1, prior: Artifact | None = None
    ) -> None:
        task = asyncio.create_task(
            self._executor.run(job, resume_from=resume_from, prior=prior),
            name=f"wavebrief-job-{job.id}",
        )
        self._tasks[job.id] = task

        def _done(t: asyncio.Task[GenerationJob]) -> None:
            if self._tasks.get(job.id) is t:
                del self._tasks[job.id]
            if not t.cancelled() and t.exception() is not None:
                logger.error("Job task %s ended with %r", job.id, t.exception())

        task.add_done_callback(_done)

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    async def get_job(self, job_id: str, user_id: str | None = None) -> GenerationJob:
        job = await self._store.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        if user_id is not None and job.owner_id != user_id:
            raise UnauthorizedError(f"User {user_id} may not read job {job_id}")
        return job

    async def get_status(self, job_id: str, user_id: str | None = None) -> JobStatusView:
        """Return the job with its stage runs and logs.

        Raises:
            NotFoundError: Unknown job id.
            UnauthorizedError: user_id given and not the job owner.
        """
        job = await self.get_job(job_id, user_id)
        return JobStatusView(
            job=job,
            stage_runs=await self._store.list_stage_runs(job_id),
            logs=await self._sink.read(job_id),
        )

    async def list_by_case(self, case_id: str) -> list[GenerationJob]:
        """All jobs for a case, most recent first."""
        return await self._store.list_jobs_by_case(case_id)

    async def status_by_case(
        self, case_id: str, user_id: str | None = None
    ) -> list[JobStatusView]:
        views = []
        for job in await self.list_by_case(case_id):
            if user_id is not None and job.owner_id != user_id:
                raise UnauthorizedError(f"User {user_id} may not read jobs of case {case_id}")
            views.append(JobStatusView(
                job=job,
                stage_runs=await self._store.list_stage_runs(job.id),
                logs=await self._sink.read(job.id),
            ))
        return views

    # ------------------------------------------------------------------
    # Task control
    # ------------------------------------------------------------------

    async def wait(self, job_id: str, timeout: float | None = None) -> GenerationJob:
        """Wait for a job's background task, then return the stored job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        return await self.get_job(job_id)

    async def join(self) -> None:
        """Wait until every running job task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self, cancel: bool = False) -> None:
        """Stop managing tasks. With cancel=True, running jobs are abandoned
        in their current state and left for recover()."""
        if cancel:
            for task in self._tasks.values():
                task.cancel()
        await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Crash recovery
    # ------------------------------------------------------------------

    async def recover(self) -> list[str]:
        """Bring jobs left queued/running by a previous process to a terminal path.

        In "fail" mode they are marked failed with a recovery error. In
        "resume" mode they restart at the first stage that did not complete.

        Any queued or running job without a task in this process counts as
        interrupted, so only one process may recover a shared store.

        Returns:
            Ids of the jobs recovered.
        """
        recovered: list[str] = []
        for job in await self._store.list_jobs_by_status(["queued", "running"]):
            if job.id in self._tasks:
                continue
            if self._recovery_mode == "resume":
                await self._resume(job)
            else:
                await self._fail_interrupted(job)
            recovered.append(job.id)
        if recovered:
            logger.info("Recovered %d interrupted job(s) (%s mode)", len(recovered), self._recovery_mode)
        return recovered

    async def _fail_interrupted(self, job: GenerationJob) -> None:
        failed_stage: int | None = None
        for run in await self._store.list_stage_runs(job.id):
            if run.status in ("running", "pending"):
                failed_stage = run.stage_index
                await self._store.save_stage_run(run.model_copy(update={
                    "status": "failed",
                    "error_message": RECOVERY_ERROR,
                    "completed_at": utc_now(),
                }))
        await self._sink.append(
            job.id, failed_stage or JOB_LEVEL_STAGE, "error", RECOVERY_ERROR,
            {"recovery_mode": "fail"},
        )
        await self._lifecycle.mark_failed(job, RECOVERY_ERROR, failed_stage)
        logger.warning("Job %s marked failed after restart", job.id)

    async def _resume(self, job: GenerationJob) -> None:
        completed = [r for r in await self._store.list_stage_runs(job.id) if r.status == "completed"]
        resume_from = 1
        prior: Artifact | None = None
        # Stage runs complete strictly in order, so completed runs are 1..k.
        for run in completed:
            if run.stage_index != resume_from:
                break
            resume_from += 1
        if resume_from > 1:
            ref = completed[resume_from - 2].artifacts.get("artifact_ref")
            prior = await self._store.get_artifact(ref) if ref else None
            if prior is None:
                await self._sink.append(
                    job.id, JOB_LEVEL_STAGE, "error",
                    f"Cannot resume: artifact of stage {resume_from - 1} is missing",
                )
                await self._lifecycle.mark_failed(job, RECOVERY_ERROR, resume_from)
                return

        if resume_from > self._executor.stages_total:
            # Every stage finished but the completion was never recorded.
            job = await self._lifecycle.mark_running(job)
            await self._lifecycle.mark_completed(job, prior)
            logger.info("Job %s completed during recovery", job.id)
            return

        logger.info("Resuming job %s at stage %d", job.id, resume_from)
        self._launch(job, resume_from=resume_from, prior=prior)


def _generate_job_id() -> str:
    """Generate a unique job ID: job_yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"job_{ts}_{uuid.uuid4().hex[:12]}"
