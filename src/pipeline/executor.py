# src/pipeline/executor.py - v1
"""Stage pipeline executor: run the stage plan for one job.

Walks the plan strictly in order. Each stage gets the frozen Context and
the artifact produced by the stage before it. A StageRun is persisted as
running before the stage is invoked and updated once it finishes, so a
crash always leaves a durable record of how far the job got. The first
stage failure marks the job failed and stops the loop.

run() never raises: every failure ends up on the job, its stage runs and
its log entries.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from wavebrief.context.aggregator import ContextAggregator
from wavebrief.context.models import Context
from wavebrief.core.errors import StageError, StageTimeoutError
from wavebrief.core.models import (
    JOB_LEVEL_STAGE,
    Artifact,
    GenerationJob,
    StageRun,
    artifact_ref,
    utc_now,
)
from wavebrief.jobs.lifecycle import JobLifecycle
from wavebrief.logging.context import clear_context, set_job_context, set_stage_context
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.models import StageOutput
from wavebrief.pipeline.policy import AttemptsExhausted, StagePolicy
from wavebrief.pipeline.registry import StageDescriptor
from wavebrief.storage.base_job_store import BaseJobStore
from wavebrief.tracking.log_sink import StageLogSink

logger = logging.getLogger(__name__)


class StagePipelineExecutor:
    """Execute a stage plan for a job.

    Args:
        store: Job store for stage runs and artifacts.
        aggregator: Builds the job Context once per run.
        plan: Ordered stage descriptors.
        lifecycle: Job status transitions.
        sink: Job log sink.
        policy: Retry/timeout policy per stage. Defaults to fail-fast.
    """

    def __init__(
        self,
        store: BaseJobStore,
        aggregator: ContextAggregator,
        plan: Sequence[StageDescriptor],
        lifecycle: JobLifecycle,
        sink: StageLogSink,
        policy: StagePolicy | None = None,
    ) -> None:
        if not plan:
            raise ValueError("Stage plan must not be empty")
        self._store = store
        self._aggregator = aggregator
        self._plan = list(plan)
        self._lifecycle = lifecycle
        self._sink = sink
        self._policy = policy or StagePolicy()

    @property
    def stages_total(self) -> int:
        return len(self._plan)

    @property
    def plan(self) -> list[StageDescriptor]:
        return list(self._plan)

    async def run(
        self,
        job: GenerationJob,
        resume_from: int = 1,
        prior: Artifact | None = None,
    ) -> GenerationJob:
        """Run the plan from stage resume_from and return the terminal job.

        Args:
            job: Queued job (or running job being resumed).
            resume_from: 1-based index of the first stage to execute.
            prior: Artifact of stage resume_from - 1 when resuming.
        """
        set_job_context(job.id, job.case_id)
        try:
            return await self._run(job, resume_from, prior)
        except Exception as exc:
            logger.exception("Unexpected error while running job %s", job.id)
            return await self._fail_unexpected(job, exc)
        finally:
            self._sink.close(job.id)
            clear_context()

    async def _run(
        self, job: GenerationJob, resume_from: int, prior: Artifact | None
    ) -> GenerationJob:
        if not 1 <= resume_from <= len(self._plan):
            raise ValueError(f"resume_from must be in [1, {len(self._plan)}], got {resume_from}")
        if resume_from > 1 and prior is None:
            raise ValueError("Resuming after stage 1 requires the prior artifact")

        job = await self._lifecycle.mark_running(job)
        if resume_from == 1:
            await self._sink.append(
                job.id, JOB_LEVEL_STAGE, "info",
                f"Starting {len(self._plan)}-stage brief generation",
                {"stages_total": len(self._plan), "config": job.config.model_dump()},
            )
        else:
            await self._sink.append(
                job.id, JOB_LEVEL_STAGE, "info",
                f"Resuming brief generation at stage {resume_from}",
                {"resume_from": resume_from, "prior_ref": prior.ref},
            )

        # Built exactly once; every stage sees this snapshot.
        try:
            context = await self._aggregator.build(job.case_id, job.config)
        except Exception as exc:
            message = f"Context aggregation failed: {exc}"
            logger.error("Job %s: %s", job.id, message)
            await self._sink.append(
                job.id, JOB_LEVEL_STAGE, "error", message, {"error_type": type(exc).__name__}
            )
            return await self._lifecycle.mark_failed(job, message)

        await self._sink.append(
            job.id, JOB_LEVEL_STAGE, "info", "Context assembled", context.source_counts()
        )

        for descriptor in self._plan[resume_from - 1:]:
            job = await self._lifecycle.set_current_stage(job, descriptor.index)
            set_stage_context(descriptor.name, descriptor.index)
            try:
                prior = await self._run_stage(job, descriptor, context, prior)
            except StageError as exc:
                return await self._lifecycle.mark_failed(job, str(exc), descriptor.index)

        job = await self._lifecycle.mark_completed(job, prior)
        await self._sink.append(
            job.id, JOB_LEVEL_STAGE, "info",
            f"Brief generation completed: {prior.word_count} words",
            {"final_artifact_ref": prior.ref, "final_word_count": prior.word_count},
        )
        return job

    async def _run_stage(
        self,
        job: GenerationJob,
        descriptor: StageDescriptor,
        context: Context,
        prior: Artifact | None,
    ) -> Artifact:
        """Execute one stage and persist its artifact.

        Raises:
            StageError: The stage failed; its StageRun is already marked failed.
        """
        index, name = descriptor.index, descriptor.name
        total = len(self._plan)
        run = StageRun(
            job_id=job.id,
            stage_index=index,
            stage_name=name,
            status="running",
            started_at=utc_now(),
        )
        await self._store.save_stage_run(run)
        await self._sink.append(
            job.id, index, "info", f"Stage {index}/{total}: {descriptor.title} started",
            stage_name=name,
        )

        async def invoke() -> StageOutput:
            output = await descriptor.stage.execute(context, prior)
            if not isinstance(output, StageOutput):
                raise TypeError(
                    f"stage returned {type(output).__name__}, expected StageOutput"
                )
            if not output.content.strip():
                raise ValueError("stage returned empty content")
            return output

        async def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            await self._sink.append(
                job.id, index, "info",
                f"Attempt {attempt} failed, retrying in {delay:.1f}s: {error}",
                {"attempt": attempt, "error_type": type(error).__name__},
                stage_name=name,
            )

        try:
            output, attempts = await self._policy.run(invoke, on_retry=on_retry)
        except AttemptsExhausted as exc:
            error = self._stage_error(descriptor, exc)
            await self._store.save_stage_run(run.model_copy(update={
                "status": "failed",
                "attempts": exc.attempts,
                "error_message": str(error),
                "completed_at": utc_now(),
            }))
            await self._sink.append(
                job.id, index, "error", str(error),
                {"attempts": exc.attempts, "error_type": type(exc.last_error).__name__},
                stage_name=name,
            )
            logger.error("Job %s: %s", job.id, error)
            raise error from exc.last_error

        artifact = Artifact(
            ref=artifact_ref(job.id, index),
            job_id=job.id,
            version=index,
            stage_name=name,
            content=output.content,
            sections=text_metrics.parse_sections(output.content),
            word_count=text_metrics.word_count(output.content),
        )
        await self._store.save_artifact(artifact)
        await self._store.save_stage_run(run.model_copy(update={
            "status": "completed",
            "attempts": attempts,
            "artifacts": {
                "artifact_ref": artifact.ref,
                "version": artifact.version,
                "word_count": artifact.word_count,
                "section_count": len(artifact.sections),
                "sources_used": list(output.sources_used),
                "metrics": output.metrics,
            },
            "completed_at": utc_now(),
        }))

        for line in output.logs:
            await self._sink.append(
                job.id, index, line.level, line.message, line.metadata, stage_name=name
            )
        for thought in output.thoughts:
            await self._sink.thought(
                job.id, index, thought.thought,
                thought_type=thought.type,
                details=thought.details,
                mood=thought.mood,
                stage_name=name,
            )
        await self._sink.append(
            job.id, index, "info",
            f"Stage {index}/{total}: {descriptor.title} completed ({artifact.word_count} words)",
            {"artifact_ref": artifact.ref, "attempts": attempts,
             "skipped": bool(output.metrics.get("skipped", False))},
            stage_name=name,
        )
        logger.info(
            "Stage %d/%d %s completed: %d words, %d attempt(s)",
            index, total, name, artifact.word_count, attempts,
        )
        return artifact

    def _stage_error(self, descriptor: StageDescriptor, exc: AttemptsExhausted) -> StageError:
        if exc.timed_out:
            return StageTimeoutError(
                descriptor.index,
                descriptor.name,
                f"timed out after {self._policy.timeout_s}s",
                attempts=exc.attempts,
            )
        cause = exc.last_error
        return StageError(
            descriptor.index,
            descriptor.name,
            str(cause) or type(cause).__name__,
            attempts=exc.attempts,
        )

    async def _fail_unexpected(self, job: GenerationJob, exc: Exception) -> GenerationJob:
        """Record an error that escaped the normal failure paths."""
        message = f"Internal error: {exc}"
        try:
            current = await self._store.get_job(job.id) or job
            if current.is_terminal:
                return current
            stage_index = current.current_stage or None
            if stage_index is not None:
                for run in await self._store.list_stage_runs(job.id):
                    if run.status == "running":
                        await self._store.save_stage_run(run.model_copy(update={
                            "status": "failed",
                            "error_message": message,
                            "completed_at": utc_now(),
                        }))
            await self._sink.append(
                job.id, stage_index or JOB_LEVEL_STAGE, "error", message,
                {"error_type": type(exc).__name__},
            )
            return await self._lifecycle.mark_failed(current, message, stage_index)
        except Exception:
            logger.exception("Could not record failure of job %s", job.id)
            return job
