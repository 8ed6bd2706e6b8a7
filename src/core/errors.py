# src/core/errors.py - v1
"""Error taxonomy shared by the job manager, aggregator and executor.

Creation-time errors (ValidationError, UnauthorizedError, NotFoundError) are
raised to the caller. Errors after creation are recorded on the job, its
stage runs and its log entries.
"""

from __future__ import annotations


class WaveBriefError(Exception):
    """Base class for all wavebrief errors."""


class ValidationError(WaveBriefError):
    """Job configuration is malformed. No job record is written."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class UnauthorizedError(WaveBriefError):
    """Caller does not own the case."""


class NotFoundError(WaveBriefError):
    """A job, case or artifact id is unknown."""


class AggregationError(WaveBriefError):
    """A required external input could not be read while building the context."""


class StageError(WaveBriefError):
    """A stage strategy failed."""

    def __init__(
        self,
        stage_index: int,
        stage_name: str,
        cause: BaseException | str,
        attempts: int = 1,
    ) -> None:
        self.stage_index = stage_index
        self.stage_name = stage_name
        self.cause = cause
        self.attempts = attempts
        super().__init__(f"Stage {stage_index} ({stage_name}) failed: {cause}")


class StageTimeoutError(StageError):
    """A stage exceeded its configured deadline."""


class InvalidTransitionError(WaveBriefError):
    """A job status change is not allowed from its current status."""

    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id}: cannot transition {current} -> {target}")
