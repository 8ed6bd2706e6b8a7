# src/pipeline/policy.py - v1
"""Retry and timeout policy applied to each stage invocation.

Defaults are fail-fast: no retry and no deadline. Both are opt-in via
STAGE_MAX_RETRIES and STAGE_TIMEOUT_S.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from wavebrief.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, BaseException, float], Awaitable[None]]


class AttemptsExhausted(Exception):
    """Every allowed attempt failed."""

    def __init__(self, attempts: int, last_error: BaseException, timed_out: bool) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.timed_out = timed_out
        super().__init__(f"failed after {attempts} attempt(s): {last_error}")


@dataclass(frozen=True)
class StagePolicy:
    """How many times to try a stage and how long each try may take."""

    max_retries: int = 0
    retry_delay_s: float = 2.0
    backoff: float = 2.0
    timeout_s: float | None = None
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0 when set")

    @classmethod
    def from_settings(cls, settings: Settings) -> StagePolicy:
        return cls(
            max_retries=settings.stage_max_retries,
            retry_delay_s=settings.stage_retry_delay_s,
            backoff=settings.stage_retry_backoff,
            timeout_s=settings.stage_timeout_s,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        delay = self.retry_delay_s * (self.backoff ** (attempt - 1))
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay

    async def run(
        self,
        call: Callable[[], Awaitable[T]],
        on_retry: RetryCallback | None = None,
    ) -> tuple[T, int]:
        """Run call under this policy.

        Returns:
            (result, attempts used).

        Raises:
            AttemptsExhausted: When the last allowed attempt fails.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                if self.timeout_s is None:
                    result = await call()
                else:
                    result = await asyncio.wait_for(call(), timeout=self.timeout_s)
                return result, attempt
            except asyncio.TimeoutError as exc:
                error: BaseException = exc
                timed_out = True
            except Exception as exc:
                error = exc
                timed_out = False

            if attempt >= self.max_attempts:
                raise AttemptsExhausted(attempt, error, timed_out) from error

            delay = self.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt, self.max_attempts, error, delay,
            )
            if on_retry is not None:
                await on_retry(attempt, error, delay)
            await asyncio.sleep(delay)
