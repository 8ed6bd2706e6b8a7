# src/tracking/notifier.py - v1
"""In-process pub/sub channel for live log entries.

Subscribers get a bounded asyncio.Queue per job. Publishing never blocks:
when a subscriber falls behind, new entries for it are dropped and the
persisted log remains the source of truth. close() delivers a None
sentinel that marks the end of the stream.
"""

from __future__ import annotations

import asyncio
import logging

from wavebrief.core.models import LogEntry

logger = logging.getLogger(__name__)


class LogNotifier:
    """Fan out appended log entries to per-job subscribers."""

    def __init__(self, queue_size: int = 256) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self._queue_size = queue_size
        self._subscribers: dict[str, list[asyncio.Queue[LogEntry | None]]] = {}

    def subscribe(self, job_id: str) -> asyncio.Queue[LogEntry | None]:
        queue: asyncio.Queue[LogEntry | None] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.setdefault(job_id, []).append(queue)
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue[LogEntry | None]) -> None:
        queues = self._subscribers.get(job_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(job_id, None)

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, []))

    def publish(self, entry: LogEntry) -> None:
        for queue in self._subscribers.get(entry.job_id, []):
            try:
                queue.put_nowait(entry)
            except asyncio.QueueFull:
                logger.debug("Subscriber queue full for job %s, entry dropped", entry.job_id)

    def close(self, job_id: str) -> None:
        """Send the end-of-stream sentinel to every subscriber of a job."""
        for queue in self._subscribers.pop(job_id, []):
            if queue.full():
                # The sentinel must get through; sacrifice the oldest entry.
                queue.get_nowait()
            queue.put_nowait(None)
