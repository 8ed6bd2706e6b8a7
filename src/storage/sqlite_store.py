# src/storage/sqlite_store.py - v2
"""SQLite-based job store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Records are stored as JSON
payloads next to the indexed columns needed for lookups. Log ids come from
an AUTOINCREMENT key, which defines append order.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path

from wavebrief.core.models import Artifact, GenerationJob, LogEntry, StageRun
from wavebrief.storage.base_job_store import BaseJobStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    job_id TEXT PRIMARY KEY,
    case_id TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_jobs_case ON jobs(case_id, created_at);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);

CREATE TABLE IF NOT EXISTS stage_runs (
    job_id TEXT NOT NULL,
    stage_index INTEGER NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (job_id, stage_index)
);

CREATE TABLE IF NOT EXISTS artifacts (
    ref TEXT PRIMARY KEY,
    job_id TEXT NOT NULL,
    version INTEGER NOT NULL,
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT NOT NULL,
    stage_index INTEGER NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_logs_job ON logs(job_id, stage_index);
"""


class SqliteJobStore(BaseJobStore):
    """SQLite-backed job store, durable across process restarts."""

    def __init__(self, db_path: Path | str) -> None:
        path = str(db_path)
        if path != ":memory:":
            resolved = Path(path).expanduser()
            resolved.parent.mkdir(parents=True, exist_ok=True)
            path = str(resolved)
        self._conn = sqlite3.connect(path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    # --- Jobs ---

    async def create_job(self, job: GenerationJob) -> None:
        try:
            self._conn.execute(
                "INSERT INTO jobs (job_id, case_id, status, created_at, data) "
                "VALUES (?, ?, ?, ?, ?)",
                (job.id, job.case_id, job.status, job.created_at.isoformat(), job.model_dump_json()),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Job {job.id} already exists") from exc
        self._conn.commit()

    async def get_job(self, job_id: str) -> GenerationJob | None:
        row = self._conn.execute(
            "SELECT data FROM jobs WHERE job_id = ?", (job_id,)
        ).fetchone()
        if row is None:
            return None
        return GenerationJob.model_validate_json(row[0])

    async def update_job(self, job: GenerationJob) -> None:
        cursor = self._conn.execute(
            "UPDATE jobs SET status = ?, data = ? WHERE job_id = ?",
            (job.status, job.model_dump_json(), job.id),
        )
        if cursor.rowcount == 0:
            raise KeyError(job.id)
        self._conn.commit()

    async def list_jobs_by_case(self, case_id: str) -> list[GenerationJob]:
        rows = self._conn.execute(
            "SELECT data FROM jobs WHERE case_id = ? ORDER BY created_at DESC, rowid DESC",
            (case_id,),
        ).fetchall()
        return [GenerationJob.model_validate_json(r[0]) for r in rows]

    async def list_jobs_by_status(self, statuses: Iterable[str]) -> list[GenerationJob]:
        wanted = list(statuses)
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        rows = self._conn.execute(
            f"SELECT data FROM jobs WHERE status IN ({placeholders}) "  # noqa: S608
            "ORDER BY created_at, rowid",
            wanted,
        ).fetchall()
        return [GenerationJob.model_validate_json(r[0]) for r in rows]

    # --- Stage runs ---

    async def save_stage_run(self, run: StageRun) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO stage_runs (job_id, stage_index, data)
               VALUES (?, ?, ?)""",
            (run.job_id, run.stage_index, run.model_dump_json()),
        )
        self._conn.commit()

    async def list_stage_runs(self, job_id: str) -> list[StageRun]:
        rows = self._conn.execute(
            "SELECT data FROM stage_runs WHERE job_id = ? ORDER BY stage_index",
            (job_id,),
        ).fetchall()
        return [StageRun.model_validate_json(r[0]) for r in rows]

    # --- Artifacts ---

    async def save_artifact(self, artifact: Artifact) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO artifacts (ref, job_id, version, data)
               VALUES (?, ?, ?, ?)""",
            (artifact.ref, artifact.job_id, artifact.version, artifact.model_dump_json()),
        )
        self._conn.commit()

    async def get_artifact(self, ref: str) -> Artifact | None:
        row = self._conn.execute(
            "SELECT data FROM artifacts WHERE ref = ?", (ref,)
        ).fetchone()
        if row is None:
            return None
        return Artifact.model_validate_json(row[0])

    # --- Logs ---

    async def append_log(self, entry: LogEntry) -> LogEntry:
        cursor = self._conn.execute(
            "INSERT INTO logs (job_id, stage_index, data) VALUES (?, ?, ?)",
            (entry.job_id, entry.stage_index, entry.model_dump_json(exclude={"id"})),
        )
        self._conn.commit()
        return entry.model_copy(update={"id": cursor.lastrowid})

    async def read_logs(
        self, job_id: str, stage_index: int | None = None
    ) -> list[LogEntry]:
        if stage_index is None:
            rows = self._conn.execute(
                "SELECT id, data FROM logs WHERE job_id = ? ORDER BY id", (job_id,)
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT id, data FROM logs WHERE job_id = ? AND stage_index = ? ORDER BY id",
                (job_id, stage_index),
            ).fetchall()
        return [
            LogEntry.model_validate_json(data).model_copy(update={"id": row_id})
            for row_id, data in rows
        ]

    async def count_logs(self, job_id: str) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM logs WHERE job_id = ?", (job_id,)
        ).fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
