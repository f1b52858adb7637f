"""SQLite implementation of the run repository."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

from .models import RunContext
from .repository import RunRepository


class SQLiteRunRepository(RunRepository):
    """Persist run history using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                workflow_name TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                ended_at TEXT,
                data TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    # ------------------------------------------------------------------
    # Repository API
    async def save_run(self, run: RunContext) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_runs (id, workflow_name, status, started_at, ended_at, data)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status = excluded.status,
                ended_at = excluded.ended_at,
                data = excluded.data
            """,
            run.id,
            run.workflow_name,
            run.status.value,
            run.start_time.isoformat(),
            run.end_time.isoformat() if run.end_time else None,
            run.model_dump_json(),
        )

    async def get_run(self, run_id: str) -> RunContext | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT data FROM workflow_runs WHERE id = ?", run_id
        )
        if not row:
            return None
        return RunContext.model_validate_json(row["data"])

    async def list_runs(self) -> list[RunContext]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT data FROM workflow_runs ORDER BY started_at"
        )
        return [RunContext.model_validate_json(row["data"]) for row in rows]

    def close(self) -> None:
        self._conn.close()
