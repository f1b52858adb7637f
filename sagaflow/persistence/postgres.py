"""PostgreSQL implementation of the run repository."""

from __future__ import annotations

import asyncpg

from .models import RunContext
from .repository import RunRepository


class PostgresRunRepository(RunRepository):
    """Persist run history using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                workflow_name TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TIMESTAMPTZ NOT NULL,
                ended_at TIMESTAMPTZ,
                data JSONB NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def save_run(self, run: RunContext) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_runs (id, workflow_name, status, started_at, ended_at, data)
                VALUES ($1, $2, $3, $4, $5, $6::jsonb)
                ON CONFLICT (id) DO UPDATE SET
                    status = EXCLUDED.status,
                    ended_at = EXCLUDED.ended_at,
                    data = EXCLUDED.data
                """,
                run.id,
                run.workflow_name,
                run.status.value,
                run.start_time,
                run.end_time,
                run.model_dump_json(),
            )
        finally:
            await conn.close()

    async def get_run(self, run_id: str) -> RunContext | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data::text AS data FROM workflow_runs WHERE id = $1", run_id
            )
        finally:
            await conn.close()
        if not row:
            return None
        return RunContext.model_validate_json(row["data"])

    async def list_runs(self) -> list[RunContext]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT data::text AS data FROM workflow_runs ORDER BY started_at"
            )
        finally:
            await conn.close()
        return [RunContext.model_validate_json(r["data"]) for r in rows]
