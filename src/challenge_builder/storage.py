"""
SQLite-backed storage for builder run results.

Keeps the last report per project, with the time it was saved, so a
reviewer can come back to it without re-running the agents.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
from pydantic import BaseModel

from .orchestrator.mapping import ChallengeBuilderReport

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS builder_results (
        project_id TEXT PRIMARY KEY,
        report JSON NOT NULL,
        last_run_at TIMESTAMP NOT NULL
    )
    """,
]


class StoredResult(BaseModel):
    """Last saved report for a project."""

    project_id: str
    report: ChallengeBuilderReport
    last_run_at: datetime


class ResultStore:
    """Stores the last ChallengeBuilderReport per project."""

    def __init__(self, db_path: str | Path):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database (use ':memory:' for in-memory)
        """
        self.db_path = str(db_path)
        self._initialized = False
        self._conn: aiosqlite.Connection | None = None  # Persistent connection for :memory:
        self._is_memory = self.db_path == ":memory:"

    async def initialize(self) -> None:
        """Create the schema. Call this before any operations."""
        if self._initialized:
            return

        if self._is_memory:
            self._conn = await aiosqlite.connect(self.db_path)
            db = self._conn
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self.db_path)

        try:
            for statement in SCHEMA_STATEMENTS:
                await db.execute(statement.strip())
            await db.commit()

            self._initialized = True
            logger.info(f"Initialized result store at {self.db_path}")
        finally:
            if not self._is_memory:
                await db.close()

    @asynccontextmanager
    async def _get_db(self):
        """Context manager for database connections."""
        if not self._initialized:
            raise RuntimeError("Result store not initialized. Call initialize() first.")
        if self._is_memory:
            yield self._conn
        else:
            async with aiosqlite.connect(self.db_path) as db:
                yield db

    async def save(
        self,
        project_id: str,
        report: ChallengeBuilderReport,
        saved_at: datetime | None = None,
    ) -> StoredResult:
        """
        Save (replace) the report for a project.

        Returns:
            The stored result with its lastRunAt timestamp
        """
        last_run_at = saved_at or datetime.now(timezone.utc)
        payload = report.model_dump_json(by_alias=True)

        async with self._get_db() as db:
            await db.execute(
                """
                INSERT INTO builder_results (project_id, report, last_run_at)
                VALUES (?, ?, ?)
                ON CONFLICT(project_id) DO UPDATE SET
                    report = excluded.report,
                    last_run_at = excluded.last_run_at
                """,
                (project_id, payload, last_run_at.isoformat()),
            )
            await db.commit()

        logger.debug(f"Saved builder result for project {project_id}")
        return StoredResult(project_id=project_id, report=report, last_run_at=last_run_at)

    async def get(self, project_id: str) -> StoredResult | None:
        """Return the last saved result for a project, or None."""
        async with self._get_db() as db:
            cursor = await db.execute(
                "SELECT report, last_run_at FROM builder_results WHERE project_id = ?",
                (project_id,),
            )
            row = await cursor.fetchone()

        if row is None:
            return None

        report = ChallengeBuilderReport.model_validate(json.loads(row[0]))
        return StoredResult(
            project_id=project_id,
            report=report,
            last_run_at=datetime.fromisoformat(row[1]),
        )

    async def delete(self, project_id: str) -> bool:
        """Delete the stored result; True if one existed."""
        async with self._get_db() as db:
            cursor = await db.execute(
                "DELETE FROM builder_results WHERE project_id = ?", (project_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def close(self) -> None:
        """Close database connection (important for in-memory databases)."""
        if self._conn:
            await self._conn.close()
            self._conn = None
        self._initialized = False
