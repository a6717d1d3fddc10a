"""SQLite event journal with WAL mode: the audit trail of every mutation."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    spec_id TEXT NOT NULL DEFAULT '',
    subject TEXT NOT NULL,
    event TEXT NOT NULL,
    detail TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_subject ON events(spec_id, subject);
CREATE INDEX IF NOT EXISTS idx_events_event ON events(event);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Journal:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        if self.db_path != ":memory:":
            await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "Journal":
        await self.init()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ---------------------------------------------------------------
    # Events
    # ---------------------------------------------------------------

    async def log_event(
        self,
        subject: str,
        event: str,
        detail: dict | None = None,
        spec_id: str = "",
    ) -> None:
        """Record an event about a work item (`spec_id` + item id) or a log entry."""
        await self._conn.execute(
            "INSERT INTO events (spec_id, subject, event, detail, created_at) VALUES (?,?,?,?,?)",
            (spec_id, subject, event, json.dumps(detail) if detail else None, _now()),
        )
        await self._conn.commit()

    async def get_events(self, subject: str | None = None, spec_id: str | None = None) -> list[dict]:
        query = "SELECT * FROM events"
        clauses, params = [], []
        if spec_id is not None:
            clauses.append("spec_id = ?")
            params.append(spec_id)
        if subject is not None:
            clauses.append("subject = ?")
            params.append(subject)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY id"
        cursor = await self._conn.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_event(r) for r in rows]

    @staticmethod
    def _row_to_event(row) -> dict:
        return {
            "spec_id": row["spec_id"],
            "subject": row["subject"],
            "event": row["event"],
            "detail": json.loads(row["detail"]) if row["detail"] else None,
            "created_at": row["created_at"],
        }
