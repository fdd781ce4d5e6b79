"""SQLite-backed persistence for generation runs and app settings.

Each call opens its own connection so the store can be shared by worker
threads; WAL mode lets pollers read while a worker writes. Fields are
last-write-wins, except for the few transitions that must be atomic
(retry increments, render callbacks, stale sweeps), which are single
conditional UPDATE statements.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

import orjson
from pydantic import BaseModel

from schemas.errors import RunNotFoundError
from schemas.run import GenerationRun, GenerationStatus, utcnow

logger = logging.getLogger(__name__)

JSON_COLUMNS = {"profile", "customization", "rag_chunks_used", "takeaway_plan", "output_urls"}

COLUMNS = (
    "id", "user_id", "format", "profile", "presenter_name", "customization",
    "rag_query", "rag_chunks_used", "takeaway_plan", "script",
    "status", "status_message", "retry_count", "error_message",
    "output_urls", "thumbnail_url", "created_at", "updated_at", "completed_at",
)

UPDATABLE_COLUMNS = set(COLUMNS) - {"id", "user_id", "created_at"}


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _to_column(name: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if name in JSON_COLUMNS:
        return orjson.dumps(value).decode()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _timestamp(value)
    return value


def _row_to_run(row: sqlite3.Row) -> GenerationRun:
    data = dict(row)
    for name in JSON_COLUMNS:
        if data.get(name) is not None:
            data[name] = orjson.loads(data[name])
    if data.get("rag_chunks_used") is None:
        data["rag_chunks_used"] = []
    if data.get("output_urls") is None:
        data["output_urls"] = {}
    return GenerationRun.model_validate(data)


def _status_values(statuses: Iterable[GenerationStatus]) -> list[str]:
    return [GenerationStatus(s).value for s in statuses]


class RunStore:
    """Stores GenerationRun records keyed by run id."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        conn = self._get_conn()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS generations (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    format TEXT NOT NULL CHECK (format IN ('video', 'podcast', 'slides')),
                    profile TEXT,
                    presenter_name TEXT,
                    customization TEXT NOT NULL,
                    rag_query TEXT,
                    rag_chunks_used TEXT,
                    takeaway_plan TEXT,
                    script TEXT,
                    status TEXT NOT NULL DEFAULT 'queued' CHECK (
                        status IN ('queued', 'processing', 'rendering', 'completed', 'failed')
                    ),
                    status_message TEXT,
                    retry_count INTEGER NOT NULL DEFAULT 0,
                    error_message TEXT,
                    output_urls TEXT,
                    thumbnail_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_generations_status
                    ON generations(status, updated_at);
                CREATE INDEX IF NOT EXISTS idx_generations_user
                    ON generations(user_id, created_at DESC);

                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)
            conn.commit()
            logger.info("Generation store initialized at %s", self.db_path)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def create_run(self, run: GenerationRun) -> GenerationRun:
        values = [_to_column(name, getattr(run, name)) for name in COLUMNS]
        conn = self._get_conn()
        try:
            conn.execute(
                f"INSERT INTO generations ({', '.join(COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in COLUMNS)})",
                values,
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Created generation %s (%s, user %s)", run.id, run.format.value, run.user_id)
        return run

    def get_run(self, run_id: str) -> Optional[GenerationRun]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM generations WHERE id = ?", (run_id,)
            ).fetchone()
            return _row_to_run(row) if row else None
        finally:
            conn.close()

    def list_runs(
        self,
        status: Optional[GenerationStatus] = None,
        limit: int = 50,
    ) -> list[GenerationRun]:
        conn = self._get_conn()
        try:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM generations ORDER BY created_at DESC LIMIT ?", (limit,)
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM generations WHERE status = ? ORDER BY created_at ASC LIMIT ?",
                    (GenerationStatus(status).value, limit),
                ).fetchall()
            return [_row_to_run(r) for r in rows]
        finally:
            conn.close()

    def update_run(self, run_id: str, **fields) -> None:
        """Overwrite the given fields; ``updated_at`` is always refreshed."""
        self._update(run_id, None, fields, require=True)

    def transition(
        self,
        run_id: str,
        from_statuses: Iterable[GenerationStatus],
        **fields,
    ) -> bool:
        """Update fields only if the run is currently in one of ``from_statuses``.

        Returns:
            True if the row was updated.
        """
        return self._update(run_id, _status_values(from_statuses), fields, require=False)

    def increment_retry(
        self,
        run_id: str,
        max_retries: int,
        status_message: Optional[str] = None,
    ) -> Optional[int]:
        """Atomically bump ``retry_count`` and requeue a ``processing`` run under budget.

        Returns:
            The new retry count, or None if the budget was already spent or
            the run is no longer ``processing``.
        """
        conn = self._get_conn()
        try:
            row = conn.execute(
                """UPDATE generations
                   SET retry_count = retry_count + 1,
                       status = 'queued',
                       status_message = ?,
                       updated_at = ?
                   WHERE id = ? AND status = 'processing' AND retry_count < ?
                   RETURNING retry_count""",
                (status_message, _timestamp(utcnow()), run_id, max_retries),
            ).fetchone()
            conn.commit()
        finally:
            conn.close()
        return row["retry_count"] if row else None

    def fail_stale(self, older_than_seconds: int, message: Optional[str] = None) -> list[str]:
        """Fail runs stuck in ``processing`` longer than the wall-clock bound."""
        now = utcnow()
        cutoff = _timestamp(now - timedelta(seconds=older_than_seconds))
        message = message or f"Generation timed out after {older_than_seconds}s"
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """UPDATE generations
                   SET status = 'failed', status_message = NULL, error_message = ?,
                       updated_at = ?
                   WHERE status = 'processing' AND updated_at < ?
                   RETURNING id""",
                (message, _timestamp(now), cutoff),
            ).fetchall()
            conn.commit()
        finally:
            conn.close()
        stale = [r["id"] for r in rows]
        if stale:
            logger.warning("Marked %d stale generations as failed: %s", len(stale), stale)
        return stale

    def _update(
        self,
        run_id: str,
        from_statuses: Optional[list[str]],
        fields: dict,
        require: bool,
    ) -> bool:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown generation fields: {sorted(unknown)}")

        fields = {**fields, "updated_at": utcnow()}
        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [_to_column(name, value) for name, value in fields.items()]
        sql = f"UPDATE generations SET {assignments} WHERE id = ?"
        params.append(run_id)
        if from_statuses is not None:
            sql += f" AND status IN ({', '.join('?' for _ in from_statuses)})"
            params.extend(from_statuses)

        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()

        if require and not updated:
            raise RunNotFoundError(run_id)
        return updated

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT value FROM app_settings WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else default
        finally:
            conn.close()

    def set_setting(self, key: str, value: str):
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO app_settings (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                (key, value, _timestamp(utcnow())),
            )
            conn.commit()
        finally:
            conn.close()
