"""Reference storage collaborators for quality gate results.

Two backends implement the
:class:`~src.quality_gates.protocols.StorageAdapter` protocol:

* :class:`InMemoryStorage` -- list-backed, process local.
* :class:`SQLiteStorage` -- WAL-mode SQLite through the shared
  :class:`~src.shared.db.connection.ConnectionPool`.  Blocking SQLite calls
  run in a worker thread via :func:`asyncio.to_thread`.

Both raise :class:`StorageError` on failure; the reporter turns that into
``stored=False``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any

from src.quality_gates.exceptions import ConfigurationError, StorageError
from src.shared.db.connection import ConnectionPool
from src.shared.utils import now_iso

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = ".quality-gates/results.db"


class InMemoryStorage:
    """Keeps stored results in a list; useful for tests and dry runs."""

    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    def get_type(self) -> str:
        return "memory"

    def supports_cloud(self) -> bool:
        return False

    async def store_quality_result(
        self, task_id: str, gate_name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        record = {
            "id": str(uuid.uuid4()),
            "task_id": task_id,
            "gate_name": gate_name,
            "payload": payload,
            "created_at": now_iso(),
        }
        self.records.append(record)
        return {"id": record["id"]}

    def results_for(self, task_id: str) -> list[dict[str, Any]]:
        return [r for r in self.records if r["task_id"] == task_id]


class SQLiteStorage:
    """Persists results into a ``quality_results`` table.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._pool = ConnectionPool(db_path)

    @property
    def db_path(self) -> Path:
        return self._pool.db_path

    async def initialize(self) -> None:
        await asyncio.to_thread(self._init_schema)

    def get_type(self) -> str:
        return "sqlite"

    def supports_cloud(self) -> bool:
        return False

    async def store_quality_result(
        self, task_id: str, gate_name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        record_id = str(uuid.uuid4())
        await asyncio.to_thread(self._insert, record_id, task_id, gate_name, payload)
        return {"id": record_id}

    async def fetch_results(self, task_id: str) -> list[dict[str, Any]]:
        """Return stored payloads for *task_id* in insertion order."""
        return await asyncio.to_thread(self._select, task_id)

    def close(self) -> None:
        self._pool.close()

    # ------------------------------------------------------------------
    # Blocking helpers (run in worker threads)
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        try:
            conn = self._pool.get()
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS quality_results (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    gate_name TEXT NOT NULL,
                    status TEXT,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT (datetime('now'))
                );
                CREATE INDEX IF NOT EXISTS idx_qr_task
                    ON quality_results(task_id);
            """)
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to initialise {self.db_path}: {exc}") from exc

    def _insert(
        self, record_id: str, task_id: str, gate_name: str, payload: dict[str, Any]
    ) -> None:
        status = payload.get("status") or payload.get("overallStatus")
        try:
            conn = self._pool.get()
            conn.execute(
                """INSERT INTO quality_results
                   (id, task_id, gate_name, status, payload)
                   VALUES (?, ?, ?, ?, ?)""",
                (record_id, task_id, gate_name, status, json.dumps(payload, default=str)),
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to store result for {gate_name}: {exc}") from exc

    def _select(self, task_id: str) -> list[dict[str, Any]]:
        try:
            conn = self._pool.get()
            rows = conn.execute(
                """SELECT id, gate_name, status, payload FROM quality_results
                   WHERE task_id = ? ORDER BY rowid""",
                (task_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read results for {task_id}: {exc}") from exc
        return [
            {
                "id": row["id"],
                "gate_name": row["gate_name"],
                "status": row["status"],
                "payload": json.loads(row["payload"]),
            }
            for row in rows
        ]


_BACKENDS = {
    "memory": InMemoryStorage,
    "sqlite": SQLiteStorage,
}


def create_storage(backend: str | None, **kwargs: Any) -> InMemoryStorage | SQLiteStorage | None:
    """Instantiate a storage backend by name.

    ``"none"`` (or an empty value) disables persistence and returns
    ``None``.  Unknown names raise :class:`ConfigurationError`.
    """
    name = (backend or "none").lower()
    if name == "none":
        return None
    if name not in _BACKENDS:
        raise ConfigurationError(
            f"Unknown storage backend: {backend!r} (expected one of: none, "
            f"{', '.join(sorted(_BACKENDS))})"
        )
    if name == "sqlite":
        return SQLiteStorage(kwargs.get("db_path") or DEFAULT_DB_PATH)
    return InMemoryStorage()
