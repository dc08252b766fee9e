"""Tests for the SQLite ConnectionPool."""
from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from src.shared.db.connection import ConnectionPool


class TestConnectionPool:
    def test_get_returns_connection(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        conn = pool.get()
        assert isinstance(conn, sqlite3.Connection)
        pool.close()

    def test_wal_mode_enabled(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        result = pool.get().execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"
        pool.close()

    def test_default_busy_timeout(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        result = pool.get().execute("PRAGMA busy_timeout").fetchone()
        assert result[0] == 30000
        pool.close()

    def test_custom_busy_timeout(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db", busy_timeout_ms=500)
        result = pool.get().execute("PRAGMA busy_timeout").fetchone()
        assert result[0] == 500
        pool.close()

    def test_row_factory_set(self, connection_pool: ConnectionPool):
        assert connection_pool.get().row_factory == sqlite3.Row

    def test_connection_reuse_same_thread(self, connection_pool: ConnectionPool):
        assert connection_pool.get() is connection_pool.get()

    def test_thread_local_isolation(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        main_conn = pool.get()
        thread_conn = [None]

        def get_conn():
            thread_conn[0] = pool.get()

        t = threading.Thread(target=get_conn)
        t.start()
        t.join()

        assert thread_conn[0] is not None
        assert thread_conn[0] is not main_conn
        assert len(pool._connections) == 2
        pool.close()

    def test_close_clears_connections(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        pool.get()
        pool.close()
        assert len(pool._connections) == 0

    def test_get_after_close_reopens(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        first = pool.get()
        pool.close()
        second = pool.get()
        assert second is not first
        second.execute("SELECT 1")
        pool.close()

    def test_db_path_property(self, tmp_path: Path):
        db_path = tmp_path / "results.db"
        pool = ConnectionPool(db_path)
        assert pool.db_path == db_path
        pool.close()

    def test_parent_directory_created(self, tmp_path: Path):
        nested_path = tmp_path / ".quality-gates" / "nested" / "results.db"
        pool = ConnectionPool(nested_path)
        assert nested_path.parent.exists()
        pool.close()

    def test_data_visible_across_threads(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "results.db")
        conn = pool.get()
        conn.execute("CREATE TABLE results (id TEXT PRIMARY KEY)")
        conn.execute("INSERT INTO results VALUES ('r1')")
        conn.commit()
        rows = []

        def read():
            rows.extend(r["id"] for r in pool.get().execute("SELECT id FROM results"))

        t = threading.Thread(target=read)
        t.start()
        t.join()

        assert rows == ["r1"]
        pool.close()
