"""SQLite connection pooling shared by storage backends."""

from src.shared.db.connection import ConnectionPool

__all__ = ["ConnectionPool"]
