"""Shared test fixtures for the quality-gates test suite."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator

import pytest

from src.shared.db.connection import ConnectionPool


@pytest.fixture(autouse=True)
def _reset_package_logging() -> Generator[None, None, None]:
    """Drop handlers installed by ``setup_logging`` (e.g. via the CLI)."""
    yield
    logger = logging.getLogger("src")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "results.db"


@pytest.fixture
def connection_pool(tmp_db_path: Path) -> Generator[ConnectionPool, None, None]:
    """Provide a ConnectionPool with a temporary database."""
    pool = ConnectionPool(tmp_db_path)
    yield pool
    pool.close()
