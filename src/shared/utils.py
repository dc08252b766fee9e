"""Shared utility functions."""
import time
from datetime import datetime, timezone


def now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def elapsed_ms(start: float) -> float:
    """Milliseconds elapsed since a ``time.monotonic()`` reading."""
    return (time.monotonic() - start) * 1000.0
