"""Shared constants used across packages."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Service name used for structured log entries
SERVICE_NAME: str = "quality-gates"

# Database settings
DB_BUSY_TIMEOUT_MS: int = 30000
