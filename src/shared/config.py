"""Environment configuration using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class QualityGatesSettings(BaseSettings):
    """Process-level settings read from the environment.

    These complement the YAML file loaded by
    :func:`src.quality_gates.config.load_config`; values given on the
    command line take precedence over both.
    """
    log_level: str = Field(default="info", validation_alias="QG_LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="QG_LOG_JSON")
    config_path: str = Field(default="", validation_alias="QG_CONFIG_PATH")
    storage_backend: str = Field(default="", validation_alias="QG_STORAGE_BACKEND")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }
