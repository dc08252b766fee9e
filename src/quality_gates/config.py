"""Configuration dataclasses and YAML loader for quality gate runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from src.quality_gates.constants import (
    DEFAULT_GATE_TYPES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_RUNNER_TIMEOUT_MS,
)
from src.quality_gates.exceptions import ConfigurationError
from src.quality_gates.storage import DEFAULT_DB_PATH
from src.shared.config import QualityGatesSettings

logger = logging.getLogger(__name__)


@dataclass
class RunnerConfig:
    """Scheduling policy for a run."""

    parallel: bool = False
    continue_on_failure: bool = True
    timeout_ms: int = DEFAULT_RUNNER_TIMEOUT_MS
    retry_base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS


@dataclass
class StorageConfig:
    """Where reported results are persisted (``none``, ``memory`` or ``sqlite``)."""

    backend: str = "none"
    db_path: str = DEFAULT_DB_PATH


@dataclass
class LoggingConfig:
    level: str = "info"
    json_output: bool = False


@dataclass
class GateConfig:
    """One gate entry.

    Keys that are not fields of this class are passed to the gate
    constructor through :attr:`options`.
    """

    type: str
    name: str | None = None
    enabled: bool = True
    timeout_ms: int | None = None
    retry_count: int = 0
    failure_threshold: int = 1
    options: dict[str, Any] = field(default_factory=dict)

    def gate_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :func:`~src.quality_gates.registry.create_gate`."""
        kwargs: dict[str, Any] = dict(self.options)
        if self.name:
            kwargs["name"] = self.name
        if self.timeout_ms is not None:
            kwargs["timeout_ms"] = self.timeout_ms
        kwargs["retry_count"] = self.retry_count
        kwargs["failure_threshold"] = self.failure_threshold
        return kwargs


def _default_gates() -> list[GateConfig]:
    return [GateConfig(type=t) for t in DEFAULT_GATE_TYPES]


@dataclass
class QualityGatesConfig:
    """Top-level configuration composing all sub-configs."""

    runner: RunnerConfig = field(default_factory=RunnerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    gates: list[GateConfig] = field(default_factory=_default_gates)


def _pick(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter *data* to only keys accepted by *cls*."""
    valid = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid}


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{key}' must be a mapping")
    return value


def _parse_gate(item: Any, index: int) -> GateConfig:
    if isinstance(item, str):
        return GateConfig(type=item)
    if not isinstance(item, dict):
        raise ConfigurationError(f"Gate entry #{index} must be a type name or a mapping")
    if not item.get("type"):
        raise ConfigurationError(f"Gate entry #{index} is missing 'type'")

    known = _pick(item, GateConfig)
    options = dict(known.pop("options", None) or {})
    options.update({k: v for k, v in item.items() if k not in known and k != "options"})
    return GateConfig(**known, options=options)


def load_config(path: Path | str | None = None) -> QualityGatesConfig:
    """Load quality gate configuration from a YAML file.

    Missing sections fall back to defaults and unknown keys are ignored.
    A ``None`` or non-existent *path* returns full defaults.

    Raises:
        ConfigurationError: If the file is not valid YAML or a section has
            the wrong shape.
    """
    if path is None:
        return QualityGatesConfig()

    path = Path(path)
    if not path.exists():
        logger.debug("Config file %s not found, using defaults", path)
        return QualityGatesConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    gates_raw = raw.get("gates")
    if gates_raw is None:
        gates = _default_gates()
    elif isinstance(gates_raw, list):
        gates = [_parse_gate(item, i) for i, item in enumerate(gates_raw)]
    else:
        raise ConfigurationError("Config section 'gates' must be a list")

    try:
        return QualityGatesConfig(
            runner=RunnerConfig(**_pick(_section(raw, "runner"), RunnerConfig)),
            storage=StorageConfig(**_pick(_section(raw, "storage"), StorageConfig)),
            logging=LoggingConfig(**_pick(_section(raw, "logging"), LoggingConfig)),
            gates=gates,
        )
    except TypeError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc


def apply_settings(
    config: QualityGatesConfig, settings: QualityGatesSettings
) -> QualityGatesConfig:
    """Overlay explicitly set environment settings onto *config*."""
    provided = settings.model_fields_set
    storage = config.storage
    if settings.storage_backend:
        storage = replace(storage, backend=settings.storage_backend)
    logging_config = config.logging
    if "log_level" in provided:
        logging_config = replace(logging_config, level=settings.log_level)
    if "log_json" in provided:
        logging_config = replace(logging_config, json_output=settings.log_json)
    return replace(config, storage=storage, logging=logging_config)


async def build_runner(config: QualityGatesConfig | None = None):
    """Create a :class:`~src.quality_gates.runner.QualityRunner` from *config*.

    Raises:
        ConfigurationError: For unknown gate types or storage backends.
    """
    from src.quality_gates.registry import create_gate
    from src.quality_gates.reporter import ResultReporter
    from src.quality_gates.runner import QualityRunner

    config = config or QualityGatesConfig()
    reporter = await ResultReporter.from_config(config)
    runner = QualityRunner(
        reporter,
        continue_on_failure=config.runner.continue_on_failure,
        parallel=config.runner.parallel,
        timeout_ms=config.runner.timeout_ms,
        retry_base_delay_ms=config.runner.retry_base_delay_ms,
    )
    for gate_config in config.gates:
        gate = create_gate(gate_config.type, **gate_config.gate_kwargs())
        runner.add_gate(gate, {"enabled": gate_config.enabled})
    return runner
