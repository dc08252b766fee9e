"""Command line entry point for running quality gates.

Exit codes of ``run``:

    0 -- every gate passed (or was skipped)
    1 -- at least one gate failed or errored
    2 -- usage error (unknown gate type, bad config file, unreadable input)
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from src.quality_gates import display
from src.quality_gates.config import (
    GateConfig,
    QualityGatesConfig,
    apply_settings,
    build_runner,
    load_config,
)
from src.quality_gates.exceptions import ConfigurationError
from src.quality_gates.models import GateContext, RunSummary, RunVerdict
from src.quality_gates.registry import get_gate_class, get_gate_types
from src.shared.config import QualityGatesSettings
from src.shared.constants import SERVICE_NAME, VERSION
from src.shared.logging import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="quality-gates",
    help="Run quality gates against a source file.",
    no_args_is_help=True,
)

_console = Console()

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2

_LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
}

_DEFAULT_CONFIG_TEMPLATE = """\
# Quality gates configuration

runner:
  parallel: false             # run gates concurrently
  continue_on_failure: true   # false stops at the first failing gate
  timeout_ms: 60000           # default per-gate deadline
  retry_base_delay_ms: 1000   # linear backoff step between retries

storage:
  backend: none               # none | memory | sqlite
  db_path: .quality-gates/results.db

logging:
  level: info
  json_output: false

gates:
  - type: lint
  - type: security
    failure_threshold: 1
  - type: complexity
    max_cyclomatic_complexity: 10
    max_lines_per_function: 50
  - type: test
    enabled: false            # enable when the file is a test module
    timeout_ms: 60000
    retry_count: 0
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{SERVICE_NAME} {VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Quality gate orchestration."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def run(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True,
                                help="Source file to verify."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file."),
    gate: Optional[List[str]] = typer.Option(None, "--gate", "-g",
                                             help="Gate type to run (repeatable)."),
    parallel: Optional[bool] = typer.Option(None, "--parallel/--sequential",
                                            help="Override the configured scheduling mode."),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop at the first failing gate."),
    task_id: Optional[str] = typer.Option(None, "--task-id", help="Correlation id for results."),
    language: Optional[str] = typer.Option(None, "--language", "-l",
                                           help="Source language (default: from suffix)."),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    """Run the configured gates against FILE."""
    settings = QualityGatesSettings()
    try:
        config = _resolve_config(settings, config_path, gate, parallel, fail_fast)
    except ConfigurationError as exc:
        display.print_error_panel(exc)
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    setup_logging(
        SERVICE_NAME,
        level=config.logging.level,
        json_output=config.logging.json_output,
    )

    try:
        code = file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        display.print_error_panel(f"{file} is not valid UTF-8 text: {exc.reason}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    context = GateContext(
        file_name=file.name,
        language=language or _LANGUAGE_BY_SUFFIX.get(file.suffix.lower()),
        task_id=task_id,
    )

    try:
        summary = asyncio.run(_execute(config, code, context))
    except ConfigurationError as exc:
        display.print_error_panel(exc)
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    if as_json:
        typer.echo(json.dumps(summary.to_dict(), indent=2, default=str))
    else:
        for result in summary.results:
            display.print_result(result)
        display.print_summary(summary)

    raise typer.Exit(
        code=EXIT_PASSED if summary.overall_status == RunVerdict.PASSED else EXIT_FAILED
    )


@app.command("gates")
def list_gates() -> None:
    """List the registered gate types."""
    table = Table(title="Registered gates", show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Class")
    for gate_type in get_gate_types():
        table.add_row(gate_type, get_gate_class(gate_type).__name__)
    _console.print(table)


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("quality-gates.yml"), help="Where to write the config."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file."),
) -> None:
    """Write a default configuration template."""
    if path.exists() and not force:
        _console.print(f"[red]{path} already exists[/red] (use --force to overwrite)")
        raise typer.Exit(code=1)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    _console.print(f"[green]Wrote[/green] {path}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_config(
    settings: QualityGatesSettings,
    config_path: Path | None,
    gate_types: list[str] | None,
    parallel: bool | None,
    fail_fast: bool,
) -> QualityGatesConfig:
    path = config_path or (Path(settings.config_path) if settings.config_path else None)
    if config_path is not None and not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")
    config = apply_settings(load_config(path), settings)

    if gate_types:
        config = replace(config, gates=[GateConfig(type=t) for t in gate_types])
    runner_config = config.runner
    if parallel is not None:
        runner_config = replace(runner_config, parallel=parallel)
    if fail_fast:
        runner_config = replace(runner_config, continue_on_failure=False)
    return replace(config, runner=runner_config)


async def _execute(config: QualityGatesConfig, code: str, context: GateContext) -> RunSummary:
    runner = await build_runner(config)
    return await runner.run(code, context)
