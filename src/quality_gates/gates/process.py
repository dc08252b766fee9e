"""Subprocess helper for gates that delegate to an external tool.

The child process is owned by the awaiting coroutine.  If that coroutine
is cancelled -- which is how the executor enforces a gate timeout -- the
``finally`` block kills the child and reaps it before the cancellation
propagates, so a timed-out gate never leaves an orphaned process behind.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from src.quality_gates.exceptions import ExecutionError

logger = logging.getLogger(__name__)

# Secrets never forwarded to gate subprocesses.
_FILTERED_ENV_KEYS: frozenset[str] = frozenset(
    {
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "GITHUB_TOKEN",
        "GH_TOKEN",
    }
)


@dataclass
class ProcessOutput:
    """Captured outcome of a finished subprocess."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


def gate_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Return ``os.environ`` minus secret keys, with CI markers set."""
    env = {k: v for k, v in os.environ.items() if k not in _FILTERED_ENV_KEYS}
    env["CI"] = "true"
    env.update(extra or {})
    return env


async def run_process(
    *args: str,
    cwd: str | Path | None = None,
    input_text: str | None = None,
    env: dict[str, str] | None = None,
) -> ProcessOutput:
    """Run *args* to completion and capture its output.

    Raises:
        ExecutionError: If the executable cannot be started.
    """
    proc: asyncio.subprocess.Process | None = None
    try:
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd is not None else None,
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env if env is not None else gate_env(),
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ExecutionError(message=f"Failed to start {args[0]}: {exc}") from exc

        stdout_bytes, stderr_bytes = await proc.communicate(
            input_text.encode("utf-8") if input_text is not None else None
        )
    finally:
        if proc is not None and proc.returncode is None:
            logger.warning("Killing subprocess %s (pid=%s)", args[0], proc.pid)
            proc.kill()
            await proc.wait()

    return ProcessOutput(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout_bytes.decode(errors="replace") if stdout_bytes else "",
        stderr=stderr_bytes.decode(errors="replace") if stderr_bytes else "",
    )
