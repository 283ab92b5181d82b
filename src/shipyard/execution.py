"""External command execution for Shipyard.

Every installer, linter, test runner, build tool and vendor CLI goes through
``CommandRunner.run``. Output is captured rather than streamed, and the call
never raises for a failing command: non-zero exits, timeouts and missing
executables all come back as an ``ExecutionResult``.

Design follows Function Core / Imperative Shell:
- Pure functions: format_command, _decode
- Protocol: Runner (what orchestration code depends on)
- Imperative shell: CommandRunner.run
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from typing import TYPE_CHECKING, Protocol

from shipyard.models import ExecutionResult

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0
TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127

_REDACTED = "***"


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


def format_command(argv: Sequence[str], redact: Sequence[str] = ()) -> str:
    """Render argv as a shell-quoted string with secret values masked."""
    secrets = {s for s in redact if s}
    return shlex.join(_REDACTED if arg in secrets else arg for arg in argv)


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        output = output.decode(errors="replace")
    return output.strip()


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class Runner(Protocol):
    """Anything that can execute a command and report an ExecutionResult."""

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        redact: Sequence[str] = (),
    ) -> ExecutionResult: ...


# ---------------------------------------------------------------------------
# Imperative shell
# ---------------------------------------------------------------------------


class CommandRunner:
    """Runs external processes synchronously via ``subprocess.run``."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.default_timeout = default_timeout

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        redact: Sequence[str] = (),
    ) -> ExecutionResult:
        """Execute ``command args...`` and capture the result.

        Args:
            command: Executable name or path.
            args: Arguments passed to the executable.
            cwd: Working directory. Defaults to the current directory.
            env: Complete environment for the child. ``None`` inherits ours.
            timeout: Seconds before the child is killed. Defaults to
                ``default_timeout``.
            redact: Argument values masked when the command is logged.
        """
        argv = [command, *args]
        limit = self.default_timeout if timeout is None else timeout
        logger.debug("Running %s (cwd=%s)", format_command(argv, redact), cwd)

        started = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=limit,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("%s timed out after %.0fs", command, limit)
            return ExecutionResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr) or f"{command} timed out after {limit:.0f}s",
                duration_ms=_elapsed_ms(started),
                timed_out=True,
            )
        except OSError as e:
            logger.debug("Could not start %s: %s", command, e)
            return ExecutionResult(
                exit_code=NOT_FOUND_EXIT_CODE,
                stderr=str(e),
                duration_ms=_elapsed_ms(started),
            )

        result = ExecutionResult(
            exit_code=completed.returncode,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
            duration_ms=_elapsed_ms(started),
        )
        logger.debug("%s exited with %d in %dms", command, result.exit_code, result.duration_ms)
        return result
