"""Tests for shipyard.execution: CommandRunner against real subprocesses."""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from shipyard.execution import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandRunner,
    format_command,
)

if TYPE_CHECKING:
    from pathlib import Path

PYTHON = sys.executable


# ---------------------------------------------------------------------------
# format_command (pure function)
# ---------------------------------------------------------------------------


class TestFormatCommand:
    def test_quotes_arguments(self) -> None:
        assert format_command(["echo", "a b"]) == "echo 'a b'"

    def test_masks_secrets(self) -> None:
        line = format_command(["vercel", "--token", "s3cret"], redact=["s3cret"])
        assert "s3cret" not in line
        assert "***" in line

    def test_empty_secret_is_ignored(self) -> None:
        assert format_command(["npm", "ci"], redact=[""]) == "npm ci"


# ---------------------------------------------------------------------------
# CommandRunner (imperative shell, real subprocess)
# ---------------------------------------------------------------------------


class TestCommandRunner:
    def test_success_captures_stdout(self) -> None:
        result = CommandRunner().run(PYTHON, ["-c", "print('hello')"])
        assert result.ok is True
        assert result.stdout == "hello"
        assert result.duration_ms >= 0

    def test_undecodable_output_is_replaced(self) -> None:
        result = CommandRunner().run(
            PYTHON, ["-c", "import sys; sys.stdout.buffer.write(b'\\xff\\xfe bad')"]
        )
        assert result.ok is True
        assert result.stdout.endswith("bad")
        assert "\ufffd" in result.stdout

    def test_nonzero_exit_does_not_raise(self) -> None:
        result = CommandRunner().run(
            PYTHON, ["-c", "import sys; sys.stderr.write('bad\\n'); sys.exit(3)"]
        )
        assert result.ok is False
        assert result.exit_code == 3
        assert result.stderr == "bad"
        assert result.timed_out is False

    def test_timeout_is_distinguished(self) -> None:
        result = CommandRunner().run(PYTHON, ["-c", "import time; time.sleep(5)"], timeout=0.5)
        assert result.timed_out is True
        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert result.ok is False

    def test_missing_executable_does_not_raise(self) -> None:
        result = CommandRunner().run("definitely-not-a-real-tool-xyz")
        assert result.exit_code == NOT_FOUND_EXIT_CODE
        assert result.stderr

    def test_runs_in_cwd(self, tmp_path: Path) -> None:
        result = CommandRunner().run(PYTHON, ["-c", "import os; print(os.getcwd())"], cwd=tmp_path)
        assert os.path.samefile(result.stdout, tmp_path)

    def test_passes_environment(self) -> None:
        env = {**os.environ, "SHIPYARD_TEST_VALUE": "42"}
        result = CommandRunner().run(
            PYTHON,
            ["-c", "import os; print(os.environ['SHIPYARD_TEST_VALUE'])"],
            env=env,
        )
        assert result.stdout == "42"

    def test_default_timeout_applies(self) -> None:
        runner = CommandRunner(default_timeout=0.5)
        result = runner.run(PYTHON, ["-c", "import time; time.sleep(5)"])
        assert result.timed_out is True
