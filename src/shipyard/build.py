"""Build pipeline for Shipyard.

Runs install / lint / test / build as an ordered list of ``PipelineStep``s.
Each step says whether its failure is fatal; a fatal failure stops the
pipeline, a non-fatal one becomes a warning and the pipeline continues.

Design follows Function Core / Imperative Shell:
- Pure functions: summarize_failure, step_warning
- Imperative shell: run_pipeline, locate_artifact
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.errors import BuildFatal
from shipyard.models import BuildOutcome, RunWarning, StepRecord, WarningKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from pathlib import Path

    from shipyard.execution import Runner
    from shipyard.models import ExecutionResult, PipelineStep

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 200


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


def summarize_failure(step_name: str, result: ExecutionResult) -> str:
    """One-line description of a failed step, with output truncated."""
    if result.timed_out:
        return f"{step_name} timed out"
    output = result.stderr or result.stdout
    if not output:
        return f"{step_name} failed (exit code {result.exit_code})"
    last_line = output.splitlines()[-1]
    if len(last_line) > SUMMARY_LIMIT:
        last_line = last_line[:SUMMARY_LIMIT] + "..."
    return f"{step_name} failed (exit code {result.exit_code}): {last_line}"


def step_warning(step_name: str) -> RunWarning:
    return RunWarning(
        kind=WarningKind.BUILD_WARNING,
        message=f"{step_name} failed - continuing anyway",
    )


# ---------------------------------------------------------------------------
# Imperative shell
# ---------------------------------------------------------------------------


def run_pipeline(
    steps: Iterable[PipelineStep],
    runner: Runner,
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    on_step: Callable[[StepRecord], None] | None = None,
) -> BuildOutcome:
    """Execute pipeline steps in order.

    A failing step with ``fatal_if_failed`` ends the pipeline immediately;
    later steps are never started. Other failures are recorded as
    ``BUILD_WARNING`` warnings.
    """
    records: list[StepRecord] = []
    warnings: list[RunWarning] = []

    for step in steps:
        logger.info("Running build step %s", step.name)
        result = runner.run(step.command, step.args, cwd=cwd, env=env, timeout=timeout)
        record = StepRecord(name=step.name, fatal_if_failed=step.fatal_if_failed, result=result)
        records.append(record)
        if on_step is not None:
            on_step(record)

        if result.ok:
            continue

        if step.fatal_if_failed:
            logger.error("%s", summarize_failure(step.name, result))
            return BuildOutcome(
                success=False,
                steps=records,
                warnings=warnings,
                failed_step=step.name,
            )

        logger.warning("%s", summarize_failure(step.name, result))
        warnings.append(step_warning(step.name))

    return BuildOutcome(success=True, steps=records, warnings=warnings)


def locate_artifact(root: Path, candidates: Sequence[str]) -> Path:
    """Return the first candidate output directory that exists under *root*.

    Raises:
        BuildFatal: If none of the candidates exist.
    """
    for candidate in candidates:
        path = root / candidate
        if path.is_dir():
            logger.info("Build output: %s/", candidate)
            return path

    expected = " or ".join(f"{c}/" for c in candidates)
    msg = f"No build output found (expected {expected})"
    raise BuildFatal(msg)
