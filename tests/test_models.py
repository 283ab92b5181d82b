"""Tests for shipyard.models."""

from __future__ import annotations

import pydantic
import pytest

from shipyard.errors import ConfigurationError, UnknownTarget
from shipyard.models import (
    BuildOutcome,
    DeployTarget,
    Environment,
    ExecutionResult,
    HealthOutcome,
    PrerequisiteEntry,
    PrerequisiteReport,
    StepRecord,
    verified_healthy,
)

# ---------------------------------------------------------------------------
# DeployTarget / Environment parsing
# ---------------------------------------------------------------------------


class TestDeployTargetParse:
    def test_every_value_round_trips(self) -> None:
        for target in DeployTarget:
            assert DeployTarget.parse(target.value) is target

    def test_github_alias(self) -> None:
        assert DeployTarget.parse("github") is DeployTarget.GITHUB_PAGES

    def test_case_and_whitespace_insensitive(self) -> None:
        assert DeployTarget.parse("  Vercel ") is DeployTarget.VERCEL

    def test_unknown_raises(self) -> None:
        with pytest.raises(UnknownTarget, match="Unknown deployment target: firebase"):
            DeployTarget.parse("firebase")


class TestEnvironmentParse:
    def test_known(self) -> None:
        assert Environment.parse("staging") is Environment.STAGING

    def test_unknown_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="production, staging"):
            Environment.parse("qa")


# ---------------------------------------------------------------------------
# ExecutionResult
# ---------------------------------------------------------------------------


class TestExecutionResult:
    def test_ok_on_zero(self) -> None:
        assert ExecutionResult(exit_code=0).ok is True

    def test_not_ok_on_nonzero(self) -> None:
        assert ExecutionResult(exit_code=2).ok is False

    def test_timed_out_is_never_ok(self) -> None:
        assert ExecutionResult(exit_code=0, timed_out=True).ok is False

    def test_output_joins_streams(self) -> None:
        result = ExecutionResult(exit_code=1, stdout="out", stderr="err")
        assert result.output == "out\nerr"

    def test_output_skips_empty(self) -> None:
        assert ExecutionResult(exit_code=1, stderr="err").output == "err"

    def test_frozen(self) -> None:
        result = ExecutionResult(exit_code=0)
        with pytest.raises(pydantic.ValidationError):
            result.exit_code = 1  # type: ignore[misc]


# ---------------------------------------------------------------------------
# PrerequisiteReport
# ---------------------------------------------------------------------------


class TestPrerequisiteReport:
    def _report(self) -> PrerequisiteReport:
        return PrerequisiteReport(
            entries=(
                PrerequisiteEntry(name="a", satisfied=True, detail=""),
                PrerequisiteEntry(name="b", satisfied=False, detail="", mandatory=False),
                PrerequisiteEntry(name="c", satisfied=False, detail="", mandatory=True),
            )
        )

    def test_failures_are_mandatory_unsatisfied(self) -> None:
        assert [e.name for e in self._report().failures] == ["c"]

    def test_warnings_are_optional_unsatisfied(self) -> None:
        assert [e.name for e in self._report().warnings] == ["b"]

    def test_not_ok_with_failure(self) -> None:
        assert self._report().ok is False

    def test_ok_with_only_warnings(self) -> None:
        report = PrerequisiteReport(
            entries=(PrerequisiteEntry(name="b", satisfied=False, detail="", mandatory=False),)
        )
        assert report.ok is True

    def test_empty_report_is_ok(self) -> None:
        assert PrerequisiteReport().ok is True

    def test_merge_preserves_order(self) -> None:
        first = PrerequisiteReport(entries=(PrerequisiteEntry(name="x", satisfied=True, detail=""),))
        merged = first.merge(self._report())
        assert [e.name for e in merged.entries] == ["x", "a", "b", "c"]


# ---------------------------------------------------------------------------
# BuildOutcome / verified_healthy
# ---------------------------------------------------------------------------


class TestBuildOutcome:
    def test_failed_result_points_at_failed_step(self) -> None:
        bad = ExecutionResult(exit_code=1, stderr="nope")
        outcome = BuildOutcome(
            success=False,
            steps=[
                StepRecord(name="install", fatal_if_failed=True, result=ExecutionResult(exit_code=0)),
                StepRecord(name="build", fatal_if_failed=True, result=bad),
            ],
            failed_step="build",
        )
        assert outcome.failed_result == bad

    def test_no_failed_result_on_success(self) -> None:
        assert BuildOutcome(success=True).failed_result is None


class TestVerifiedHealthy:
    def test_only_healthy_is_true(self) -> None:
        assert verified_healthy(HealthOutcome.HEALTHY) is True

    def test_unhealthy_is_false(self) -> None:
        assert verified_healthy(HealthOutcome.UNHEALTHY) is False

    def test_skipped_is_unknown(self) -> None:
        assert verified_healthy(HealthOutcome.SKIPPED) is None
