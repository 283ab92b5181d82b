"""Core data models for Shipyard."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class ProjectKind(StrEnum):
    """Which half of the application is being deployed."""

    FRONTEND = "frontend"
    BACKEND = "backend"


class Environment(StrEnum):
    """Deployment environment."""

    PRODUCTION = "production"
    STAGING = "staging"

    @classmethod
    def parse(cls, value: str) -> Environment:
        """Parse a user-supplied environment name.

        Raises:
            ConfigurationError: If the value is not a known environment.
        """
        from shipyard.errors import ConfigurationError

        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            msg = f"Unknown environment {value!r}. Valid options: {valid}"
            raise ConfigurationError(msg) from None


class DeployTarget(StrEnum):
    """Hosting providers Shipyard can deploy to."""

    VERCEL = "vercel"
    NETLIFY = "netlify"
    GITHUB_PAGES = "github-pages"
    RENDER = "render"
    RAILWAY = "railway"
    HEROKU = "heroku"

    @classmethod
    def parse(cls, value: str) -> DeployTarget:
        """Parse a user-supplied target name, accepting ``github`` as an alias.

        Raises:
            UnknownTarget: If the value names no known provider.
        """
        from shipyard.errors import UnknownTarget

        normalized = value.strip().lower()
        normalized = _TARGET_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise UnknownTarget(value) from None


_TARGET_ALIASES = {"github": DeployTarget.GITHUB_PAGES.value}


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


class ExecutionResult(BaseModel, frozen=True):
    """Captured outcome of one external command.

    A non-zero exit code is a normal outcome, not an error.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout and stderr, whichever are non-empty."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


# ---------------------------------------------------------------------------
# Prerequisites
# ---------------------------------------------------------------------------


class FileExists(BaseModel, frozen=True):
    """Satisfied when ``path`` (or any of ``alternatives``) exists under the root."""

    kind: Literal["file_exists"] = "file_exists"
    path: str
    alternatives: tuple[str, ...] = ()
    mandatory: bool = True
    label: str | None = None


class ToolOnPath(BaseModel, frozen=True):
    """Satisfied when an executable called ``name`` is found on PATH."""

    kind: Literal["tool_on_path"] = "tool_on_path"
    name: str
    mandatory: bool = True
    label: str | None = None
    hint: str | None = Field(default=None, description="How to install the tool.")


class EnvVarSet(BaseModel, frozen=True):
    """Satisfied when ``name`` (or any of ``alternatives``) is set and non-empty,
    or when one of ``files`` exists under the root.
    """

    kind: Literal["env_var_set"] = "env_var_set"
    name: str
    alternatives: tuple[str, ...] = ()
    files: tuple[str, ...] = Field(default=(), description="Env files that supply the variable.")
    mandatory: bool = True
    label: str | None = None


Rule = FileExists | ToolOnPath | EnvVarSet


class PrerequisiteEntry(BaseModel, frozen=True):
    """Result of evaluating a single rule."""

    name: str
    satisfied: bool
    detail: str
    mandatory: bool = True


class PrerequisiteReport(BaseModel, frozen=True):
    """Ordered results of a prerequisite check, one entry per rule."""

    entries: tuple[PrerequisiteEntry, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failures(self) -> list[PrerequisiteEntry]:
        return [e for e in self.entries if e.mandatory and not e.satisfied]

    @property
    def warnings(self) -> list[PrerequisiteEntry]:
        return [e for e in self.entries if not e.mandatory and not e.satisfied]

    def merge(self, other: PrerequisiteReport) -> PrerequisiteReport:
        return PrerequisiteReport(entries=self.entries + other.entries)


# ---------------------------------------------------------------------------
# Warnings and errors
# ---------------------------------------------------------------------------


class WarningKind(StrEnum):
    """Non-fatal conditions collected during a run."""

    PREREQUISITE_ADVISORY = "prerequisite_advisory"
    BUILD_WARNING = "build_warning"
    HEALTH_CHECK_TIMEOUT = "health_check_timeout"
    HEALTH_CHECK_SKIPPED = "health_check_skipped"


class ErrorKind(StrEnum):
    """Fatal conditions that end a run."""

    CONFIGURATION_ERROR = "configuration_error"
    PREREQUISITE_MISSING = "prerequisite_missing"
    BUILD_FATAL = "build_fatal"
    CREDENTIAL_MISSING = "credential_missing"
    UNKNOWN_TARGET = "unknown_target"
    DEPLOY_FAILED = "deploy_failed"


class RunWarning(BaseModel, frozen=True):
    kind: WarningKind
    message: str


class RunError(BaseModel, frozen=True):
    """The single terminal error of a failed run."""

    kind: ErrorKind
    message: str
    output: str = Field(default="", description="Captured output of the failing command.")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class PipelineStep(BaseModel, frozen=True):
    """One command in a build pipeline."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    fatal_if_failed: bool = True


class StepRecord(BaseModel, frozen=True):
    """A pipeline step together with what happened when it ran."""

    name: str
    fatal_if_failed: bool
    result: ExecutionResult

    @property
    def passed(self) -> bool:
        return self.result.ok


class BuildOutcome(BaseModel):
    """Result of running a build pipeline."""

    success: bool
    steps: list[StepRecord] = Field(default_factory=list)
    warnings: list[RunWarning] = Field(default_factory=list)
    failed_step: str | None = None
    artifact_path: str | None = None

    @property
    def failed_result(self) -> ExecutionResult | None:
        if self.failed_step is None:
            return None
        for record in reversed(self.steps):
            if record.name == self.failed_step:
                return record.result
        return None


# ---------------------------------------------------------------------------
# Health and deployment
# ---------------------------------------------------------------------------


class HealthOutcome(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    SKIPPED = "skipped"


class HealthResult(BaseModel, frozen=True):
    """Outcome of polling a health URL."""

    outcome: HealthOutcome
    url: str | None = None
    attempts: int = 0
    status_code: int | None = None
    body: str | None = None


def verified_healthy(outcome: HealthOutcome) -> bool | None:
    """Map a health outcome onto the tri-state ``verified_healthy`` flag.

    Only an observed healthy response yields True; a skipped check is unknown.
    """
    if outcome is HealthOutcome.HEALTHY:
        return True
    if outcome is HealthOutcome.UNHEALTHY:
        return False
    return None


class DeploymentOutcome(BaseModel, frozen=True):
    """Terminal record of one deployment attempt."""

    target: DeployTarget
    success: bool
    message: str
    verified_healthy: bool | None = None
    result: ExecutionResult | None = None


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------


class RunState(StrEnum):
    """Orchestrator lifecycle states."""

    INIT = "init"
    CHECKING_PREREQS = "checking_prereqs"
    BUILDING = "building"
    DEPLOYING = "deploying"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


class RunReport(BaseModel):
    """Everything a single run observed, in the order it happened."""

    project: ProjectKind
    target: DeployTarget
    environment: Environment
    state: RunState
    history: list[RunState] = Field(default_factory=list)
    prerequisites: PrerequisiteReport | None = None
    credentials: PrerequisiteReport | None = None
    build: BuildOutcome | None = None
    deployment: DeploymentOutcome | None = None
    health: HealthResult | None = None
    warnings: list[RunWarning] = Field(default_factory=list)
    error: RunError | None = None
    manual_checks: list[str] = Field(default_factory=list)
    follow_up: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE
