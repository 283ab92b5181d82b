"""Run orchestration for Shipyard.

Drives one deployment through a fixed sequence of states::

    init -> checking_prereqs -> building -> deploying -> verifying -> done

``failed`` is reachable from checking_prereqs, building and deploying.
Verifying never fails a run: an unhealthy or skipped health check is a
warning. Fatal conditions are ``ShipyardError``s raised by the stage methods
and converted into the report's single ``RunError``.
"""

from __future__ import annotations

import logging
import shutil
import time
from typing import TYPE_CHECKING, Protocol

from shipyard.build import locate_artifact, run_pipeline
from shipyard.deployers import DeployContext, get_deployer
from shipyard.errors import (
    BuildFatal,
    CredentialMissing,
    DeployFailed,
    PrerequisiteMissing,
    ShipyardError,
)
from shipyard.health import HealthPoller
from shipyard.models import (
    DeploymentOutcome,
    HealthOutcome,
    RunReport,
    RunState,
    RunWarning,
    WarningKind,
    verified_healthy,
)
from shipyard.prerequisites import PrerequisiteChecker
from shipyard.profiles import get_profile, health_url, prerequisite_rules, render_manual_checks
from shipyard.tracing import build_attributes, get_tracer, health_attributes, run_attributes

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    import httpx

    from shipyard.config import DeployConfig
    from shipyard.execution import Runner
    from shipyard.models import (
        BuildOutcome,
        HealthResult,
        PrerequisiteReport,
        StepRecord,
    )

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.INIT: frozenset({RunState.CHECKING_PREREQS}),
    RunState.CHECKING_PREREQS: frozenset({RunState.BUILDING, RunState.FAILED}),
    RunState.BUILDING: frozenset({RunState.DEPLOYING, RunState.FAILED}),
    RunState.DEPLOYING: frozenset({RunState.VERIFYING, RunState.FAILED}),
    RunState.VERIFYING: frozenset({RunState.DONE}),
    RunState.DONE: frozenset(),
    RunState.FAILED: frozenset(),
}


def can_transition(current: RunState, new: RunState) -> bool:
    return new in _TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class RunListener(Protocol):
    """Receives progress as it happens. The CLI renders these to the terminal."""

    def state_changed(self, state: RunState) -> None: ...

    def prerequisites_checked(self, report: PrerequisiteReport) -> None: ...

    def step_finished(self, record: StepRecord) -> None: ...

    def warning(self, warning: RunWarning) -> None: ...

    def health_attempt(self, attempt: int, max_attempts: int) -> None: ...


class NullListener:
    def state_changed(self, state: RunState) -> None:
        pass

    def prerequisites_checked(self, report: PrerequisiteReport) -> None:
        pass

    def step_finished(self, record: StepRecord) -> None:
        pass

    def warning(self, warning: RunWarning) -> None:
        pass

    def health_attempt(self, attempt: int, max_attempts: int) -> None:
        pass


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Compose prerequisite checks, build, deploy and verification for one run.

    Args:
        config: Immutable run configuration.
        runner: Executes every external command.
        http_client: Used for webhook deploys and health polling.
        which: PATH lookup, injectable for tests.
        sleep: Delay between health attempts, injectable for tests.
        listener: Receives progress events.
    """

    def __init__(
        self,
        config: DeployConfig,
        *,
        runner: Runner,
        http_client: httpx.Client,
        which: Callable[..., str | None] = shutil.which,
        sleep: Callable[[float], None] = time.sleep,
        listener: RunListener | None = None,
    ) -> None:
        self.config = config
        self.profile = get_profile(config.project)
        self._runner = runner
        self._http_client = http_client
        self._which = which
        self._sleep = sleep
        self._listener = listener or NullListener()
        self._tracer = get_tracer()
        self._report = RunReport(
            project=config.project,
            target=config.target,
            environment=config.environment,
            state=RunState.INIT,
            history=[RunState.INIT],
        )

    @property
    def state(self) -> RunState:
        return self._report.state

    def run(self) -> RunReport:
        """Execute the run to a terminal state and return its report.

        Can only be called once per Orchestrator.
        """
        if self.state is not RunState.INIT:
            msg = f"Run already started (state={self.state.value})"
            raise RuntimeError(msg)

        attrs = run_attributes(
            self.config.project.value,
            self.config.target.value,
            self.config.environment.value,
        )
        with self._tracer.start_as_current_span("shipyard.run", attributes=attrs) as span:
            try:
                self._check_prerequisites()
                artifact = self._build()
                self._deploy(artifact)
            except ShipyardError as e:
                self._fail(e)
            else:
                self._verify()
                self._transition(RunState.DONE)
            span.set_attribute("shipyard.run.state", self.state.value)

        base_url = self.config.env(self.profile.url_variable)
        self._report.manual_checks = render_manual_checks(self.profile, base_url)
        self._report.follow_up = list(self.profile.follow_up.get(self.config.target, ()))
        return self._report

    # -- state machine -----------------------------------------------------

    def _transition(self, new: RunState) -> None:
        current = self.state
        if not can_transition(current, new):
            msg = f"Illegal transition {current.value} -> {new.value}"
            raise RuntimeError(msg)
        logger.debug("State %s -> %s", current.value, new.value)
        self._report.state = new
        self._report.history.append(new)
        self._listener.state_changed(new)

    def _warn(self, kind: WarningKind, message: str) -> None:
        warning = RunWarning(kind=kind, message=message)
        self._report.warnings.append(warning)
        self._listener.warning(warning)

    def _fail(self, error: ShipyardError) -> None:
        logger.error("%s", error.message)
        if self.state is RunState.DEPLOYING:
            self._report.deployment = DeploymentOutcome(
                target=self.config.target,
                success=False,
                message=error.message,
                result=error.result,
            )
        self._report.error = error.to_run_error()
        self._transition(RunState.FAILED)

    # -- stages ------------------------------------------------------------

    def _check_prerequisites(self) -> None:
        self._transition(RunState.CHECKING_PREREQS)
        with self._tracer.start_as_current_span("shipyard.checking_prereqs"):
            rules = prerequisite_rules(
                self.profile,
                self.config.project_dir_name,
                self.config.environment.value,
            )
            checker = PrerequisiteChecker(self.config.environ, self.config.project_root, self._which)
            report = checker.check(rules)
            self._report.prerequisites = report
            self._listener.prerequisites_checked(report)

        for entry in report.warnings:
            self._warn(WarningKind.PREREQUISITE_ADVISORY, entry.detail)
        if not report.ok:
            details = "; ".join(entry.detail for entry in report.failures)
            raise PrerequisiteMissing(details)

    def _build(self) -> Path | None:
        self._transition(RunState.BUILDING)
        with self._tracer.start_as_current_span("shipyard.building") as span:
            outcome = run_pipeline(
                self.profile.pipeline,
                self._runner,
                cwd=self.config.project_dir,
                env=self.config.environ,
                timeout=self.config.settings.command_timeout_seconds,
                on_step=self._listener.step_finished,
            )
            self._record_build(outcome)
            span.set_attributes(build_attributes(outcome))

        if not outcome.success:
            msg = f"Build step '{outcome.failed_step}' failed"
            raise BuildFatal(msg, result=outcome.failed_result)

        if not self.profile.artifact_candidates:
            return None
        artifact = locate_artifact(self.config.project_dir, self.profile.artifact_candidates)
        self._report.build = outcome.model_copy(update={"artifact_path": str(artifact)})
        return artifact

    def _record_build(self, outcome: BuildOutcome) -> None:
        self._report.build = outcome
        for warning in outcome.warnings:
            self._report.warnings.append(warning)
            self._listener.warning(warning)

    def _deploy(self, artifact: Path | None) -> None:
        self._transition(RunState.DEPLOYING)
        with self._tracer.start_as_current_span("shipyard.deploying") as span:
            context = DeployContext(
                config=self.config,
                runner=self._runner,
                http_client=self._http_client,
                which=self._which,
            )
            deployer = get_deployer(self.config.target, context)

            credentials = deployer.validate_credentials()
            self._report.credentials = credentials
            self._listener.prerequisites_checked(credentials)
            for entry in credentials.warnings:
                self._warn(WarningKind.PREREQUISITE_ADVISORY, entry.detail)
            if not credentials.ok:
                details = "; ".join(entry.detail for entry in credentials.failures)
                raise CredentialMissing(details)

            result = deployer.deploy(artifact)
            span.set_attribute("shipyard.deploy.exit_code", result.exit_code)

        if not result.ok:
            msg = f"Deployment to {self.config.target.value} failed (exit code {result.exit_code})"
            raise DeployFailed(msg, result=result)

        self._report.deployment = DeploymentOutcome(
            target=self.config.target,
            success=True,
            message=f"Deployment to {self.config.target.value} complete",
            result=result,
        )

    def _verify(self) -> None:
        self._transition(RunState.VERIFYING)
        url = health_url(self.profile, self.config.env(self.profile.url_variable))
        with self._tracer.start_as_current_span("shipyard.verifying") as span:
            poller = HealthPoller(
                self._http_client,
                sleep=self._sleep,
                on_attempt=self._listener.health_attempt,
            )
            result = poller.poll(
                url,
                self.config.settings.health_interval_seconds,
                self.config.settings.health_max_attempts,
            )
            span.set_attributes(health_attributes(result))

        self._record_health(result)

    def _record_health(self, result: HealthResult) -> None:
        self._report.health = result
        if self._report.deployment is not None:
            self._report.deployment = self._report.deployment.model_copy(
                update={"verified_healthy": verified_healthy(result.outcome)}
            )

        noun = self.profile.kind.value
        if result.outcome is HealthOutcome.SKIPPED:
            self._warn(
                WarningKind.HEALTH_CHECK_SKIPPED,
                f"{self.profile.url_variable} not set. Skipping health check.",
            )
        elif result.outcome is HealthOutcome.UNHEALTHY:
            self._warn(
                WarningKind.HEALTH_CHECK_TIMEOUT,
                f"Could not verify {noun} health after {result.attempts} attempts. "
                "Check logs at your deployment provider.",
            )
