"""CLI entry points for Shipyard.

Provides ``deploy-frontend`` and ``deploy-backend``, also available as
``shipyard frontend`` and ``shipyard backend``, plus ``shipyard targets``.

Follows Function Core / Imperative Shell:
- Pure functions: format_header, format_prerequisite_report, format_step,
  format_run_report, format_targets, tail
- Listener: ConsoleListener (live progress)
- Click commands: main, deploy_frontend, deploy_backend, targets
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import click
import httpx

from shipyard.build import summarize_failure
from shipyard.config import load_config
from shipyard.errors import ShipyardError
from shipyard.execution import CommandRunner
from shipyard.models import DeployTarget, HealthOutcome, ProjectKind, RunState
from shipyard.orchestrator import NullListener, Orchestrator
from shipyard.profiles import get_profile
from shipyard.tracing import init_tracing, shutdown_tracing

if TYPE_CHECKING:
    from collections.abc import Callable

    from shipyard.models import PrerequisiteReport, RunReport, RunWarning, StepRecord
    from shipyard.profiles import ProjectProfile

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
OUTPUT_TAIL_LINES = 20

TARGET_NAMES: dict[DeployTarget, str] = {
    DeployTarget.VERCEL: "Vercel",
    DeployTarget.NETLIFY: "Netlify",
    DeployTarget.GITHUB_PAGES: "GitHub Pages",
    DeployTarget.RENDER: "Render",
    DeployTarget.RAILWAY: "Railway",
    DeployTarget.HEROKU: "Heroku",
}


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


def format_header(title: str) -> str:
    rule = "=" * 32
    return f"{rule}\n{title}\n{rule}"


def tail(text: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    """Return the last *lines* lines of *text*."""
    return "\n".join(text.splitlines()[-lines:])


def format_prerequisite_report(report: PrerequisiteReport) -> str:
    """Format prerequisite entries as tagged lines, one per rule."""
    lines: list[str] = []
    for entry in report.entries:
        if entry.satisfied:
            tag = "PASS"
        elif entry.mandatory:
            tag = "FAIL"
        else:
            tag = "WARN"
        lines.append(f"  [{tag}] {entry.name}: {entry.detail}")
    return "\n".join(lines)


def format_step(record: StepRecord) -> str:
    if record.passed:
        return f"  [PASS] {record.name}"
    tag = "FAIL" if record.fatal_if_failed else "WARN"
    return f"  [{tag}] {summarize_failure(record.name, record.result)}"


def format_health(report: RunReport) -> str:
    health = report.health
    if health is None:
        return "not run"
    if health.outcome is HealthOutcome.SKIPPED:
        return "skipped (no URL configured)"
    return f"{health.outcome.value} after {health.attempts} attempt(s) ({health.url})"


def format_run_report(report: RunReport) -> str:
    """Format the end-of-run summary for terminal output."""
    lines: list[str] = []

    if report.state is RunState.DONE:
        lines.append(format_header("Post-Deployment Checks"))
        lines.append("Please verify the following:")
        for i, check in enumerate(report.manual_checks, start=1):
            lines.append(f"{i}. [ ] {check}")
        if report.follow_up:
            lines.append("")
            lines.append("Follow-up:")
            for item in report.follow_up:
                lines.append(f"  - {item}")
        lines.append("")

    lines.append("Summary:")
    lines.append(f"  Project: {report.project.value}")
    lines.append(f"  Target: {report.target.value}")
    lines.append(f"  Environment: {report.environment.value}")
    lines.append(f"  Status: {report.state.value}")
    if report.deployment is not None:
        lines.append(f"  Deployment: {report.deployment.message}")
    if report.state is RunState.DONE:
        lines.append(f"  Health: {format_health(report)}")
    if report.warnings:
        lines.append(f"  Warnings: {len(report.warnings)}")
        for warning in report.warnings:
            lines.append(f"    - {warning.message}")

    if report.error is not None:
        lines.append("")
        lines.append(f"Error ({report.error.kind.value}): {report.error.message}")
        if report.error.output:
            lines.append("Output:")
            lines.append(tail(report.error.output))

    return "\n".join(lines)


def format_targets() -> str:
    lines: list[str] = []
    for kind in ProjectKind:
        profile = get_profile(kind)
        lines.append(f"{profile.display_name}:")
        for target in profile.allowed_targets:
            marker = " (default)" if target is profile.default_target else ""
            lines.append(f"  {target.value}{marker}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class ConsoleListener:
    """Render orchestrator progress as colored terminal lines."""

    def __init__(self, profile: ProjectProfile, target: DeployTarget) -> None:
        self._headers = {
            RunState.CHECKING_PREREQS: "Checking Prerequisites",
            RunState.BUILDING: f"Building {profile.display_name}",
            RunState.DEPLOYING: f"Deploying to {TARGET_NAMES[target]}",
            RunState.VERIFYING: "Verifying Deployment",
        }

    def state_changed(self, state: RunState) -> None:
        title = self._headers.get(state)
        if title is not None:
            click.secho(format_header(title), fg="green")

    def prerequisites_checked(self, report: PrerequisiteReport) -> None:
        # Unsatisfied advisory entries arrive again through warning().
        for entry in report.entries:
            if entry.satisfied:
                click.secho(f"✓ {entry.detail}", fg="green")
            elif entry.mandatory:
                click.secho(f"✗ {entry.detail}", fg="red")

    def step_finished(self, record: StepRecord) -> None:
        if record.passed:
            click.secho(f"✓ {record.name}", fg="green")
        elif record.fatal_if_failed:
            click.secho(f"✗ {summarize_failure(record.name, record.result)}", fg="red")

    def warning(self, warning: RunWarning) -> None:
        click.secho(f"WARNING: {warning.message}", fg="yellow")

    def health_attempt(self, attempt: int, max_attempts: int) -> None:
        click.echo(f"Attempt {attempt}/{max_attempts}: Waiting for service to be ready...")


# ---------------------------------------------------------------------------
# Imperative shell
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _echo_error(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red", err=True)


def _run_deploy(
    project: ProjectKind,
    target: str | None,
    environment: str,
    *,
    project_root: str,
    config_path: str | None,
    output_json: bool,
    verbose: bool,
) -> int:
    """Load configuration, run the orchestrator and print the result."""
    _configure_logging(verbose)

    try:
        config = load_config(
            project,
            target,
            environment,
            project_root=project_root,
            config_path=config_path,
        )
        init_tracing(environ=config.environ)
    except (ShipyardError, ValueError) as e:
        _echo_error(getattr(e, "message", str(e)))
        return EXIT_FAILURE

    profile = get_profile(project)
    if output_json:
        listener = NullListener()
    else:
        listener = ConsoleListener(profile, config.target)
        click.secho(format_header(f"{profile.display_name} Deployment"), fg="green")
        click.echo(f"Target: {config.target.value}")
        click.echo(f"Environment: {config.environment.value}")
        click.echo("")

    try:
        with httpx.Client(
            timeout=config.settings.http_timeout_seconds,
            follow_redirects=True,
        ) as client:
            orchestrator = Orchestrator(
                config,
                runner=CommandRunner(config.settings.command_timeout_seconds),
                http_client=client,
                listener=listener,
            )
            report = orchestrator.run()
    finally:
        shutdown_tracing()

    if output_json:
        click.echo(report.model_dump_json(indent=2))
    else:
        click.echo("")
        click.echo(format_run_report(report))
        if report.error is not None:
            _echo_error(report.error.message)
        else:
            click.secho(f"✓ {profile.display_name} deployment completed!", fg="green")

    return EXIT_SUCCESS if report.succeeded else EXIT_FAILURE


def _deploy_options(func: Callable) -> Callable:
    """Arguments and options shared by both deploy commands."""
    func = click.option("--verbose", is_flag=True, help="Enable debug logging.")(func)
    func = click.option(
        "--json",
        "output_json",
        is_flag=True,
        help="Print the run report as JSON instead of progress output.",
    )(func)
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, exists=True),
        default=None,
        help="Settings file (default: <project-root>/shipyard.json).",
    )(func)
    func = click.option(
        "--project-root",
        type=click.Path(file_okay=False, exists=True),
        default=".",
        show_default=True,
        help="Repository root containing the frontend/ and backend/ directories.",
    )(func)
    func = click.argument("environment", required=False, default="production")(func)
    func = click.argument("target", required=False)(func)
    return func


# ---------------------------------------------------------------------------
# Click commands
# ---------------------------------------------------------------------------

_FRONTEND_EPILOG = """\b
Examples:
  deploy-frontend vercel production
  deploy-frontend netlify staging
  deploy-frontend github-pages production
"""

_BACKEND_EPILOG = """\b
Examples:
  deploy-backend render production
  deploy-backend railway staging
  deploy-backend heroku production
"""


@click.command("deploy-frontend", context_settings=CONTEXT_SETTINGS, epilog=_FRONTEND_EPILOG)
@_deploy_options
def deploy_frontend(
    target: str | None,
    environment: str,
    project_root: str,
    config_path: str | None,
    output_json: bool,
    verbose: bool,
) -> None:
    """Build and deploy the frontend.

    \b
    TARGET       Deployment target (vercel, netlify, github-pages) - default: vercel
    ENVIRONMENT  Environment (production, staging) - default: production
    """
    sys.exit(
        _run_deploy(
            ProjectKind.FRONTEND,
            target,
            environment,
            project_root=project_root,
            config_path=config_path,
            output_json=output_json,
            verbose=verbose,
        )
    )


@click.command("deploy-backend", context_settings=CONTEXT_SETTINGS, epilog=_BACKEND_EPILOG)
@_deploy_options
def deploy_backend(
    target: str | None,
    environment: str,
    project_root: str,
    config_path: str | None,
    output_json: bool,
    verbose: bool,
) -> None:
    """Build and deploy the backend.

    \b
    TARGET       Deployment target (render, railway, heroku) - default: render
    ENVIRONMENT  Environment (production, staging) - default: production
    """
    sys.exit(
        _run_deploy(
            ProjectKind.BACKEND,
            target,
            environment,
            project_root=project_root,
            config_path=config_path,
            output_json=output_json,
            verbose=verbose,
        )
    )


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="shipyard")
def main() -> None:
    """Shipyard: build and deploy web projects to hosting providers."""


@main.command()
def targets() -> None:
    """List deployment targets for each project."""
    click.echo(format_targets())


main.add_command(deploy_frontend, name="frontend")
main.add_command(deploy_backend, name="backend")
