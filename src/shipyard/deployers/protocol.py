"""Deployer protocol and the shared context deployers are built from."""

from __future__ import annotations

import dataclasses
import shutil
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from shipyard.models import Environment
from shipyard.prerequisites import PrerequisiteChecker

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    import httpx

    from shipyard.config import DeployConfig
    from shipyard.execution import Runner
    from shipyard.models import DeployTarget, ExecutionResult, PrerequisiteReport, Rule


@runtime_checkable
class Deployer(Protocol):
    """Protocol for provider deployers.

    Each deployer wraps exactly one provider action behind a common
    interface: check its credentials, then deploy.
    """

    target: DeployTarget

    def validate_credentials(self) -> PrerequisiteReport:
        """Check credentials and tooling this provider needs."""
        ...

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        """Perform the deployment and return its captured result."""
        ...


@dataclasses.dataclass(frozen=True)
class DeployContext:
    """Collaborators shared by all deployers in a run."""

    config: DeployConfig
    runner: Runner
    http_client: httpx.Client
    which: Callable[..., str | None] = shutil.which

    def check(self, rules: Sequence[Rule]) -> PrerequisiteReport:
        checker = PrerequisiteChecker(self.config.environ, self.config.project_root, self.which)
        return checker.check(rules)

    def has_tool(self, name: str) -> bool:
        return self.which(name, path=self.config.environ.get("PATH")) is not None

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        redact: Sequence[str] = (),
    ) -> ExecutionResult:
        """Run a provider command with the run's environment and timeout."""
        return self.runner.run(
            command,
            args,
            cwd=cwd or self.config.project_root,
            env=self.config.environ,
            timeout=self.config.settings.command_timeout_seconds,
            redact=redact,
        )

    @property
    def production(self) -> bool:
        return self.config.environment is Environment.PRODUCTION
