"""GitHub Pages deployer: publishes the build output to the gh-pages branch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.deployers._cli import require_artifact
from shipyard.models import DeployTarget, EnvVarSet, FileExists

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import ExecutionResult, PrerequisiteReport

logger = logging.getLogger(__name__)

TOKEN_VARIABLE = "GITHUB_TOKEN"


class GitHubPagesDeployer:
    """Runs the ``gh-pages`` package through npx from the project directory.

    The repository root must be a git checkout; ``GITHUB_TOKEN`` reaches
    gh-pages through the child environment.
    """

    target = DeployTarget.GITHUB_PAGES

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        return self._context.check(
            [
                EnvVarSet(name=TOKEN_VARIABLE),
                FileExists(path=".git", label="git repository"),
            ]
        )

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        artifact = require_artifact(self.target, artifact_path)
        project_dir = self._context.config.project_dir
        try:
            build_dir = str(artifact.relative_to(project_dir))
        except ValueError:
            build_dir = str(artifact)

        logger.info("Deploying %s to the gh-pages branch", build_dir)
        return self._context.run("npx", ["--yes", "gh-pages", "-d", build_dir], cwd=project_dir)
