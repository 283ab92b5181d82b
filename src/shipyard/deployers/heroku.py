"""Heroku deployer: ``git push heroku main``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.models import (
    DeployTarget,
    FileExists,
    PrerequisiteEntry,
    PrerequisiteReport,
    ToolOnPath,
)

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import ExecutionResult

logger = logging.getLogger(__name__)

DEPLOY_BRANCH = "main"


class HerokuDeployer:
    """Pushes the current checkout to the ``heroku`` git remote.

    Credential validation also asks the CLI who is logged in, since Heroku
    authentication lives in the CLI rather than an environment variable.
    """

    target = DeployTarget.HEROKU

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        report = self._context.check(
            [
                ToolOnPath(
                    name="heroku",
                    label="Heroku CLI",
                    hint="Install it from https://devcenter.heroku.com/articles/heroku-cli",
                ),
                FileExists(
                    path="Procfile",
                    label="Procfile",
                ),
            ]
        )
        if not self._context.has_tool("heroku"):
            return report

        whoami = self._context.run("heroku", ["auth:whoami"])
        if whoami.ok:
            entry = PrerequisiteEntry(
                name="Heroku authentication",
                satisfied=True,
                detail=f"Logged in as {whoami.stdout}",
            )
        else:
            entry = PrerequisiteEntry(
                name="Heroku authentication",
                satisfied=False,
                detail="Not logged into Heroku. Run: heroku login",
            )
        return report.merge(PrerequisiteReport(entries=(entry,)))

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        logger.info("Pushing %s to Heroku", DEPLOY_BRANCH)
        return self._context.run("git", ["push", "heroku", DEPLOY_BRANCH])
