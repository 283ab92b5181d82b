"""Vercel deployer: ``vercel deploy`` on the build output."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.deployers._cli import ensure_cli, require_artifact
from shipyard.models import DeployTarget, EnvVarSet

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import ExecutionResult, PrerequisiteReport

logger = logging.getLogger(__name__)

TOKEN_VARIABLE = "VERCEL_TOKEN"


class VercelDeployer:
    """Deploys a static build directory with the Vercel CLI.

    The CLI is installed from npm when missing. ``--prod`` is only passed
    for the production environment; staging becomes a preview deployment.
    """

    target = DeployTarget.VERCEL

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        return self._context.check([EnvVarSet(name=TOKEN_VARIABLE)])

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        artifact = require_artifact(self.target, artifact_path)
        failed_install = ensure_cli(self._context, "vercel", "vercel")
        if failed_install is not None:
            return failed_install

        token = self._context.config.env(TOKEN_VARIABLE) or ""
        args = ["deploy", str(artifact)]
        if self._context.production:
            args.append("--prod")
        args.extend(["--token", token])

        logger.info("Deploying %s to Vercel", artifact)
        return self._context.run("vercel", args, redact=[token])
