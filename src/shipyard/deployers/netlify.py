"""Netlify deployer: ``netlify deploy`` with an explicit site and directory."""

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

TOKEN_VARIABLE = "NETLIFY_AUTH_TOKEN"
SITE_VARIABLE = "NETLIFY_SITE_ID"


class NetlifyDeployer:
    target = DeployTarget.NETLIFY

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        return self._context.check([EnvVarSet(name=TOKEN_VARIABLE), EnvVarSet(name=SITE_VARIABLE)])

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        artifact = require_artifact(self.target, artifact_path)
        failed_install = ensure_cli(self._context, "netlify", "netlify-cli")
        if failed_install is not None:
            return failed_install

        token = self._context.config.env(TOKEN_VARIABLE) or ""
        site = self._context.config.env(SITE_VARIABLE) or ""
        args = ["deploy"]
        if self._context.production:
            args.append("--prod")
        args.extend(["--dir", str(artifact), "--auth", token, "--site", site])

        logger.info("Deploying %s to Netlify site %s", artifact, site)
        return self._context.run("netlify", args, redact=[token])
