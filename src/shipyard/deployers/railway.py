"""Railway deployer: ``railway up --detach`` from the repository root."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.models import DeployTarget, ToolOnPath

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import ExecutionResult, PrerequisiteReport

logger = logging.getLogger(__name__)

PROJECT_FILE = "railway.json"


class RailwayDeployer:
    target = DeployTarget.RAILWAY

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        return self._context.check(
            [
                ToolOnPath(
                    name="railway",
                    label="Railway CLI",
                    hint="Install it: npm install -g @railway/cli",
                ),
            ]
        )

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        if not (self._context.config.project_root / PROJECT_FILE).exists():
            logger.warning("%s not found. Running railway init...", PROJECT_FILE)
            init = self._context.run("railway", ["init"])
            if not init.ok:
                logger.error("Railway initialization failed")
                return init

        logger.info("Deploying with Railway CLI")
        return self._context.run("railway", ["up", "--detach"])
