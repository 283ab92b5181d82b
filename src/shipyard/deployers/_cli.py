"""Helpers for deployers that drive an npm-installable vendor CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipyard.errors import DeployFailed

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import DeployTarget, ExecutionResult

logger = logging.getLogger(__name__)


def ensure_cli(context: DeployContext, tool: str, npm_package: str) -> ExecutionResult | None:
    """Install *npm_package* globally if *tool* is not on PATH.

    Returns the failed installer result, or None when the tool is available.
    """
    if context.has_tool(tool):
        return None

    logger.info("Installing %s CLI via npm (%s)", tool, npm_package)
    result = context.run("npm", ["install", "-g", npm_package])
    if not result.ok:
        logger.error("Failed to install %s: exit code %d", npm_package, result.exit_code)
        return result
    return None


def require_artifact(target: DeployTarget, artifact_path: Path | None) -> Path:
    """Static-site deployers cannot run without build output."""
    if artifact_path is None:
        msg = f"{target.value} deployment requires a build output directory"
        raise DeployFailed(msg)
    return artifact_path
