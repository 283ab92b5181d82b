"""Render deployer: triggers a deploy hook with an HTTP POST."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import httpx

from shipyard.models import DeployTarget, EnvVarSet, ExecutionResult

if TYPE_CHECKING:
    from pathlib import Path

    from shipyard.deployers.protocol import DeployContext
    from shipyard.models import PrerequisiteReport

logger = logging.getLogger(__name__)

HOOK_VARIABLE = "RENDER_DEPLOY_HOOK_URL"


class RenderDeployer:
    """Render builds from the connected repository; Shipyard only pings the hook.

    The HTTP response is folded into an ExecutionResult so the orchestrator
    treats it like any other provider command.
    """

    target = DeployTarget.RENDER

    def __init__(self, context: DeployContext) -> None:
        self._context = context

    def validate_credentials(self) -> PrerequisiteReport:
        return self._context.check([EnvVarSet(name=HOOK_VARIABLE)])

    def deploy(self, artifact_path: Path | None) -> ExecutionResult:
        hook_url = self._context.config.env(HOOK_VARIABLE) or ""
        logger.info("Triggering Render deploy hook")

        started = time.monotonic()
        try:
            response = self._context.http_client.post(hook_url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ExecutionResult(
                exit_code=1,
                stderr=f"Render deploy hook request failed: {e}",
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        duration_ms = int((time.monotonic() - started) * 1000)
        if response.is_success:
            return ExecutionResult(exit_code=0, stdout=response.text.strip(), duration_ms=duration_ms)
        return ExecutionResult(
            exit_code=1,
            stdout=response.text.strip(),
            stderr=f"Render deploy hook returned HTTP {response.status_code}",
            duration_ms=duration_ms,
        )
