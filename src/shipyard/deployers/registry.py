"""Deployer registry: DeployTarget to Deployer dispatch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shipyard.deployers.github_pages import GitHubPagesDeployer
from shipyard.deployers.heroku import HerokuDeployer
from shipyard.deployers.netlify import NetlifyDeployer
from shipyard.deployers.railway import RailwayDeployer
from shipyard.deployers.render import RenderDeployer
from shipyard.deployers.vercel import VercelDeployer
from shipyard.errors import UnknownTarget
from shipyard.models import DeployTarget

if TYPE_CHECKING:
    from collections.abc import Callable

    from shipyard.deployers.protocol import DeployContext, Deployer

_DEPLOYERS: dict[DeployTarget, Callable[[DeployContext], Deployer]] = {
    DeployTarget.VERCEL: VercelDeployer,
    DeployTarget.NETLIFY: NetlifyDeployer,
    DeployTarget.GITHUB_PAGES: GitHubPagesDeployer,
    DeployTarget.RENDER: RenderDeployer,
    DeployTarget.RAILWAY: RailwayDeployer,
    DeployTarget.HEROKU: HerokuDeployer,
}


def registered_targets() -> list[DeployTarget]:
    return list(_DEPLOYERS)


def get_deployer(target: DeployTarget | str, context: DeployContext) -> Deployer:
    """Return the deployer for *target*.

    Raises:
        UnknownTarget: If no deployer is registered for the target. Nothing is
            constructed or run in that case.
    """
    factory = _DEPLOYERS.get(target)  # type: ignore[call-overload]
    if factory is None:
        raise UnknownTarget(str(target), allowed=[t.value for t in _DEPLOYERS])
    return factory(context)
