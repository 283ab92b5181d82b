"""Deployment providers for Shipyard.

Public API:
- get_deployer: Dispatch a DeployTarget to its Deployer
- Deployer: Protocol for provider implementations
- DeployContext: Collaborators shared by deployers in a run
"""

from __future__ import annotations

from shipyard.deployers.protocol import DeployContext, Deployer
from shipyard.deployers.registry import get_deployer, registered_targets

__all__ = [
    "DeployContext",
    "Deployer",
    "get_deployer",
    "registered_targets",
]
