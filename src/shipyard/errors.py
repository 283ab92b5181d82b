"""Exception hierarchy for Shipyard.

Every fatal condition a run can hit is a ``ShipyardError`` subclass carrying
an ``ErrorKind``. Non-fatal conditions are never raised; they are collected
as ``RunWarning`` values instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shipyard.models import ErrorKind, RunError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shipyard.models import ExecutionResult


class ShipyardError(Exception):
    """Base exception for all fatal Shipyard errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION_ERROR

    def __init__(self, message: str, *, result: ExecutionResult | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.result = result

    def to_run_error(self) -> RunError:
        output = self.result.output if self.result is not None else ""
        return RunError(kind=self.kind, message=self.message, output=output)


class ConfigurationError(ShipyardError):
    """Invalid settings or arguments."""

    kind = ErrorKind.CONFIGURATION_ERROR


class PrerequisiteMissing(ShipyardError):
    """A mandatory prerequisite rule was not satisfied."""

    kind = ErrorKind.PREREQUISITE_MISSING


class BuildFatal(ShipyardError):
    """A fatal build step failed, or no build output was produced."""

    kind = ErrorKind.BUILD_FATAL


class CredentialMissing(ShipyardError):
    """A deployer's required credentials or tooling are absent."""

    kind = ErrorKind.CREDENTIAL_MISSING


class UnknownTarget(ShipyardError):
    """The deployment target is not recognized or not allowed here."""

    kind = ErrorKind.UNKNOWN_TARGET

    def __init__(self, target: str, allowed: Iterable[str] | None = None) -> None:
        message = f"Unknown deployment target: {target}"
        if allowed is not None:
            message += f" (expected one of: {', '.join(allowed)})"
        super().__init__(message)
        self.target = target


class DeployFailed(ShipyardError):
    """The provider command ran but reported failure."""

    kind = ErrorKind.DEPLOY_FAILED
