"""Configuration loading for Shipyard.

This is the only module that reads the process environment. It snapshots
``os.environ`` once, optionally merges a ``shipyard.json`` settings file, and
returns an immutable ``DeployConfig`` that every other component receives.

Settings values support ``${VAR}`` interpolation against the same snapshot.

Design follows Function Core / Imperative Shell:
- Pure functions: interpolate_env, parse_settings, resolve_target
- I/O shell: load_settings (reads file), load_config (reads environment)
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from shipyard.errors import ConfigurationError, UnknownTarget
from shipyard.models import DeployTarget, Environment, ProjectKind
from shipyard.profiles import get_profile

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "shipyard.json"

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ProjectSettings(BaseModel, frozen=True):
    """Tunable settings, overridable from ``shipyard.json``."""

    frontend_dir: str = "frontend"
    backend_dir: str = "backend"
    health_interval_seconds: float = Field(default=2.0, ge=0)
    health_max_attempts: int = Field(default=30, ge=1)
    command_timeout_seconds: float = Field(default=600.0, gt=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)


class DeployConfig(BaseModel, frozen=True):
    """Everything a run needs, fixed at startup."""

    project: ProjectKind
    target: DeployTarget
    environment: Environment
    project_root: Path
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    environ: dict[str, str] = Field(default_factory=dict, repr=False)

    @property
    def project_dir_name(self) -> str:
        if self.project is ProjectKind.FRONTEND:
            return self.settings.frontend_dir
        return self.settings.backend_dir

    @property
    def project_dir(self) -> Path:
        return self.project_root / self.project_dir_name

    def env(self, name: str) -> str | None:
        """Return a stripped variable from the snapshot, treating blank as unset."""
        value = self.environ.get(name)
        if value is None:
            return None
        return value.strip() or None


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


def interpolate_env(value: str, environ: Mapping[str, str]) -> str:
    """Replace ${VAR} patterns with values from *environ*.

    Missing variables are replaced with empty strings and a warning is logged.
    """

    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        result = environ.get(var_name)
        if result is None:
            logger.warning("Environment variable %s not set, using empty string", var_name)
            return ""
        return result

    return _ENV_VAR_PATTERN.sub(_replace, value)


def parse_settings(raw: dict[str, Any], environ: Mapping[str, str]) -> ProjectSettings:
    """Validate a raw settings dict, interpolating string values.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    interpolated = {
        key: interpolate_env(value, environ) if isinstance(value, str) else value
        for key, value in raw.items()
    }
    unknown = sorted(set(interpolated) - set(ProjectSettings.model_fields))
    for key in unknown:
        logger.warning("Ignoring unknown setting %r", key)
        del interpolated[key]

    try:
        return ProjectSettings.model_validate(interpolated)
    except ValidationError as e:
        msg = f"Invalid settings: {e}"
        raise ConfigurationError(msg) from e


def resolve_target(project: ProjectKind, target: str | None) -> DeployTarget:
    """Parse *target* and check the project profile allows it.

    ``None`` selects the profile's default target.

    Raises:
        UnknownTarget: If the target is unrecognized or belongs to the other profile.
    """
    profile = get_profile(project)
    if target is None:
        return profile.default_target

    parsed = DeployTarget.parse(target)
    if parsed not in profile.allowed_targets:
        raise UnknownTarget(target, allowed=[t.value for t in profile.allowed_targets])
    return parsed


# ---------------------------------------------------------------------------
# I/O shell
# ---------------------------------------------------------------------------


def load_settings(
    config_path: str | Path | None,
    project_root: Path,
    environ: Mapping[str, str],
) -> ProjectSettings:
    """Load settings from a JSON file.

    If config_path is None, looks for shipyard.json in the project root and
    returns default settings when it is absent. Unparseable files also fall
    back to defaults.

    Raises:
        ConfigurationError: If an explicit config_path does not exist.
    """
    path = Path(config_path) if config_path is not None else project_root / DEFAULT_CONFIG_FILENAME

    if not path.is_file():
        if config_path is not None:
            msg = f"Settings file not found: {path}"
            raise ConfigurationError(msg)
        logger.debug("No settings file found at %s", path)
        return ProjectSettings()

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to read settings at %s: %s", path, e)
        return ProjectSettings()

    if not isinstance(raw, dict):
        logger.warning("Settings at %s must be a JSON object, got %s", path, type(raw).__name__)
        return ProjectSettings()

    logger.info("Loaded settings from %s", path)
    return parse_settings(raw, environ)


def load_config(
    project: ProjectKind,
    target: str | None = None,
    environment: str = Environment.PRODUCTION.value,
    *,
    project_root: str | Path | None = None,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DeployConfig:
    """Build the run configuration.

    Args:
        project: Frontend or backend.
        target: Target name from the command line; None for the profile default.
        environment: ``production`` or ``staging``.
        project_root: Repository root. Defaults to the current directory.
        config_path: Explicit settings file. Defaults to ``shipyard.json``.
        environ: Environment snapshot. Defaults to ``os.environ``.

    Raises:
        UnknownTarget: If the target is not valid for this project.
        ConfigurationError: If the environment or settings are invalid.
    """
    snapshot = dict(os.environ if environ is None else environ)
    root = Path(project_root).resolve() if project_root is not None else Path.cwd()

    resolved_target = resolve_target(project, target)
    resolved_environment = Environment.parse(environment)
    settings = load_settings(config_path, root, snapshot)

    return DeployConfig(
        project=project,
        target=resolved_target,
        environment=resolved_environment,
        project_root=root,
        settings=settings,
        environ=snapshot,
    )
