"""Project profile registry for Shipyard.

Each ProjectKind maps to a ProjectProfile that parameterizes the run: which
targets are allowed, how the project is built, where the build output lands,
which URL to health-check, and what to tell the operator afterwards. The
orchestrator itself is the same for both.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from shipyard.models import (
    DeployTarget,
    EnvVarSet,
    FileExists,
    PipelineStep,
    ProjectKind,
    Rule,
    ToolOnPath,
)

# ---------------------------------------------------------------------------
# ProjectProfile model
# ---------------------------------------------------------------------------


class ProjectProfile(BaseModel, frozen=True):
    """Defaults and operator guidance for one half of the application."""

    kind: ProjectKind
    display_name: str = Field(description="Title-case name used in headers.")
    default_target: DeployTarget
    allowed_targets: tuple[DeployTarget, ...]
    pipeline: tuple[PipelineStep, ...]
    artifact_candidates: tuple[str, ...] = Field(
        default=(),
        description="Build output directories, checked in order. Empty means no artifact.",
    )
    env_advisories: tuple[EnvVarSet, ...] = Field(
        default=(),
        description="Variables the application usually needs. Never fatal.",
    )
    env_file_supplies_advisories: bool = Field(
        default=False,
        description="An .env.<environment> file counts as setting the advisory variables.",
    )
    url_variable: str = Field(description="Environment variable holding the deployed URL.")
    health_path: str = Field(default="", description="Appended to the URL for health polling.")
    manual_checks: tuple[str, ...] = Field(
        description="Follow-up checks. Placeholder: {url}.",
    )
    follow_up: dict[DeployTarget, tuple[str, ...]] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------

_INSTALL = PipelineStep(name="install", command="npm", args=("ci",), fatal_if_failed=True)
_LINT = PipelineStep(
    name="lint",
    command="npm",
    args=("run", "lint", "--if-present"),
    fatal_if_failed=False,
)

_FRONTEND_PIPELINE = (
    _INSTALL,
    _LINT,
    PipelineStep(
        name="test",
        command="npm",
        args=("test", "--", "--watchAll=false", "--passWithNoTests"),
        fatal_if_failed=False,
    ),
    PipelineStep(name="build", command="npm", args=("run", "build"), fatal_if_failed=True),
)

_BACKEND_PIPELINE = (
    _INSTALL,
    _LINT,
    PipelineStep(
        name="test",
        command="npm",
        args=("test", "--if-present"),
        fatal_if_failed=False,
    ),
    # Plain Node services often have no build step at all.
    PipelineStep(
        name="build",
        command="npm",
        args=("run", "build", "--if-present"),
        fatal_if_failed=False,
    ),
)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

_FRONTEND_PROFILE = ProjectProfile(
    kind=ProjectKind.FRONTEND,
    display_name="Frontend",
    default_target=DeployTarget.VERCEL,
    allowed_targets=(DeployTarget.VERCEL, DeployTarget.NETLIFY, DeployTarget.GITHUB_PAGES),
    pipeline=_FRONTEND_PIPELINE,
    artifact_candidates=("dist", "build"),
    env_advisories=(
        EnvVarSet(
            name="VITE_API_BASE_URL",
            alternatives=("REACT_APP_API_BASE_URL",),
            mandatory=False,
            label="API_BASE_URL",
        ),
    ),
    url_variable="FRONTEND_URL",
    manual_checks=(
        "Application is accessible at {url}",
        "No console errors in browser DevTools",
        "API calls are working correctly",
        "Environment variables are loaded correctly",
        "Static assets are loading (CSS, images, etc.)",
    ),
    follow_up={
        DeployTarget.VERCEL: ("Vercel: https://vercel.com/dashboard",),
        DeployTarget.NETLIFY: ("Netlify: https://app.netlify.com",),
        DeployTarget.GITHUB_PAGES: (
            "GitHub Pages: https://github.com/<user>/<repo>/settings/pages",
            "Your site will be available at: https://<username>.github.io/<repo-name>",
        ),
    },
)

_BACKEND_PROFILE = ProjectProfile(
    kind=ProjectKind.BACKEND,
    display_name="Backend",
    default_target=DeployTarget.RENDER,
    allowed_targets=(DeployTarget.RENDER, DeployTarget.RAILWAY, DeployTarget.HEROKU),
    pipeline=_BACKEND_PIPELINE,
    env_advisories=(EnvVarSet(name="MONGODB_URI", mandatory=False),),
    env_file_supplies_advisories=True,
    url_variable="BACKEND_URL",
    health_path="/health",
    manual_checks=(
        "Application is accessible at {url}",
        "Health check passes at {url}/health",
        "Database connection is working",
        "Environment variables are set correctly",
        "Logs show no errors",
    ),
    follow_up={
        DeployTarget.RENDER: (
            "Render dashboard: https://dashboard.render.com",
            "Check logs: render logs --tail",
        ),
        DeployTarget.RAILWAY: ("Check logs: railway logs",),
        DeployTarget.HEROKU: ("Check logs: heroku logs --tail",),
    },
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_PROFILE_REGISTRY: dict[ProjectKind, ProjectProfile] = {
    ProjectKind.FRONTEND: _FRONTEND_PROFILE,
    ProjectKind.BACKEND: _BACKEND_PROFILE,
}


def get_profile(kind: ProjectKind) -> ProjectProfile:
    """Look up the profile for a given ProjectKind."""
    return _PROFILE_REGISTRY[kind]


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


def prerequisite_rules(
    profile: ProjectProfile,
    project_dir: str,
    environment: str,
) -> list[Rule]:
    """Rules checked before building, relative to the project root.

    The project directory, its package.json, node and npm are mandatory;
    an env file and the profile's advisory variables only produce warnings.
    """
    env_file = f"{project_dir}/.env.{environment}"
    rules: list[Rule] = [
        FileExists(path=project_dir, label=f"{profile.display_name} directory"),
        FileExists(path=f"{project_dir}/package.json", label="package.json"),
        ToolOnPath(name="node", label="Node.js"),
        ToolOnPath(name="npm"),
        FileExists(
            path=env_file,
            alternatives=(f"{project_dir}/.env",),
            mandatory=False,
            label="Environment file",
        ),
    ]
    for advisory in profile.env_advisories:
        if profile.env_file_supplies_advisories:
            advisory = advisory.model_copy(update={"files": (env_file,)})
        rules.append(advisory)
    return rules


def health_url(profile: ProjectProfile, base_url: str | None) -> str | None:
    """URL to poll after deploying, or None when no base URL is configured."""
    if not base_url:
        return None
    return base_url.rstrip("/") + profile.health_path


def render_manual_checks(profile: ProjectProfile, base_url: str | None) -> list[str]:
    url = base_url.rstrip("/") if base_url else f"${profile.url_variable}"
    return [check.format(url=url) for check in profile.manual_checks]
