"""Shared test fixtures for Shipyard."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest

from shipyard.config import DeployConfig, ProjectSettings
from shipyard.models import DeployTarget, Environment, ExecutionResult, ProjectKind

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence


OK = ExecutionResult(exit_code=0)


def failed(exit_code: int = 1, stderr: str = "boom") -> ExecutionResult:
    return ExecutionResult(exit_code=exit_code, stderr=stderr)


@dataclasses.dataclass(frozen=True)
class Call:
    command: str
    args: tuple[str, ...]
    cwd: Path | None

    @property
    def line(self) -> str:
        return " ".join((self.command, *self.args))


class FakeRunner:
    """Records commands instead of running them.

    ``results`` maps a command-line prefix to the result returned for any
    call whose line starts with it; the longest matching prefix wins.
    Unmatched calls succeed.
    """

    def __init__(self, results: Mapping[str, ExecutionResult] | None = None) -> None:
        self.results = dict(results or {})
        self.calls: list[Call] = []
        self.redacted: list[str] = []

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        redact: Sequence[str] = (),
    ) -> ExecutionResult:
        call = Call(command=command, args=tuple(args), cwd=cwd)
        self.calls.append(call)
        self.redacted.extend(redact)
        matches = [prefix for prefix in self.results if call.line.startswith(prefix)]
        if not matches:
            return OK
        return self.results[max(matches, key=len)]

    @property
    def lines(self) -> list[str]:
        return [c.line for c in self.calls]


def fake_which(*available: str) -> Callable[..., str | None]:
    """A ``shutil.which`` stand-in that only knows *available* tools."""

    def _which(name: str, path: str | None = None) -> str | None:
        return f"/usr/bin/{name}" if name in available else None

    return _which


def build_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def make_project(root: Path, project: str = "frontend", *, dist: str | None = "dist") -> Path:
    """Create ``<root>/<project>/package.json`` and optionally a build output dir."""
    project_dir = root / project
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / "package.json").write_text('{"name": "app"}\n')
    if dist is not None:
        (project_dir / dist).mkdir(exist_ok=True)
    return project_dir


def make_config(
    root: Path,
    *,
    project: ProjectKind = ProjectKind.FRONTEND,
    target: DeployTarget = DeployTarget.VERCEL,
    environment: Environment = Environment.PRODUCTION,
    environ: dict[str, str] | None = None,
    **settings: object,
) -> DeployConfig:
    return DeployConfig(
        project=project,
        target=target,
        environment=environment,
        project_root=root,
        settings=ProjectSettings(**settings),
        environ=environ or {},
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    def _sleep(seconds: float) -> None:
        pass

    return _sleep
