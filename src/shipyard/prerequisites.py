"""Prerequisite checks for Shipyard.

Evaluates FileExists / ToolOnPath / EnvVarSet rules against a project root,
a PATH and an environment snapshot. Every rule is evaluated, in order, so
the report is always complete; callers decide what a failure means.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from shipyard.models import (
    EnvVarSet,
    FileExists,
    PrerequisiteEntry,
    PrerequisiteReport,
    ToolOnPath,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from pathlib import Path

    from shipyard.models import Rule

    WhichFn = Callable[..., str | None]


def rule_name(rule: Rule) -> str:
    """Human-readable name for a rule, preferring its explicit label."""
    if rule.label:
        return rule.label
    if isinstance(rule, FileExists):
        return rule.path
    if isinstance(rule, ToolOnPath):
        return rule.name
    return " or ".join((rule.name, *rule.alternatives))


class PrerequisiteChecker:
    """Evaluate prerequisite rules.

    Args:
        environ: Environment snapshot used for EnvVarSet rules and PATH lookup.
        root: Directory that relative FileExists paths are resolved against.
        which: ``shutil.which``-compatible lookup, injectable for tests.
    """

    def __init__(
        self,
        environ: Mapping[str, str],
        root: Path,
        which: WhichFn = shutil.which,
    ) -> None:
        self._environ = environ
        self._root = root
        self._which = which

    def check(self, rules: Iterable[Rule]) -> PrerequisiteReport:
        return PrerequisiteReport(entries=tuple(self.evaluate(rule) for rule in rules))

    def evaluate(self, rule: Rule) -> PrerequisiteEntry:
        if isinstance(rule, FileExists):
            return self._check_file(rule)
        if isinstance(rule, ToolOnPath):
            return self._check_tool(rule)
        if isinstance(rule, EnvVarSet):
            return self._check_env(rule)
        msg = f"Unsupported prerequisite rule: {rule!r}"
        raise TypeError(msg)

    def _check_file(self, rule: FileExists) -> PrerequisiteEntry:
        for candidate in (rule.path, *rule.alternatives):
            if (self._root / candidate).exists():
                return PrerequisiteEntry(
                    name=rule_name(rule),
                    satisfied=True,
                    detail=f"{candidate} found",
                    mandatory=rule.mandatory,
                )
        expected = " or ".join((rule.path, *rule.alternatives))
        return PrerequisiteEntry(
            name=rule_name(rule),
            satisfied=False,
            detail=f"{expected} not found in {self._root}",
            mandatory=rule.mandatory,
        )

    def _check_tool(self, rule: ToolOnPath) -> PrerequisiteEntry:
        location = self._which(rule.name, path=self._environ.get("PATH"))
        if location:
            return PrerequisiteEntry(
                name=rule_name(rule),
                satisfied=True,
                detail=f"{rule.name} is installed: {location}",
                mandatory=rule.mandatory,
            )
        detail = f"{rule.name} is not installed"
        if rule.hint:
            detail += f". {rule.hint}"
        return PrerequisiteEntry(
            name=rule_name(rule),
            satisfied=False,
            detail=detail,
            mandatory=rule.mandatory,
        )

    def _check_env(self, rule: EnvVarSet) -> PrerequisiteEntry:
        for candidate in (rule.name, *rule.alternatives):
            if self._environ.get(candidate):
                return PrerequisiteEntry(
                    name=rule_name(rule),
                    satisfied=True,
                    detail=f"{candidate} is configured",
                    mandatory=rule.mandatory,
                )
        for env_file in rule.files:
            if (self._root / env_file).is_file():
                return PrerequisiteEntry(
                    name=rule_name(rule),
                    satisfied=True,
                    detail=f"{rule_name(rule)} expected from {env_file}",
                    mandatory=rule.mandatory,
                )
        return PrerequisiteEntry(
            name=rule_name(rule),
            satisfied=False,
            detail=f"{rule_name(rule)} environment variable not set",
            mandatory=rule.mandatory,
        )
