"""Error types raised while generating a build script."""
from __future__ import annotations

from typing import Sequence

from .target import TargetInfo


class BuildGenError(RuntimeError):
    """Base class for every fatal generation error."""


class ConfigError(BuildGenError):
    """Raised when a target description or configuration value is invalid."""

    def __init__(
        self,
        message: str,
        *,
        target: TargetInfo | None = None,
        attribute: str | None = None,
    ) -> None:
        parts: list[str] = []
        if target is not None:
            parts.append(str(target))
        if attribute:
            parts.append(f"attribute '{attribute}'")
        prefix = ", ".join(parts)
        super().__init__(f"{prefix}: {message}" if prefix else message)
        self.target = target
        self.attribute = attribute


class UnresolvedDependencyError(BuildGenError):
    """Raised when a declared dependency does not name a known target."""

    def __init__(self, target: TargetInfo, dependency: TargetInfo, reason: str | None = None) -> None:
        message = f"{target} depends on {dependency}, which is not defined"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.target = target
        self.dependency = dependency


class CycleError(BuildGenError):
    """Raised when the declared dependencies form a cycle."""

    def __init__(self, cycle: Sequence[TargetInfo]) -> None:
        self.cycle = tuple(cycle)
        super().__init__("Dependency cycle detected: " + " -> ".join(str(t) for t in self.cycle))


class SourceUnavailable(BuildGenError):
    """Raised when a source tree cannot be materialized."""

    def __init__(self, identifier: str, reason: str, *, target: TargetInfo | None = None) -> None:
        message = f"Unable to fetch '{identifier}': {reason}"
        if target is not None:
            message = f"{target}: {message}"
        super().__init__(message)
        self.identifier = identifier
        self.reason = reason
        self.target = target


class DanglingPrerequisiteError(BuildGenError):
    """Raised when a rule names a prerequisite nothing produces."""

    def __init__(self, dangling: Sequence[tuple[str, str]]) -> None:
        self.dangling = tuple(dangling)
        details = ", ".join(f"{rule} <- {prereq}" for rule, prereq in self.dangling)
        super().__init__(f"Rules reference prerequisites that no rule or source provides: {details}")


__all__ = [
    "BuildGenError",
    "ConfigError",
    "CycleError",
    "DanglingPrerequisiteError",
    "SourceUnavailable",
    "UnresolvedDependencyError",
]
