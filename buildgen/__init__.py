"""Compile declarative target definitions into a Makefile."""
from __future__ import annotations

from .errors import (
    BuildGenError,
    ConfigError,
    CycleError,
    DanglingPrerequisiteError,
    SourceUnavailable,
    UnresolvedDependencyError,
)
from .generator import MakefileGenerator
from .target import TargetInfo

__all__ = [
    "BuildGenError",
    "ConfigError",
    "CycleError",
    "DanglingPrerequisiteError",
    "MakefileGenerator",
    "SourceUnavailable",
    "TargetInfo",
    "UnresolvedDependencyError",
]
