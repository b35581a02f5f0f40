"""Target identities."""
from __future__ import annotations

from dataclasses import dataclass
import posixpath


@dataclass(frozen=True, slots=True, order=True)
class TargetInfo:
    """Unique identity of a declared target: package path plus name."""

    package_path: str
    target_name: str

    @classmethod
    def parse(cls, reference: str, *, package_path: str = "") -> "TargetInfo":
        """Parse ``//pkg:name``, ``pkg:name`` or ``:name`` (relative to *package_path*)."""

        text = reference.strip()
        if not text:
            raise ValueError("Target reference cannot be empty")
        if text.startswith("//"):
            text = text[2:]
        package, sep, name = text.rpartition(":")
        if not sep:
            # Bare "pkg/name" shorthand; a lone "name" stays in the current package.
            package, _, name = text.rpartition("/")
            if not package and not reference.strip().startswith("//"):
                package = package_path
        elif not package and not reference.strip().startswith("//"):
            package = package_path
        if not name:
            raise ValueError(f"Target reference '{reference}' has no target name")
        return cls(package_path=_normalize_package(package), target_name=name)

    @property
    def full_path(self) -> str:
        """Path-like form ``pkg/name`` used for generated user targets."""
        if not self.package_path:
            return self.target_name
        return f"{self.package_path}/{self.target_name}"

    def __str__(self) -> str:
        return f"//{self.package_path}:{self.target_name}"


def _normalize_package(package: str) -> str:
    package = package.strip().strip("/")
    if not package:
        return ""
    normalized = posixpath.normpath(package)
    if normalized.startswith(".."):
        raise ValueError(f"Package path '{package}' escapes the workspace root")
    return "" if normalized == "." else normalized


__all__ = ["TargetInfo"]
