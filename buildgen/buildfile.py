"""Read ``BUILD.<ext>`` files into target descriptions."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from .config_loader import find_config_file, load_config_file
from .errors import ConfigError
from .nodes.base import TargetDescription
from .target import TargetInfo

BUILD_FILE_STEM = "BUILD"


class BuildFileReader:
    """Loads one build file per package directory below *root*.

    A build file holds a ``targets`` list; each entry is a mapping with at
    least ``kind`` and ``name``. In TOML that is spelled ``[[targets]]``.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._cache: Dict[str, List[TargetDescription] | None] = {}

    def build_file(self, package_path: str) -> Path | None:
        directory = self._root / package_path if package_path else self._root
        return find_config_file(directory, BUILD_FILE_STEM)

    def load_package(self, package_path: str) -> List[TargetDescription] | None:
        """Return the package's descriptions in file order, or ``None`` if it has no build file."""

        if package_path in self._cache:
            return self._cache[package_path]
        path = self.build_file(package_path)
        descriptions = None if path is None else self._read(package_path, path)
        self._cache[package_path] = descriptions
        return descriptions

    def _read(self, package_path: str, path: Path) -> List[TargetDescription]:
        data = load_config_file(path)
        unknown = [key for key in data if key != "targets"]
        if unknown:
            raise ConfigError(f"{path}: unexpected top-level keys: {', '.join(map(str, unknown))}")
        entries = data.get("targets", [])
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
            raise ConfigError(f"{path}: 'targets' must be a list of tables")

        descriptions: List[TargetDescription] = []
        names: set[str] = set()
        for position, entry in enumerate(entries):
            description = self._describe(package_path, path, position, entry)
            if description.target.target_name in names:
                raise ConfigError(f"{path}: target defined more than once", target=description.target)
            names.add(description.target.target_name)
            descriptions.append(description)
        return descriptions

    @staticmethod
    def _describe(package_path: str, path: Path, position: int, entry: Any) -> TargetDescription:
        if not isinstance(entry, Mapping):
            raise ConfigError(f"{path}: targets[{position}] must be a table")
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(f"{path}: targets[{position}] needs a non-empty string", attribute="name")
        name = name.strip()
        if any(char in name for char in ":/") or name in {".", ".."}:
            raise ConfigError(f"{path}: invalid target name '{name}'", attribute="name")
        target = TargetInfo(package_path=package_path, target_name=name)
        kind = entry.get("kind")
        if not isinstance(kind, str) or not kind.strip():
            raise ConfigError(f"{path}: missing target kind", target=target, attribute="kind")
        return TargetDescription(kind=kind.strip(), target=target, attributes=dict(entry), source_file=path)


__all__ = ["BUILD_FILE_STEM", "BuildFileReader"]
