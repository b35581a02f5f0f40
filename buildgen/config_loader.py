"""Configuration loading for workspaces and build files."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence
import json
import os
import tomllib

import yaml

from .errors import ConfigError


ConfigLoader = Callable[[Any], Mapping[str, Any]]

FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loader callables."""

CONFIG_STEM = "buildgen"
CONFIG_ENV_VAR = "BUILDGEN_CONFIG"


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS))
        raise ConfigError(f"Unsupported configuration file extension '{suffix}' for {path}. Supported: {supported}")

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    try:
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to parse {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def find_config_file(directory: Path, stem: str) -> Path | None:
    """Return the single ``<stem>.<ext>`` file in *directory*, if any."""

    found: List[Path] = []
    if not directory.is_dir():
        return None
    for suffix in FILE_LOADERS:
        candidate = directory / f"{stem}{suffix}"
        if candidate.is_file():
            found.append(candidate)
    if len(found) > 1:
        names = "', '".join(path.name for path in found)
        raise ConfigError(
            f"Multiple files found for '{stem}' in {directory}: '{names}'. Only one format is allowed."
        )
    return found[0] if found else None


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of trimmed strings."""

    if value is None:
        return []

    if isinstance(value, (str, bytes)):
        text = str(value).strip()
        return [text] if text else []

    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if not isinstance(item, (str, bytes)):
                label = f"{field_name} " if field_name else ""
                raise TypeError(f"{label}entries must be strings")
            text = str(item).strip()
            if text:
                items.append(text)
        return items

    label = f"{field_name} " if field_name else ""
    raise TypeError(f"{label}must be a string or sequence of strings")


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{name}] must be a table", attribute=name)
    return section


def _string(section: Mapping[str, Any], key: str, default: str, *, prefix: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError("must be a non-empty string", attribute=f"{prefix}.{key}")
    return value.strip()


def _string_list(section: Mapping[str, Any], key: str, *, prefix: str) -> List[str]:
    try:
        return normalize_string_list(section.get(key), field_name=f"{prefix}.{key}")
    except TypeError as exc:
        raise ConfigError(str(exc), attribute=f"{prefix}.{key}") from exc


_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


@dataclass(slots=True)
class GlobalConfig:
    log_level: str = "warning"
    log_file: str | None = None
    output: str = "Makefile"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GlobalConfig":
        section = _section(data, "global")
        log_level = _string(section, "log_level", "warning", prefix="global").lower()
        if log_level not in _LOG_LEVELS:
            raise ConfigError(
                f"unknown log level '{log_level}'; expected one of {', '.join(sorted(_LOG_LEVELS))}",
                attribute="global.log_level",
            )
        log_file = section.get("log_file")
        if log_file is not None and not isinstance(log_file, str):
            raise ConfigError("must be a string", attribute="global.log_file")
        return cls(
            log_level=log_level,
            log_file=log_file or None,
            output=_string(section, "output", "Makefile", prefix="global"),
        )


@dataclass(slots=True)
class PathSettings:
    """Workspace-relative directories for generated files."""

    object_dir: str = ".gen-obj"
    genfile_dir: str = ".gen-files"
    source_dir: str = ".gen-src"
    pkgfile_dir: str = ".gen-pkg"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PathSettings":
        section = _section(data, "paths")
        defaults = cls()
        values: Dict[str, str] = {}
        for key in ("object_dir", "genfile_dir", "source_dir", "pkgfile_dir"):
            value = _string(section, key, getattr(defaults, key), prefix="paths").rstrip("/")
            if os.path.isabs(value) or value.startswith(".."):
                raise ConfigError("must be relative to the workspace root", attribute=f"paths.{key}")
            values[key] = value
        return cls(**values)

    def to_mapping(self) -> Dict[str, str]:
        return {
            "object_dir": self.object_dir,
            "genfile_dir": self.genfile_dir,
            "source_dir": self.source_dir,
            "pkgfile_dir": self.pkgfile_dir,
        }


@dataclass(slots=True)
class ToolchainSettings:
    cc: str = "cc"
    cxx: str = "c++"
    cflags: List[str] = field(default_factory=list)
    cxxflags: List[str] = field(default_factory=list)
    ldflags: List[str] = field(default_factory=list)
    prefix: str = "/usr/local"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ToolchainSettings":
        section = _section(data, "toolchain")
        return cls(
            cc=_string(section, "cc", "cc", prefix="toolchain"),
            cxx=_string(section, "cxx", "c++", prefix="toolchain"),
            cflags=_string_list(section, "cflags", prefix="toolchain"),
            cxxflags=_string_list(section, "cxxflags", prefix="toolchain"),
            ldflags=_string_list(section, "ldflags", prefix="toolchain"),
            prefix=_string(section, "prefix", "/usr/local", prefix="toolchain"),
        )


@dataclass(slots=True)
class WorkspaceConfig:
    root: Path
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    paths: PathSettings = field(default_factory=PathSettings)
    toolchain: ToolchainSettings = field(default_factory=ToolchainSettings)
    source: Path | None = None

    @classmethod
    def from_mapping(cls, root: Path, data: Mapping[str, Any], *, source: Path | None = None) -> "WorkspaceConfig":
        return cls(
            root=root,
            global_config=GlobalConfig.from_mapping(data),
            paths=PathSettings.from_mapping(data),
            toolchain=ToolchainSettings.from_mapping(data),
            source=source,
        )

    @classmethod
    def from_directory(cls, root: Path, *, config_file: Path | None = None) -> "WorkspaceConfig":
        """Load ``buildgen.<ext>`` from *root*; every section is optional."""

        if config_file is None:
            env_value = os.environ.get(CONFIG_ENV_VAR)
            if env_value:
                config_file = Path(env_value)
        if config_file is not None:
            if not config_file.is_absolute():
                config_file = root / config_file
            if not config_file.is_file():
                raise ConfigError(f"Configuration file not found: {config_file}")
        else:
            config_file = find_config_file(root, CONFIG_STEM)

        data: Mapping[str, Any] = {}
        if config_file is not None:
            data = load_config_file(config_file)
        return cls.from_mapping(root, data, source=config_file)

    def generated_dirs(self) -> Iterable[str]:
        return (self.paths.object_dir, self.paths.genfile_dir, self.paths.pkgfile_dir)


__all__ = [
    "CONFIG_ENV_VAR",
    "FILE_LOADERS",
    "GlobalConfig",
    "PathSettings",
    "ToolchainSettings",
    "WorkspaceConfig",
    "find_config_file",
    "load_config_file",
    "normalize_string_list",
]
