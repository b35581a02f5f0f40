"""Node contract shared by every target kind."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence
import posixpath

from ..config_loader import PathSettings, ToolchainSettings, WorkspaceConfig, normalize_string_list
from ..dist_source import DistSource
from ..errors import ConfigError
from ..makefile import Makefile, Rule
from ..resource import Language, Resource, ResourceFileSet
from ..target import TargetInfo
from ..template import TemplateError, TemplateResolver

COMMON_ATTRIBUTES = frozenset({"kind", "name", "dependencies"})


@dataclass(slots=True)
class TargetDescription:
    """Structured form of one declared target, as produced by the build file reader."""

    kind: str
    target: TargetInfo
    attributes: Mapping[str, Any]
    source_file: Path | None = None


@dataclass(slots=True)
class ParseContext:
    """Everything a node may consult while parsing."""

    config: WorkspaceConfig
    dist_source: DistSource | None = None

    @property
    def root(self) -> Path:
        return self.config.root

    @property
    def paths(self) -> PathSettings:
        return self.config.paths

    @property
    def toolchain(self) -> ToolchainSettings:
        return self.config.toolchain

    def template_context(self, target: TargetInfo) -> Dict[str, Any]:
        return {
            "paths": self.paths.to_mapping(),
            "package": {"path": target.package_path, "name": target.target_name},
            "toolchain": {
                "prefix": self.toolchain.prefix,
                "cc": self.toolchain.cc,
                "cxx": self.toolchain.cxx,
            },
        }


class Attributes:
    """Typed, error-reporting access to a target's raw attribute mapping."""

    def __init__(self, description: TargetDescription, resolver: TemplateResolver) -> None:
        self._description = description
        self._resolver = resolver

    @property
    def target(self) -> TargetInfo:
        return self._description.target

    def __contains__(self, key: str) -> bool:
        return key in self._description.attributes

    def check_known(self, allowed: Iterable[str]) -> None:
        allowed_set = frozenset(allowed)
        for key in self._description.attributes:
            if key not in allowed_set:
                raise ConfigError(
                    f"not supported by kind '{self._description.kind}'",
                    target=self.target,
                    attribute=key,
                )

    def _resolve(self, key: str, value: Any) -> Any:
        try:
            return self._resolver.resolve(value)
        except TemplateError as exc:
            raise ConfigError(str(exc), target=self.target, attribute=key) from exc

    def string(self, key: str, *, required: bool = False, default: str | None = None) -> str | None:
        value = self._description.attributes.get(key)
        if value is None:
            if required:
                raise ConfigError("is required", target=self.target, attribute=key)
            return default
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ConfigError("must be a string", target=self.target, attribute=key)
        text = self._resolve(key, str(value)).strip()
        if not text and required:
            raise ConfigError("cannot be empty", target=self.target, attribute=key)
        return text or default

    def string_list(self, key: str) -> List[str]:
        try:
            values = normalize_string_list(self._description.attributes.get(key), field_name=key)
        except TypeError as exc:
            raise ConfigError(str(exc), target=self.target, attribute=key) from exc
        return [self._resolve(key, value) for value in values]

    def string_mapping(self, key: str) -> Dict[str, str]:
        value = self._description.attributes.get(key)
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ConfigError("must be a table of strings", target=self.target, attribute=key)
        result: Dict[str, str] = {}
        for name, item in value.items():
            if isinstance(item, bool) or not isinstance(item, (str, int)):
                raise ConfigError(f"entry '{name}' must be a string", target=self.target, attribute=key)
            result[str(name)] = self._resolve(key, str(item))
        return result


class Node:
    """Build-time representation of one declared target.

    Subclasses implement :meth:`parse` and :meth:`write_makefile`; nodes refer
    to each other only through :class:`TargetInfo` and look peers up in the
    dependency list handed to them by the graph.
    """

    kind = ""
    known_attributes: frozenset[str] = COMMON_ATTRIBUTES

    def __init__(self, target: TargetInfo, context: ParseContext) -> None:
        self.target = target
        self.context = context
        self.dependencies: List[TargetInfo] = []
        self.ldflags: List[str] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target})"

    # --- parsing ---

    def parse(self, description: TargetDescription) -> None:
        raise NotImplementedError

    def read_attributes(self, description: TargetDescription) -> Attributes:
        """Validate attribute names and record declared dependencies."""

        resolver = TemplateResolver(self.context.template_context(self.target))
        attrs = Attributes(description, resolver)
        attrs.check_known(self.known_attributes)
        self.dependencies = []
        for reference in attrs.string_list("dependencies"):
            try:
                dependency = TargetInfo.parse(reference, package_path=self.target.package_path)
            except ValueError as exc:
                raise ConfigError(str(exc), target=self.target, attribute="dependencies") from exc
            if dependency == self.target:
                raise ConfigError("a target cannot depend on itself", target=self.target, attribute="dependencies")
            if dependency not in self.dependencies:
                self.dependencies.append(dependency)
        return attrs

    def package_resource(self, path: str, *, attribute: str) -> Resource:
        """Resource for *path* given relative to this node's package."""

        joined = posixpath.normpath(posixpath.join(self.target.package_path, path))
        if posixpath.isabs(path) or joined == "." or joined.startswith(".."):
            raise ConfigError(f"'{path}' must stay inside the workspace", target=self.target, attribute=attribute)
        return Resource.from_root_path("", joined)

    def generated_resource(self, root: str, name: str) -> Resource:
        return Resource.from_root_path(root, posixpath.join(self.target.package_path, name))

    # --- generation ---

    @property
    def user_target(self) -> str:
        return self.target.full_path

    def write_makefile(self, all_deps: Sequence["Node"], makefile: Makefile) -> None:
        raise NotImplementedError

    def write_make_install(self, makefile: Makefile, install: Rule) -> None:
        """Append this node's install commands to the shared install rule."""

    @classmethod
    def write_make_head(cls, context: ParseContext, makefile: Makefile) -> None:
        """Emit prologue lines shared by every node of this kind."""

    def object_files(self, language: Language, files: ResourceFileSet, index: Mapping[TargetInfo, "Node"]) -> None:
        """Append link inputs for *language*: this node's, then each direct dependency's."""

        for dependency in self.dependencies:
            index[dependency].object_files(language, files, index)

    def dependency_files(self, files: ResourceFileSet) -> None:
        """Append files a dependent's build steps must wait for."""

    def input_files(self) -> List[str]:
        """Workspace files this node's rules read directly."""
        return []


def dependency_index(all_deps: Sequence[Node]) -> Dict[TargetInfo, Node]:
    return {node.target: node for node in all_deps}


def collect_dependency_files(all_deps: Sequence[Node]) -> ResourceFileSet:
    files = ResourceFileSet()
    for node in all_deps:
        node.dependency_files(files)
    return files


def collect_ldflags(node: Node, all_deps: Sequence[Node]) -> List[str]:
    flags: List[str] = []
    for source in [node, *all_deps]:
        for flag in source.ldflags:
            if flag not in flags:
                flags.append(flag)
    return flags


def write_base_user_target(node: Node, makefile: Makefile, outputs: Iterable[str]) -> Rule:
    """Write the phony ``pkg/name`` rule that builds everything *node* produces."""

    rule = makefile.start_rule(node.user_target, outputs)
    makefile.add_phony(node.user_target)
    return rule


__all__ = [
    "Attributes",
    "COMMON_ATTRIBUTES",
    "Node",
    "ParseContext",
    "TargetDescription",
    "collect_dependency_files",
    "collect_ldflags",
    "dependency_index",
    "write_base_user_target",
]
