"""C and C++ libraries: per-source compile rules and object aggregation."""
from __future__ import annotations

from typing import List, Mapping, Sequence
import shlex

from ..errors import ConfigError
from ..makefile import Makefile
from ..resource import Language, Resource, ResourceFileSet, language_for_source
from ..target import TargetInfo
from .base import (
    COMMON_ATTRIBUTES,
    Attributes,
    Node,
    ParseContext,
    TargetDescription,
    collect_dependency_files,
    write_base_user_target,
)

LIBRARY_ATTRIBUTES = COMMON_ATTRIBUTES | {"sources", "headers", "cflags", "cxxflags", "ldflags"}


def _join_flags(flags: Sequence[str]) -> str:
    return " ".join(shlex.quote(flag) for flag in flags)


class CCLibraryNode(Node):
    kind = "cc_library"
    known_attributes = LIBRARY_ATTRIBUTES

    def __init__(self, target: TargetInfo, context: ParseContext) -> None:
        super().__init__(target, context)
        self.sources = ResourceFileSet()
        self.headers = ResourceFileSet()
        self.cflags: List[str] = []
        self.cxxflags: List[str] = []

    def parse(self, description: TargetDescription) -> None:
        self.load(self.read_attributes(description))

    def load(self, attrs: Attributes) -> None:
        """Read the library attributes from an already-validated attribute set."""

        for path in attrs.string_list("sources"):
            language = language_for_source(path)
            if language is None:
                raise ConfigError(f"unsupported source file '{path}'", target=self.target, attribute="sources")
            self.sources.add(self.package_resource(path, attribute="sources"), language)
        for path in attrs.string_list("headers"):
            self.headers.add(self.package_resource(path, attribute="headers"))
        self.cflags = attrs.string_list("cflags")
        self.cxxflags = attrs.string_list("cxxflags")
        self.ldflags = attrs.string_list("ldflags")

    # --- objects ---

    def object_for(self, source: Resource) -> Resource:
        return Resource.from_root_path(self.context.paths.object_dir, f"{source.path}.o")

    def compiled_objects(self) -> ResourceFileSet:
        objects = ResourceFileSet()
        for source, language in self.sources.items():
            objects.add(self.object_for(source), language)
        return objects

    def object_files(self, language: Language, files: ResourceFileSet, index: Mapping[TargetInfo, Node]) -> None:
        for obj in self.compiled_objects().files(language):
            files.add(obj, language)
        super().object_files(language, files, index)

    def dependency_files(self, files: ResourceFileSet) -> None:
        files.update(self.headers)

    def input_files(self) -> List[str]:
        return [*self.sources.paths(), *self.headers.paths()]

    # --- generation ---

    @classmethod
    def write_make_head(cls, context: ParseContext, makefile: Makefile) -> None:
        toolchain = context.toolchain

        def writer(lines: List[str]) -> None:
            lines.append("# C/C++ toolchain")
            lines.append(f"CC := {toolchain.cc}")
            lines.append(f"CXX := {toolchain.cxx}")
            lines.append(f"CFLAGS := {_join_flags(toolchain.cflags)}".rstrip())
            lines.append(f"CXXFLAGS := {_join_flags(toolchain.cxxflags)}".rstrip())
            lines.append(f"CPPFLAGS := -I. -I{context.paths.genfile_dir}")
            lines.append(f"LDFLAGS := {_join_flags(toolchain.ldflags)}".rstrip())

        makefile.write_head("cc", writer)

    def compile_command(self, source: Resource, language: Language) -> str:
        if language is Language.CPP:
            parts = ["$(CXX)", "$(CPPFLAGS)", "$(CXXFLAGS)", *map(shlex.quote, self.cxxflags)]
        else:
            parts = ["$(CC)", "$(CPPFLAGS)", "$(CFLAGS)", *map(shlex.quote, self.cflags)]
        parts.extend(["-c", source.full_path, "-o", "$@"])
        return " ".join(parts)

    def write_compile_rules(self, all_deps: Sequence[Node], makefile: Makefile) -> ResourceFileSet:
        """Emit one compile rule per source; return the objects produced."""

        waits_for = collect_dependency_files(all_deps)
        objects = ResourceFileSet()
        for source, language in self.sources.items():
            obj = self.object_for(source)
            rule = makefile.start_rule(obj.full_path, [source.full_path])
            rule.add_prerequisites(self.headers.paths())
            rule.add_prerequisites(waits_for.paths())
            rule.write_command("@mkdir -p $(@D)")
            rule.write_command(self.compile_command(source, language))
            objects.add(obj, language)
        return objects

    def write_makefile(self, all_deps: Sequence[Node], makefile: Makefile) -> None:
        objects = self.write_compile_rules(all_deps, makefile)
        write_base_user_target(self, makefile, objects.paths())


__all__ = ["CCLibraryNode", "LIBRARY_ATTRIBUTES"]
