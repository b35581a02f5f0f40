"""Executables linked from every object their dependencies export."""
from __future__ import annotations

from typing import List, Mapping, Sequence
import shlex

from ..makefile import Makefile, Rule
from ..resource import Language, Resource, ResourceFileSet
from ..target import TargetInfo
from .base import (
    Node,
    ParseContext,
    TargetDescription,
    collect_dependency_files,
    collect_ldflags,
    dependency_index,
    write_base_user_target,
)
from .cc_library import LIBRARY_ATTRIBUTES, CCLibraryNode


class CCBinaryNode(Node):
    kind = "cc_binary"
    known_attributes = LIBRARY_ATTRIBUTES

    def __init__(self, target: TargetInfo, context: ParseContext) -> None:
        super().__init__(target, context)
        self.library = CCLibraryNode(target, context)

    def parse(self, description: TargetDescription) -> None:
        attrs = self.read_attributes(description)
        self.library.dependencies = list(self.dependencies)
        self.library.load(attrs)
        self.ldflags = self.library.ldflags

    def out_binary(self) -> Resource:
        return self.generated_resource(self.context.paths.pkgfile_dir, self.target.target_name)

    def object_files(self, language: Language, files: ResourceFileSet, index: Mapping[TargetInfo, Node]) -> None:
        # Executables are never link inputs.
        return

    def dependency_files(self, files: ResourceFileSet) -> None:
        files.add(self.out_binary())

    def input_files(self) -> List[str]:
        return self.library.input_files()

    @classmethod
    def write_make_head(cls, context: ParseContext, makefile: Makefile) -> None:
        CCLibraryNode.write_make_head(context, makefile)
        makefile.write_head("cc_binary", lambda lines: lines.extend(["# Executables", "BINDIR := $(PREFIX)/bin"]))

    def write_makefile(self, all_deps: Sequence[Node], makefile: Makefile) -> None:
        self.library.write_compile_rules(all_deps, makefile)

        inputs = ResourceFileSet()
        index = dependency_index(all_deps)
        for language in (Language.C, Language.CPP):
            self.library.object_files(language, inputs, index)
        linker = "$(CXX)" if Language.CPP in inputs.languages() else "$(CC)"

        output = self.out_binary()
        rule = makefile.start_rule(output.full_path, inputs.paths())
        rule.add_prerequisites(collect_dependency_files(all_deps).paths())
        command = [linker, "-o", "$@", *inputs.paths(), "$(LDFLAGS)"]
        command.extend(shlex.quote(flag) for flag in collect_ldflags(self, all_deps))
        rule.write_command("@mkdir -p $(@D)")
        rule.write_command(" ".join(command))

        write_base_user_target(self, makefile, [output.full_path])

    def write_make_install(self, makefile: Makefile, install: Rule) -> None:
        binary = self.out_binary()
        install.add_prerequisite(binary.full_path)
        install.write_command("mkdir -p $(DESTDIR)$(BINDIR)")
        install.write_command(f"install -m 0755 {binary.full_path} $(DESTDIR)$(BINDIR)/{binary.basename}")


__all__ = ["CCBinaryNode"]
