"""Versioned shared libraries: link, soname symlink chain, install."""
from __future__ import annotations

from typing import List, Mapping, Sequence
import posixpath
import re
import shlex

from ..errors import ConfigError
from ..makefile import Makefile, Rule
from ..resource import Language, Resource, ResourceFileSet
from ..target import TargetInfo
from .base import (
    Attributes,
    Node,
    ParseContext,
    TargetDescription,
    collect_dependency_files,
    collect_ldflags,
    dependency_index,
    write_base_user_target,
)
from .cc_library import LIBRARY_ATTRIBUTES, CCLibraryNode

_VERSION_COMPONENT = re.compile(r"^\d+$")
_VERSION_STRING = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class CCSharedLibraryNode(Node):
    """Links a library's transitive objects into ``lib<name>.so``.

    Compilation and object aggregation are delegated to a :class:`CCLibraryNode`
    held in ``self.library``. Dependents receive the unversioned ``lib<name>.so``
    alias as their link input; the objects themselves stay private.
    """

    kind = "cc_shared_library"
    known_attributes = LIBRARY_ATTRIBUTES | {
        "version",
        "major_version",
        "minor_version",
        "release_version",
        "install_strip_prefix",
        "exported_symbols",
    }

    def __init__(self, target: TargetInfo, context: ParseContext) -> None:
        super().__init__(target, context)
        self.library = CCLibraryNode(target, context)
        self.major_version: str | None = None
        self.minor_version: str | None = None
        self.release_version: str | None = None
        self.install_strip_prefix = target.package_path
        self.exported_symbols: Resource | None = None

    def parse(self, description: TargetDescription) -> None:
        attrs = self.read_attributes(description)
        self.library.dependencies = list(self.dependencies)
        self.library.load(attrs)
        self.ldflags = self.library.ldflags
        self._parse_version(attrs)

        prefix = attrs.string("install_strip_prefix")
        if prefix is not None:
            prefix = posixpath.normpath(prefix.strip("/") or ".")
            if prefix == ".":
                prefix = ""
            package = self.target.package_path
            if prefix and package != prefix and not package.startswith(prefix + "/"):
                raise ConfigError(
                    f"'{prefix}' is not a prefix of package '{package}'",
                    target=self.target,
                    attribute="install_strip_prefix",
                )
            self.install_strip_prefix = prefix

        symbols = attrs.string("exported_symbols")
        if symbols:
            self.exported_symbols = self.package_resource(symbols, attribute="exported_symbols")

    def _parse_version(self, attrs: Attributes) -> None:
        combined = attrs.string("version")
        parts = {key: attrs.string(key) for key in ("major_version", "minor_version", "release_version")}
        if combined is not None:
            if any(value is not None for value in parts.values()):
                raise ConfigError(
                    "cannot be combined with major_version/minor_version/release_version",
                    target=self.target,
                    attribute="version",
                )
            match = _VERSION_STRING.match(combined)
            if not match:
                raise ConfigError(
                    f"'{combined}' does not look like MAJOR.MINOR.RELEASE",
                    target=self.target,
                    attribute="version",
                )
            self.major_version, self.minor_version, self.release_version = match.groups()
            return

        for key, value in parts.items():
            if value is not None and not _VERSION_COMPONENT.match(value):
                raise ConfigError(f"'{value}' is not an unsigned integer", target=self.target, attribute=key)
        if parts["major_version"] is None:
            for key in ("minor_version", "release_version"):
                if parts[key] is not None:
                    raise ConfigError("requires major_version", target=self.target, attribute=key)
            return
        self.major_version = parts["major_version"]
        self.minor_version = parts["minor_version"] or "0"
        self.release_version = parts["release_version"] or "0"

    # --- naming ---

    @property
    def versioned(self) -> bool:
        return self.major_version is not None

    @property
    def base_name(self) -> str:
        return f"lib{self.target.target_name}.so"

    def soname(self) -> str:
        if not self.versioned:
            return self.base_name
        return f"{self.base_name}.{self.major_version}"

    def out_linked_obj(self) -> Resource:
        """The real file produced by the link step."""

        name = self.base_name
        if self.versioned:
            name = f"{name}.{self.major_version}.{self.minor_version}.{self.release_version}"
        return self.generated_resource(self.context.paths.pkgfile_dir, name)

    def alias_chain(self) -> List[Resource]:
        """Symlinks created after the link, each pointing at the previous entry."""

        if not self.versioned:
            return []
        return [
            self.generated_resource(self.context.paths.pkgfile_dir, self.soname()),
            self.generated_resource(self.context.paths.pkgfile_dir, self.base_name),
        ]

    def outputs(self) -> List[Resource]:
        return [self.out_linked_obj(), *self.alias_chain()]

    def dest_install_dir(self, source: Resource) -> str:
        directory = source.dirname
        prefix = self.install_strip_prefix
        if prefix and (directory == prefix or directory.startswith(prefix + "/")):
            directory = directory[len(prefix):].lstrip("/")
        return posixpath.join("$(DESTDIR)$(LIBDIR)", directory) if directory else "$(DESTDIR)$(LIBDIR)"

    # --- node contract ---

    def object_files(self, language: Language, files: ResourceFileSet, index: Mapping[TargetInfo, Node]) -> None:
        files.add(self.outputs()[-1])
        # Compiled objects are already inside this library; other shared
        # libraries it links against must follow it onto the link line.
        inherited = ResourceFileSet()
        for dependency in self.dependencies:
            index[dependency].object_files(language, inherited, index)
        for resource, tag in inherited.items():
            if tag is Language.NONE:
                files.add(resource, tag)

    def dependency_files(self, files: ResourceFileSet) -> None:
        self.library.dependency_files(files)

    def input_files(self) -> List[str]:
        inputs = self.library.input_files()
        if self.exported_symbols is not None:
            inputs.append(self.exported_symbols.full_path)
        return inputs

    @classmethod
    def write_make_head(cls, context: ParseContext, makefile: Makefile) -> None:
        CCLibraryNode.write_make_head(context, makefile)

        def writer(lines: List[str]) -> None:
            lines.append("# Shared libraries")
            lines.append("CFLAGS += -fPIC")
            lines.append("CXXFLAGS += -fPIC")
            lines.append("SHARED_LDFLAGS := -shared")
            lines.append("LIBDIR := $(PREFIX)/lib")

        makefile.write_head("cc_shared_library", writer)

    def link_inputs(self, all_deps: Sequence[Node]) -> ResourceFileSet:
        files = ResourceFileSet()
        index = dependency_index(all_deps)
        for language in (Language.C, Language.CPP):
            self.library.object_files(language, files, index)
        return files

    def write_link(self, all_deps: Sequence[Node], makefile: Makefile) -> Rule:
        inputs = self.link_inputs(all_deps)
        linker = "$(CXX)" if Language.CPP in inputs.languages() else "$(CC)"
        output = self.out_linked_obj()

        rule = makefile.start_rule(output.full_path, inputs.paths())
        rule.add_prerequisites(collect_dependency_files(all_deps).paths())
        command = [linker, "$(SHARED_LDFLAGS)", "-o", "$@", *inputs.paths()]
        command.append(f"-Wl,-soname,{self.soname()}")
        if self.exported_symbols is not None:
            rule.add_prerequisite(self.exported_symbols.full_path)
            command.append(f"-Wl,--version-script={self.exported_symbols.full_path}")
        command.append("$(LDFLAGS)")
        command.extend(shlex.quote(flag) for flag in collect_ldflags(self, all_deps))
        rule.write_command("@mkdir -p $(@D)")
        rule.write_command(" ".join(command))
        return rule

    def write_symlinks(self, makefile: Makefile) -> None:
        previous = self.out_linked_obj()
        for alias in self.alias_chain():
            rule = makefile.start_rule(alias.full_path, [previous.full_path])
            rule.write_command(f"ln -sf {previous.basename} $@")
            previous = alias

    def write_makefile(self, all_deps: Sequence[Node], makefile: Makefile) -> None:
        self.library.write_compile_rules(all_deps, makefile)
        self.write_link(all_deps, makefile)
        self.write_symlinks(makefile)
        write_base_user_target(self, makefile, [output.full_path for output in self.outputs()])

    def write_make_install(self, makefile: Makefile, install: Rule) -> None:
        linked = self.out_linked_obj()
        destination = self.dest_install_dir(linked)
        install.add_prerequisites(output.full_path for output in self.outputs())
        install.write_command(f"mkdir -p {destination}")
        install.write_command(f"install -m 0755 {linked.full_path} {destination}/{linked.basename}")
        previous = linked
        for alias in self.alias_chain():
            install.write_command(f"ln -sf {previous.basename} {destination}/{alias.basename}")
            previous = alias


__all__ = ["CCSharedLibraryNode"]
