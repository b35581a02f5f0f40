"""Packages built by their own ``configure && make``; outputs are opaque."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import shlex

from ..errors import ConfigError, SourceUnavailable
from ..makefile import Makefile
from ..resource import Language, Resource, ResourceFileSet
from ..target import TargetInfo
from .base import (
    COMMON_ATTRIBUTES,
    Node,
    ParseContext,
    TargetDescription,
    collect_dependency_files,
    write_base_user_target,
)


class AutoconfNode(Node):
    """Delegates the whole build to the package's configure script.

    Dependents only ever see the stamp file; whatever the package installs
    into its output directory is not tracked.
    """

    kind = "autoconf"
    known_attributes = COMMON_ATTRIBUTES | {
        "configure_args",
        "configure_env",
        "make_targets",
        "source",
        "source_url",
        "source_revision",
    }

    def __init__(self, target: TargetInfo, context: ParseContext) -> None:
        super().__init__(target, context)
        self.configure_args: List[str] = []
        self.configure_env: Dict[str, str] = {}
        self.make_targets: List[str] = []
        self.source_dir = target.package_path or "."

    def parse(self, description: TargetDescription) -> None:
        attrs = self.read_attributes(description)
        self.configure_args = attrs.string_list("configure_args")
        self.configure_env = attrs.string_mapping("configure_env")
        self.make_targets = attrs.string_list("make_targets")

        url = attrs.string("source_url")
        revision = attrs.string("source_revision")
        source = attrs.string("source")
        if url and source:
            raise ConfigError("cannot be combined with source_url", target=self.target, attribute="source")
        if revision and not url:
            raise ConfigError("requires source_url", target=self.target, attribute="source_revision")

        if url:
            self.source_dir = self._fetch(f"{url}#{revision}" if revision else url)
        elif source:
            self.source_dir = self.package_resource(source, attribute="source").full_path

    def _fetch(self, identifier: str) -> str:
        dist_source = self.context.dist_source
        if dist_source is None:
            raise ConfigError("no source fetcher is configured", target=self.target, attribute="source_url")
        try:
            path = dist_source.fetch(identifier)
        except SourceUnavailable as exc:
            raise SourceUnavailable(exc.identifier, exc.reason, target=self.target) from exc
        return _workspace_path(self.context.root, path)

    # --- outputs ---

    def stamp_file(self) -> Resource:
        return self.generated_resource(self.context.paths.genfile_dir, f"{self.target.target_name}.done")

    def output_dir(self) -> Resource:
        return self.generated_resource(self.context.paths.genfile_dir, self.target.target_name)

    def build_dir(self) -> Resource:
        return self.generated_resource(self.context.paths.object_dir, f"{self.target.target_name}.build")

    def object_files(self, language: Language, files: ResourceFileSet, index: Mapping[TargetInfo, Node]) -> None:
        # Nothing the package installs is handed to dependents.
        return

    def dependency_files(self, files: ResourceFileSet) -> None:
        files.add(self.stamp_file())

    # --- generation ---

    def configure_command(self) -> str:
        parts = [f"cd {self.build_dir().full_path}", "&&"]
        parts.extend(f"{key}={shlex.quote(value)}" for key, value in self.configure_env.items())
        parts.append("./configure")
        parts.append(f"--prefix=$(CURDIR)/{self.output_dir().full_path}")
        parts.extend(shlex.quote(arg) for arg in self.configure_args)
        return " ".join(parts)

    def write_makefile(self, all_deps: Sequence[Node], makefile: Makefile) -> None:
        build_dir = self.build_dir().full_path
        stamp = self.stamp_file()

        rule = makefile.start_rule(stamp.full_path, collect_dependency_files(all_deps).paths())
        rule.write_command(f"@rm -rf {build_dir} && mkdir -p {build_dir} {self.output_dir().full_path}")
        rule.write_command(f"cp -R {self.source_dir}/. {build_dir}")
        rule.write_command(self.configure_command())
        make = ["$(MAKE)", "-C", build_dir, *map(shlex.quote, self.make_targets)]
        rule.write_command(" ".join(make))
        rule.write_command(f"$(MAKE) -C {build_dir} install")
        rule.write_command("@mkdir -p $(@D) && touch $@")

        write_base_user_target(self, makefile, [stamp.full_path])


def _workspace_path(root: Path, path: Path) -> str:
    """Workspace-relative POSIX path when *path* lies under *root*, else absolute."""

    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return str(path)
    return relative.as_posix()


__all__ = ["AutoconfNode"]
