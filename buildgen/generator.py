"""One complete generation pass: load, resolve, emit, write."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional
import logging
import os
import tempfile

from .buildfile import BuildFileReader
from .config_loader import WorkspaceConfig
from .dist_source import DistSource, GitDistSource
from .errors import DanglingPrerequisiteError
from .graph import BuildGraph
from .makefile import Makefile
from .nodes.base import Node, ParseContext
from .nodes.registry import NodeRegistry, default_registry
from .target import TargetInfo

logger = logging.getLogger(__name__)

HEADER = "Generated by buildgen. Do not edit."


class MakefileGenerator:
    def __init__(
        self,
        config: WorkspaceConfig,
        *,
        registry: Optional[NodeRegistry] = None,
        dist_source: Optional[DistSource] = None,
        reader: Optional[BuildFileReader] = None,
    ) -> None:
        self.config = config
        self.registry = registry or default_registry()
        if dist_source is None:
            dist_source = GitDistSource(config.root / config.paths.source_dir)
        self.context = ParseContext(config=config, dist_source=dist_source)
        self.reader = reader or BuildFileReader(config.root)

    def build_graph(self, roots: Iterable[TargetInfo] = (), *, packages: Iterable[str] = ()) -> BuildGraph:
        graph = BuildGraph(self.registry, self.context)
        graph.load(self.reader, roots, packages=packages)
        return graph

    def generate(self, roots: Iterable[TargetInfo] = (), *, packages: Iterable[str] = ()) -> str:
        return self.render(self.build_graph(roots, packages=packages))

    def render(self, graph: BuildGraph) -> str:
        nodes = graph.resolve()
        makefile = Makefile(header=HEADER)
        self._write_workspace_head(makefile)
        self._write_kind_heads(nodes, makefile)

        all_rule = makefile.start_rule("all")
        makefile.add_phony("all")

        for node in nodes:
            node.write_makefile(graph.dependencies_of(node.target), makefile)
            node.write_make_install(makefile, makefile.install_rule)
            all_rule.add_prerequisite(node.user_target)

        clean = makefile.start_rule("clean")
        clean.write_command(f"rm -rf {' '.join(self.config.generated_dirs())}")
        makefile.add_phony("clean")

        sources: List[str] = []
        for node in nodes:
            sources.extend(node.input_files())
        dangling = makefile.dangling_prerequisites(sources)
        if dangling:
            raise DanglingPrerequisiteError(dangling)

        logger.info("generated %d rules for %d targets", len(makefile.rules), len(nodes))
        return makefile.serialize()

    def write(
        self,
        output: Path | None = None,
        roots: Iterable[TargetInfo] = (),
        *,
        packages: Iterable[str] = (),
    ) -> Path:
        """Generate and atomically replace *output*; nothing is written on failure."""

        if output is None:
            output = self.config.root / self.config.global_config.output
        elif not output.is_absolute():
            output = self.config.root / output
        text = self.generate(roots, packages=packages)

        output.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=output.parent,
            prefix=f".{output.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                handle.write(text)
            os.replace(handle.name, output)
        except OSError:
            Path(handle.name).unlink(missing_ok=True)
            raise
        logger.info("wrote %s", output)
        return output

    def _write_workspace_head(self, makefile: Makefile) -> None:
        paths = self.config.paths

        def writer(lines: List[str]) -> None:
            lines.append(".DEFAULT_GOAL := all")
            lines.append(f"PREFIX := {self.config.toolchain.prefix}")
            lines.append("DESTDIR ?=")
            lines.append(f"OBJ_DIR := {paths.object_dir}")
            lines.append(f"GEN_DIR := {paths.genfile_dir}")
            lines.append(f"PKG_DIR := {paths.pkgfile_dir}")

        makefile.write_head("workspace", writer)

    def _write_kind_heads(self, nodes: Iterable[Node], makefile: Makefile) -> None:
        seen: List[str] = []
        for node in nodes:
            if node.kind in seen:
                continue
            seen.append(node.kind)
            factory = self.registry.factory(node.kind, target=node.target)
            write_head = getattr(factory, "write_make_head", None)
            if write_head is not None:
                write_head(self.context, makefile)


__all__ = ["HEADER", "MakefileGenerator"]
