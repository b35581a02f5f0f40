from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable

from buildgen.config_loader import WorkspaceConfig
from buildgen.dist_source import DistSource
from buildgen.graph import BuildGraph
from buildgen.makefile import Makefile
from buildgen.nodes import ParseContext, TargetDescription, default_registry
from buildgen.target import TargetInfo


def make_context(root: Path | None = None, *, dist_source: DistSource | None = None) -> ParseContext:
    return ParseContext(config=WorkspaceConfig(root=root or Path("/workspace")), dist_source=dist_source)


def describe(kind: str, reference: str, **attributes: Any) -> TargetDescription:
    target = TargetInfo.parse(reference)
    data: Dict[str, Any] = {"kind": kind, "name": target.target_name}
    data.update(attributes)
    return TargetDescription(kind=kind, target=target, attributes=data)


def build_graph(descriptions: Iterable[TargetDescription], context: ParseContext | None = None) -> BuildGraph:
    graph = BuildGraph(default_registry(), context or make_context())
    for description in descriptions:
        graph.add(description)
    return graph


def write_node(graph: BuildGraph, reference: str, makefile: Makefile | None = None) -> Makefile:
    """Resolve *graph* and write only the node named by *reference*."""

    makefile = makefile or Makefile()
    graph.resolve()
    target = TargetInfo.parse(reference)
    node = graph.node(target)
    node.write_makefile(graph.dependencies_of(target), makefile)
    node.write_make_install(makefile, makefile.install_rule)
    return makefile
