"""Dependency graph: node ownership, closure and deterministic ordering."""
from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Tuple
import logging

from .buildfile import BuildFileReader
from .errors import ConfigError, CycleError, UnresolvedDependencyError
from .nodes.base import Node, ParseContext, TargetDescription
from .nodes.registry import NodeRegistry
from .target import TargetInfo

logger = logging.getLogger(__name__)


class _Mark(Enum):
    IN_PROGRESS = "in-progress"
    DONE = "done"


class BuildGraph:
    """Owns every node of a generation pass, indexed by :class:`TargetInfo`.

    Nodes are kept in declaration order. :meth:`resolve` performs a post-order
    depth-first walk in that order, so both the visiting order and every
    node's transitive dependency list are reproducible across runs.
    """

    def __init__(self, registry: NodeRegistry, context: ParseContext) -> None:
        self._registry = registry
        self._context = context
        self._nodes: Dict[TargetInfo, Node] = {}
        self._closures: Dict[TargetInfo, List[TargetInfo]] = {}
        self._order: List[TargetInfo] | None = None

    def __contains__(self, target: object) -> bool:
        return target in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, target: TargetInfo) -> Node:
        return self._nodes[target]

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def add(self, description: TargetDescription) -> Node:
        target = description.target
        if target in self._nodes:
            raise ConfigError("target is defined more than once", target=target)
        node = self._registry.create(description.kind, target, self._context)
        node.parse(description)
        logger.debug("parsed %s (%s) with %d dependencies", target, description.kind, len(node.dependencies))
        self._nodes[target] = node
        self._order = None
        return node

    def load(
        self,
        reader: BuildFileReader,
        roots: Iterable[TargetInfo] = (),
        *,
        packages: Iterable[str] = (),
    ) -> None:
        """Parse the packages holding *roots* and everything they reach."""

        loaded: set[str] = set()
        pending: Deque[Tuple[Optional[TargetInfo], TargetInfo]] = deque()

        def load_package(package: str, requester: Optional[TargetInfo], wanted: Optional[TargetInfo]) -> None:
            if package in loaded:
                return
            descriptions = reader.load_package(package)
            if descriptions is None:
                if requester is not None and wanted is not None:
                    raise UnresolvedDependencyError(requester, wanted, f"package '{package}' has no build file")
                raise ConfigError(f"package '{package or '.'}' has no build file")
            loaded.add(package)
            logger.info("loaded package '%s' (%d targets)", package or ".", len(descriptions))
            for description in descriptions:
                if description.target in self._nodes:
                    continue
                node = self.add(description)
                pending.extend((node.target, dependency) for dependency in node.dependencies)

        for package in packages:
            load_package(package, None, None)
        pending.extend((None, root) for root in roots)

        while pending:
            requester, target = pending.popleft()
            load_package(target.package_path, requester, target)
            if target not in self._nodes:
                if requester is None:
                    raise ConfigError("target is not defined in its package", target=target)
                raise UnresolvedDependencyError(requester, target)

    def resolve(self) -> List[Node]:
        """Return all nodes, each placed after its transitive dependencies."""

        marks: Dict[TargetInfo, _Mark] = {}
        path: List[TargetInfo] = []
        order: List[TargetInfo] = []
        closures: Dict[TargetInfo, List[TargetInfo]] = {}

        def visit(target: TargetInfo) -> None:
            node = self._nodes[target]
            mark = marks.get(target)
            if mark is _Mark.DONE:
                return
            if mark is _Mark.IN_PROGRESS:
                raise CycleError([*path[path.index(target):], target])

            marks[target] = _Mark.IN_PROGRESS
            path.append(target)
            closure: List[TargetInfo] = []
            seen: set[TargetInfo] = set()
            for dependency in node.dependencies:
                if dependency not in self._nodes:
                    raise UnresolvedDependencyError(target, dependency)
                visit(dependency)
                for item in (*closures[dependency], dependency):
                    if item not in seen:
                        seen.add(item)
                        closure.append(item)
            path.pop()
            marks[target] = _Mark.DONE
            closures[target] = closure
            order.append(target)

        for target in self._nodes:
            visit(target)

        self._closures = closures
        self._order = order
        return [self._nodes[target] for target in order]

    def dependencies_of(self, target: TargetInfo) -> List[Node]:
        """Transitive dependencies of *target*, dependencies before dependents."""

        if self._order is None:
            self.resolve()
        return [self._nodes[item] for item in self._closures[target]]


__all__ = ["BuildGraph"]
