"""Lookup table from target kind to node class."""
from __future__ import annotations

from typing import Callable, Dict, List

from ..errors import ConfigError
from ..target import TargetInfo
from .autoconf import AutoconfNode
from .base import Node, ParseContext
from .cc_binary import CCBinaryNode
from .cc_library import CCLibraryNode
from .cc_shared_library import CCSharedLibraryNode

NodeFactory = Callable[[TargetInfo, ParseContext], Node]


class NodeRegistry:
    """Maps kind strings to node constructors.

    Registered factories are usually node classes; ``write_make_head`` is
    looked up on the factory when present.
    """

    def __init__(self) -> None:
        self._factories: Dict[str, NodeFactory] = {}

    def register(self, kind: str, factory: NodeFactory) -> None:
        if not kind:
            raise ValueError("Node kind cannot be empty")
        if kind in self._factories:
            raise ValueError(f"Node kind '{kind}' is already registered")
        self._factories[kind] = factory

    def kinds(self) -> List[str]:
        return list(self._factories)

    def __contains__(self, kind: str) -> bool:
        return kind in self._factories

    def factory(self, kind: str, *, target: TargetInfo | None = None) -> NodeFactory:
        factory = self._factories.get(kind)
        if factory is None:
            available = ", ".join(self._factories) or "<none>"
            raise ConfigError(f"unknown target kind '{kind}'. Available kinds: {available}", target=target, attribute="kind")
        return factory

    def create(self, kind: str, target: TargetInfo, context: ParseContext) -> Node:
        return self.factory(kind, target=target)(target, context)


def default_registry() -> NodeRegistry:
    registry = NodeRegistry()
    for node_class in (CCLibraryNode, CCBinaryNode, CCSharedLibraryNode, AutoconfNode):
        registry.register(node_class.kind, node_class)
    return registry


__all__ = ["NodeFactory", "NodeRegistry", "default_registry"]
