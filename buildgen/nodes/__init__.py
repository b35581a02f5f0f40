"""Target kinds and the registry that constructs them."""
from __future__ import annotations

from .autoconf import AutoconfNode
from .base import Node, ParseContext, TargetDescription
from .cc_binary import CCBinaryNode
from .cc_library import CCLibraryNode
from .cc_shared_library import CCSharedLibraryNode
from .registry import NodeRegistry, default_registry

__all__ = [
    "AutoconfNode",
    "CCBinaryNode",
    "CCLibraryNode",
    "CCSharedLibraryNode",
    "Node",
    "NodeRegistry",
    "ParseContext",
    "TargetDescription",
    "default_registry",
]
