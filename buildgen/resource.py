"""File references and ordered, de-duplicated collections of them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List
import posixpath


class Language(str, Enum):
    NONE = "none"
    C = "c"
    CPP = "c++"


_SOURCE_SUFFIXES: Dict[str, Language] = {
    ".c": Language.C,
    ".cc": Language.CPP,
    ".cpp": Language.CPP,
    ".cxx": Language.CPP,
    ".C": Language.CPP,
}


def language_for_source(path: str) -> Language | None:
    """Return the language compiled for *path*, or ``None`` if unsupported."""
    _, suffix = posixpath.splitext(path)
    return _SOURCE_SUFFIXES.get(suffix)


@dataclass(frozen=True, slots=True, order=True)
class Resource:
    """A file reference relative to one of the workspace roots.

    ``root`` is a workspace-relative directory such as ``""`` for the source
    tree or ``.gen-obj`` for compiled objects; ``path`` is relative to it.
    """

    root: str
    path: str

    @classmethod
    def from_root_path(cls, root: str, path: str) -> "Resource":
        root = posixpath.normpath(root) if root else ""
        if root == ".":
            root = ""
        return cls(root=root, path=posixpath.normpath(path))

    @property
    def dirname(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def basename(self) -> str:
        return posixpath.basename(self.path)

    @property
    def full_path(self) -> str:
        if not self.root:
            return self.path
        return posixpath.join(self.root, self.path)

    def __str__(self) -> str:
        return self.full_path


class ResourceFileSet:
    """Insertion-ordered set of resources, each tagged with a language.

    Identity is the :class:`Resource` alone; adding a resource that is already
    present keeps its original position and tag.
    """

    def __init__(self, resources: Iterable[Resource] = (), language: Language = Language.NONE) -> None:
        self._entries: Dict[Resource, Language] = {}
        for resource in resources:
            self.add(resource, language)

    def add(self, resource: Resource, language: Language = Language.NONE) -> bool:
        if resource in self._entries:
            return False
        self._entries[resource] = language
        return True

    def update(self, other: "ResourceFileSet") -> None:
        for resource, language in other.items():
            self.add(resource, language)

    def items(self) -> Iterator[tuple[Resource, Language]]:
        return iter(self._entries.items())

    def language_of(self, resource: Resource) -> Language:
        return self._entries[resource]

    def files(self, language: Language | None = None) -> List[Resource]:
        if language is None:
            return list(self._entries)
        return [resource for resource, tag in self._entries.items() if tag is language]

    def languages(self) -> List[Language]:
        seen: List[Language] = []
        for tag in self._entries.values():
            if tag not in seen:
                seen.append(tag)
        return seen

    def paths(self) -> List[str]:
        return [resource.full_path for resource in self._entries]

    def __contains__(self, resource: object) -> bool:
        return resource in self._entries

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResourceFileSet({self.paths()!r})"


__all__ = ["Language", "Resource", "ResourceFileSet", "language_for_source"]
