"""In-memory Makefile emitter."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

from .errors import ConfigError

INSTALL_TARGET = "install"


@dataclass(slots=True)
class Rule:
    """One ``target: prerequisites`` entry followed by its recipe."""

    target: str
    prerequisites: List[str] = field(default_factory=list)
    commands: List[str] = field(default_factory=list)

    def add_prerequisite(self, prerequisite: str) -> None:
        if prerequisite not in self.prerequisites:
            self.prerequisites.append(prerequisite)

    def add_prerequisites(self, prerequisites: Iterable[str]) -> None:
        for prerequisite in prerequisites:
            self.add_prerequisite(prerequisite)

    def write_command(self, command: str) -> None:
        self.commands.append(command)

    def render(self) -> str:
        head = f"{self.target}:"
        if self.prerequisites:
            head = f"{head} {' '.join(self.prerequisites)}"
        lines = [head]
        lines.extend(f"\t{command}" for command in self.commands)
        return "\n".join(lines) + "\n"


class Makefile:
    """Ordered collection of rules plus the shared ``install`` rule."""

    def __init__(self, *, header: str | None = None) -> None:
        self._header = header
        self._heads: Dict[str, List[str]] = {}
        self._rules: List[Rule] = []
        self._targets: Dict[str, Rule] = {}
        self._phony: List[str] = []
        self.install_rule = Rule(INSTALL_TARGET)
        self.add_phony(INSTALL_TARGET)

    # --- head blocks ---

    def write_head(self, key: str, writer: Callable[[List[str]], None]) -> bool:
        """Call *writer* with a fresh line buffer unless *key* was already written."""

        if key in self._heads:
            return False
        lines: List[str] = []
        self._heads[key] = lines
        writer(lines)
        return True

    # --- rules ---

    def start_rule(self, target: str, prerequisites: Iterable[str] = ()) -> Rule:
        if target in self._targets or target == INSTALL_TARGET:
            raise ConfigError(f"Rule for '{target}' is defined more than once")
        rule = Rule(target)
        rule.add_prerequisites(prerequisites)
        self._rules.append(rule)
        self._targets[target] = rule
        return rule

    def add_phony(self, name: str) -> None:
        if name not in self._phony:
            self._phony.append(name)

    def rule(self, target: str) -> Rule:
        if target == INSTALL_TARGET:
            return self.install_rule
        return self._targets[target]

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    @property
    def phony_targets(self) -> List[str]:
        return list(self._phony)

    def dangling_prerequisites(self, sources: Iterable[str]) -> List[tuple[str, str]]:
        """Return ``(rule, prerequisite)`` pairs that nothing provides."""

        provided = set(self._targets)
        provided.update(self._phony)
        provided.update(sources)
        dangling: List[tuple[str, str]] = []
        for rule in [*self._rules, self.install_rule]:
            for prerequisite in rule.prerequisites:
                if prerequisite not in provided:
                    dangling.append((rule.target, prerequisite))
        return dangling

    # --- output ---

    def serialize(self) -> str:
        chunks: List[str] = []
        if self._header:
            chunks.append("".join(f"# {line}\n" if line else "#\n" for line in self._header.splitlines()))
        for lines in self._heads.values():
            if lines:
                chunks.append("\n".join(lines) + "\n")
        chunks.extend(rule.render() for rule in self._rules)
        chunks.append(self.install_rule.render())
        chunks.append(f".PHONY: {' '.join(self._phony)}\n")
        return "\n".join(chunks)


__all__ = ["INSTALL_TARGET", "Makefile", "Rule"]
