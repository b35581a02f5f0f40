"""Command execution used by the source fetchers."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Sequence
import logging
import os
import shlex
import subprocess

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str


class CommandError(RuntimeError):
    """Raised when a command fails."""

    def __init__(self, result: CommandResult):
        message = (
            f"Command failed with exit code {result.returncode}: {format_command(result.command)}\n"
            f"stderr: {result.stderr.strip()}"
        )
        super().__init__(message)
        self.result = result


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in command)


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        merged_env: Dict[str, str] | None = None
        if env is not None:
            merged_env = os.environ.copy()
            merged_env.update(env)
        logger.debug("running %s (cwd=%s)", format_command(command), cwd or os.getcwd())
        try:
            process = subprocess.run(
                list(command),
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            result = CommandResult(command=command, returncode=127, stdout="", stderr=str(exc))
        else:
            result = CommandResult(
                command=command,
                returncode=process.returncode,
                stdout=process.stdout,
                stderr=process.stderr,
            )
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    env: Dict[str, str] = field(default_factory=dict)


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    An optional *on_run* hook may simulate side effects (for example creating
    the directory a ``git clone`` would have produced) and return a custom
    :class:`CommandResult`.
    """

    def __init__(self, on_run: Callable[[RecordedCommand], CommandResult | None] | None = None) -> None:
        self.commands: List[RecordedCommand] = []
        self._on_run = on_run

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        record = RecordedCommand(command=list(command), cwd=str(cwd) if cwd else None, env=dict(env or {}))
        self.commands.append(record)
        result = self._on_run(record) if self._on_run else None
        if result is None:
            result = CommandResult(command=command, returncode=0, stdout="", stderr="")
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
