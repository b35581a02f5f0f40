"""Materialize source trees that live outside the workspace.

Reads go through pygit2; clone and checkout go through the git CLI so user
configuration (credentials, proxies, hooks) is respected.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional
import hashlib
import logging
import re

import pygit2

from .command_runner import CommandRunner, SubprocessCommandRunner
from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class DistSource:
    """Interface: turn an identifier into a local directory."""

    def fetch(self, identifier: str) -> Path:
        raise NotImplementedError


class LocalDistSource(DistSource):
    """Resolves identifiers as directories below *base_dir*."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    def fetch(self, identifier: str) -> Path:
        path = Path(identifier)
        if not path.is_absolute():
            path = self._base_dir / path
        if not path.is_dir():
            raise SourceUnavailable(identifier, f"directory {path} does not exist")
        return path


def split_identifier(identifier: str) -> tuple[str, str | None]:
    """Split ``url#revision`` into its parts."""

    url, sep, revision = identifier.partition("#")
    url = url.strip()
    revision = revision.strip() if sep else ""
    return url, revision or None


def checkout_name(url: str) -> str:
    """Stable directory name for the checkout of *url*."""

    stem = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if stem.endswith(".git"):
        stem = stem[:-4]
    stem = _UNSAFE_CHARS.sub("_", stem) or "source"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:10]
    return f"{stem}-{digest}"


class GitDistSource(DistSource):
    """Clones git repositories into *base_dir*, one directory per URL.

    Identifiers take the form ``<url>`` or ``<url>#<revision>``. Existing
    checkouts are reused; results are memoized for the lifetime of the
    instance so a URL is fetched at most once per generation pass.
    """

    def __init__(self, base_dir: Path, runner: Optional[CommandRunner] = None) -> None:
        self._base_dir = base_dir
        self._runner = runner or SubprocessCommandRunner()
        self._fetched: Dict[str, Path] = {}

    def fetch(self, identifier: str) -> Path:
        if identifier in self._fetched:
            return self._fetched[identifier]

        url, revision = split_identifier(identifier)
        if not url:
            raise SourceUnavailable(identifier, "no repository URL given")
        destination = self._base_dir / checkout_name(url)

        if destination.exists():
            logger.debug("reusing checkout of %s at %s", url, destination)
            repo = self._open(identifier, destination)
        else:
            logger.info("cloning %s into %s", url, destination)
            self._base_dir.mkdir(parents=True, exist_ok=True)
            result = self._runner.run(["git", "clone", "--quiet", url, str(destination)], check=False)
            if result.returncode != 0:
                raise SourceUnavailable(identifier, result.stderr.strip() or f"git clone exited with {result.returncode}")
            repo = self._open(identifier, destination)

        if revision:
            self._ensure_revision(identifier, repo, destination, revision)

        self._fetched[identifier] = destination
        return destination

    @staticmethod
    def _open(identifier: str, path: Path) -> pygit2.Repository:
        try:
            return pygit2.Repository(str(path))
        except pygit2.GitError as exc:
            raise SourceUnavailable(identifier, f"{path} is not a git repository: {exc}") from exc

    @staticmethod
    def _resolve(repo: pygit2.Repository, revision: str) -> str | None:
        try:
            commit = repo.revparse_single(revision).peel(pygit2.Commit)
        except (KeyError, ValueError, pygit2.GitError):
            return None
        return str(commit.id)

    def _head(self, repo: pygit2.Repository) -> str | None:
        if repo.head_is_unborn:
            return None
        return str(repo.head.target)

    def _ensure_revision(self, identifier: str, repo: pygit2.Repository, path: Path, revision: str) -> None:
        wanted = self._resolve(repo, revision)
        if wanted is None:
            logger.info("revision %s not present in %s; fetching", revision, path)
            self._runner.run(["git", "fetch", "--quiet", "origin"], cwd=path, check=False)
            repo = self._open(identifier, path)
            wanted = self._resolve(repo, revision)
            if wanted is None:
                raise SourceUnavailable(identifier, f"revision '{revision}' not found")

        if self._head(repo) == wanted:
            return

        result = self._runner.run(["git", "checkout", "--quiet", "--detach", wanted], cwd=path, check=False)
        if result.returncode != 0:
            raise SourceUnavailable(identifier, result.stderr.strip() or f"unable to check out '{revision}'")


__all__ = ["DistSource", "GitDistSource", "LocalDistSource", "checkout_name", "split_identifier"]
