from __future__ import annotations

import logging
import re
import shlex
from typing import List, Optional, Tuple, Union

from pixel.constants import (
    CODEX_REMOTE,
    CODEX_REPO,
    CODEX_TAG_PATTERN,
    LATEST_RELEASE_BRANCH,
    MAIN_BRANCH,
    MEDIAWIKI_REMOTE,
    RELEASE_BRANCH_PATTERN,
)
from pixel.errors import BranchResolutionError
from pixel.schemas import CommandOptions
from pixel.services.process import ProcessRunner

LOGGER = logging.getLogger("pixel.branches")

_VERSION_CHUNK = re.compile(r"(\d+)")


def _version_key(ref: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    parts = []
    for chunk in _VERSION_CHUNK.split(ref):
        if not chunk:
            continue
        parts.append((0, int(chunk)) if chunk.isdigit() else (1, chunk))
    return tuple(parts)


def _short_name(ref: str) -> str:
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


class GitRemoteRefs:
    """List refs of a remote repository with ``git ls-remote``."""

    def __init__(self, runner: ProcessRunner) -> None:
        self._runner = runner

    def list(self, url: str, pattern: str, tags: bool = False) -> List[str]:
        kind = "-t" if tags else "-h"
        command = " ".join(
            ["git", "ls-remote", kind, "--sort=-version:refname", shlex.quote(url), shlex.quote(pattern)]
        )
        result = self._runner.exec_shell(command)
        refs = []
        for line in result.stdout.splitlines():
            fields = line.split()
            if not fields:
                continue
            ref = fields[-1]
            if ref.endswith("^{}"):
                continue
            refs.append(ref)
        return refs


def latest_ref(refs: List[str]) -> str:
    """Highest ref by version order, without its ``refs/...`` prefix."""
    if not refs:
        raise BranchResolutionError("Remote repository returned no matching refs")
    return _short_name(sorted(refs, key=_version_key, reverse=True)[0])


def describe(opts: CommandOptions) -> str:
    description = ""
    if opts.change_id:
        description += f" (Includes {', '.join(opts.change_id)})"
    if opts.repo_branch:
        description += f" (with custom branches: {','.join(opts.repo_branch)})"
    return description


class BranchResolver:
    def __init__(self, runner: ProcessRunner, refs: Optional[GitRemoteRefs] = None) -> None:
        self._refs = refs or GitRemoteRefs(runner)

    def latest_release_branch(self) -> str:
        refs = self._refs.list(MEDIAWIKI_REMOTE, RELEASE_BRANCH_PATTERN)
        return f"origin/{latest_ref(refs)}"

    def latest_codex_version(self) -> str:
        return latest_ref(self._refs.list(CODEX_REMOTE, CODEX_TAG_PATTERN, tags=True))

    def resolve(self, opts: CommandOptions) -> str:
        """Return the identifier under test.

        ``latest-release`` rewrites ``opts.branch`` and appends the matching
        Codex tag to ``opts.repo_branch``.
        """
        if opts.branch == LATEST_RELEASE_BRANCH:
            opts.branch = self.latest_release_branch()
            codex = self.latest_codex_version()
            opts.repo_branch = [*opts.repo_branch, f"{CODEX_REPO}:{codex}"]
            LOGGER.info('Using latest release branch "%s" with Codex %s', opts.branch, codex)
            return opts.branch
        if opts.branch != MAIN_BRANCH:
            return opts.branch
        if opts.change_id:
            return opts.change_id[0]
        return MAIN_BRANCH
