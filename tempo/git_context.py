"""Resolve what the HEAD commit changed and who made it."""
from __future__ import annotations

import logging
import re
import subprocess
from typing import Protocol

from pydantic import BaseModel, Field

from tempo import config
from tempo.errors import CommitContextError, GitCommandError

logger = logging.getLogger("tempo.git")

DIFF_PARENT_ARGS = ("diff", "--name-only", "-z", "HEAD~1", "HEAD")
# --root diffs a parentless commit against the empty tree, whatever the object format.
DIFF_ROOT_ARGS = ("diff-tree", "--root", "--no-commit-id", "--name-only", "-r", "-z", "HEAD")

_SCP_REMOTE_PATTERN = re.compile(r"^(?:[^@/\s]+@)?[^:/\s]+:(?!//)(.+)$")


class GitRunner(Protocol):
    def __call__(self, repo_root: str, *args: str) -> str: ...


def run_git(repo_root: str, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", "-C", str(repo_root), *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=config.GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise GitCommandError(args, str(exc)) from exc
    if result.returncode != 0:
        raise GitCommandError(args, result.stderr.strip())
    return result.stdout


class CommitContext(BaseModel):
    repo_root: str
    files: list[str] = Field(default_factory=list)
    sha: str = ""
    author_email: str = ""
    message: str = ""
    repo_slug: str = ""


def parse_remote_url(remote: str) -> str:
    """Reduce an origin URL to ``owner/repo``.

    Handles ``git@host:owner/repo.git``, ``ssh://git@host/owner/repo``
    and HTTP(S) URLs with or without embedded credentials.
    """
    value = (remote or "").strip()
    if not value:
        return ""

    if "://" in value:
        rest = value.split("://", 1)[1]
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
        parts = rest.split("/", 1)
        if len(parts) < 2:
            return ""
        path = parts[1]
    else:
        match = _SCP_REMOTE_PATTERN.match(value)
        if not match:
            return ""
        path = match.group(1)

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return path.strip("/")


def _split_paths(output: str) -> list[str]:
    """Split NUL-terminated ``-z`` output; paths come back verbatim, never C-quoted."""
    return [path for path in output.split("\0") if path.strip()]


def committed_files(repo_root: str, runner: GitRunner = run_git) -> list[str]:
    try:
        output = runner(repo_root, *DIFF_PARENT_ARGS)
    except GitCommandError:
        # Root commit or shallow clone: HEAD~1 does not exist.
        logger.debug("HEAD~1 unavailable in %s, diffing HEAD against the empty tree", repo_root)
        try:
            output = runner(repo_root, *DIFF_ROOT_ARGS)
        except GitCommandError as exc:
            raise CommitContextError(f"cannot list committed files in {repo_root}: {exc}") from exc
    return _split_paths(output)


def _optional(runner: GitRunner, repo_root: str, *args: str) -> str:
    try:
        return runner(repo_root, *args).strip()
    except GitCommandError as exc:
        logger.debug("optional git lookup failed: %s", exc)
        return ""


def resolve_commit_context(repo_root: str, runner: GitRunner = run_git) -> CommitContext:
    files = committed_files(repo_root, runner)
    if not files:
        return CommitContext(repo_root=repo_root)
    return CommitContext(
        repo_root=repo_root,
        files=files,
        sha=_optional(runner, repo_root, "rev-parse", "HEAD"),
        author_email=_optional(runner, repo_root, "log", "-1", "--format=%ae"),
        message=_optional(runner, repo_root, "log", "-1", "--format=%B"),
        repo_slug=parse_remote_url(_optional(runner, repo_root, "remote", "get-url", "origin")),
    )


def repo_root_for(path: str, runner: GitRunner = run_git) -> str:
    try:
        return runner(path, "rev-parse", "--show-toplevel").strip()
    except GitCommandError as exc:
        raise CommitContextError(f"not a git repository: {path}") from exc
