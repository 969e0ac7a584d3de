"""Read Claude Code JSONL transcripts for files written in a repository.

Transcripts live at ``~/.claude/projects/<flattened repo path>/<session>.jsonl``.
Only assistant entries matter: they carry the model, token usage and the
``tool_use`` blocks whose inputs name the files being edited.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from tempo.date_utils import age_cutoff, parse_iso_ts, whole_seconds
from tempo.models import SessionInfo, Tool
from tempo.parsers.platforms.base import SessionReader, coerce_int, iter_jsonl, recent_files
from tempo.path_utils import normalize_root, relativize

logger = logging.getLogger("tempo.parsers.claude_code")

_NON_ALNUM_PATTERN = re.compile(r"[^A-Za-z0-9]")

# Tools whose input.file_path is a file the assistant wrote.
_WRITE_TOOLS = {"Edit", "MultiEdit", "Write"}

_USAGE_KEYS = (
    "input_tokens",
    "output_tokens",
    "cache_creation_input_tokens",
    "cache_read_input_tokens",
)

# Sub-agent transcripts are named agent-<id>.jsonl.
_SUBAGENT_PREFIX = "agent-"


def project_tokens(repo_root: str) -> list[str]:
    """Directory names Claude Code may have used for *repo_root*.

    The plain form replaces path separators with ``-``; newer releases also
    replace every other non-alphanumeric character.
    """
    root = normalize_root(repo_root)
    plain = root.replace("/", "-")
    sanitized = _NON_ALNUM_PATTERN.sub("-", root)
    return [plain] if sanitized == plain else [plain, sanitized]


def _latest_recent(session_dir: Path, cutoff: datetime) -> tuple[datetime, Path] | None:
    best: tuple[datetime, Path] | None = None
    for path, mtime in recent_files(session_dir, "*.jsonl", cutoff):
        if path.name.startswith(_SUBAGENT_PREFIX):
            continue
        if best is None or mtime > best[0]:
            best = (mtime, path)
    return best


def find_latest_session(session_dir: Path, cutoff: datetime) -> Path | None:
    """Newest non-sub-agent transcript in *session_dir* not older than *cutoff*."""
    best = _latest_recent(session_dir, cutoff)
    return best[1] if best else None


def _usage_total(usage: Any) -> int:
    if not isinstance(usage, dict):
        return 0
    return sum(max(0, coerce_int(usage.get(key))) for key in _USAGE_KEYS)


def parse_session_file(path: Path, repo_root: str) -> SessionInfo | None:
    """Parse a single transcript; ``None`` if it wrote nothing under *repo_root*."""
    info = SessionInfo(tool=Tool.CLAUDE_CODE)
    first_ts: datetime | None = None
    last_ts: datetime | None = None

    try:
        for entry in iter_jsonl(path):
            if entry.get("type") != "assistant":
                continue

            ts = parse_iso_ts(entry.get("timestamp"))
            if ts is not None:
                if first_ts is None or ts < first_ts:
                    first_ts = ts
                if last_ts is None or ts > last_ts:
                    last_ts = ts

            message = entry.get("message")
            if not isinstance(message, dict):
                continue

            model = message.get("model")
            if isinstance(model, str) and model.strip():
                info.model = model.strip()

            # Session-level totals; a long session may span many commits.
            info.total_tokens += _usage_total(message.get("usage"))

            content = message.get("content")
            if not isinstance(content, list):
                continue
            for block in content:
                if not isinstance(block, dict) or block.get("type") != "tool_use":
                    continue
                if block.get("name") not in _WRITE_TOOLS:
                    continue
                tool_input = block.get("input")
                if not isinstance(tool_input, dict):
                    continue
                rel_path = relativize(str(tool_input.get("file_path") or ""), repo_root)
                if rel_path:
                    info.files_written.add(rel_path)
    except OSError as exc:
        logger.debug("cannot read transcript %s: %s", path, exc)
        return None

    if not info.files_written:
        return None

    info.session_duration_sec = whole_seconds(first_ts, last_ts)
    return info


class ClaudeCodeReader(SessionReader):
    tool = Tool.CLAUDE_CODE

    def __init__(self, projects_dirs: list[Path]):
        self.projects_dirs = list(projects_dirs)

    def session_dirs(self, repo_root: str) -> list[Path]:
        dirs: list[Path] = []
        for base in self.projects_dirs:
            for token in project_tokens(repo_root):
                candidate = base / token
                if candidate.is_dir() and candidate not in dirs:
                    dirs.append(candidate)
        return dirs

    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        cutoff = age_cutoff(max_age, now)
        latest: tuple[datetime, Path] | None = None
        for session_dir in self.session_dirs(repo_root):
            candidate = _latest_recent(session_dir, cutoff)
            if candidate is not None and (latest is None or candidate[0] > latest[0]):
                latest = candidate
        if latest is None:
            logger.debug("no recent Claude Code session for %s", repo_root)
            return None
        return parse_session_file(latest[1], repo_root)
