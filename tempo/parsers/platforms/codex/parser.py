"""Read Codex CLI rollout transcripts for files patched in a repository.

Rollouts are JSONL files under ``~/.codex/sessions/YYYY/MM/DD/rollout-*.jsonl``.
Each line is ``{"timestamp", "type", "payload"}``. The working directory comes
from ``session_meta`` / ``turn_context`` payloads, and file writes from
``apply_patch`` envelopes passed either as a shell command or as a custom tool
call.
"""
from __future__ import annotations

import logging
import posixpath
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from tempo.date_utils import age_cutoff, parse_iso_ts, whole_seconds
from tempo.models import SessionInfo, Tool
from tempo.parsers.platforms.base import SessionReader, coerce_int, iter_jsonl, loads_maybe, recent_files
from tempo.path_utils import same_path, to_repo_path

logger = logging.getLogger("tempo.parsers.codex")

_PATCH_FILE_PATTERN = re.compile(r"^\*\*\* (?:Add File|Update File|Move to): (.+?)\s*$", re.MULTILINE)
_PATCH_TOOL = "apply_patch"
_SHELL_TOOLS = {"shell", "container.exec", "local_shell"}


def _patch_texts(payload: dict[str, Any]) -> list[str]:
    kind = payload.get("type")
    name = payload.get("name")
    if kind == "custom_tool_call" and name == _PATCH_TOOL:
        text = payload.get("input")
        return [text] if isinstance(text, str) else []
    if kind != "function_call":
        return []

    arguments = loads_maybe(payload.get("arguments"))
    if not isinstance(arguments, dict):
        return []
    if name == _PATCH_TOOL:
        text = arguments.get("input") or arguments.get("patch")
        return [text] if isinstance(text, str) else []
    if name in _SHELL_TOOLS:
        command = arguments.get("command")
        if isinstance(command, list) and _PATCH_TOOL in command:
            return [part for part in command if isinstance(part, str) and "*** Begin Patch" in part]
        if isinstance(command, str) and "*** Begin Patch" in command:
            return [command]
    return []


def patch_paths(patch: str) -> list[str]:
    return [match.group(1).strip() for match in _PATCH_FILE_PATTERN.finditer(patch)]


def _resolve(raw_path: str, cwd: str, repo_root: str) -> str:
    if not posixpath.isabs(raw_path) and cwd:
        raw_path = posixpath.join(cwd, raw_path)
    return to_repo_path(raw_path, repo_root)


def parse_rollout_file(path: Path, repo_root: str) -> SessionInfo | None:
    """Parse one rollout; ``None`` unless it ran in *repo_root* and patched files there."""
    info = SessionInfo(tool=Tool.CODEX)
    cwd = ""
    in_repo = False
    first_ts: datetime | None = None
    last_ts: datetime | None = None

    try:
        for entry in iter_jsonl(path):
            ts = parse_iso_ts(entry.get("timestamp"))
            if ts is not None:
                if first_ts is None or ts < first_ts:
                    first_ts = ts
                if last_ts is None or ts > last_ts:
                    last_ts = ts

            payload = entry.get("payload")
            if not isinstance(payload, dict):
                continue
            entry_type = entry.get("type")

            if entry_type in {"session_meta", "turn_context"}:
                entry_cwd = payload.get("cwd")
                if isinstance(entry_cwd, str) and entry_cwd:
                    cwd = entry_cwd
                    in_repo = in_repo or same_path(cwd, repo_root)
                model = payload.get("model")
                if isinstance(model, str) and model.strip():
                    info.model = model.strip()
            elif entry_type == "event_msg" and payload.get("type") == "token_count":
                usage = payload.get("info")
                if isinstance(usage, dict) and isinstance(usage.get("total_token_usage"), dict):
                    # Cumulative counter; the last value is the session total.
                    info.total_tokens = max(0, coerce_int(usage["total_token_usage"].get("total_tokens")))
            elif entry_type == "response_item":
                for patch in _patch_texts(payload):
                    for raw_path in patch_paths(patch):
                        rel_path = _resolve(raw_path, cwd, repo_root)
                        if rel_path:
                            info.files_written.add(rel_path)
    except OSError as exc:
        logger.debug("cannot read rollout %s: %s", path, exc)
        return None

    if not in_repo or not info.files_written:
        return None
    info.session_duration_sec = whole_seconds(first_ts, last_ts)
    return info


class CodexReader(SessionReader):
    tool = Tool.CODEX

    def __init__(self, sessions_dir: Path | None):
        self.sessions_dir = sessions_dir

    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        if self.sessions_dir is None or not self.sessions_dir.is_dir():
            return None
        cutoff = age_cutoff(max_age, now)
        merged = SessionInfo(tool=Tool.CODEX)
        for path, _ in recent_files(self.sessions_dir, "**/rollout-*.jsonl", cutoff):
            session = parse_rollout_file(path, repo_root)
            if session is None:
                continue
            merged.files_written.update(session.files_written)
            merged.total_tokens += session.total_tokens
            if session.model:
                merged.model = session.model
            merged.session_duration_sec = max(merged.session_duration_sec, session.session_duration_sec)
        return merged if merged.files_written else None
