"""Read GitHub Copilot agent-mode chat sessions from VS Code workspace storage.

Sessions are ``workspaceStorage/<hash>/chatSessions/<uuid>.json``. Agent edits
appear as response parts like::

    {"kind": "textEditGroup", "uri": {"path": "/abs/path/to/file"}, "edits": [...]}
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from tempo.date_utils import age_cutoff, coerce_epoch_ms
from tempo.models import SessionInfo, Tool
from tempo.parsers.platforms.base import SessionReader, load_json_dict, recent_files
from tempo.parsers.platforms.workspace import find_workspace_dirs
from tempo.path_utils import relativize

logger = logging.getLogger("tempo.parsers.copilot")

CHAT_SESSIONS_DIRNAME = "chatSessions"
_EDIT_GROUP_KIND = "textEditGroup"


def _selected_model(session: dict[str, Any]) -> str:
    selected = session.get("selectedModel")
    if not isinstance(selected, dict):
        return ""
    metadata = selected.get("metadata")
    if isinstance(metadata, dict):
        family = metadata.get("family")
        if isinstance(family, str) and family.strip():
            return family.strip()
    identifier = selected.get("identifier")
    if isinstance(identifier, str) and identifier.strip():
        return identifier.strip()
    return ""


def parse_session_data(session: dict[str, Any], repo_root: str) -> SessionInfo | None:
    info = SessionInfo(tool=Tool.COPILOT, model=_selected_model(session))
    first_ms = 0
    last_ms = 0

    requests = session.get("requests")
    if not isinstance(requests, list):
        return None

    for request in requests:
        if not isinstance(request, dict):
            continue
        ts = coerce_epoch_ms(request.get("timestamp"))
        if ts > 0:
            if first_ms == 0 or ts < first_ms:
                first_ms = ts
            if ts > last_ms:
                last_ms = ts

        model_id = request.get("modelId")
        if not info.model and isinstance(model_id, str) and model_id.strip():
            info.model = model_id.strip()

        response = request.get("response")
        if not isinstance(response, list):
            continue
        for part in response:
            if not isinstance(part, dict) or part.get("kind") != _EDIT_GROUP_KIND:
                continue
            uri = part.get("uri")
            if not isinstance(uri, dict):
                continue
            rel_path = relativize(str(uri.get("path") or ""), repo_root)
            if rel_path:
                info.files_written.add(rel_path)

    if not info.files_written:
        return None
    if first_ms > 0 and last_ms > first_ms:
        info.session_duration_sec = (last_ms - first_ms) // 1000
    return info


def parse_session_file(path: Path, repo_root: str) -> SessionInfo | None:
    session = load_json_dict(path)
    if session is None:
        logger.debug("skipping unreadable chat session %s", path)
        return None
    return parse_session_data(session, repo_root)


def merge_sessions(sessions: list[SessionInfo]) -> SessionInfo | None:
    """Union the files; the last non-empty model and the longest duration win."""
    merged = SessionInfo(tool=Tool.COPILOT)
    for session in sessions:
        merged.files_written.update(session.files_written)
        if session.model:
            merged.model = session.model
        if session.session_duration_sec > merged.session_duration_sec:
            merged.session_duration_sec = session.session_duration_sec
    return merged if merged.files_written else None


class CopilotReader(SessionReader):
    tool = Tool.COPILOT

    def __init__(self, workspace_dirs: list[Path]):
        self.workspace_dirs = list(workspace_dirs)

    def session_files(self, repo_root: str, max_age: timedelta, now: datetime | None = None) -> list[Path]:
        cutoff = age_cutoff(max_age, now)
        files: list[Path] = []
        for workspace_dir in find_workspace_dirs(self.workspace_dirs, repo_root):
            chat_dir = workspace_dir / CHAT_SESSIONS_DIRNAME
            files.extend(path for path, _ in recent_files(chat_dir, "*.json", cutoff))
        return files

    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        parsed: list[SessionInfo] = []
        for path in self.session_files(repo_root, max_age, now):
            session = parse_session_file(path, repo_root)
            if session is not None:
                parsed.append(session)
        return merge_sessions(parsed)
