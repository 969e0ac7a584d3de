"""Common contract for per-tool session readers."""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterator

from tempo.date_utils import file_mtime, is_within_cutoff
from tempo.models import SessionInfo, Tool


class SessionReader(ABC):
    """Answers "did this tool write files in this repo recently?".

    ``read`` returns ``None`` for every kind of absence: tool not installed,
    no recent session, no matching workspace, or an unreadable artifact.
    """

    tool: Tool

    @abstractmethod
    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        raise NotImplementedError


def recent_files(directory: Path, pattern: str, cutoff: datetime) -> list[tuple[Path, datetime]]:
    """Files matching *pattern* modified at or after *cutoff*, sorted by name."""
    try:
        candidates = sorted(path for path in directory.glob(pattern) if path.is_file())
    except OSError:
        return []
    recent: list[tuple[Path, datetime]] = []
    for path in candidates:
        mtime = file_mtime(path)
        if mtime is not None and is_within_cutoff(mtime, cutoff):
            recent.append((path, mtime))
    return recent


def load_json_dict(path: Path) -> dict[str, Any] | None:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return raw if isinstance(raw, dict) else None


def loads_maybe(value: Any) -> Any:
    """Decode a JSON-encoded string field; non-strings pass through unchanged."""
    if not isinstance(value, str):
        return value
    if not value.strip():
        return None
    try:
        return json.loads(value)
    except ValueError:
        return None


def iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    """Yield JSON objects line by line, skipping blank and unparsable lines."""
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(entry, dict):
                yield entry


def coerce_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
