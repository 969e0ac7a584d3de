"""Read Aider's markdown chat history for files it was asked to edit."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path

from tempo.date_utils import age_cutoff, file_mtime, is_within_cutoff
from tempo.models import SessionInfo, Tool
from tempo.parsers.platforms.base import SessionReader

logger = logging.getLogger("tempo.parsers.aider")

HISTORY_FILENAME = ".aider.chat.history.md"
_HEADING_MARKER = "#### "


def parse_history_file(path: Path) -> SessionInfo | None:
    info = SessionInfo(tool=Tool.AIDER)
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                if not line.startswith(_HEADING_MARKER):
                    continue
                candidate = line[len(_HEADING_MARKER):].strip()
                if candidate and not any(ch.isspace() for ch in candidate):
                    info.files_written.add(candidate)
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return None
    return info if info.files_written else None


class AiderReader(SessionReader):
    tool = Tool.AIDER

    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        path = Path(repo_root) / HISTORY_FILENAME
        mtime = file_mtime(path)
        if mtime is None:
            return None
        if not is_within_cutoff(mtime, age_cutoff(max_age, now)):
            logger.debug("aider history %s is older than the session window", path)
            return None
        return parse_history_file(path)
