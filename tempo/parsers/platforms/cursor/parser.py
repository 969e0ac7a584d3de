"""Read Cursor Agent/Composer sessions out of its SQLite state stores.

Storage layout:

- Workspace store: ``workspaceStorage/<hash>/state.vscdb``, table ``ItemTable``,
  key ``composer.composerData`` holds the session index (composer ids with
  ``createdAt`` / ``lastUpdatedAt`` epoch-ms timestamps).
- Global store: ``globalStorage/state.vscdb``, table ``cursorDiskKV``.
  ``composerData:<composerId>`` holds session metadata (model, usage) and
  ``bubbleId:<composerId>:<bubbleId>`` holds one message each; file edits show
  up in a bubble's ``toolFormerData``.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from tempo.date_utils import age_cutoff, coerce_epoch_ms
from tempo.db.query import StoreQuery, text_value
from tempo.errors import StoreQueryError
from tempo.models import SessionInfo, Tool
from tempo.parsers.platforms.base import SessionReader, coerce_int, loads_maybe
from tempo.parsers.platforms.workspace import find_workspace_dir
from tempo.path_utils import to_repo_path

logger = logging.getLogger("tempo.parsers.cursor")

STORE_FILENAME = "state.vscdb"
COMPOSER_INDEX_KEY = "composer.composerData"
KV_TABLE = "cursorDiskKV"

# Tool names that write or edit files.
WRITE_TOOLS = ("edit_file", "search_replace", "create_file", "write_file", "write")

_INDEX_QUERY = "SELECT value FROM ItemTable WHERE key = ?"
_TABLE_QUERY = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"
_METADATA_QUERY = f"SELECT value FROM {KV_TABLE} WHERE key = ?"
# Half-open key range instead of LIKE 'bubbleId:<id>:%' so the key index is used;
# ';' is the character right after ':'.
_BUBBLE_QUERY = (
    f"SELECT value FROM {KV_TABLE} WHERE key >= ? AND key < ? AND ("
    + " OR ".join("value LIKE ?" for _ in WRITE_TOOLS)
    + ")"
)


class ComposerHead(BaseModel):
    composer_id: str
    created_at: int = 0
    last_updated_at: int = 0


def parse_composer_index(raw: str) -> list[ComposerHead]:
    """Decode the session index, either ``{"allComposers": [...]}`` or a bare list."""
    data = loads_maybe(raw)
    if isinstance(data, dict):
        entries = data.get("allComposers")
    else:
        entries = data
    if not isinstance(entries, list):
        return []

    heads: list[ComposerHead] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        composer_id = entry.get("composerId")
        if not isinstance(composer_id, str) or not composer_id:
            continue
        heads.append(
            ComposerHead(
                composer_id=composer_id,
                created_at=coerce_epoch_ms(entry.get("createdAt")),
                last_updated_at=coerce_epoch_ms(entry.get("lastUpdatedAt")),
            )
        )
    return heads


def recent_composers(heads: list[ComposerHead], cutoff_ms: int) -> list[ComposerHead]:
    return [head for head in heads if head.last_updated_at >= cutoff_ms]


def bubble_query_params(composer_id: str) -> tuple[str, ...]:
    return (
        f"bubbleId:{composer_id}:",
        f"bubbleId:{composer_id};",
        *(f'%"{name}"%' for name in WRITE_TOOLS),
    )


def is_kept_tool_call(tool_former: dict[str, Any]) -> bool:
    """Completed write-tool calls the user did not reject.

    A missing ``userDecision`` counts as accepted: older Cursor builds never
    wrote the field. This is a product policy, not a correctness guarantee.
    """
    if tool_former.get("name") not in WRITE_TOOLS:
        return False
    if tool_former.get("status") != "completed":
        return False
    return tool_former.get("userDecision") != "rejected"


def extract_file_path(tool_former: dict[str, Any]) -> str:
    params = loads_maybe(tool_former.get("params"))
    if isinstance(params, dict):
        value = params.get("relativeWorkspacePath")
        if isinstance(value, str) and value.strip():
            return value.strip()

    raw_args = loads_maybe(tool_former.get("rawArgs"))
    if isinstance(raw_args, dict):
        for key in ("target_file", "file_path"):
            value = raw_args.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def bubble_token_total(bubble: dict[str, Any]) -> int:
    counts = bubble.get("tokenCount")
    if not isinstance(counts, dict):
        return 0
    return max(0, coerce_int(counts.get("inputTokens"))) + max(0, coerce_int(counts.get("outputTokens")))


def model_from_composer_data(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    usage = data.get("usageData")
    if isinstance(usage, dict):
        for model in usage:
            if isinstance(model, str) and model.strip():
                return model.strip()
    model_config = data.get("modelConfig")
    if isinstance(model_config, dict):
        name = model_config.get("modelName")
        if isinstance(name, str) and name.strip() and name.strip() != "default":
            return name.strip()
    return ""


def session_duration_sec(heads: list[ComposerHead]) -> int:
    earliest = min((head.created_at for head in heads if head.created_at > 0), default=0)
    latest = max((head.last_updated_at for head in heads), default=0)
    if earliest > 0 and latest > earliest:
        return (latest - earliest) // 1000
    return 0


class CursorReader(SessionReader):
    tool = Tool.CURSOR

    def __init__(self, workspace_dirs: list[Path], global_db: Path | None, store: StoreQuery):
        self.workspace_dirs = list(workspace_dirs)
        self.global_db = global_db
        self.store = store

    async def _values(self, db_path: Path, statement: str, params: tuple[Any, ...]) -> list[str]:
        rows = await self.store.query(db_path, statement, params)
        return [text_value(row.get("value")) for row in rows if "value" in row]

    async def find_composers(self, workspace_db: Path, cutoff_ms: int) -> list[ComposerHead]:
        if not workspace_db.is_file():
            return []
        values = await self._values(workspace_db, _INDEX_QUERY, (COMPOSER_INDEX_KEY,))
        if not values:
            return []
        return recent_composers(parse_composer_index(values[0]), cutoff_ms)

    async def has_kv_table(self, db_path: Path) -> bool:
        rows = await self.store.query(db_path, _TABLE_QUERY, (KV_TABLE,))
        return bool(rows)

    async def collect_edits(self, global_db: Path, composer_ids: list[str], repo_root: str) -> SessionInfo:
        info = SessionInfo(tool=Tool.CURSOR)
        for composer_id in composer_ids:
            try:
                values = await self._values(global_db, _BUBBLE_QUERY, bubble_query_params(composer_id))
            except StoreQueryError as exc:
                logger.debug("bubble query for composer %s failed: %s", composer_id, exc)
                continue
            for value in values:
                bubble = loads_maybe(value)
                if not isinstance(bubble, dict):
                    continue
                tool_former = bubble.get("toolFormerData")
                if not isinstance(tool_former, dict) or not is_kept_tool_call(tool_former):
                    continue
                info.total_tokens += bubble_token_total(bubble)
                rel_path = to_repo_path(extract_file_path(tool_former), repo_root)
                if rel_path:
                    info.files_written.add(rel_path)
        return info

    async def composer_model(self, global_db: Path, composer_id: str) -> str:
        try:
            values = await self._values(global_db, _METADATA_QUERY, (f"composerData:{composer_id}",))
        except StoreQueryError as exc:
            logger.debug("composer metadata lookup failed: %s", exc)
            return ""
        if not values:
            return ""
        return model_from_composer_data(loads_maybe(values[0]))

    async def read(
        self,
        repo_root: str,
        max_age: timedelta,
        *,
        now: datetime | None = None,
    ) -> SessionInfo | None:
        if not self.store.available():
            logger.debug("no sqlite access (%s backend), skipping Cursor", self.store.name)
            return None
        if self.global_db is None:
            return None

        workspace_dir = find_workspace_dir(self.workspace_dirs, repo_root)
        if workspace_dir is None:
            return None

        cutoff_ms = int(age_cutoff(max_age, now).timestamp() * 1000)
        try:
            composers = await self.find_composers(workspace_dir / STORE_FILENAME, cutoff_ms)
            if not composers or not self.global_db.is_file():
                return None
            if not await self.has_kv_table(self.global_db):
                return None
        except StoreQueryError as exc:
            logger.debug("Cursor store unreadable: %s", exc)
            return None

        info = await self.collect_edits(
            self.global_db, [head.composer_id for head in composers], repo_root
        )
        if not info.files_written:
            return None

        latest = max(composers, key=lambda head: head.last_updated_at)
        info.model = await self.composer_model(self.global_db, latest.composer_id)
        info.session_duration_sec = session_duration_sec(composers)
        return info
