"""Session reader registry for platform-specific implementations."""
from __future__ import annotations

from tempo.db.factory import get_store_query
from tempo.db.query import StoreQuery
from tempo.parsers.platforms.aider.parser import AiderReader
from tempo.parsers.platforms.base import SessionReader
from tempo.parsers.platforms.claude_code.parser import ClaudeCodeReader
from tempo.parsers.platforms.codex.parser import CodexReader
from tempo.parsers.platforms.copilot.parser import CopilotReader
from tempo.parsers.platforms.cursor.parser import CursorReader
from tempo.storage_paths import StoragePaths, resolve_storage_paths


def default_readers(
    paths: StoragePaths | None = None,
    store: StoreQuery | None = None,
) -> list[SessionReader]:
    """Build one reader per supported tool.

    Supporting another tool means adding its reader here; the pipeline
    iterates whatever this returns.
    """
    resolved = paths if paths is not None else resolve_storage_paths()
    return [
        ClaudeCodeReader(resolved.claude_projects_dirs),
        AiderReader(),
        CodexReader(resolved.codex_sessions_dir),
        CopilotReader(resolved.vscode_workspace_dirs),
        CursorReader(resolved.cursor_workspace_dirs, resolved.cursor_global_db, store or get_store_query()),
    ]
