"""Per-OS resolution of the base directories each tool keeps local state in.

Readers never branch on the platform themselves; they receive a resolved
``StoragePaths`` and only look where it points.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

# VS Code install channels sharing the chatSessions schema.
VSCODE_CHANNELS = ("Code", "Code - Insiders")


class StoragePaths(BaseModel):
    claude_projects_dirs: list[Path] = Field(default_factory=list)
    codex_sessions_dir: Optional[Path] = None
    cursor_workspace_dirs: list[Path] = Field(default_factory=list)
    cursor_global_db: Optional[Path] = None
    vscode_workspace_dirs: list[Path] = Field(default_factory=list)


def _user_data_root(home: Path, platform: str, environ: Mapping[str, str]) -> Path | None:
    if platform == "darwin":
        return home / "Library" / "Application Support"
    if platform.startswith("linux"):
        xdg = environ.get("XDG_CONFIG_HOME", "").strip()
        return Path(xdg) if xdg else home / ".config"
    if platform.startswith("win"):
        appdata = environ.get("APPDATA", "").strip()
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    return None


def resolve_storage_paths(
    home: Path | None = None,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> StoragePaths:
    env = os.environ if environ is None else environ
    home_dir = home or Path.home()
    plat = platform or sys.platform

    claude_root = env.get("CLAUDE_CONFIG_DIR", "").strip()
    claude_dirs = [Path(claude_root) / "projects"] if claude_root else []
    claude_dirs.append(home_dir / ".claude" / "projects")

    codex_root = env.get("CODEX_HOME", "").strip()
    codex_sessions = (Path(codex_root) if codex_root else home_dir / ".codex") / "sessions"

    paths = StoragePaths(
        claude_projects_dirs=claude_dirs,
        codex_sessions_dir=codex_sessions,
    )

    data_root = _user_data_root(home_dir, plat, env)
    if data_root is None:
        return paths

    cursor_user = data_root / "Cursor" / "User"
    paths.cursor_workspace_dirs = [cursor_user / "workspaceStorage"]
    paths.cursor_global_db = cursor_user / "globalStorage" / "state.vscdb"
    paths.vscode_workspace_dirs = [data_root / channel / "User" / "workspaceStorage" for channel in VSCODE_CHANNELS]
    return paths
