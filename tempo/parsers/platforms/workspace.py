"""Locate VS Code-family per-workspace storage dirs for a repository.

Editors built on VS Code keep one ``workspaceStorage/<hash>/`` dir per opened
folder, with a ``workspace.json`` descriptor like
``{"folder": "file:///path/to/repo"}``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from tempo.parsers.platforms.base import load_json_dict
from tempo.path_utils import same_path, uri_to_path

logger = logging.getLogger("tempo.parsers.workspace")


def find_workspace_dirs(base_dirs: Iterable[Path], repo_root: str) -> list[Path]:
    """Every workspace storage dir, across *base_dirs*, whose folder is *repo_root*."""
    matches: list[Path] = []
    for base_dir in base_dirs:
        try:
            entries = sorted(base_dir.iterdir())
        except OSError:
            continue
        for entry in entries:
            if not entry.is_dir():
                continue
            descriptor = load_json_dict(entry / "workspace.json")
            if not descriptor:
                continue
            folder = descriptor.get("folder")
            if isinstance(folder, str) and same_path(uri_to_path(folder), repo_root):
                matches.append(entry)
    if not matches:
        logger.debug("no workspace storage matches %s", repo_root)
    return matches


def find_workspace_dir(base_dirs: Iterable[Path], repo_root: str) -> Path | None:
    matches = find_workspace_dirs(base_dirs, repo_root)
    return matches[0] if matches else None
