"""Path normalization shared by the session readers."""
from __future__ import annotations

import os
import posixpath
from urllib.parse import unquote, urlparse


def normalize_root(repo_root: str) -> str:
    root = os.path.normpath(str(repo_root))
    return root.replace(os.sep, "/") if os.sep != "/" else root


def relativize(raw_path: str, repo_root: str) -> str:
    """Return *raw_path* relative to *repo_root*, or "" if it lies outside it."""
    if not raw_path:
        return ""
    path = posixpath.normpath(str(raw_path).replace(os.sep, "/"))
    root = normalize_root(repo_root).rstrip("/")
    prefix = f"{root}/"
    if not path.startswith(prefix):
        return ""
    return path[len(prefix):]


def to_repo_path(raw_path: str, repo_root: str) -> str:
    """Accept repo-relative or absolute-under-root paths; return the relative form."""
    value = (raw_path or "").strip()
    if not value:
        return ""
    if posixpath.isabs(value.replace(os.sep, "/")):
        return relativize(value, repo_root)
    normalized = posixpath.normpath(value.replace(os.sep, "/"))
    if normalized.startswith("../") or normalized in {".", ".."}:
        return ""
    return normalized


def uri_to_path(uri: str) -> str:
    """Convert a file:// URI to a local path; other values pass through."""
    if not uri.startswith("file://"):
        return uri
    try:
        parsed = urlparse(uri)
    except ValueError:
        return uri[len("file://"):]
    return unquote(parsed.path)


def same_path(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return normalize_root(left).rstrip("/") == normalize_root(right).rstrip("/")
