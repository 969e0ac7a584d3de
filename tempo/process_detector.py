"""Detect AI coding tools that are running right now."""
from __future__ import annotations

import logging
import sys
from typing import Callable, Iterable

import psutil

from tempo.models import Tool

logger = logging.getLogger("tempo.process")

# Executable name -> tool. Order decides the order of process detections.
PROCESS_NAMES: dict[str, Tool] = {
    "claude": Tool.CLAUDE_CODE,
    "Cursor": Tool.CURSOR,
    "cursor": Tool.CURSOR,
    "copilot": Tool.COPILOT,
    "copilot-agent": Tool.COPILOT,
    "github-copilot": Tool.COPILOT,
    "aider": Tool.AIDER,
    "codex": Tool.CODEX,
}


def running_process_names() -> set[str]:
    names: set[str] = set()
    for proc in psutil.process_iter(["name"]):
        name = proc.info.get("name")
        if name:
            names.add(name)
    return names


class ProcessDetector:
    def __init__(
        self,
        names_provider: Callable[[], Iterable[str]] = running_process_names,
        platform: str | None = None,
    ):
        self.names_provider = names_provider
        self.platform = platform or sys.platform

    def supported(self) -> bool:
        return not self.platform.startswith("win")

    def detect(self) -> list[Tool]:
        if not self.supported():
            return []
        try:
            running = set(self.names_provider())
        except (psutil.Error, OSError) as exc:
            logger.debug("process table unavailable: %s", exc)
            return []

        detected: list[Tool] = []
        for name, tool in PROCESS_NAMES.items():
            if tool in detected:
                continue
            if name in running:
                detected.append(tool)
        return detected
