"""Pydantic models for session evidence and per-commit attribution records."""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Tool(str, Enum):
    CLAUDE_CODE = "claude-code"
    AIDER = "aider"
    CODEX = "codex"
    COPILOT = "copilot"
    CURSOR = "cursor"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class Method(str, Enum):
    FILE_MATCH = "file-match"
    PROCESS = "process"
    TRAILER = "trailer"


# ── Session evidence ───────────────────────────────────────────────

class SessionInfo(BaseModel):
    """What one reader found for one tool: files written plus usage metadata."""

    tool: Tool
    files_written: set[str] = Field(default_factory=set)
    model: str = ""
    total_tokens: int = 0
    session_duration_sec: int = 0


# ── Attribution payload ────────────────────────────────────────────

def _zero_to_none(value: Any) -> Any:
    if value in (0, "", None):
        return None
    return value


class Detection(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    tool: Tool
    confidence: Confidence
    method: Method
    files_matched: tuple[str, ...] = ()
    files_committed: int = 0
    ai_files: int = 0
    model: Optional[str] = None
    token_usage: Optional[int] = None
    session_duration_sec: Optional[int] = None

    @field_validator("files_matched", mode="before")
    @classmethod
    def _sorted_unique(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(sorted({str(item) for item in value}))
        return value

    @field_validator("model", "token_usage", "session_duration_sec", mode="before")
    @classmethod
    def _omit_zero(cls, value: Any) -> Any:
        return _zero_to_none(value)


class Attribution(BaseModel):
    commit_sha: str
    commit_author: str = ""
    repo: str = ""
    timestamp: str
    detections: list[Detection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_detection_per_tool(self) -> "Attribution":
        seen: set[Tool] = set()
        for detection in self.detections:
            if detection.tool in seen:
                raise ValueError(f"duplicate detection for tool {detection.tool.value}")
            seen.add(detection.tool)
        return self

    def tools(self) -> list[Tool]:
        return [d.tool for d in self.detections]

    def to_payload(self) -> dict[str, Any]:
        """Dump to the wire shape; unset optional fields are omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_payload(), indent=indent)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "Attribution":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, text: str) -> "Attribution":
        return cls.model_validate_json(text)
