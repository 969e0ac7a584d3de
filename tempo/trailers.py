"""Find AI tools credited in ``Co-authored-by`` commit trailers."""
from __future__ import annotations

import re

from tempo.models import Confidence, Detection, Method, Tool
from tempo.process_detector import PROCESS_NAMES

_TRAILER_PATTERN = re.compile(
    r"^\s*co-authored-by\s*:\s*(?P<name>[^<\n]*?)\s*(?:<(?P<email>[^>\n]*)>)?\s*$",
    re.IGNORECASE | re.MULTILINE,
)
_WORD_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
# Model annotations such as "aider (anthropic/claude-3-7-sonnet)".
_ANNOTATION_PATTERN = re.compile(r"\([^)]*\)")

_IDENTITY_ALIASES: dict[str, Tool] = {
    **{name.lower(): tool for name, tool in PROCESS_NAMES.items()},
    **{tool.value: tool for tool in Tool},
}


def identity_tokens(name: str, email: str = "") -> set[str]:
    """Lowercased words of the display name and email local part.

    Parenthesized annotations in the name are dropped. Hyphenated words are
    kept whole and also split, so ``github-copilot`` yields
    ``github-copilot``, ``github`` and ``copilot``.
    """
    local_part = email.split("@", 1)[0] if email else ""
    tokens: set[str] = set()
    for text in (_ANNOTATION_PATTERN.sub(" ", name or ""), local_part):
        for word in _WORD_PATTERN.findall((text or "").lower()):
            tokens.add(word)
            tokens.update(part for part in word.split("-") if part)
    return tokens


def match_identity(name: str, email: str = "") -> Tool | None:
    """The single tool an identity names, or ``None`` when unknown or ambiguous.

    An email local part that is itself a known alias decides on its own.
    """
    local_part = email.split("@", 1)[0].strip().lower() if email else ""
    if local_part in _IDENTITY_ALIASES:
        return _IDENTITY_ALIASES[local_part]
    tools = {_IDENTITY_ALIASES[token] for token in identity_tokens(name, email) if token in _IDENTITY_ALIASES}
    if len(tools) != 1:
        return None
    return next(iter(tools))


def trailer_identities(message: str) -> list[tuple[str, str]]:
    identities: list[tuple[str, str]] = []
    for match in _TRAILER_PATTERN.finditer(message or ""):
        name = (match.group("name") or "").strip()
        email = (match.group("email") or "").strip()
        if name or email:
            identities.append((name, email))
    return identities


def detect_trailers(message: str, files_committed: int = 0) -> list[Detection]:
    detections: list[Detection] = []
    seen: set[Tool] = set()
    for name, email in trailer_identities(message):
        tool = match_identity(name, email)
        if tool is None or tool in seen:
            continue
        seen.add(tool)
        detections.append(
            Detection(
                tool=tool,
                confidence=Confidence.MEDIUM,
                method=Method.TRAILER,
                files_committed=files_committed,
            )
        )
    return detections
