"""Fuse session, process and trailer evidence into one Attribution per commit.

Passes run in a fixed order and a tool claimed by an earlier pass never gets a
second Detection:

1. file-match (high): a reader's written files intersect the committed files
2. process (medium): the tool is running
3. trailer (medium): the commit message credits the tool
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

from tempo import config
from tempo.date_utils import format_rfc3339, utc_now
from tempo.git_context import CommitContext, resolve_commit_context
from tempo.models import Attribution, Confidence, Detection, Method, SessionInfo, Tool
from tempo.observability import (
    initialize as initialize_observability,
    record_detection,
    record_reader_failure,
    record_reader_result,
    start_span,
)
from tempo.parsers.platforms.base import SessionReader
from tempo.parsers.platforms.registry import default_readers
from tempo.process_detector import ProcessDetector
from tempo.trailers import detect_trailers

logger = logging.getLogger("tempo.detector")


def intersect(ai_files: Iterable[str], committed: Iterable[str]) -> list[str]:
    return sorted(set(ai_files) & set(committed))


def file_match_detection(session: SessionInfo, committed: Sequence[str]) -> Detection | None:
    matched = intersect(session.files_written, committed)
    if not matched:
        return None
    return Detection(
        tool=session.tool,
        confidence=Confidence.HIGH,
        method=Method.FILE_MATCH,
        files_matched=matched,
        files_committed=len(committed),
        ai_files=len(matched),
        model=session.model,
        token_usage=session.total_tokens,
        session_duration_sec=session.session_duration_sec,
    )


class AttributionDetector:
    def __init__(
        self,
        readers: Sequence[SessionReader] | None = None,
        process_detector: ProcessDetector | None = None,
        context_resolver: Callable[[str], CommitContext] = resolve_commit_context,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.readers = list(readers) if readers is not None else default_readers()
        self.process_detector = process_detector or ProcessDetector()
        self.context_resolver = context_resolver
        self.clock = clock

    async def _read(self, reader: SessionReader, repo_root: str, max_age: timedelta, now: datetime) -> SessionInfo | None:
        tool = reader.tool.value
        started = time.perf_counter()
        result = "absent"
        try:
            with start_span("tempo.reader", {"tool": tool}):
                session = await reader.read(repo_root, max_age, now=now)
        except Exception:
            logger.warning("%s session reader failed", tool, exc_info=True)
            record_reader_failure(tool)
            session = None
            result = "error"
        if session is not None:
            result = "found"
        record_reader_result(tool, result, (time.perf_counter() - started) * 1000)
        return session

    async def detect(self, repo_root: str, max_age: timedelta | None = None) -> Attribution | None:
        """Attribute HEAD of *repo_root*; ``None`` means nothing to report.

        Raises ``CommitContextError`` when the commit cannot be inspected.
        """
        with start_span("tempo.detect", {"repo_root": repo_root}):
            context = self.context_resolver(repo_root)
            if not context.files:
                logger.debug("HEAD of %s changes no files", repo_root)
                return None

            window = config.session_max_age() if max_age is None else max_age
            now = self.clock()
            committed = context.files
            detections: list[Detection] = []
            claimed: set[Tool] = set()

            for reader in self.readers:
                if reader.tool in claimed:
                    continue
                session = await self._read(reader, repo_root, window, now)
                if session is None:
                    continue
                detection = file_match_detection(session, committed)
                if detection is None:
                    logger.debug("%s session shares no files with HEAD", reader.tool.value)
                    continue
                detections.append(detection)
                claimed.add(detection.tool)

            for tool in self.process_detector.detect():
                if tool in claimed:
                    continue
                detections.append(
                    Detection(
                        tool=tool,
                        confidence=Confidence.MEDIUM,
                        method=Method.PROCESS,
                        files_committed=len(committed),
                    )
                )
                claimed.add(tool)

            for detection in detect_trailers(context.message, files_committed=len(committed)):
                if detection.tool in claimed:
                    continue
                detections.append(detection)
                claimed.add(detection.tool)

            if not detections:
                return None

            for detection in detections:
                record_detection(detection.tool.value, detection.method.value, detection.confidence.value)
            return Attribution(
                commit_sha=context.sha,
                commit_author=context.author_email,
                repo=context.repo_slug,
                timestamp=format_rfc3339(now),
                detections=detections,
            )


async def detect(repo_root: str, max_age: timedelta | None = None) -> Attribution | None:
    """Run the default pipeline against HEAD of *repo_root*."""
    initialize_observability()
    return await AttributionDetector().detect(repo_root, max_age)
