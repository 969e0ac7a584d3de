"""Read-only query access to on-disk SQLite key-value stores.

Two interchangeable backends implement ``StoreQuery``:

- ``AiosqliteStoreQuery`` opens the file through aiosqlite in read-only URI mode.
- ``Sqlite3CliStoreQuery`` shells out to ``sqlite3 -readonly -json``.

Both return one ``dict`` per row, keyed by column name, in result order.
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Any, Protocol, Sequence
from urllib.parse import quote

import aiosqlite

from tempo import config
from tempo.errors import StoreQueryError

logger = logging.getLogger("tempo.db")

Row = dict[str, Any]


class StoreQuery(Protocol):
    name: str

    def available(self) -> bool: ...

    async def query(self, store: Path, statement: str, params: Sequence[Any] = ()) -> list[Row]: ...


def _readonly_uri(store: Path) -> str:
    return f"file:{quote(str(store))}?mode=ro"


class AiosqliteStoreQuery:
    name = "embedded"

    def available(self) -> bool:
        return True

    async def query(self, store: Path, statement: str, params: Sequence[Any] = ()) -> list[Row]:
        try:
            async with aiosqlite.connect(_readonly_uri(store), uri=True) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(statement, tuple(params)) as cur:
                    rows = await cur.fetchall()
        except (sqlite3.Error, OSError) as exc:
            raise StoreQueryError(f"query against {store} failed: {exc}") from exc
        return [dict(row) for row in rows]


def _quote_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def inline_params(statement: str, params: Sequence[Any]) -> str:
    """Substitute ``?`` placeholders with quoted literals, skipping string literals."""
    values = list(params)
    out: list[str] = []
    in_string = False
    for char in statement:
        if char == "'":
            in_string = not in_string
            out.append(char)
        elif char == "?" and not in_string:
            if not values:
                raise StoreQueryError("not enough parameters for statement")
            out.append(_quote_literal(values.pop(0)))
        else:
            out.append(char)
    if values:
        raise StoreQueryError("too many parameters for statement")
    return "".join(out)


class Sqlite3CliStoreQuery:
    name = "cli"

    def __init__(self, executable: str = "sqlite3", timeout: float | None = None):
        self.executable = executable
        self.timeout = timeout if timeout is not None else config.SQLITE_CLI_TIMEOUT_SECONDS

    def available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def query(self, store: Path, statement: str, params: Sequence[Any] = ()) -> list[Row]:
        binary = shutil.which(self.executable)
        if binary is None:
            raise StoreQueryError(f"{self.executable} not found")
        sql = inline_params(statement, params)
        try:
            proc = await asyncio.create_subprocess_exec(
                binary,
                "-readonly",
                "-json",
                str(store),
                sql,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise StoreQueryError(f"sqlite3 query against {store} timed out") from exc
        except OSError as exc:
            raise StoreQueryError(f"cannot run sqlite3: {exc}") from exc

        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise StoreQueryError(f"sqlite3 query against {store} failed: {detail}")

        trimmed = stdout.decode("utf-8", errors="replace").strip()
        if not trimmed or trimmed == "[]":
            return []
        try:
            rows = json.loads(trimmed)
        except json.JSONDecodeError as exc:
            raise StoreQueryError(f"unreadable sqlite3 output: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreQueryError("unexpected sqlite3 output shape")
        return [row for row in rows if isinstance(row, dict)]


def text_value(raw: Any) -> str:
    """Decode a ``value`` column that may come back as TEXT or BLOB."""
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)
