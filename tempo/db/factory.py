"""Store query factory to abstract the SQLite access path (embedded vs sqlite3 CLI)."""
from __future__ import annotations

from tempo import config
from tempo.db.query import AiosqliteStoreQuery, Sqlite3CliStoreQuery, StoreQuery


def get_store_query(backend: str | None = None) -> StoreQuery:
    selected = (backend or config.SQLITE_BACKEND or "embedded").strip().lower()
    if selected == "cli":
        return Sqlite3CliStoreQuery()
    return AiosqliteStoreQuery()
