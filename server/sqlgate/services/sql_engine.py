import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlgate.core.errors import StoreError
from sqlgate.core.logging import get_logger
from sqlgate.db.session import Store

logger = get_logger("sqlgate.sql_engine")

# sqlite3 raises Warning (not Error) for multi-statement text on older Pythons
_STORE_FAILURES = (sqlite3.Error, sqlite3.Warning)


@dataclass
class WriteOutcome:
    affected_rows: int
    insert_id: Optional[int] = None


def _normalize_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def _row_to_dict(row) -> Dict[str, Any]:
    # by position: Row name lookup is case-insensitive and returns the first match
    return dict(zip(row.keys(), (_normalize_value(v) for v in row)))


async def execute_read(store: Store, sql: str) -> List[Dict[str, Any]]:
    """Run an approved SELECT verbatim and return every row as a dict.

    Column order follows what the store reports. No row limit is applied.
    """
    try:
        await store.ensure_schema()
        async with store.connection.execute(sql) as cur:
            rows = await cur.fetchall()
    except _STORE_FAILURES as e:
        logger.info("read rejected by store: %s", e)
        raise StoreError(str(e)) from e
    return [_row_to_dict(r) for r in rows]


async def execute_write(store: Store, sql: str, params: Optional[Sequence[Any]] = None) -> WriteOutcome:
    """Run an approved INSERT verbatim, optionally with bound parameters.

    ``insert_id`` is the last inserted rowid, and only set when the
    statement actually inserted something.
    """
    try:
        await store.ensure_schema()
        async with store.connection.execute(sql, tuple(params or ())) as cur:
            affected = cur.rowcount if cur.rowcount and cur.rowcount > 0 else 0
            last_id = cur.lastrowid
    except _STORE_FAILURES as e:
        logger.info("write rejected by store: %s", e)
        raise StoreError(str(e)) from e
    insert_id = last_id if affected and last_id else None
    return WriteOutcome(affected_rows=affected, insert_id=insert_id)
