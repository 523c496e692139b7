from sqlgate.db.schema import TABLE_NAME
from sqlgate.db.session import Store


async def list_tables(store: Store):
    async with store.connection.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    ) as cur:
        rows = await cur.fetchall()
    return [r[0] for r in rows]


async def count_rows(store: Store) -> int:
    """Number of rows in the permitted table."""
    async with store.connection.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}") as cur:
        row = await cur.fetchone()
    return row[0]
