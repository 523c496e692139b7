import asyncio

from sqlgate.core.logging import get_logger, setup_logging
from sqlgate.db.schema import TABLE_NAME
from sqlgate.db.session import Store
from sqlgate.services.sql_engine import execute_write

logger = get_logger("sqlgate.seed")

SEED_ROWS = [
    ("Sara Brown", "1901-01-01 00:00:00"),
    ("John Smith", "1941-01-01 00:00:00"),
    ("Jack Ma", "1961-01-30 00:00:00"),
    ("Elon Musk", "1999-01-01 00:00:00"),
]


def build_seed_statement(rows=SEED_ROWS):
    """One multi-row INSERT with bound parameters, plus the flattened params."""
    placeholders = ", ".join("(?, ?)" for _ in rows)
    sql = f"INSERT INTO {TABLE_NAME} (name, dateOfBirth) VALUES {placeholders};"
    params = [value for row in rows for value in row]
    return sql, params


async def seed(store: Store) -> dict:
    """Insert the fixed sample patients. Not idempotent: each call adds four rows."""
    sql, params = build_seed_statement()
    outcome = await execute_write(store, sql, params)
    inserted = outcome.affected_rows or len(SEED_ROWS)
    logger.info("Seeded %d patient rows", inserted)
    return {"inserted": inserted}


async def main():
    setup_logging()
    async with Store() as store:
        result = await seed(store)
    print(f"Seeded DB at {store.path}: {result['inserted']} rows")


if __name__ == "__main__":
    asyncio.run(main())
