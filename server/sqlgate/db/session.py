import os
from typing import Optional

import aiosqlite

from sqlgate.core.logging import get_logger
from sqlgate.db.schema import CREATE_TABLE_SQL

logger = get_logger("sqlgate.store")

BASE_DIR = os.path.dirname(__file__)
DB_PATH = os.getenv("SQLGATE_DB_PATH", os.path.join(BASE_DIR, "gateway.sqlite"))


class Store:
    """Owns the single SQLite connection the gateway talks through.

    Opened once at startup and closed at shutdown. The connection runs in
    autocommit mode so every statement is its own implicit transaction.
    """

    def __init__(self, path: str = None):
        self.path = path or DB_PATH
        self._db: Optional[aiosqlite.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Store is not open")
        return self._db

    async def open(self):
        if self._db is not None:
            return self
        if self.path != ":memory:":
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)
        db = await aiosqlite.connect(self.path, isolation_level=None)
        db.row_factory = aiosqlite.Row
        self._db = db
        try:
            await self.ensure_schema()
        except Exception:
            await self.close()
            raise
        logger.info("SQLite DB & patient table ready at %s", self.path)
        return self

    async def ensure_schema(self):
        """Create the patient table if it is absent. Safe to call repeatedly."""
        await self.connection.execute(CREATE_TABLE_SQL)

    async def close(self):
        if self._db is None:
            return
        db, self._db = self._db, None
        await db.close()
        logger.info("Store closed")

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
