"""
SQLite connection manager for evaluation persistence.

One aiosqlite connection is shared by the whole process. Repositories wrap
every read and write in `transaction()`, which serializes access so that
statements from concurrent requests never interleave.
"""

import asyncio
import logging
import warnings
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Sequence, Tuple

import aiosqlite

from .schema import SCHEMA_SQL

logger = logging.getLogger(__name__)

# (table, column, column definition) added to databases created by older builds
_ADDITIVE_COLUMNS: Sequence[Tuple[str, str, str]] = (
    ("evaluations", "visa_type", "TEXT"),
    ("evaluations", "email", "TEXT"),
    ("partner_keys", "usage_day", "TEXT NOT NULL DEFAULT ''"),
)


class DatabaseManager:
    """
    Owns the shared connection and the transaction lock.

    Usage:
        db = DatabaseManager(path)
        await db.init()
        async with db.transaction():
            row = await db.fetch_one("SELECT ...", (value,))
        await db.close()

    transaction() is not reentrant: a repository method must not call
    another repository method while holding it.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._connection

    async def init(self) -> None:
        """Open the database file and apply the schema. Safe to call twice."""
        async with self._init_lock:
            if self._connection is not None:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self.db_path), timeout=5.0)
            conn.row_factory = aiosqlite.Row
            try:
                await conn.executescript(SCHEMA_SQL)
                for table, column, definition in _ADDITIVE_COLUMNS:
                    await self._add_missing_column(conn, table, column, definition)
                await conn.commit()
            except Exception:
                await conn.close()
                raise

            self._connection = conn
            logger.info("Database ready: %s", self.db_path)

    @staticmethod
    async def _add_missing_column(
        conn: aiosqlite.Connection, table: str, column: str, definition: str
    ) -> None:
        async with conn.execute(f"PRAGMA table_info({table})") as cursor:
            columns = {str(row["name"]) for row in await cursor.fetchall()}
        if not columns or column in columns:
            return
        try:
            await conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
            logger.info("Added column %s.%s", table, column)
        except aiosqlite.OperationalError as e:
            # Another process may have added it first
            if "duplicate column" not in str(e).lower():
                raise

    async def close(self) -> None:
        """Close the connection once no transaction is running."""
        async with self._lock:
            if self._connection is not None:
                await self._connection.close()
                self._connection = None

    def _check_owner(self, operation: str) -> None:
        if self._owner is None or self._owner is not asyncio.current_task():
            message = f"{operation} requires an active transaction. Use 'async with db.transaction()'."
            warnings.warn(message, RuntimeWarning, stacklevel=3)
            logger.warning(message)
            raise RuntimeError(message)

    async def execute(self, sql: str, parameters=None) -> aiosqlite.Cursor:
        self._check_owner("execute")
        return await self.connection.execute(sql, parameters or ())

    async def fetch_one(self, sql: str, parameters=None) -> Optional[aiosqlite.Row]:
        self._check_owner("fetch_one")
        async with self.connection.execute(sql, parameters or ()) as cursor:
            return await cursor.fetchone()

    async def fetch_all(self, sql: str, parameters=None) -> list[aiosqlite.Row]:
        self._check_owner("fetch_all")
        async with self.connection.execute(sql, parameters or ()) as cursor:
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self):
        """
        Serialize a unit of work: BEGIN, then COMMIT on success or
        ROLLBACK when the block raises.
        """
        if self._owner is not None and self._owner is asyncio.current_task():
            raise RuntimeError("Nested transaction() is not allowed.")

        async with self._lock:
            conn = self.connection
            self._owner = asyncio.current_task()
            try:
                await conn.execute("BEGIN")
                try:
                    yield self
                except BaseException:
                    await conn.rollback()
                    raise
                await conn.commit()
            finally:
                self._owner = None
