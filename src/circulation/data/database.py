"""Async SQLite database manager for snapshot and circulation persistence.

Uses aiosqlite for non-blocking database operations with WAL mode so the
read API can query while the indexer writes.
"""

import os
from typing import Self

import aiosqlite

from circulation.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_FIGURE_COLUMNS = """
    total_supply TEXT NOT NULL,
    reward TEXT NOT NULL,
    phala_chain_bridge TEXT NOT NULL,
    khala_chain_bridge TEXT NOT NULL,
    sygma_bridge TEXT NOT NULL,
    portal_bridge TEXT NOT NULL,
    circulation TEXT NOT NULL
"""

_CREATE_TABLES_SQL = f"""
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS snapshot (
    id TEXT PRIMARY KEY,
    block_height INTEGER NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    {_FIGURE_COLUMNS}
);

CREATE TABLE IF NOT EXISTS circulation (
    id TEXT PRIMARY KEY,
    block_height INTEGER NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    {_FIGURE_COLUMNS}
);

CREATE TABLE IF NOT EXISTS processor_status (
    id INTEGER PRIMARY KEY CHECK (id = 0),
    height INTEGER NOT NULL
);
"""

_CREATE_INDEXES_SQL = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_snapshot_ts
    ON snapshot(timestamp_ms);
"""


class CirculationDatabase:
    """Async SQLite connection manager.

    Manages database lifecycle including schema creation, WAL mode
    configuration, and clean resource cleanup.

    Usage:
        async with CirculationDatabase("data/circulation.db") as db:
            await db.db.execute("SELECT ...")
    """

    def __init__(self, db_path: str = "data/circulation.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open database connection, configure pragmas, and create schema.

        Creates the parent directory if it does not exist.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("circulation_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("circulation_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._connection.commit()

    async def _ensure_schema_version(self) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
