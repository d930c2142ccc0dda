"""Typed SQLite read/write abstraction for circulation records.

Provides CirculationStore with typed methods for the daily Snapshot series,
the Circulation singleton and the processor's committed height. All SQL is
isolated behind this interface.

CRITICAL: All figures stored as TEXT in SQLite, restored as Decimal on read.
"""

from decimal import Decimal
from typing import Any

from circulation.constants import CIRCULATION_ID
from circulation.data.database import CirculationDatabase
from circulation.logging import get_logger
from circulation.models import (
    Circulation,
    CirculationFigures,
    Snapshot,
    from_ms,
    to_ms,
)

logger = get_logger(__name__)

_FIGURE_FIELDS = (
    "total_supply",
    "reward",
    "phala_chain_bridge",
    "khala_chain_bridge",
    "sygma_bridge",
    "portal_bridge",
    "circulation",
)

_COLUMNS = ("id", "block_height", "timestamp_ms", *_FIGURE_FIELDS)
_SELECT_COLUMNS = ", ".join(_COLUMNS)


def _upsert_sql(table: str) -> str:
    placeholders = ", ".join("?" for _ in _COLUMNS)
    updates = ", ".join(f"{col} = excluded.{col}" for col in _COLUMNS[1:])
    return (
        f"INSERT INTO {table} ({_SELECT_COLUMNS}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


_UPSERT_SNAPSHOT_SQL = _upsert_sql("snapshot")
_UPSERT_CIRCULATION_SQL = _upsert_sql("circulation")


def _figures_row(figures: CirculationFigures) -> tuple[str, ...]:
    return tuple(str(getattr(figures, name)) for name in _FIGURE_FIELDS)


def _figures_from_row(row: Any) -> CirculationFigures:
    return CirculationFigures(
        **{name: Decimal(row[3 + i]) for i, name in enumerate(_FIGURE_FIELDS)}
    )


def _snapshot_from_row(row: Any) -> Snapshot:
    return Snapshot(
        id=row[0],
        block_height=row[1],
        timestamp=from_ms(row[2]),
        figures=_figures_from_row(row),
    )


class CirculationStore:
    """Async SQLite store for snapshots, the latest circulation and progress.

    Wraps CirculationDatabase with typed read/write methods. All SQL access
    goes through self._database.db (the aiosqlite Connection).

    Usage:
        async with CirculationDatabase("data/circulation.db") as database:
            store = CirculationStore(database)
            latest = await store.get_latest_snapshot()
    """

    def __init__(self, database: CirculationDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def save_batch(
        self,
        snapshots: list[Snapshot],
        circulation: Circulation | None,
        processed_height: int | None,
    ) -> None:
        """Persist one batch's results in a single transaction.

        Snapshots are upserted by id in the given order, the Circulation
        singleton is upserted when present, and the processed height is
        advanced. Nothing is written if any statement fails.
        """
        db = self._database.db
        try:
            if snapshots:
                await db.executemany(
                    _UPSERT_SNAPSHOT_SQL,
                    [
                        (s.id, s.block_height, to_ms(s.timestamp), *_figures_row(s.figures))
                        for s in snapshots
                    ],
                )
            if circulation is not None:
                await db.execute(
                    _UPSERT_CIRCULATION_SQL,
                    (
                        circulation.id,
                        circulation.block_height,
                        to_ms(circulation.timestamp),
                        *_figures_row(circulation.figures),
                    ),
                )
            if processed_height is not None:
                await db.execute(
                    "INSERT INTO processor_status (id, height) VALUES (0, ?) "
                    "ON CONFLICT(id) DO UPDATE SET height = excluded.height",
                    (processed_height,),
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.debug(
            "batch_saved",
            snapshots=len(snapshots),
            circulation_updated=circulation is not None,
            processed_height=processed_height,
        )

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get_latest_snapshot(self) -> Snapshot | None:
        """Return the snapshot with the greatest timestamp, or None if empty."""
        cursor = await self._database.db.execute(
            f"SELECT {_SELECT_COLUMNS} FROM snapshot ORDER BY timestamp_ms DESC LIMIT 1"
        )
        row = await cursor.fetchone()
        return _snapshot_from_row(row) if row is not None else None

    async def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        cursor = await self._database.db.execute(
            f"SELECT {_SELECT_COLUMNS} FROM snapshot WHERE id = ?",
            (snapshot_id,),
        )
        row = await cursor.fetchone()
        return _snapshot_from_row(row) if row is not None else None

    async def get_snapshots(
        self,
        since_ms: int | None = None,
        until_ms: int | None = None,
        limit: int | None = None,
    ) -> list[Snapshot]:
        """Query snapshots within an optional inclusive time range.

        Returns list of Snapshot ordered by timestamp ASC.
        """
        conditions: list[str] = []
        params: list = []

        if since_ms is not None:
            conditions.append("timestamp_ms >= ?")
            params.append(since_ms)
        if until_ms is not None:
            conditions.append("timestamp_ms <= ?")
            params.append(until_ms)

        query = f"SELECT {_SELECT_COLUMNS} FROM snapshot"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY timestamp_ms ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [_snapshot_from_row(row) for row in rows]

    async def get_circulation(self) -> Circulation | None:
        cursor = await self._database.db.execute(
            f"SELECT {_SELECT_COLUMNS} FROM circulation WHERE id = ?",
            (CIRCULATION_ID,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Circulation(
            id=row[0],
            block_height=row[1],
            timestamp=from_ms(row[2]),
            figures=_figures_from_row(row),
        )

    async def get_processed_height(self) -> int | None:
        """Height of the last block whose batch was committed, or None."""
        cursor = await self._database.db.execute(
            "SELECT height FROM processor_status WHERE id = 0"
        )
        row = await cursor.fetchone()
        return row[0] if row is not None else None
