"""Dense daily snapshot series from a sparse, ordered block stream.

For each block the engine derives its UTC calendar day. The first block
landing on a day after the latest snapshot triggers a balance query and a
new snapshot for that day; every day skipped in between gets a placeholder
copied from the previous snapshot. Later blocks on an already covered day
are ignored, so each day costs at most one balance query.
"""

from collections.abc import Awaitable, Callable, Iterable, Iterator
from datetime import datetime, timedelta

from circulation.exceptions import OutOfOrderBlockError
from circulation.logging import get_logger
from circulation.models import (
    BlockHeader,
    CirculationFigures,
    Snapshot,
    SnapshotRun,
    normalize_timestamp,
)

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)

FetchCirculation = Callable[[BlockHeader], Awaitable[CirculationFigures]]


def iter_gap_days(after: datetime, before: datetime) -> Iterator[datetime]:
    """Yield each UTC midnight strictly between ``after`` and ``before``."""
    day = after + ONE_DAY
    while day < before:
        yield day
        day += ONE_DAY


class SnapshotContinuityEngine:
    """Extends the daily Snapshot series over a batch of blocks.

    Args:
        fetch_circulation: Callback returning figures as of a block,
            normally BalanceAggregator.fetch_circulation.
    """

    def __init__(self, fetch_circulation: FetchCirculation) -> None:
        self._fetch_circulation = fetch_circulation

    async def extend(
        self,
        blocks: Iterable[BlockHeader],
        latest_snapshot: Snapshot | None,
    ) -> SnapshotRun:
        """Build the snapshots a batch adds after ``latest_snapshot``.

        Returns the new snapshots in day order together with the resulting
        latest snapshot. Nothing is persisted here.

        Raises:
            MissingBlockTimestampError: a block has no timestamp.
            OutOfOrderBlockError: a block's day precedes the latest snapshot.
        """
        run = SnapshotRun(latest_snapshot=latest_snapshot)

        for block in blocks:
            day = normalize_timestamp(block.timestamp, block.height)
            latest = run.latest_snapshot

            if latest is not None and day <= latest.timestamp:
                if day < latest.timestamp:
                    raise OutOfOrderBlockError(
                        f"Block {block.height} falls on {day.date()}, "
                        f"before latest snapshot {latest.id}"
                    )
                continue

            if latest is not None:
                for gap_day in iter_gap_days(latest.timestamp, day):
                    run.snapshots.append(latest.carried_to(gap_day))

            logger.info(
                "snapshot_fetching",
                block_height=block.height,
                day=day.date().isoformat(),
            )
            figures = await self._fetch_circulation(block)
            snapshot = Snapshot.at(day, block.height, figures)
            run.snapshots.append(snapshot)
            run.latest_snapshot = snapshot
            run.computed += 1

        return run
