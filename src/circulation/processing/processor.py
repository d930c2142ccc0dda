"""Per-batch processing: daily snapshots, head refresh, one atomic write.

Each batch runs the continuity engine over its blocks, then evaluates the
head refresh policy against the last block, then commits the new snapshots,
the optional Circulation update and the processed height together. Any
failure before the write leaves the store untouched.
"""

import structlog

from circulation.constants import CIRCULATION_ID
from circulation.data.store import CirculationStore
from circulation.exceptions import MissingBlockTimestampError
from circulation.logging import get_logger
from circulation.models import (
    BlockBatch,
    Circulation,
    ProcessingContext,
    from_ms,
    to_ms,
)
from circulation.processing.aggregator import BalanceAggregator
from circulation.processing.continuity import SnapshotContinuityEngine
from circulation.processing.head_refresh import HeadRefreshPolicy

logger = get_logger(__name__)


class CirculationProcessor:
    """Applies one BlockBatch to the persisted circulation state.

    Args:
        aggregator: Balance reader used for real snapshots and refreshes.
        store: Persistence for snapshots, circulation and progress.
        head_policy: Gate for Circulation refreshes at the chain head.
    """

    def __init__(
        self,
        aggregator: BalanceAggregator,
        store: CirculationStore,
        head_policy: HeadRefreshPolicy,
    ) -> None:
        self._aggregator = aggregator
        self._store = store
        self._head_policy = head_policy
        self._engine = SnapshotContinuityEngine(aggregator.fetch_circulation)

    async def load_context(self) -> ProcessingContext:
        """Build the starting context from what is already persisted."""
        latest_snapshot = await self._store.get_latest_snapshot()
        circulation = await self._store.get_circulation()
        last_update_ms = to_ms(circulation.timestamp) if circulation is not None else 0
        return ProcessingContext(
            latest_snapshot=latest_snapshot,
            last_update_ms=last_update_ms,
        )

    async def process(self, batch: BlockBatch, context: ProcessingContext) -> ProcessingContext:
        """Process ``batch`` and return the context for the next batch."""
        if not batch.blocks:
            return context

        structlog.contextvars.bind_contextvars(
            batch_start=batch.start_height,
            batch_end=batch.end_height,
        )
        try:
            run = await self._engine.extend(batch.blocks, context.latest_snapshot)

            circulation = None
            last_update_ms = context.last_update_ms
            last_block = batch.blocks[-1]
            block_time_ms = last_block.timestamp
            if block_time_ms is None:
                raise MissingBlockTimestampError(last_block.height)
            if self._head_policy.should_refresh(last_block, batch.is_head, last_update_ms):
                logger.info(
                    "latest_data_updating",
                    block_height=last_block.height,
                    interval_seconds=self._head_policy.interval_ms // 1000,
                )
                figures = await self._aggregator.fetch_circulation(last_block)
                circulation = Circulation(
                    id=CIRCULATION_ID,
                    block_height=last_block.height,
                    timestamp=from_ms(block_time_ms),
                    figures=figures,
                )
                last_update_ms = block_time_ms

            await self._store.save_batch(run.snapshots, circulation, batch.end_height)

            logger.info(
                "batch_processed",
                blocks=len(batch.blocks),
                snapshots=len(run.snapshots),
                computed=run.computed,
                filled=len(run.snapshots) - run.computed,
                is_head=batch.is_head,
                circulation_updated=circulation is not None,
            )
        finally:
            structlog.contextvars.unbind_contextvars("batch_start", "batch_end")

        return ProcessingContext(
            latest_snapshot=run.latest_snapshot,
            last_update_ms=last_update_ms,
        )
