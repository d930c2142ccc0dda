"""Indexer run loop -- pulls finalized block batches and processes them in order.

Batches are strictly sequential: the next batch is requested only after the
previous one has been committed. The ProcessingContext returned by each
batch is passed into the next, so no processing state lives anywhere else.
A batch that fails on a chain or storage error is logged and retried after
a delay; context and next height only advance after a committed batch, so
the retry starts from the same block. Data-integrity errors (missing block
timestamp, out-of-order day) cannot succeed on retry and propagate out of
start().
"""

import asyncio

from circulation.chain.block_source import RpcBlockSource
from circulation.config import ChainSettings, IndexerSettings
from circulation.data.store import CirculationStore
from circulation.exceptions import MissingBlockTimestampError, OutOfOrderBlockError
from circulation.logging import get_logger
from circulation.models import ProcessingContext
from circulation.processing.processor import CirculationProcessor

logger = get_logger(__name__)


class Indexer:
    """Drives CirculationProcessor from an RpcBlockSource.

    Args:
        source: Provider of finalized block batches.
        processor: Per-batch processor.
        store: Used to find the resume height.
        chain_settings: Supplies the deployment height.
        indexer_settings: Supplies the idle poll and error retry intervals.
    """

    def __init__(
        self,
        source: RpcBlockSource,
        processor: CirculationProcessor,
        store: CirculationStore,
        chain_settings: ChainSettings,
        indexer_settings: IndexerSettings,
    ) -> None:
        self._source = source
        self._processor = processor
        self._store = store
        self._deployed_at = chain_settings.deployed_at
        self._poll_interval = indexer_settings.poll_interval
        self._error_retry_delay = indexer_settings.error_retry_delay
        self._running = False
        self._next_height: int | None = None
        self._context: ProcessingContext | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def next_height(self) -> int | None:
        return self._next_height

    async def resume_height(self) -> int:
        """First block height not yet committed."""
        processed = await self._store.get_processed_height()
        if processed is None:
            return self._deployed_at
        return max(processed + 1, self._deployed_at)

    async def start(self) -> None:
        """Load persisted state, then process batches until stop() is called."""
        self._context = await self._processor.load_context()
        self._next_height = await self.resume_height()
        self._running = True

        logger.info(
            "indexer_starting",
            from_height=self._next_height,
            latest_snapshot=(
                self._context.latest_snapshot.id if self._context.latest_snapshot else None
            ),
        )
        try:
            await self._run_loop()
        finally:
            self._running = False
            logger.info("indexer_stopped", next_height=self._next_height)

    async def stop(self) -> None:
        """Signal the loop to stop after the batch in progress."""
        logger.info("indexer_stopping_gracefully")
        self._running = False

    async def run_once(self) -> bool:
        """Process the next available batch. Returns False if none was ready."""
        if self._context is None or self._next_height is None:
            raise RuntimeError("Indexer not started. Call start() first.")
        batch = await self._source.next_batch(self._next_height)
        if batch is None or not batch.blocks:
            return False

        self._context = await self._processor.process(batch, self._context)
        self._next_height = batch.blocks[-1].height + 1
        return True

    async def _run_loop(self) -> None:
        while self._running:
            try:
                processed = await self.run_once()
            except asyncio.CancelledError:
                break
            except (MissingBlockTimestampError, OutOfOrderBlockError):
                raise
            except Exception as e:
                logger.error(
                    "indexer_batch_failed",
                    next_height=self._next_height,
                    retry_in=self._error_retry_delay,
                    error=str(e),
                    exc_info=True,
                )
                await asyncio.sleep(self._error_retry_delay)
                continue
            if not processed:
                await asyncio.sleep(self._poll_interval)
