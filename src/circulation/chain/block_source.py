"""Finalized block batches read directly from the RPC node.

Every block from the contract deployment onward is delivered, in height
order, in batches of at most ``batch_size``. Only blocks at least
``finality_confirmations`` behind the node's head are handed out, so
batches never need reorg handling.
"""

import asyncio

from circulation.chain.client import ChainReader
from circulation.config import ChainSettings, IndexerSettings
from circulation.logging import get_logger
from circulation.models import BlockBatch

logger = get_logger(__name__)


class RpcBlockSource:
    """Produces ordered, gap-free BlockBatch objects from a ChainReader.

    Usage:
        source = RpcBlockSource(client, settings.chain, settings.indexer)
        batch = await source.next_batch(start_height)
        if batch is None:
            ...  # caught up; poll again later
    """

    def __init__(
        self,
        chain: ChainReader,
        chain_settings: ChainSettings,
        indexer_settings: IndexerSettings,
    ) -> None:
        self._chain = chain
        self._chain_settings = chain_settings
        self._batch_size = indexer_settings.batch_size

    async def finalized_height(self) -> int:
        """Newest block height considered final."""
        head = await self._chain.get_head_height()
        return head - self._chain_settings.finality_confirmations

    async def next_batch(self, start_height: int) -> BlockBatch | None:
        """Return the batch starting at ``start_height``, or None if not yet final.

        ``is_head`` is set when the batch ends at the finalized head.
        """
        start = max(start_height, self._chain_settings.deployed_at)
        finalized = await self.finalized_height()
        if start > finalized:
            return None

        end = min(start + self._batch_size - 1, finalized)
        headers = await asyncio.gather(
            *(self._chain.get_block_header(height) for height in range(start, end + 1))
        )
        blocks = sorted(headers, key=lambda header: header.height)

        logger.debug(
            "block_batch_fetched",
            start=start,
            end=end,
            finalized=finalized,
        )
        return BlockBatch(blocks=blocks, is_head=end == finalized)
