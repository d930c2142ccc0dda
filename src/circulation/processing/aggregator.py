"""Circulating supply from total supply and non-circulating holder balances."""

import asyncio

from circulation.chain.client import ChainReader
from circulation.constants import (
    KHALA_CHAIN_BRIDGE_ADDRESS,
    KHALA_LEGACY_CHAIN_BRIDGE_ADDRESS,
    PHALA_CHAIN_BRIDGE_ADDRESS,
    PORTAL_BRIDGE_ADDRESS,
    REWARD_ADDRESS,
    SYGMA_BRIDGE_ADDRESS,
)
from circulation.logging import get_logger
from circulation.models import BalanceReadings, BlockHeader, CirculationFigures

logger = get_logger(__name__)


class BalanceAggregator:
    """Reads supply and holder balances at one block and reduces them.

    Stateless: the result depends only on the block and the chain state.
    Query failures propagate unchanged; retrying is the chain reader's job.
    """

    def __init__(self, chain: ChainReader) -> None:
        self._chain = chain

    async def fetch_readings(self, block: BlockHeader) -> BalanceReadings:
        """Issue all reads for ``block`` concurrently and join them."""
        height = block.height
        (
            total_supply,
            reward,
            phala_chain_bridge,
            khala_chain_bridge,
            khala_legacy_chain_bridge,
            sygma_bridge,
            portal_bridge,
        ) = await asyncio.gather(
            self._chain.total_supply(height),
            self._chain.balance_of(REWARD_ADDRESS, height),
            self._chain.balance_of(PHALA_CHAIN_BRIDGE_ADDRESS, height),
            self._chain.balance_of(KHALA_CHAIN_BRIDGE_ADDRESS, height),
            self._chain.balance_of(KHALA_LEGACY_CHAIN_BRIDGE_ADDRESS, height),
            self._chain.balance_of(SYGMA_BRIDGE_ADDRESS, height),
            self._chain.balance_of(PORTAL_BRIDGE_ADDRESS, height),
        )
        return BalanceReadings(
            total_supply=total_supply,
            reward=reward,
            phala_chain_bridge=phala_chain_bridge,
            khala_chain_bridge=khala_chain_bridge,
            khala_legacy_chain_bridge=khala_legacy_chain_bridge,
            sygma_bridge=sygma_bridge,
            portal_bridge=portal_bridge,
        )

    async def fetch_circulation(self, block: BlockHeader) -> CirculationFigures:
        """Return the scaled circulation figures as of ``block``."""
        readings = await self.fetch_readings(block)
        if readings.circulation < 0:
            logger.warning(
                "negative_circulation",
                block_height=block.height,
                total_supply=readings.total_supply,
                non_circulating=readings.non_circulating,
            )
        return readings.to_figures()
