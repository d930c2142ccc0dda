"""Web3 implementation of ChainReader for an EVM JSON-RPC endpoint.

All state reads are pinned to a block via ``block_identifier`` so the
figures for a snapshot come from one consistent chain state. Requests are
bounded by a semaphore and retried with exponential backoff; the last
failure is re-raised unchanged.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import BlockNotFound

from circulation.chain.client import ChainReader
from circulation.config import ChainSettings
from circulation.exceptions import ChainQueryError
from circulation.logging import get_logger
from circulation.models import BlockHeader

logger = get_logger(__name__)

T = TypeVar("T")

# Minimal ERC-20 ABI: only the two views the tracker reads.
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class Web3ChainClient(ChainReader):
    """Async web3.py client for the tracked ERC-20 contract.

    Usage:
        client = Web3ChainClient(settings.chain)
        await client.connect()
        try:
            supply = await client.total_supply(12_800_000)
        finally:
            await client.close()
    """

    def __init__(self, settings: ChainSettings) -> None:
        self._settings = settings
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)
        self._w3: AsyncWeb3 | None = None
        self._contract: Any = None

    @property
    def w3(self) -> AsyncWeb3:
        """Access the AsyncWeb3 instance.

        Raises RuntimeError if not connected.
        """
        if self._w3 is None:
            raise RuntimeError("Chain client not connected. Call connect() first.")
        return self._w3

    async def connect(self) -> None:
        endpoint = self._settings.rpc_endpoint.get_secret_value()
        if not endpoint:
            raise ChainQueryError("CHAIN_RPC_ENDPOINT is not configured")

        self._w3 = AsyncWeb3(
            AsyncHTTPProvider(
                endpoint,
                request_kwargs={"timeout": self._settings.request_timeout},
            )
        )
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(self._settings.contract_address),
            abi=ERC20_ABI,
        )
        logger.info(
            "chain_client_connected",
            contract=self._settings.contract_address,
        )

    async def close(self) -> None:
        if self._w3 is not None:
            await self._w3.provider.disconnect()
            self._w3 = None
            self._contract = None
            logger.info("chain_client_closed")

    # ──────────────────────────────────────────────
    # Blocks
    # ──────────────────────────────────────────────

    async def get_head_height(self) -> int:
        return await self._call_with_retry(lambda: self.w3.eth.block_number)

    async def get_block_header(self, height: int) -> BlockHeader:
        try:
            block = await self._call_with_retry(lambda: self.w3.eth.get_block(height))
        except BlockNotFound as e:
            raise ChainQueryError(f"Block {height} not found") from e

        timestamp = block.get("timestamp")
        block_hash = block.get("hash")
        return BlockHeader(
            height=block["number"],
            timestamp=timestamp * 1000 if timestamp is not None else None,
            hash=Web3.to_hex(block_hash) if block_hash is not None else None,
        )

    # ──────────────────────────────────────────────
    # Contract reads
    # ──────────────────────────────────────────────

    async def total_supply(self, block_height: int) -> int:
        return await self._call_with_retry(
            lambda: self._contract.functions.totalSupply().call(
                block_identifier=block_height
            )
        )

    async def balance_of(self, address: str, block_height: int) -> int:
        checksum = Web3.to_checksum_address(address)
        return await self._call_with_retry(
            lambda: self._contract.functions.balanceOf(checksum).call(
                block_identifier=block_height
            )
        )

    # ──────────────────────────────────────────────
    # Retry wrapper
    # ──────────────────────────────────────────────

    async def _call_with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        """Run an RPC call with bounded concurrency and exponential backoff.

        Retries up to max_retries times with delays base, 2*base, 4*base...
        Re-raises the last error on final failure.
        """
        max_retries = self._settings.max_retries
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                async with self._semaphore:
                    return await call()
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(
                        "rpc_failed_permanently",
                        error=str(e),
                        attempts=max_retries,
                    )
                    raise

                delay = base_delay * (2**attempt)
                logger.warning(
                    "rpc_retry",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        raise ChainQueryError("max_retries must be at least 1")
