"""Abstract chain reader interface.

Defines the contract the processing layer depends on. Web3 and RPC
specifics stay in the concrete implementation.
"""

from abc import ABC, abstractmethod

from circulation.models import BlockHeader


class ChainReader(ABC):
    """Read-only access to chain state at a given block."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the RPC connection."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the RPC connection."""
        ...

    @abstractmethod
    async def get_head_height(self) -> int:
        """Return the height of the newest block known to the node."""
        ...

    @abstractmethod
    async def get_block_header(self, height: int) -> BlockHeader:
        """Return the header of the block at ``height`` (timestamp in ms)."""
        ...

    @abstractmethod
    async def total_supply(self, block_height: int) -> int:
        """Token total supply as of ``block_height``, in integer token units."""
        ...

    @abstractmethod
    async def balance_of(self, address: str, block_height: int) -> int:
        """Token balance of ``address`` as of ``block_height``, in integer token units."""
        ...
