"""Custom exceptions for the circulation tracker.

Chain-reader and processing exceptions live here to avoid circular
imports between the chain, data and processing packages.
"""


class CirculationError(Exception):
    """Base exception for all circulation tracker errors."""


class MissingBlockTimestampError(CirculationError):
    """Raised when a block header carries no timestamp.

    A day cannot be derived without it, so the whole batch is aborted.
    """

    def __init__(self, height: int | None = None) -> None:
        self.height = height
        super().__init__(f"Block {height} has no timestamp")


class OutOfOrderBlockError(CirculationError):
    """Raised when a block's day precedes the latest persisted snapshot day."""


class ChainQueryError(CirculationError):
    """Raised when the chain reader cannot resolve a block or call result."""
