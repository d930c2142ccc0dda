"""Gate for refreshing the latest Circulation record at the chain head."""

from circulation.exceptions import MissingBlockTimestampError
from circulation.models import BlockHeader


class HeadRefreshPolicy:
    """Decides whether the batch's last block warrants a Circulation refresh.

    Elapsed time is measured between block timestamps, not wall clock, so
    replays and catch-up behave the same as live processing.
    """

    def __init__(self, interval_seconds: int = 300) -> None:
        self._interval_ms = interval_seconds * 1000

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def should_refresh(self, block: BlockHeader, is_head: bool, last_update_ms: int) -> bool:
        """True when at head and at least one interval has passed since last_update_ms."""
        if not is_head:
            return False
        if block.timestamp is None:
            raise MissingBlockTimestampError(block.height)
        return block.timestamp - last_update_ms >= self._interval_ms
