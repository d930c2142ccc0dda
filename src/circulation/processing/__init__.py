"""Circulation processing: balance aggregation, daily continuity, head refresh."""

from circulation.processing.aggregator import BalanceAggregator
from circulation.processing.continuity import SnapshotContinuityEngine, iter_gap_days
from circulation.processing.head_refresh import HeadRefreshPolicy
from circulation.processing.processor import CirculationProcessor

__all__ = [
    "BalanceAggregator",
    "CirculationProcessor",
    "HeadRefreshPolicy",
    "SnapshotContinuityEngine",
    "iter_gap_days",
]
