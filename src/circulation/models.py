"""Shared data models for the circulation tracker.

CRITICAL: All token amounts use Decimal derived from integer token units.
Never use float for balances or supply figures.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Context, Decimal

from circulation.constants import TOKEN_DECIMALS
from circulation.exceptions import MissingBlockTimestampError

# Wide enough for any uint256 so scaling never rounds.
_SCALE_CONTEXT = Context(prec=80)
_ONE_TOKEN = Decimal(10) ** TOKEN_DECIMALS


def to_balance(raw: int) -> Decimal:
    """Scale an integer token amount to whole tokens, exactly."""
    return _SCALE_CONTEXT.divide(Decimal(raw), _ONE_TOKEN)


def normalize_timestamp(timestamp_ms: int | None, height: int | None = None) -> datetime:
    """Return UTC midnight of the calendar day containing ``timestamp_ms``.

    Raises MissingBlockTimestampError when the timestamp is absent.
    """
    if timestamp_ms is None:
        raise MissingBlockTimestampError(height)
    moment = datetime.fromtimestamp(timestamp_ms // 1000, tz=timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def snapshot_id(day: datetime) -> str:
    """ISO-8601 UTC key with millisecond precision, e.g. 2023-01-04T00:00:00.000Z."""
    return day.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def to_ms(moment: datetime) -> int:
    """Convert an aware datetime to Unix milliseconds."""
    return int(moment.timestamp()) * 1000 + moment.microsecond // 1000


def from_ms(timestamp_ms: int) -> datetime:
    """Convert Unix milliseconds to an aware UTC datetime."""
    seconds, millis = divmod(timestamp_ms, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=millis * 1000
    )


@dataclass(frozen=True)
class BlockHeader:
    """Minimal header of a finalized block."""

    height: int
    timestamp: int | None  # Unix milliseconds
    hash: str | None = None


@dataclass
class BlockBatch:
    """An ordered run of consecutive blocks delivered by the block source."""

    blocks: list[BlockHeader]
    is_head: bool = False

    @property
    def start_height(self) -> int | None:
        return self.blocks[0].height if self.blocks else None

    @property
    def end_height(self) -> int | None:
        return self.blocks[-1].height if self.blocks else None


@dataclass(frozen=True)
class CirculationFigures:
    """Supply figures as stored on Snapshot and Circulation records.

    khala_chain_bridge is the merged balance of the current and legacy
    Khala bridge addresses.
    """

    total_supply: Decimal
    reward: Decimal
    phala_chain_bridge: Decimal
    khala_chain_bridge: Decimal
    sygma_bridge: Decimal
    portal_bridge: Decimal
    circulation: Decimal


@dataclass(frozen=True)
class BalanceReadings:
    """Raw integer balances read at a single block, one per queried address."""

    total_supply: int
    reward: int
    phala_chain_bridge: int
    khala_chain_bridge: int
    khala_legacy_chain_bridge: int
    sygma_bridge: int
    portal_bridge: int

    @property
    def khala_bridge_total(self) -> int:
        return self.khala_chain_bridge + self.khala_legacy_chain_bridge

    @property
    def non_circulating(self) -> int:
        return (
            self.reward
            + self.phala_chain_bridge
            + self.khala_bridge_total
            + self.sygma_bridge
            + self.portal_bridge
        )

    @property
    def circulation(self) -> int:
        # Not clamped: a negative value flags a holder-set or contract problem.
        return self.total_supply - self.non_circulating

    def to_figures(self) -> CirculationFigures:
        return CirculationFigures(
            total_supply=to_balance(self.total_supply),
            reward=to_balance(self.reward),
            phala_chain_bridge=to_balance(self.phala_chain_bridge),
            khala_chain_bridge=to_balance(self.khala_bridge_total),
            sygma_bridge=to_balance(self.sygma_bridge),
            portal_bridge=to_balance(self.portal_bridge),
            circulation=to_balance(self.circulation),
        )


@dataclass(frozen=True)
class Snapshot:
    """Daily circulation record keyed by its UTC-midnight ISO timestamp."""

    id: str
    block_height: int
    timestamp: datetime
    figures: CirculationFigures

    @classmethod
    def at(cls, day: datetime, block_height: int, figures: CirculationFigures) -> "Snapshot":
        return cls(id=snapshot_id(day), block_height=block_height, timestamp=day, figures=figures)

    def carried_to(self, day: datetime) -> "Snapshot":
        """Placeholder for ``day`` with this snapshot's height and figures."""
        return replace(self, id=snapshot_id(day), timestamp=day)


@dataclass(frozen=True)
class Circulation:
    """Latest known circulation. Singleton, updated in place."""

    id: str
    block_height: int
    timestamp: datetime  # exact block time, not day-normalized
    figures: CirculationFigures


@dataclass
class ProcessingContext:
    """State threaded from one batch to the next.

    latest_snapshot is the newest persisted daily Snapshot; last_update_ms
    is the block time of the last Circulation refresh (0 if never).
    """

    latest_snapshot: Snapshot | None = None
    last_update_ms: int = 0


@dataclass
class SnapshotRun:
    """Result of extending the daily series over one batch."""

    snapshots: list[Snapshot] = field(default_factory=list)
    latest_snapshot: Snapshot | None = None
    computed: int = 0  # snapshots backed by a fresh balance query
