"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"


class Outcome(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> "Outcome":
        return Outcome.NO if self is Outcome.YES else Outcome.YES


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    REDEEM = "REDEEM"


class RollbackBatchStatus(str, Enum):
    """Overall outcome of a rollback batch; each item succeeds or fails alone."""
    ALL_SUCCEEDED = "ALL_SUCCEEDED"
    PARTIAL = "PARTIAL"
    ALL_FAILED = "ALL_FAILED"
