"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import ZERO
from src.pm_common.enums import Outcome


@dataclass
class Profile:
    user_id: str
    balance: Decimal                 # coins, never negative
    is_admin: bool = False
    username: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Position:
    user_id: str
    market_id: str
    yes_shares: Decimal = ZERO
    no_shares: Decimal = ZERO
    total_invested: Decimal = ZERO   # net coins spent minus coins received; may go negative
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def shares_of(self, outcome: Outcome) -> Decimal:
        return self.yes_shares if outcome is Outcome.YES else self.no_shares

    @property
    def is_empty(self) -> bool:
        return self.yes_shares == ZERO and self.no_shares == ZERO


@dataclass(frozen=True)
class MarkedPosition:
    """A position next to the current state of its market, for portfolio views."""

    position: Position
    market_question: str
    market_status: str
    probability: Decimal
