"""Domain models for pm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_amm.domain.models import Pools


@dataclass
class Market:
    id: str
    question: str
    description: str | None
    creator_id: str | None
    pool_yes: Decimal
    pool_no: Decimal
    p: Decimal                       # skew, fixed at creation
    probability: Decimal             # always recomputed from pools, never set directly
    total_liquidity: Decimal
    volume: Decimal
    status: str
    resolution: str | None
    resolved_at: datetime | None
    created_at: datetime
    updated_at: datetime
    version: int = 0                 # compare-and-swap token for pool updates

    @property
    def pools(self) -> Pools:
        return Pools(yes=self.pool_yes, no=self.pool_no)


@dataclass
class ProbabilityPoint:
    """One append-only sample of a market's probability."""

    market_id: str
    probability: Decimal
    created_at: datetime
