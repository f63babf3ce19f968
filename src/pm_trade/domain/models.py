"""Domain models for pm_trade — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import ZERO


@dataclass
class Trade:
    """Immutable audit record; only is_rolled_back/rolled_back_at ever change.

    amount   : coins spent (BUY), coins received (SELL), pairs paid (REDEEM)
    shares   : shares received (BUY), shares sold (SELL), pairs consumed (REDEEM)
    redeemed : pairs auto-redeemed by a BUY, pairs consumed by a REDEEM
    """

    id: str
    market_id: str
    user_id: str
    type: str
    outcome: str
    amount: Decimal
    shares: Decimal
    prob_before: Decimal
    prob_after: Decimal
    redeemed: Decimal = ZERO
    is_rolled_back: bool = False
    rolled_back_at: datetime | None = None
    created_at: datetime | None = None
