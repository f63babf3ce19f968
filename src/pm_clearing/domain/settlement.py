"""Resolution settler — close a market and pay out every position in one sweep."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_account.domain.ledger import settle_position
from src.pm_account.domain.models import Position
from src.pm_clearing.domain.resolution import (
    Resolution,
    payout_rates,
    resolution_token,
)
from src.pm_common.amounts import ZERO
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotActiveError
from src.pm_market.domain.models import Market


@dataclass(frozen=True)
class Payout:
    user_id: str
    amount: Decimal


def settle_positions(positions: list[Position], resolution: Resolution) -> list[Payout]:
    """Zero every non-empty position; return per-user payouts (zero payouts omitted).

    Payouts are rounded down per position. total_invested is left untouched.
    """
    yes_rate, no_rate = payout_rates(resolution)
    payouts: list[Payout] = []
    for position in positions:
        if position.is_empty:
            continue
        amount = settle_position(position, yes_rate, no_rate)
        if amount > ZERO:
            payouts.append(Payout(user_id=position.user_id, amount=amount))
    return payouts


def close_market(market: Market, resolution: Resolution, now: datetime) -> None:
    """Mark the market resolved. Pools and probability are left as they were."""
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id)
    market.status = MarketStatus.RESOLVED.value
    market.resolution = resolution_token(resolution)
    market.resolved_at = now
