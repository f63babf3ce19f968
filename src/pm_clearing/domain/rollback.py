"""Rollback engine — exact reversal of one trade's own contribution.

The deltas are re-derived from the trade row (amount, shares, redeemed),
never from prob_before/prob_after, and subtracted from the CURRENT state.
Rolling back an older trade therefore moves pools by exactly that trade's
delta regardless of what committed after it.

Pool deltas applied when the trade executed (a = amount, s = shares):

    BUY  YES : yes += a - s, no += a
    BUY  NO  : yes += a,     no += a - s
    SELL YES : yes += s - a, no -= a
    SELL NO  : yes -= a,     no += s - a
"""

from decimal import Decimal

from src.pm_account.domain.ledger import PositionDelta, apply_delta
from src.pm_account.domain.models import Position, Profile
from src.pm_amm.domain.models import Pools
from src.pm_common.amounts import ZERO
from src.pm_common.enums import MarketStatus, Outcome, TradeType
from src.pm_common.errors import (
    MarketNotActiveError,
    TradeAlreadyRolledBackError,
    TradeNotReversibleError,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.pool_state import set_pools
from src.pm_trade.domain.models import Trade


def pool_delta(trade: Trade) -> tuple[Decimal, Decimal]:
    """(Δpool_yes, Δpool_no) the trade applied when it committed."""
    a, s = trade.amount, trade.shares
    if trade.type == TradeType.BUY:
        return (a - s, a) if trade.outcome == Outcome.YES else (a, a - s)
    if trade.type == TradeType.SELL:
        return (s - a, -a) if trade.outcome == Outcome.YES else (-a, s - a)
    return ZERO, ZERO


def position_delta(trade: Trade) -> PositionDelta:
    """The PositionDelta the trade applied, including its auto-redemption."""
    is_yes = trade.outcome == Outcome.YES
    if trade.type == TradeType.BUY:
        own, opposite = trade.shares - trade.redeemed, -trade.redeemed
        return PositionDelta(
            yes_shares=own if is_yes else opposite,
            no_shares=opposite if is_yes else own,
            total_invested=trade.amount - trade.redeemed,
            balance=trade.redeemed - trade.amount,
            redeemed=trade.redeemed,
        )
    if trade.type == TradeType.SELL:
        return PositionDelta(
            yes_shares=-trade.shares if is_yes else ZERO,
            no_shares=ZERO if is_yes else -trade.shares,
            total_invested=-trade.amount,
            balance=trade.amount,
        )
    raise TradeNotReversibleError(trade.id, trade.type)


def check_reversible(trade: Trade, market: Market) -> None:
    if trade.type == TradeType.REDEEM:
        raise TradeNotReversibleError(trade.id, trade.type)
    if trade.is_rolled_back:
        raise TradeAlreadyRolledBackError(trade.id)
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id)


def reverse_trade(
    trade: Trade, market: Market, position: Position, profile: Profile
) -> PositionDelta:
    """Undo `trade` on the given (locked) state in place; returns the delta applied.

    Raises LedgerIntegrityError if the reversal would drive a pool, share
    count, balance or volume negative (e.g. the bought shares were sold since).
    """
    check_reversible(trade, market)
    d_yes, d_no = pool_delta(trade)
    set_pools(
        market,
        Pools(yes=market.pool_yes - d_yes, no=market.pool_no - d_no),
        volume_delta=-trade.amount,
    )
    inverse = position_delta(trade).inverse()
    apply_delta(position, profile, inverse)
    return inverse
