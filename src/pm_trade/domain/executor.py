"""Trade executor — pure planning and application of one BUY/SELL/REDEEM.

The functions mutate the passed Market/Position/Profile in place and return
the Trade row to append. Callers load those objects under lock, call one
function, and persist the mutated objects in the same transaction; if
anything raises, the transaction is rolled back and the in-memory objects
are discarded.

Order per request: check market open → quote (validates amount and, for
SELL, clamps to the holding) → check balance → apply pools, then position
and balance.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_account.domain.ledger import (
    PositionDelta,
    apply_delta,
    buy_delta,
    redeem_delta,
    sell_delta,
)
from src.pm_account.domain.models import Position, Profile
from src.pm_amm.domain.pricing import quote_buy, quote_sell
from src.pm_common.enums import MarketStatus, Outcome, TradeType
from src.pm_common.errors import (
    InsufficientBalanceError,
    InvalidTradeTypeError,
    MarketNotActiveError,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.pool_state import set_pools
from src.pm_trade.domain.models import Trade


@dataclass(frozen=True)
class TradeExecution:
    trade: Trade
    delta: PositionDelta

    @property
    def redeemed(self) -> Decimal:
        return self.delta.redeemed


def _require_active(market: Market) -> None:
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id)


def execute_buy(
    market: Market,
    position: Position,
    profile: Profile,
    outcome: Outcome,
    amount: Decimal,
    *,
    trade_id: str,
    now: datetime,
) -> TradeExecution:
    _require_active(market)
    quote = quote_buy(market.pools, market.p, amount, outcome)
    if quote.amount > profile.balance:
        raise InsufficientBalanceError(quote.amount, profile.balance)

    delta = buy_delta(position, outcome, quote.shares, quote.amount)
    prob_before = market.probability
    set_pools(market, quote.pools_after, volume_delta=quote.amount)
    apply_delta(position, profile, delta)

    trade = Trade(
        id=trade_id,
        market_id=market.id,
        user_id=profile.user_id,
        type=TradeType.BUY.value,
        outcome=outcome.value,
        amount=quote.amount,
        shares=quote.shares,
        redeemed=delta.redeemed,
        prob_before=prob_before,
        prob_after=market.probability,
        created_at=now,
    )
    return TradeExecution(trade=trade, delta=delta)


def execute_sell(
    market: Market,
    position: Position,
    profile: Profile,
    outcome: Outcome,
    shares: Decimal,
    *,
    trade_id: str,
    now: datetime,
) -> TradeExecution:
    _require_active(market)
    quote = quote_sell(
        market.pools, market.p, shares, outcome, held=position.shares_of(outcome)
    )

    delta = sell_delta(position, outcome, quote.shares, quote.payout)
    prob_before = market.probability
    set_pools(market, quote.pools_after, volume_delta=quote.payout)
    apply_delta(position, profile, delta)

    trade = Trade(
        id=trade_id,
        market_id=market.id,
        user_id=profile.user_id,
        type=TradeType.SELL.value,
        outcome=outcome.value,
        amount=quote.payout,
        shares=quote.shares,
        prob_before=prob_before,
        prob_after=market.probability,
        created_at=now,
    )
    return TradeExecution(trade=trade, delta=delta)


def execute_redeem(
    market: Market,
    position: Position,
    profile: Profile,
    *,
    trade_id: str,
    now: datetime,
) -> TradeExecution:
    """Cash out every matched YES+NO pair at 1 coin. Pools and volume are untouched."""
    _require_active(market)
    delta = redeem_delta(position)
    apply_delta(position, profile, delta)

    trade = Trade(
        id=trade_id,
        market_id=market.id,
        user_id=profile.user_id,
        type=TradeType.REDEEM.value,
        outcome=Outcome.YES.value,
        amount=delta.redeemed,
        shares=delta.redeemed,
        redeemed=delta.redeemed,
        prob_before=market.probability,
        prob_after=market.probability,
        created_at=now,
    )
    return TradeExecution(trade=trade, delta=delta)


def execute_trade(
    market: Market,
    position: Position,
    profile: Profile,
    trade_type: TradeType,
    outcome: Outcome,
    quantity: Decimal,
    *,
    trade_id: str,
    now: datetime,
) -> TradeExecution:
    """Dispatch a BUY (quantity = coins) or SELL (quantity = shares)."""
    if trade_type is TradeType.BUY:
        return execute_buy(
            market, position, profile, outcome, quantity, trade_id=trade_id, now=now
        )
    if trade_type is TradeType.SELL:
        return execute_sell(
            market, position, profile, outcome, quantity, trade_id=trade_id, now=now
        )
    raise InvalidTradeTypeError(trade_type.value, "BUY or SELL")
