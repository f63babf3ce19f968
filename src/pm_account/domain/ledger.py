"""Position ledger — share/invested/balance deltas for one user on one market.

Every mutation is expressed as a PositionDelta first and applied second, so
the exact same value can later be inverted by the rollback engine.

Auto-redemption (BUY only):
    A user holding H opposite shares who buys S shares of an outcome gets
    R = min(S, H) YES+NO pairs paid out at 1 coin each immediately:
        opposite  -= R
        outcome   += S - R
        balance   += R        (on top of the -amount debit)
        invested  += amount - R
"""

from dataclasses import dataclass
from decimal import Context, Decimal, localcontext

from src.pm_account.domain.models import MarkedPosition, Position, Profile
from src.pm_common.amounts import ONE, ZERO, floor_coins
from src.pm_common.enums import MarketStatus, Outcome
from src.pm_common.errors import (
    InsufficientSharesError,
    LedgerIntegrityError,
    NothingToRedeemError,
)

_EXACT = Context(prec=60)


@dataclass(frozen=True)
class PositionDelta:
    yes_shares: Decimal
    no_shares: Decimal
    total_invested: Decimal
    balance: Decimal
    redeemed: Decimal = ZERO         # pairs cashed out as part of this change

    def inverse(self) -> "PositionDelta":
        return PositionDelta(
            yes_shares=-self.yes_shares,
            no_shares=-self.no_shares,
            total_invested=-self.total_invested,
            balance=-self.balance,
            redeemed=-self.redeemed,
        )


def _by_outcome(outcome: Outcome, own: Decimal, opposite: Decimal) -> tuple[Decimal, Decimal]:
    """Map (own, opposite) deltas onto (yes, no)."""
    if outcome is Outcome.YES:
        return own, opposite
    return opposite, own


def buy_delta(
    position: Position, outcome: Outcome, shares_out: Decimal, amount: Decimal
) -> PositionDelta:
    redeemed = min(shares_out, position.shares_of(outcome.opposite))
    yes, no = _by_outcome(outcome, shares_out - redeemed, -redeemed)
    return PositionDelta(
        yes_shares=yes,
        no_shares=no,
        total_invested=amount - redeemed,
        balance=redeemed - amount,
        redeemed=redeemed,
    )


def sell_delta(
    position: Position, outcome: Outcome, shares: Decimal, payout: Decimal
) -> PositionDelta:
    held = position.shares_of(outcome)
    if shares > held:
        raise InsufficientSharesError(f"selling {shares} {outcome.value}, held {held}")
    yes, no = _by_outcome(outcome, -shares, ZERO)
    return PositionDelta(
        yes_shares=yes,
        no_shares=no,
        total_invested=-payout,
        balance=payout,
    )


def redeem_delta(position: Position) -> PositionDelta:
    pairs = min(position.yes_shares, position.no_shares)
    if pairs <= ZERO:
        raise NothingToRedeemError(position.market_id)
    return PositionDelta(
        yes_shares=-pairs,
        no_shares=-pairs,
        total_invested=-pairs,
        balance=pairs,
        redeemed=pairs,
    )


def apply_delta(position: Position, profile: Profile, delta: PositionDelta) -> None:
    """Mutate position and profile in place; refuses to go negative."""
    yes = position.yes_shares + delta.yes_shares
    no = position.no_shares + delta.no_shares
    balance = profile.balance + delta.balance
    if yes < ZERO or no < ZERO:
        raise LedgerIntegrityError(
            f"negative shares for user {position.user_id} in market {position.market_id}: "
            f"yes={yes} no={no}"
        )
    if balance < ZERO:
        raise LedgerIntegrityError(f"negative balance for user {profile.user_id}: {balance}")
    position.yes_shares = yes
    position.no_shares = no
    position.total_invested += delta.total_invested
    profile.balance = balance


def settlement_payout(position: Position, yes_rate: Decimal, no_rate: Decimal) -> Decimal:
    # Shares x 12-decimal rates need more digits than the default context keeps
    with localcontext(_EXACT):
        return floor_coins(position.yes_shares * yes_rate + position.no_shares * no_rate)


def settle_position(position: Position, yes_rate: Decimal, no_rate: Decimal) -> Decimal:
    """Zero both share counts and return the coins owed. total_invested is kept."""
    payout = settlement_payout(position, yes_rate, no_rate)
    position.yes_shares = ZERO
    position.no_shares = ZERO
    return payout


def position_value(position: Position, probability: Decimal) -> Decimal:
    """Mark-to-market: YES shares at the probability, NO shares at its complement."""
    return settlement_payout(position, probability, ONE - probability)


def marked_value(marked: MarkedPosition) -> Decimal:
    """Current value of a position; shares in a closed market are worth nothing here."""
    if marked.market_status != MarketStatus.ACTIVE.value:
        return ZERO
    return position_value(marked.position, marked.probability)
