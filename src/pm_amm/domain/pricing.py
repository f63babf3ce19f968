"""Weighted constant-product market maker (CPMM).

Curve invariant for a market with skew p:

    k = pool_yes^p * pool_no^(1 - p)

    probability(YES) = p * pool_no / (p * pool_no + (1 - p) * pool_yes)

Buying YES with `a` coins mints `a` YES + `a` NO, adds both to the pools,
then withdraws YES until k is restored; the withdrawn YES plus the minted
YES are the shares out. Buying NO is the mirror image. Selling is the exact
inverse: the payout x is the amount that, when burned from both pools
after the sold shares are returned, restores k.

All functions are pure and operate on Decimal in a 40-digit context.
Shares out and payouts are rounded DOWN to the coin quantum; pool deltas
are computed from the rounded values so they are exact and reversible.
"""

from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext

from src.pm_amm.domain.models import BuyQuote, Pools, SellQuote
from src.pm_common.amounts import ONE, SKEW_QUANTUM, ZERO, floor_coins, quantize_coins
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    InsufficientSharesError,
    InvalidAmountError,
    InvalidMarketParametersError,
    LedgerIntegrityError,
)

_CONTEXT = Context(prec=40, rounding=ROUND_HALF_EVEN)

MIN_INITIAL_PROBABILITY = Decimal("0.01")
MAX_INITIAL_PROBABILITY = Decimal("0.99")

_BISECT_EPSILON = Decimal("1e-15")
_BISECT_MAX_ITER = 200


def _check_market(pools: Pools, p: Decimal) -> None:
    if pools.yes <= ZERO or pools.no <= ZERO:
        raise LedgerIntegrityError(f"non-positive pool yes={pools.yes} no={pools.no}")
    if not (ZERO < p < ONE):
        raise LedgerIntegrityError(f"skew p={p} outside (0, 1)")


def _require_positive(value: Decimal, what: str) -> Decimal:
    if not value.is_finite() or value <= ZERO:
        raise InvalidAmountError(f"{what} must be positive, got {value}")
    quantized = quantize_coins(value)
    if quantized <= ZERO:
        raise InvalidAmountError(f"{what} below minimum unit: {value}")
    return quantized


def _check_probability(prob: Decimal) -> Decimal:
    if not (ZERO < prob < ONE):
        raise LedgerIntegrityError(f"degenerate pool: probability {prob}")
    return prob


def probability_of(pool_yes: Decimal, pool_no: Decimal, p: Decimal) -> Decimal:
    """Implied YES probability, strictly inside (0, 1) for positive pools."""
    _check_market(Pools(pool_yes, pool_no), p)
    with localcontext(_CONTEXT):
        weighted_no = p * pool_no
        return +(weighted_no / (weighted_no + (ONE - p) * pool_yes))


def invariant(pools: Pools, p: Decimal) -> Decimal:
    with localcontext(_CONTEXT):
        return pools.yes ** p * pools.no ** (ONE - p)


def seed_pools(
    initial_probability: Decimal, initial_liquidity: Decimal
) -> tuple[Pools, Decimal]:
    """Pools and skew for a new market.

    Equal pools with p = initial probability make probability_of() return
    exactly the requested value. The probability is rounded to the 6-decimal
    grid p is stored on, so the returned skew is the one persisted.
    """
    if initial_probability.is_finite() and ZERO <= initial_probability <= ONE:
        initial_probability = initial_probability.quantize(
            SKEW_QUANTUM, rounding=ROUND_HALF_EVEN
        )
    if not (
        initial_probability.is_finite()
        and MIN_INITIAL_PROBABILITY <= initial_probability <= MAX_INITIAL_PROBABILITY
    ):
        raise InvalidMarketParametersError(
            f"initial probability must be within "
            f"[{MIN_INITIAL_PROBABILITY}, {MAX_INITIAL_PROBABILITY}], got {initial_probability}"
        )
    if not initial_liquidity.is_finite() or initial_liquidity <= ZERO:
        raise InvalidMarketParametersError(
            f"initial liquidity must be positive, got {initial_liquidity}"
        )
    liquidity = quantize_coins(initial_liquidity)
    if liquidity <= ZERO:
        raise InvalidMarketParametersError(f"initial liquidity too small: {initial_liquidity}")
    return Pools(yes=liquidity, no=liquidity), initial_probability


def quote_buy(pools: Pools, p: Decimal, amount: Decimal, outcome: Outcome) -> BuyQuote:
    """Shares received for spending `amount` coins on `outcome`.

    shares >= amount always holds: the minted shares alone equal the amount,
    and the curve withdrawal only adds to them.
    """
    _check_market(pools, p)
    amount = _require_positive(amount, "amount")
    k = invariant(pools, p)

    with localcontext(_CONTEXT):
        if outcome is Outcome.YES:
            new_no = pools.no + amount
            target_yes = (k / new_no ** (ONE - p)) ** (ONE / p)
            shares = floor_coins(pools.yes + amount - target_yes)
            after = Pools(yes=pools.yes + amount - shares, no=new_no)
        else:
            new_yes = pools.yes + amount
            target_no = (k / new_yes ** p) ** (ONE / (ONE - p))
            shares = floor_coins(pools.no + amount - target_no)
            after = Pools(yes=new_yes, no=pools.no + amount - shares)

    if after.yes <= ZERO or after.no <= ZERO:
        raise LedgerIntegrityError(f"buy would drain pool: {after}")
    prob_before = probability_of(pools.yes, pools.no, p)
    prob_after = _check_probability(probability_of(after.yes, after.no, p))
    return BuyQuote(
        outcome=outcome,
        amount=amount,
        shares=shares,
        pools_before=pools,
        pools_after=after,
        prob_before=prob_before,
        prob_after=prob_after,
    )


def clamp_sell_shares(requested: Decimal, held: Decimal) -> Decimal:
    """Never sell more than is held; an oversized request sells the whole holding."""
    if held <= ZERO:
        raise InsufficientSharesError("no shares held for this outcome")
    return min(requested, held)


def _sell_residual(
    pools: Pools, p: Decimal, shares: Decimal, outcome: Outcome, payout: Decimal, k: Decimal
) -> Decimal:
    if outcome is Outcome.YES:
        yes, no = pools.yes + shares - payout, pools.no - payout
    else:
        yes, no = pools.yes - payout, pools.no + shares - payout
    return yes ** p * no ** (ONE - p) - k


def quote_sell(
    pools: Pools,
    p: Decimal,
    shares: Decimal,
    outcome: Outcome,
    held: Decimal | None = None,
) -> SellQuote:
    """Coins received for selling `shares` of `outcome` back to the pool.

    If `held` is given the request is clamped to it first (see
    clamp_sell_shares). The payout is the bisection root rounded down, so a
    seller never receives more than the curve allows.
    """
    _check_market(pools, p)
    shares = _require_positive(shares, "shares")
    if held is not None:
        shares = clamp_sell_shares(shares, held)
    k = invariant(pools, p)

    with localcontext(_CONTEXT):
        if outcome is Outcome.YES:
            upper = min(pools.no, pools.yes + shares)
        else:
            upper = min(pools.yes, pools.no + shares)
        # residual(lo) >= 0, residual(hi) < 0
        lo, hi = ZERO, upper
        for _ in range(_BISECT_MAX_ITER):
            if hi - lo <= _BISECT_EPSILON:
                break
            mid = (lo + hi) / 2
            if _sell_residual(pools, p, shares, outcome, mid, k) >= ZERO:
                lo = mid
            else:
                hi = mid
        payout = floor_coins(lo)
        if outcome is Outcome.YES:
            after = Pools(yes=pools.yes + shares - payout, no=pools.no - payout)
        else:
            after = Pools(yes=pools.yes - payout, no=pools.no + shares - payout)

    if after.yes <= ZERO or after.no <= ZERO:
        raise LedgerIntegrityError(f"sell would drain pool: {after}")
    prob_before = probability_of(pools.yes, pools.no, p)
    prob_after = _check_probability(probability_of(after.yes, after.no, p))
    return SellQuote(
        outcome=outcome,
        shares=shares,
        payout=payout,
        pools_before=pools,
        pools_after=after,
        prob_before=prob_before,
        prob_after=prob_after,
    )
