"""Pool mutation — the only place a market's probability is (re)computed."""

from decimal import Decimal

from src.pm_amm.domain.models import Pools
from src.pm_amm.domain.pricing import probability_of
from src.pm_common.amounts import ONE, ZERO, quantize_probability
from src.pm_common.errors import LedgerIntegrityError
from src.pm_market.domain.models import Market


def set_pools(market: Market, pools: Pools, volume_delta: Decimal) -> None:
    """Move the market to `pools`, recompute probability and adjust volume.

    Raises LedgerIntegrityError instead of clamping when the result would be
    a non-positive pool, negative volume or a probability rounding to 0 or 1.
    """
    if pools.yes <= ZERO or pools.no <= ZERO:
        raise LedgerIntegrityError(
            f"market {market.id}: pools would become yes={pools.yes} no={pools.no}"
        )
    volume = market.volume + volume_delta
    if volume < ZERO:
        raise LedgerIntegrityError(f"market {market.id}: volume would become {volume}")
    probability = quantize_probability(probability_of(pools.yes, pools.no, market.p))
    if not (ZERO < probability < ONE):
        raise LedgerIntegrityError(
            f"market {market.id}: probability would become {probability}"
        )
    market.pool_yes = pools.yes
    market.pool_no = pools.no
    market.probability = probability
    market.volume = volume
