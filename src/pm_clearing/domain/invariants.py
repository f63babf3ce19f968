"""Ledger invariants checked before every write and by the admin sweep.

INV-POOL   : pool_yes > 0 and pool_no > 0, 0 < p < 1
INV-PROB   : stored probability == quantized probability_of(pools, p)
INV-VOLUME : volume >= 0
INV-SHARES : position yes_shares >= 0 and no_shares >= 0
INV-BAL    : profile balance >= 0
"""

import logging

from src.pm_account.domain.models import Position, Profile
from src.pm_amm.domain.pricing import probability_of
from src.pm_common.amounts import ONE, ZERO, quantize_probability
from src.pm_common.errors import LedgerIntegrityError
from src.pm_market.domain.models import Market

logger = logging.getLogger(__name__)


def market_violations(market: Market) -> list[str]:
    """All invariant violations of one market row; empty when healthy."""
    violations: list[str] = []
    if market.pool_yes <= ZERO or market.pool_no <= ZERO:
        violations.append(
            f"INV-POOL market={market.id}: yes={market.pool_yes} no={market.pool_no}"
        )
    if not (ZERO < market.p < ONE):
        violations.append(f"INV-POOL market={market.id}: p={market.p}")
    if market.volume < ZERO:
        violations.append(f"INV-VOLUME market={market.id}: volume={market.volume}")
    if not violations:
        expected = quantize_probability(
            probability_of(market.pool_yes, market.pool_no, market.p)
        )
        if market.probability != expected:
            violations.append(
                f"INV-PROB market={market.id}: stored={market.probability} "
                f"computed={expected}"
            )
    return violations


def verify_trade_state(market: Market, position: Position, profile: Profile) -> None:
    """Raise LedgerIntegrityError if the post-trade state breaks any invariant."""
    violations = market_violations(market)
    if position.yes_shares < ZERO or position.no_shares < ZERO:
        violations.append(
            f"INV-SHARES user={position.user_id} market={position.market_id}: "
            f"yes={position.yes_shares} no={position.no_shares}"
        )
    if profile.balance < ZERO:
        violations.append(f"INV-BAL user={profile.user_id}: balance={profile.balance}")
    if violations:
        raise LedgerIntegrityError("; ".join(violations))
    logger.debug(
        "Invariants OK: market=%s prob=%s user=%s", market.id, market.probability, profile.user_id
    )
