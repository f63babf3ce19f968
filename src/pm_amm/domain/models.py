"""Domain models for pm_amm — pure dataclasses, no business logic."""

from dataclasses import dataclass
from decimal import Decimal

from src.pm_common.enums import Outcome


@dataclass(frozen=True)
class Pools:
    """Reserve pools of one market. Both must stay strictly positive."""

    yes: Decimal
    no: Decimal


@dataclass(frozen=True)
class BuyQuote:
    outcome: Outcome
    amount: Decimal               # coins spent
    shares: Decimal               # shares out, rounded down
    pools_before: Pools
    pools_after: Pools
    prob_before: Decimal
    prob_after: Decimal

    @property
    def average_price(self) -> Decimal:
        return self.amount / self.shares


@dataclass(frozen=True)
class SellQuote:
    outcome: Outcome
    shares: Decimal               # shares sold (after clamping to holding)
    payout: Decimal               # coins received, rounded down
    pools_before: Pools
    pools_after: Pools
    prob_before: Decimal
    prob_after: Decimal

    @property
    def average_price(self) -> Decimal:
        return self.payout / self.shares
