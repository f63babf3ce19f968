"""Resolution values — a closed set of variants.

    BinaryResolution(YES|NO)   1 coin per winning share, 0 per losing share
    NoContest                  "N/A": nothing pays
    FractionalResolution(f)    f per YES share, 1 - f per NO share, f in [0, 1]
                               with at most 12 decimals

Stored in markets.resolution as a token: "YES", "NO", "N/A" or the fraction
as a decimal string.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import assert_never

from src.pm_common.amounts import ONE, PROBABILITY_QUANTUM, ZERO, to_decimal
from src.pm_common.enums import Outcome
from src.pm_common.errors import InvalidResolutionError

NO_CONTEST_TOKEN = "N/A"


@dataclass(frozen=True)
class BinaryResolution:
    outcome: Outcome


@dataclass(frozen=True)
class NoContest:
    pass


@dataclass(frozen=True)
class FractionalResolution:
    fraction: Decimal


Resolution = BinaryResolution | NoContest | FractionalResolution


def parse_resolution(raw: object) -> Resolution:
    """Accepts "YES", "NO", "N/A" (or "NA"), or a number / numeric string in [0, 1]."""
    if isinstance(raw, str):
        token = raw.strip().upper()
        if token in (Outcome.YES.value, Outcome.NO.value):
            return BinaryResolution(Outcome(token))
        if token in (NO_CONTEST_TOKEN, "NA"):
            return NoContest()
    try:
        fraction = to_decimal(raw.strip() if isinstance(raw, str) else raw)
    except ValueError:
        raise InvalidResolutionError(raw) from None
    if not (ZERO <= fraction <= ONE):
        raise InvalidResolutionError(raw)
    # History samples are stored on the probability grid, so finer fractions are refused
    if fraction != fraction.quantize(PROBABILITY_QUANTUM):
        raise InvalidResolutionError(raw)
    return FractionalResolution(fraction)


def resolution_token(resolution: Resolution) -> str:
    if isinstance(resolution, BinaryResolution):
        return resolution.outcome.value
    if isinstance(resolution, NoContest):
        return NO_CONTEST_TOKEN
    if isinstance(resolution, FractionalResolution):
        return format(resolution.fraction.normalize(), "f")
    assert_never(resolution)


def payout_rates(resolution: Resolution) -> tuple[Decimal, Decimal]:
    """(coins per YES share, coins per NO share)."""
    if isinstance(resolution, BinaryResolution):
        return (ONE, ZERO) if resolution.outcome is Outcome.YES else (ZERO, ONE)
    if isinstance(resolution, NoContest):
        return ZERO, ZERO
    if isinstance(resolution, FractionalResolution):
        return resolution.fraction, ONE - resolution.fraction
    assert_never(resolution)


def resolved_probability(resolution: Resolution, current: Decimal) -> Decimal:
    """Final probability-history sample; N/A keeps the last traded probability."""
    if isinstance(resolution, BinaryResolution):
        return ONE if resolution.outcome is Outcome.YES else ZERO
    if isinstance(resolution, NoContest):
        return current
    if isinstance(resolution, FractionalResolution):
        return resolution.fraction
    assert_never(resolution)
