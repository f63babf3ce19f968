"""Decimal amount helpers — all coins, shares and pools are Decimal.

Storage precision:
  coins / shares / pools : NUMERIC(20,6)  → quantum 0.000001
  probability            : NUMERIC(14,12) → quantum 0.000000000001
  skew p                 : NUMERIC(8,6)   → quantum 0.000001

Never use float for ledger values. Floats arriving from JSON are converted
through str() so 0.1 stays 0.1.
"""

from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal, InvalidOperation

COIN_QUANTUM = Decimal("0.000001")
PROBABILITY_QUANTUM = Decimal("0.000000000001")
SKEW_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: object) -> Decimal:
    """Convert int/str/float/Decimal to Decimal, rejecting NaN and infinities."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Not a numeric amount: {value!r}") from e
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValueError(f"Not a numeric amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def quantize_coins(value: Decimal) -> Decimal:
    """Round half-even to the coin/share quantum."""
    return value.quantize(COIN_QUANTUM, rounding=ROUND_HALF_EVEN)


def floor_coins(value: Decimal) -> Decimal:
    """Round toward zero to the coin/share quantum (house keeps the dust)."""
    return value.quantize(COIN_QUANTUM, rounding=ROUND_DOWN)


def quantize_probability(value: Decimal) -> Decimal:
    return value.quantize(PROBABILITY_QUANTUM, rounding=ROUND_HALF_EVEN)


def is_on_coin_grid(value: Decimal) -> bool:
    return value == value.quantize(COIN_QUANTUM)


def format_coins(value: Decimal) -> str:
    """Whole coins with thousands separators, e.g. Decimal("1234.9") → "1,234"."""
    whole = value.quantize(ONE, rounding=ROUND_DOWN)
    return f"{int(whole):,}"


def format_shares(value: Decimal) -> str:
    """Shares to one decimal place, e.g. Decimal("80.06") → "80.0"."""
    return f"{value.quantize(Decimal('0.1'), rounding=ROUND_DOWN)}"


def format_probability(value: Decimal) -> str:
    """Whole-percent probability, e.g. Decimal("0.634") → "63%"."""
    pct = (value * 100).quantize(ONE, rounding=ROUND_HALF_EVEN)
    return f"{int(pct)}%"
