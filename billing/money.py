"""Fixed-point money arithmetic.

Amounts are integer cents, rates are integer basis points (10000 = 100%).
Nothing here touches floats.
"""

from decimal import Decimal

BPS_SCALE = 10000

_TWO_PLACES = Decimal("0.01")


def apply_rate(amount_cents: int, rate_bps: int) -> int:
    """
    Share of an amount at a rate, rounded half-up to the cent.

    Both arguments must be non-negative.

    Example:
        apply_rate(50000, 1800)  # 18% of 500.00 -> 9000 (90.00)
        apply_rate(1, 5000)      # 50% of 0.01 -> 1 (half rounds up)
    """
    if amount_cents < 0 or rate_bps < 0:
        raise ValueError("apply_rate expects non-negative amount and rate")
    return (amount_cents * rate_bps + BPS_SCALE // 2) // BPS_SCALE


def cents_to_decimal(cents: int) -> Decimal:
    """Convert cents to a two-place Decimal for display."""
    return (Decimal(cents) / 100).quantize(_TWO_PLACES)


def format_cents(cents: int) -> str:
    """Render cents as a plain two-place string, e.g. 59000 -> '590.00'."""
    return f"{cents_to_decimal(cents):.2f}"
