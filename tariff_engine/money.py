"""Decimal helpers shared by the pricing and schedule modules."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12
BPS_PER_PERCENT = Decimal("100")


def to_cents(amount: Decimal) -> Decimal:
    """Round a monetary amount half-up to whole cents."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(rate_pct: Decimal, decimals: int = 2) -> Decimal:
    """Round a percentage half-up to ``decimals`` places."""
    return rate_pct.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def periodic_rate(annual_rate_pct: Decimal) -> Decimal:
    """Monthly rate as a fraction: annual percentage / 100 / 12."""
    return annual_rate_pct / HUNDRED / MONTHS_PER_YEAR


def bps_to_percent(bps: int | Decimal) -> Decimal:
    """Convert basis points to percentage points (100 bps = 1.00%)."""
    return Decimal(bps) / BPS_PER_PERCENT
