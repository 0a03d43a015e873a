"""Gross support equivalent (BSE) of a below-reference loan.

For month m with opening balance B(m) (the balance month m's interest
accrues on):

    contribution(m) = max(ref - charged, 0) / 100 / 12 * B(m) / (1 + ref / 100 / 12) ** m

The BSE is the sum of all contributions, rounded half-up to cents once.
A loan priced at or above the reference rate has a BSE of zero.
"""

from __future__ import annotations

import logging
from decimal import Decimal, localcontext

from tariff_engine.exceptions import ValidationError
from tariff_engine.models.loan import ScheduleEntry
from tariff_engine.models.tariff import BseResult, BseYear
from tariff_engine.money import MONTHS_PER_YEAR, periodic_rate, to_cents

logger = logging.getLogger(__name__)

WORKING_PRECISION = 40


def opening_balance(entry: ScheduleEntry) -> Decimal:
    """Balance at the start of the entry's month."""
    return entry.balance_after + entry.principal


def calculate_bse(
    schedule: list[ScheduleEntry],
    charged_rate_pct: Decimal,
    reference_rate_pct: Decimal,
) -> BseResult:
    """Calculate the BSE of a schedule.

    Parameters
    ----------
    schedule : list[ScheduleEntry]
        Schedule built at the charged rate, ordered by month index.
    charged_rate_pct : Decimal
        Annual rate the loan is priced at, in percent.
    reference_rate_pct : Decimal
        Statutory reference rate, in percent. Also the discount rate.

    Returns
    -------
    BseResult
        Total BSE plus a per-loan-year breakdown.
    """
    if not schedule:
        raise ValidationError("Cannot calculate BSE for an empty schedule")

    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        ref_r = periodic_rate(reference_rate_pct)
        charged_r = periodic_rate(charged_rate_pct)
        gap = max(ref_r - charged_r, Decimal(0))

        total = Decimal(0)
        years: dict[int, list[Decimal]] = {}

        for entry in schedule:
            balance = opening_balance(entry)
            contribution = gap * balance / (1 + ref_r) ** entry.month_index
            total += contribution

            year = (entry.month_index - 1) // MONTHS_PER_YEAR + 1
            sums = years.setdefault(year, [Decimal(0)] * 4)
            sums[0] += balance * ref_r
            sums[1] += balance * charged_r
            sums[2] += gap * balance
            sums[3] += contribution

        yearly = [
            BseYear(
                year=year,
                reference_interest=to_cents(sums[0]),
                charged_interest=to_cents(sums[1]),
                difference=to_cents(sums[2]),
                discounted_value=to_cents(sums[3]),
            )
            for year, sums in sorted(years.items())
        ]
        amount = to_cents(total)

    logger.debug(
        "BSE %s at %s%% against reference %s%%",
        amount,
        charged_rate_pct,
        reference_rate_pct,
    )
    return BseResult(
        amount=amount,
        reference_rate_pct=reference_rate_pct,
        charged_rate_pct=charged_rate_pct,
        yearly=yearly,
    )
