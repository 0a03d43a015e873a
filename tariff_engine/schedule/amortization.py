"""Amortization schedule construction.

The running balance is carried at full ``Decimal`` precision. Stored
amounts are rounded half-up to cents, and each stored principal is the
difference between two consecutive rounded balances, so the principal
components always sum to the original principal and rounding never
accumulates across months.

The final month takes whatever rounded balance is left. The gap between
that and the unrounded principal of the month is the only correction the
builder applies; it must stay within ``final_period_tolerance``.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, localcontext

from tariff_engine.exceptions import ScheduleInvariantError, ValidationError
from tariff_engine.models.enums import RedemptionScheme
from tariff_engine.models.loan import LoanTerms, ScheduleEntry
from tariff_engine.money import periodic_rate, to_cents

logger = logging.getLogger(__name__)

WORKING_PRECISION = 40


def due_date_for(start_date: date, month_index: int) -> date:
    """First day of the month ``month_index`` months after ``start_date``."""
    months = start_date.year * 12 + (start_date.month - 1) + month_index
    return date(months // 12, months % 12 + 1, 1)


def annuity_payment(balance: Decimal, rate: Decimal, periods: int) -> Decimal:
    """Fixed annuity ``A = B * r / (1 - (1 + r) ** -n)``; ``B / n`` when r is 0."""
    if periods <= 0:
        raise ValidationError("Annuity needs at least one period")
    if rate == 0:
        return balance / periods
    return balance * rate / (1 - (1 + rate) ** -periods)


def build_schedule(
    loan_id: str,
    terms: LoanTerms,
    annual_rate_pct: Decimal,
    final_period_tolerance: Decimal = Decimal("0.05"),
) -> list[ScheduleEntry]:
    """Build the full month-by-month schedule of a loan.

    Parameters
    ----------
    loan_id : str
        Loan the entries belong to.
    terms : LoanTerms
        Principal, term, interest-only period, start date and scheme.
    annual_rate_pct : Decimal
        Annual interest rate in percent, already rounded by the resolver.
    final_period_tolerance : Decimal
        Largest correction allowed on the final principal.

    Returns
    -------
    list[ScheduleEntry]
        Entries for months 1..term_months in order.

    Raises
    ------
    ScheduleInvariantError
        If the final-period correction exceeds the tolerance.
    """
    if terms.principal <= 0 or terms.term_months <= 0:
        raise ValidationError("Principal and term must be positive")
    if terms.principal != to_cents(terms.principal):
        raise ValidationError(f"Principal {terms.principal} has fractions of a cent")
    if not 0 <= terms.interest_only_months <= terms.term_months:
        raise ValidationError("Interest-only period must be within the term")
    if annual_rate_pct < 0:
        raise ValidationError("Interest rate must not be negative")

    entries: list[ScheduleEntry] = []

    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        r = periodic_rate(annual_rate_pct)
        exact = Decimal(terms.principal)
        stored = to_cents(exact)

        # A loan that is interest-only for its whole term repays the principal
        # as a balloon with the last instalment.
        io_months = min(terms.interest_only_months, terms.term_months - 1)

        for month in range(1, io_months + 1):
            entries.append(
                ScheduleEntry(
                    loan_id=loan_id,
                    month_index=month,
                    due_date=due_date_for(terms.start_date, month),
                    principal=Decimal("0.00"),
                    interest=to_cents(exact * r),
                    balance_after=stored,
                )
            )

        n = terms.term_months - io_months
        payment = annuity_payment(exact, r, n)
        linear_step = exact / n

        for j in range(1, n + 1):
            month = io_months + j
            interest_exact = exact * r
            is_final = j == n

            if terms.redemption == RedemptionScheme.ANNUITY:
                principal_exact = payment - interest_exact
            elif terms.redemption == RedemptionScheme.LINEAR:
                principal_exact = linear_step
            else:
                principal_exact = exact if is_final else Decimal(0)

            exact -= principal_exact

            if is_final:
                principal = stored
                correction = principal - to_cents(principal_exact)
                if abs(correction) > final_period_tolerance:
                    raise ScheduleInvariantError(
                        f"Loan {loan_id}: final-period correction {correction} "
                        f"exceeds tolerance {final_period_tolerance}"
                    )
                balance_after = Decimal("0.00")
            else:
                balance_after = to_cents(exact)
                principal = stored - balance_after

            stored = balance_after
            entries.append(
                ScheduleEntry(
                    loan_id=loan_id,
                    month_index=month,
                    due_date=due_date_for(terms.start_date, month),
                    principal=principal,
                    interest=to_cents(interest_exact),
                    balance_after=balance_after,
                )
            )

    logger.debug(
        "Built %d-month %s schedule for loan %s at %s%%",
        terms.term_months,
        terms.redemption.value,
        loan_id,
        annual_rate_pct,
    )
    return entries


def payment_totals(
    schedule: list[ScheduleEntry],
    redemption: RedemptionScheme = RedemptionScheme.ANNUITY,
) -> tuple[Decimal, Decimal, Decimal]:
    """Return (monthly payment, total interest, total amount) of a schedule.

    The monthly payment is the first amortizing instalment for annuity and
    linear loans and the first instalment for bullet loans.
    """
    if not schedule:
        raise ValidationError("Schedule is empty")

    total_interest = sum((e.interest for e in schedule), Decimal("0.00"))
    total_principal = sum((e.principal for e in schedule), Decimal("0.00"))

    reference = schedule[0]
    if redemption != RedemptionScheme.BULLET:
        reference = next((e for e in schedule if e.principal > 0), schedule[0])

    return reference.total, total_interest, total_principal + total_interest
