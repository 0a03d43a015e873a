"""Market data collaborator interface.

The engine consumes two values per calculation: a point of the government
bond yield curve (the base rate) and the statutory reference rate used for
BSE discounting. Fetching, caching and retrying are the collaborator's job.
Whatever goes wrong on that side reaches the engine as
``SourceUnavailableError``; no default rate is ever substituted.

Base rate selection: the curve point with the largest maturity that does
not exceed the loan term (in years). A term shorter than every maturity
uses the shortest maturity. There is no interpolation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from tariff_engine.exceptions import SourceUnavailableError
from tariff_engine.models.tariff import RateQuote, YieldPoint
from tariff_engine.money import round_rate

logger = logging.getLogger(__name__)

# Months of the previous year averaged into the statutory reference rate.
REFERENCE_MONTHS = (9, 10, 11)
# Re-base when the trailing three-month mean moves more than this (percent).
REBASE_DEVIATION_PCT = Decimal("15")


@runtime_checkable
class MarketRateSource(Protocol):
    """Protocol for market data providers.

    Any class implementing both methods can be passed to the engine; no
    inheritance is needed.
    """

    def latest_yield_curve(self) -> Sequence[YieldPoint]:
        """Return the latest yield curve points."""
        ...

    def statutory_reference_rate(self) -> Decimal:
        """Return the statutory reference rate in percent."""
        ...


def select_base_point(curve: Sequence[YieldPoint], term_months: int) -> YieldPoint:
    """Pick the yield curve point used as base rate for a loan term.

    Parameters
    ----------
    curve : Sequence[YieldPoint]
        Yield curve points in any order.
    term_months : int
        Loan term in months.

    Returns
    -------
    YieldPoint
        Point with the largest maturity not exceeding the term, or the
        shortest maturity when the term is shorter than all of them.
    """
    if not curve:
        raise SourceUnavailableError("Yield curve is empty")

    points = sorted(curve, key=lambda p: p.maturity_years)
    maturities = [p.maturity_years for p in points]
    if len(set(maturities)) != len(maturities):
        raise SourceUnavailableError("Yield curve has duplicate maturities")

    term_years = Decimal(term_months) / 12
    eligible = [p for p in points if p.maturity_years <= term_years]
    return eligible[-1] if eligible else points[0]


def fetch_quote(source: MarketRateSource, term_months: int) -> RateQuote:
    """Read both market values for one calculation.

    Collaborator exceptions are converted to ``SourceUnavailableError`` so
    callers can tell a dependency outage from bad input.
    """
    try:
        curve = list(source.latest_yield_curve())
        reference_rate = source.statutory_reference_rate()
    except SourceUnavailableError:
        raise
    except Exception as exc:
        logger.error("Market rate source failed: %s", exc)
        raise SourceUnavailableError(f"Market rate source failed: {exc}") from exc

    if reference_rate is None:
        raise SourceUnavailableError("Statutory reference rate not available")

    base_point = select_base_point(curve, term_months)
    logger.debug(
        "Base rate %s%% from %sY bucket, reference rate %s%%",
        base_point.yield_pct,
        base_point.maturity_years,
        reference_rate,
    )
    return RateQuote(base_point=base_point, reference_rate_pct=Decimal(reference_rate))


def reference_rate_from_fixings(
    fixings: Mapping[date, Decimal],
    as_of: date,
) -> Decimal:
    """Compute the statutory reference rate from monthly EURIBOR fixings.

    The base is the mean of the September, October and November fixings of
    the year before ``as_of``. Later months are scanned with a trailing
    three-month mean; when it deviates more than 15% from the current base,
    that mean becomes the new base, effective the month after detection and
    only once that month has been reached.

    Parameters
    ----------
    fixings : Mapping[date, Decimal]
        Monthly 1-year EURIBOR fixings in percent, keyed by any date within
        the fixing month.
    as_of : date
        Calculation date.

    Returns
    -------
    Decimal
        Reference rate in percent, rounded half-up to 2 decimals.
    """
    monthly: dict[tuple[int, int], Decimal] = {
        (d.year, d.month): Decimal(rate) for d, rate in fixings.items()
    }
    year = as_of.year - 1

    missing = [m for m in REFERENCE_MONTHS if (year, m) not in monthly]
    if missing:
        raise SourceUnavailableError(
            f"Missing EURIBOR fixings for {year} months {missing}"
        )

    base = sum(monthly[(year, m)] for m in REFERENCE_MONTHS) / len(REFERENCE_MONTHS)

    start = (year, REFERENCE_MONTHS[0])
    end = (as_of.year, as_of.month)
    series = sorted(key for key in monthly if start <= key <= end)

    i = 2
    while i < len(series):
        window = [monthly[key] for key in series[i - 2 : i + 1]]
        trailing = sum(window) / 3
        if base != 0 and abs((trailing - base) / base * 100) > REBASE_DEVIATION_PCT:
            effective = i + 1
            if effective < len(series):
                logger.info(
                    "Reference rate re-based from %s to %s effective %d-%02d",
                    base,
                    trailing,
                    *series[effective],
                )
                base = trailing
                i = effective
        i += 1

    return round_rate(base, 2)


class StaticMarketRateSource:
    """Fixed market snapshot; used by batch jobs and tests."""

    def __init__(
        self,
        curve: Sequence[YieldPoint],
        reference_rate_pct: Decimal | None,
    ) -> None:
        self._curve = tuple(curve)
        self._reference_rate = reference_rate_pct

    def latest_yield_curve(self) -> Sequence[YieldPoint]:
        if not self._curve:
            raise SourceUnavailableError("No yield curve loaded")
        return self._curve

    def statutory_reference_rate(self) -> Decimal:
        if self._reference_rate is None:
            raise SourceUnavailableError("No statutory reference rate loaded")
        return self._reference_rate


class FixingsMarketRateSource:
    """Market source deriving the reference rate from EURIBOR fixings."""

    def __init__(
        self,
        curve: Sequence[YieldPoint],
        fixings: Mapping[date, Decimal],
        as_of: date | None = None,
    ) -> None:
        self._curve = tuple(curve)
        self._fixings = dict(fixings)
        self._as_of = as_of

    def latest_yield_curve(self) -> Sequence[YieldPoint]:
        if not self._curve:
            raise SourceUnavailableError("No yield curve loaded")
        return self._curve

    def statutory_reference_rate(self) -> Decimal:
        return reference_rate_from_fixings(self._fixings, self._as_of or date.today())
