"""Interest rate resolution from collateral, rating and market data."""

from __future__ import annotations

import logging
from decimal import Decimal

from tariff_engine.config import PricingConfig
from tariff_engine.exceptions import ValidationError
from tariff_engine.models.loan import CollateralFacts, LoanTerms
from tariff_engine.models.tariff import TariffResult
from tariff_engine.money import HUNDRED, bps_to_percent, round_rate, to_cents
from tariff_engine.pricing.market import MarketRateSource, fetch_quote
from tariff_engine.pricing.spreads import (
    SpreadTableStore,
    resolve_ltv_spread,
    resolve_rating_spread,
)

logger = logging.getLogger(__name__)


def validate_inputs(
    terms: LoanTerms,
    collateral: CollateralFacts,
    max_haircut_pct: Decimal = HUNDRED,
) -> None:
    """Check the invariants the pricing and schedule math depends on."""
    if terms.principal <= 0:
        raise ValidationError(f"Principal must be positive, got {terms.principal}")
    if terms.principal != to_cents(terms.principal):
        raise ValidationError(f"Principal must be a whole number of cents, got {terms.principal}")
    if terms.term_months <= 0:
        raise ValidationError(f"Term must be positive, got {terms.term_months}")
    if terms.interest_only_months < 0:
        raise ValidationError("Interest-only period must not be negative")
    if terms.interest_only_months > terms.term_months:
        raise ValidationError(
            f"Interest-only period ({terms.interest_only_months}) exceeds term ({terms.term_months})"
        )
    if collateral.appraisal_value <= 0:
        raise ValidationError(f"Collateral value must be positive, got {collateral.appraisal_value}")
    if collateral.subordination_amount < 0:
        raise ValidationError("Subordination amount must not be negative")
    if not 0 <= collateral.liquidity_haircut_pct <= max_haircut_pct:
        raise ValidationError(
            f"Liquidity haircut must be between 0 and {max_haircut_pct}, "
            f"got {collateral.liquidity_haircut_pct}"
        )


def loan_to_value(principal: Decimal, collateral: CollateralFacts) -> Decimal:
    """LTV in percent against the effective collateral value.

    Raises
    ------
    ValidationError
        If the effective collateral value is not positive.
    """
    effective = collateral.effective_value
    if effective <= 0:
        raise ValidationError(f"Effective collateral must be positive, got {effective}")
    return principal / effective * HUNDRED


class TariffResolver:
    """Resolve the final annual interest rate of a secured loan.

    The final spread is the LTV spread **plus** the rating spread (plus any
    manual extra spread). The two are never combined with max/min.

    The rate is rounded exactly once, half-up to ``config.rate_decimals``
    places; every downstream consumer uses that rounded rate as is.
    """

    def __init__(
        self,
        spread_store: SpreadTableStore,
        market_source: MarketRateSource,
        config: PricingConfig | None = None,
    ) -> None:
        self.spread_store = spread_store
        self.market_source = market_source
        self.config = config or PricingConfig()

    def resolve(
        self,
        terms: LoanTerms,
        collateral: CollateralFacts,
        rating: str | None = None,
        extra_spread_bps: int = 0,
    ) -> TariffResult:
        """Resolve the tariff for one loan request.

        Parameters
        ----------
        terms : LoanTerms
            Principal, term and interest-only period.
        collateral : CollateralFacts
            Appraisal, subordination and liquidity haircut.
        rating : str | None
            Counterparty credit rating code; no rating spread when omitted.
        extra_spread_bps : int
            Manual spread on top of the table spreads.

        Returns
        -------
        TariffResult
            Rate, LTV and the spread components used.
        """
        validate_inputs(terms, collateral, self.config.max_haircut_pct)
        ltv = loan_to_value(terms.principal, collateral)

        # One snapshot for the whole calculation
        table = self.spread_store.active()
        ltv_spread = resolve_ltv_spread(table, ltv)
        rating_spread = resolve_rating_spread(table, rating) if rating is not None else 0

        quote = fetch_quote(self.market_source, terms.term_months)

        spread_bps = ltv_spread + rating_spread + extra_spread_bps
        raw_rate = quote.base_point.yield_pct + bps_to_percent(spread_bps)
        annual_rate = round_rate(raw_rate, self.config.rate_decimals)

        high_ltv = terms.principal > collateral.effective_value
        if high_ltv:
            logger.warning("Loan exceeds effective collateral (LTV %s%%)", round_rate(ltv))

        logger.info(
            "Resolved tariff %s%% (base %s%% + %d bps, table v%d)",
            annual_rate,
            quote.base_point.yield_pct,
            spread_bps,
            table.version,
            extra={"spread_table_version": table.version},
        )

        return TariffResult(
            annual_rate_pct=annual_rate,
            ltv_pct=round_rate(ltv),
            base_rate_pct=quote.base_point.yield_pct,
            base_maturity_years=quote.base_point.maturity_years,
            ltv_spread_bps=ltv_spread,
            rating_spread_bps=rating_spread,
            extra_spread_bps=extra_spread_bps,
            spread_table_version=table.version,
            reference_rate_pct=quote.reference_rate_pct,
            high_ltv=high_ltv,
            rating=rating.strip().upper() if rating is not None else None,
        )
