"""Operations exposed to the surrounding service layer."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from tariff_engine.config import EngineConfig
from tariff_engine.models.loan import (
    BatchResult,
    CollateralFacts,
    Loan,
    LoanTerms,
    PaymentDisciplineSummary,
    ScheduleEntry,
)
from tariff_engine.models.tariff import CalculationResult, SpreadTable
from tariff_engine.pricing.bse import calculate_bse
from tariff_engine.pricing.market import MarketRateSource
from tariff_engine.pricing.spreads import SpreadTableStore
from tariff_engine.pricing.tariff import TariffResolver
from tariff_engine.schedule.amortization import build_schedule, payment_totals
from tariff_engine.schedule.reconciliation import PaymentReconciler
from tariff_engine.schedule.scheduler import ScheduleService
from tariff_engine.store.base import LoanStore

logger = logging.getLogger(__name__)

PREVIEW_LOAN_ID = "preview"


class LoanEngine:
    """Facade over pricing, schedule generation and reconciliation.

    Parameters
    ----------
    store : LoanStore
        Loan and schedule persistence.
    market_source : MarketRateSource
        Yield curve and statutory reference rate provider.
    spread_store : SpreadTableStore | None
        Versioned spread tables; a fresh, empty store when omitted.
    config : EngineConfig | None
        Engine settings.
    today_provider : Callable[[], date]
        Clock used for payment status classification.
    """

    def __init__(
        self,
        store: LoanStore,
        market_source: MarketRateSource,
        spread_store: SpreadTableStore | None = None,
        config: EngineConfig | None = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store
        self.market_source = market_source
        self.spread_store = spread_store or SpreadTableStore()
        self.resolver = TariffResolver(self.spread_store, market_source, self.config.pricing)
        self.scheduler = ScheduleService(
            store,
            self.config.pricing,
            self.config.reconciliation,
            today_provider=today_provider,
        )
        self.reconciler = PaymentReconciler(
            store, self.config.reconciliation, today_provider=today_provider
        )

    def publish_spread_table(
        self,
        ltv_tiers: Sequence[tuple[Decimal, int]],
        rating_spreads: Sequence[tuple[str, int]],
    ) -> SpreadTable:
        """Install a new spread table version and make it active."""
        return self.spread_store.publish(ltv_tiers, rating_spreads)

    def calculate_tariff(
        self,
        terms: LoanTerms,
        collateral: CollateralFacts,
        rating: str | None = None,
        extra_spread_bps: int = 0,
    ) -> CalculationResult:
        """Price a loan request and preview its schedule and BSE.

        Nothing is persisted. The schedule and the BSE both use the rate
        exactly as the resolver rounded it.

        Raises
        ------
        ValidationError
            If the terms, collateral or rating are invalid.
        SourceUnavailableError
            If market data cannot be read.
        """
        tariff = self.resolver.resolve(terms, collateral, rating, extra_spread_bps)
        schedule = build_schedule(
            PREVIEW_LOAN_ID,
            terms,
            tariff.annual_rate_pct,
            self.config.pricing.final_period_tolerance,
        )
        bse = calculate_bse(schedule, tariff.annual_rate_pct, tariff.reference_rate_pct)
        monthly_payment, total_interest, total_amount = payment_totals(
            schedule, terms.redemption
        )

        return CalculationResult(
            tariff=tariff,
            bse=bse,
            schedule=schedule,
            monthly_payment=monthly_payment,
            total_interest=total_interest,
            total_amount=total_amount,
        )

    def create_loan(
        self,
        debtor_id: str,
        terms: LoanTerms,
        collateral: CollateralFacts,
        rating: str | None = None,
        extra_spread_bps: int = 0,
        loan_id: str | None = None,
    ) -> Loan:
        """Price a loan and register it with the store."""
        tariff = self.resolver.resolve(terms, collateral, rating, extra_spread_bps)
        loan = Loan(
            loan_id=loan_id or str(uuid.uuid4()),
            debtor_id=debtor_id,
            terms=terms,
            annual_rate=tariff.annual_rate_pct,
        )
        self.store.add_loan(loan)
        logger.info(
            "Registered loan %s for debtor %s at %s%%",
            loan.loan_id,
            debtor_id,
            loan.annual_rate,
            extra={"loan_id": loan.loan_id, "debtor_id": debtor_id},
        )
        return loan

    def generate_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Create and persist the schedule of a stored loan."""
        return self.scheduler.generate_schedule(loan_id)

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Stored schedule of a loan with statuses as of today."""
        return self.reconciler.current_schedule(loan_id)

    def generate_all_missing_schedules(self) -> BatchResult:
        """Create schedules for every stored loan that lacks one."""
        return self.scheduler.generate_all_missing()

    def record_payment(
        self,
        loan_id: str,
        month_index: int,
        paid_date: date,
        notes: str | None = None,
    ) -> ScheduleEntry:
        """Record a received payment against a schedule entry."""
        return self.reconciler.record_payment(loan_id, month_index, paid_date, notes)

    def discipline_summary(self, debtor_id: str) -> PaymentDisciplineSummary:
        """Payment discipline statistics of a debtor."""
        return self.reconciler.discipline_summary(debtor_id)
