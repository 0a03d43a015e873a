"""End-to-end tests for LoanEngine."""

from datetime import date
from decimal import Decimal

import pytest

from tariff_engine.config import EngineConfig, PricingConfig
from tariff_engine.engine import PREVIEW_LOAN_ID, LoanEngine
from tariff_engine.exceptions import (
    EntityNotFoundError,
    ScheduleAlreadyExistsError,
    SourceUnavailableError,
    ValidationError,
)
from tariff_engine.models import CollateralFacts, LoanTerms, PaymentStatus, YieldPoint
from tariff_engine.pricing.bse import calculate_bse
from tariff_engine.pricing.market import StaticMarketRateSource
from tariff_engine.pricing.spreads import SpreadTableStore
from tariff_engine.store.memory import InMemoryLoanStore


class TestCalculateTariff:
    """Tests for LoanEngine.calculate_tariff."""

    def test_full_calculation(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        """Rate, schedule and BSE come from one consistent calculation."""
        result = engine.calculate_tariff(sample_terms, sample_collateral, rating="BBB")

        assert result.tariff.annual_rate_pct == Decimal("4.25")
        assert len(result.schedule) == 120
        assert all(e.loan_id == PREVIEW_LOAN_ID for e in result.schedule)
        assert result.schedule[0].interest == Decimal("708.33")
        assert result.schedule[-1].balance_after == Decimal("0.00")
        assert result.bse == calculate_bse(result.schedule, Decimal("4.25"), Decimal("5.00"))
        assert result.bse.amount > 0
        assert result.monthly_payment == result.schedule[12].total
        assert result.total_interest == sum(e.interest for e in result.schedule)
        assert result.total_amount == Decimal("200000") + result.total_interest

    def test_nothing_persisted(
        self,
        engine: LoanEngine,
        store: InMemoryLoanStore,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        engine.calculate_tariff(sample_terms, sample_collateral)

        assert store.list_loans() == []

    def test_invalid_request(self, engine: LoanEngine, sample_terms: LoanTerms) -> None:
        collateral = CollateralFacts(
            appraisal_value=Decimal("100000"), subordination_amount=Decimal("120000")
        )

        with pytest.raises(ValidationError):
            engine.calculate_tariff(sample_terms, collateral)

    def test_market_down(
        self,
        store: InMemoryLoanStore,
        spread_store: SpreadTableStore,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        engine = LoanEngine(store, StaticMarketRateSource([], None), spread_store=spread_store)

        with pytest.raises(SourceUnavailableError):
            engine.calculate_tariff(sample_terms, sample_collateral)

    def test_publish_changes_pricing(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        table = engine.publish_spread_table([(Decimal("100"), 200)], [("BBB", 0)])

        result = engine.calculate_tariff(sample_terms, sample_collateral, rating="BBB")

        assert table.version == 2
        assert result.tariff.spread_table_version == 2
        assert result.tariff.annual_rate_pct == Decimal("4.75")

    def test_custom_rate_precision(
        self,
        store: InMemoryLoanStore,
        spread_store: SpreadTableStore,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        market = StaticMarketRateSource(
            [YieldPoint(Decimal("10"), Decimal("2.7512"))], Decimal("5.00")
        )
        config = EngineConfig(pricing=PricingConfig(rate_decimals=3))
        engine = LoanEngine(store, market, spread_store=spread_store, config=config)

        result = engine.calculate_tariff(sample_terms, sample_collateral)

        assert result.tariff.annual_rate_pct == Decimal("3.751")


class TestLoanLifecycle:
    """Tests for loans stored through the engine."""

    def test_create_generate_pay(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        loan = engine.create_loan(
            "debtor-1", sample_terms, sample_collateral, rating="BBB", loan_id="loan-1"
        )
        assert loan.annual_rate == Decimal("4.25")

        schedule = engine.generate_schedule("loan-1")
        assert len(schedule) == 120

        with pytest.raises(ScheduleAlreadyExistsError):
            engine.generate_schedule("loan-1")

        entry = engine.record_payment("loan-1", 1, date(2024, 2, 3), notes="on time")
        assert entry.status == PaymentStatus.PAID_ON_TIME

        summary = engine.discipline_summary("debtor-1")
        assert summary.on_time == 1
        assert summary.missed == 4

    def test_generated_id(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        loan = engine.create_loan("debtor-1", sample_terms, sample_collateral)

        assert loan.loan_id
        assert engine.store.get_loan(loan.loan_id) is loan

    def test_generate_all_missing(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        for i in range(3):
            engine.create_loan("debtor-1", sample_terms, sample_collateral, loan_id=f"loan-{i}")

        result = engine.generate_all_missing_schedules()

        assert result.created_count == 3
        assert engine.generate_all_missing_schedules().created_count == 0

    def test_unknown_loan(self, engine: LoanEngine) -> None:
        with pytest.raises(EntityNotFoundError):
            engine.generate_schedule("missing")
        with pytest.raises(EntityNotFoundError):
            engine.record_payment("missing", 1, date(2024, 1, 1))

    def test_schedule_statuses_as_of_today(
        self,
        engine: LoanEngine,
        sample_collateral: CollateralFacts,
    ) -> None:
        """Stored and read-back entries carry the status their dates imply."""
        terms = LoanTerms(Decimal("10000"), 12, date(2020, 1, 1))
        engine.create_loan("debtor-1", terms, sample_collateral, loan_id="loan-old")

        generated = engine.generate_schedule("loan-old")

        assert all(e.status == PaymentStatus.OVERDUE for e in generated)
        assert engine.get_schedule("loan-old") == engine.store.get_schedule("loan-old")

    def test_scheduled_loan_cannot_be_replaced(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        """Terms are fixed once a schedule exists."""
        engine.create_loan("debtor-1", sample_terms, sample_collateral, loan_id="loan-1")
        engine.generate_schedule("loan-1")
        other_terms = LoanTerms(Decimal("99999"), 240, date(2024, 1, 1))

        with pytest.raises(ValidationError):
            engine.create_loan("debtor-1", other_terms, sample_collateral, loan_id="loan-1")

        assert engine.store.get_loan("loan-1").terms == sample_terms
        assert len(engine.get_schedule("loan-1")) == 120

    def test_unscheduled_loan_can_be_replaced(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        engine.create_loan("debtor-1", sample_terms, sample_collateral, loan_id="loan-1")
        other_terms = LoanTerms(Decimal("150000"), 60, date(2024, 1, 1))

        engine.create_loan("debtor-1", other_terms, sample_collateral, loan_id="loan-1")

        assert engine.store.get_loan("loan-1").terms == other_terms
        assert len(engine.generate_schedule("loan-1")) == 60

    def test_empty_rating_rejected(
        self,
        engine: LoanEngine,
        sample_terms: LoanTerms,
        sample_collateral: CollateralFacts,
    ) -> None:
        with pytest.raises(ValidationError):
            engine.create_loan("debtor-1", sample_terms, sample_collateral, rating="")

        assert engine.store.list_loans() == []
