"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from tariff_engine.config import EngineConfig
from tariff_engine.engine import LoanEngine
from tariff_engine.models import CollateralFacts, Loan, LoanTerms, YieldPoint
from tariff_engine.pricing.market import StaticMarketRateSource
from tariff_engine.pricing.spreads import SpreadTableStore
from tariff_engine.store.memory import InMemoryLoanStore

TODAY = date(2024, 6, 15)

LTV_TIERS = [
    (Decimal("60"), 25),
    (Decimal("70"), 50),
    (Decimal("80"), 75),
    (Decimal("90"), 100),
    (Decimal("100"), 150),
]

RATING_SPREADS = [
    ("AAA", 0),
    ("AA", 10),
    ("A", 25),
    ("BBB", 50),
    ("BB", 100),
    ("B", 175),
]

CURVE = [
    YieldPoint(Decimal("1"), Decimal("2.00")),
    YieldPoint(Decimal("5"), Decimal("2.50")),
    YieldPoint(Decimal("10"), Decimal("2.75")),
    YieldPoint(Decimal("20"), Decimal("3.00")),
]


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def today() -> date:
    """Fixed calculation date."""
    return TODAY


@pytest.fixture
def spread_store() -> SpreadTableStore:
    """Spread store with one published table."""
    store = SpreadTableStore()
    store.publish(LTV_TIERS, RATING_SPREADS)
    return store


@pytest.fixture
def market() -> StaticMarketRateSource:
    """Market snapshot with a 5.00% reference rate."""
    return StaticMarketRateSource(CURVE, Decimal("5.00"))


@pytest.fixture
def store() -> InMemoryLoanStore:
    """Create a fresh store for each test."""
    return InMemoryLoanStore()


@pytest.fixture
def engine(
    store: InMemoryLoanStore,
    market: StaticMarketRateSource,
    spread_store: SpreadTableStore,
) -> LoanEngine:
    """Engine over the in-memory store with a fixed clock."""
    return LoanEngine(
        store,
        market,
        spread_store=spread_store,
        config=EngineConfig(),
        today_provider=lambda: TODAY,
    )


@pytest.fixture
def sample_terms() -> LoanTerms:
    """200,000 over 120 months with 12 interest-only months."""
    return LoanTerms(
        principal=Decimal("200000"),
        term_months=120,
        start_date=date(2024, 1, 15),
        interest_only_months=12,
    )


@pytest.fixture
def sample_collateral() -> CollateralFacts:
    """Collateral with an effective value of 225,000."""
    return CollateralFacts(
        appraisal_value=Decimal("300000"),
        subordination_amount=Decimal("50000"),
        liquidity_haircut_pct=Decimal("10"),
    )


@pytest.fixture
def sample_loan(sample_terms: LoanTerms) -> Loan:
    """Sample loan at 4.00%."""
    return Loan(
        loan_id="loan-test-001",
        debtor_id="debtor-test-001",
        terms=sample_terms,
        annual_rate=Decimal("4.00"),
    )
