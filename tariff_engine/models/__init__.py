"""Domain models for loan pricing and schedules."""

from tariff_engine.models.enums import PaymentStatus, RedemptionScheme, RuleKind
from tariff_engine.models.loan import (
    BatchResult,
    CollateralFacts,
    Loan,
    LoanFailure,
    LoanTerms,
    PaymentDisciplineSummary,
    ScheduleEntry,
)
from tariff_engine.models.tariff import (
    BseResult,
    BseYear,
    CalculationResult,
    RateQuote,
    SpreadRule,
    SpreadTable,
    TariffResult,
    YieldPoint,
)

__all__ = [
    "BatchResult",
    "BseResult",
    "BseYear",
    "CalculationResult",
    "CollateralFacts",
    "Loan",
    "LoanFailure",
    "LoanTerms",
    "PaymentDisciplineSummary",
    "PaymentStatus",
    "RateQuote",
    "RedemptionScheme",
    "RuleKind",
    "ScheduleEntry",
    "SpreadRule",
    "SpreadTable",
    "TariffResult",
    "YieldPoint",
]
