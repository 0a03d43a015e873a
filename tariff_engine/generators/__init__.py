"""Sample data generators for tariff-engine."""

from tariff_engine.generators.portfolio import (
    LoanGenerator,
    LoanRequest,
    PaymentBehaviorSimulator,
)

__all__ = ["LoanGenerator", "LoanRequest", "PaymentBehaviorSimulator"]
