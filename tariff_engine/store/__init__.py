"""Loan and schedule persistence."""

from tariff_engine.store.base import LoanStore
from tariff_engine.store.memory import InMemoryLoanStore
from tariff_engine.store.postgres import PostgresLoanStore

__all__ = ["InMemoryLoanStore", "LoanStore", "PostgresLoanStore"]
