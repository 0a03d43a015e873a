"""Secured loan pricing, amortization schedules and payment reconciliation."""

from tariff_engine.engine import LoanEngine
from tariff_engine.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    ScheduleAlreadyExistsError,
    ScheduleInvariantError,
    SourceUnavailableError,
    StoreError,
    TariffEngineError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "EntityNotFoundError",
    "LoanEngine",
    "ScheduleAlreadyExistsError",
    "ScheduleInvariantError",
    "SourceUnavailableError",
    "StoreError",
    "TariffEngineError",
    "ValidationError",
]
