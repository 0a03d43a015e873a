"""Custom exception hierarchy for tariff-engine."""


class TariffEngineError(Exception):
    """Base exception for all tariff-engine errors."""


class ValidationError(TariffEngineError):
    """Raised when loan, collateral or rating inputs are invalid."""


class EntityNotFoundError(TariffEngineError):
    """Raised when a referenced loan or schedule entry does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class ScheduleAlreadyExistsError(TariffEngineError):
    """Raised when a schedule is generated for a loan that already has one."""


class SourceUnavailableError(TariffEngineError):
    """Raised when the market-data collaborator cannot supply a value."""


class ScheduleInvariantError(TariffEngineError):
    """Raised when schedule arithmetic breaks an invariant (fatal for that loan)."""


class ConfigurationError(TariffEngineError):
    """Raised when configuration is invalid or missing."""


class StoreError(TariffEngineError):
    """Raised when a persistence operation fails."""
