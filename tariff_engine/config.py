"""Configuration management for tariff-engine."""

from dataclasses import dataclass, field
from decimal import Decimal

from tariff_engine.exceptions import ConfigurationError


@dataclass
class PricingConfig:
    """Pricing and amortization arithmetic settings."""

    rate_decimals: int = 2
    final_period_tolerance: Decimal = Decimal("0.05")
    max_haircut_pct: Decimal = Decimal("100")

    def __post_init__(self) -> None:
        if self.rate_decimals < 0:
            raise ConfigurationError("rate_decimals must be >= 0")
        if self.final_period_tolerance < 0:
            raise ConfigurationError("final_period_tolerance must be >= 0")


@dataclass
class ReconciliationConfig:
    """Payment reconciliation settings."""

    grace_days: int = 5

    def __post_init__(self) -> None:
        if self.grace_days < 0:
            raise ConfigurationError("grace_days must be >= 0")


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "tariffs"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class EngineConfig:
    """Main configuration for tariff-engine."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os

        try:
            pricing = PricingConfig(
                rate_decimals=int(os.getenv("TARIFF_RATE_DECIMALS", "2")),
                final_period_tolerance=Decimal(os.getenv("TARIFF_FINAL_PERIOD_TOLERANCE", "0.05")),
            )
            reconciliation = ReconciliationConfig(
                grace_days=int(os.getenv("TARIFF_GRACE_DAYS", "5")),
            )
            postgres = PostgresConfig(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "tariffs"),
                user=os.getenv("POSTGRES_USER", "postgres"),
                password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            )
        except ArithmeticError as exc:
            raise ConfigurationError(f"Invalid decimal in environment: {exc}") from exc
        except ValueError as exc:
            raise ConfigurationError(f"Invalid number in environment: {exc}") from exc

        return cls(
            pricing=pricing,
            reconciliation=reconciliation,
            postgres=postgres,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
