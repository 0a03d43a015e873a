"""Spread rules, market quotes and tariff results."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from tariff_engine.models.enums import RuleKind
from tariff_engine.models.loan import ScheduleEntry


@dataclass(frozen=True)
class SpreadRule:
    """One entry of a spread rule set.

    ``key`` is the tier's ``max_ltv`` (percent) for ``RuleKind.LTV`` rules
    and the rating code for ``RuleKind.RATING`` rules.
    """

    kind: RuleKind
    key: Decimal | str
    spread_bps: int
    sort_key: int = 0

    @classmethod
    def ltv_tier(cls, max_ltv: Decimal, spread_bps: int, sort_key: int = 0) -> "SpreadRule":
        """Build an LTV tier rule."""
        return cls(RuleKind.LTV, Decimal(max_ltv), int(spread_bps), sort_key)

    @classmethod
    def rating(cls, code: str, spread_bps: int, sort_key: int = 0) -> "SpreadRule":
        """Build a credit rating rule."""
        return cls(RuleKind.RATING, code.strip().upper(), int(spread_bps), sort_key)


@dataclass(frozen=True)
class SpreadTable:
    """Immutable, versioned spread rule set."""

    version: int
    created_at: datetime
    rules: tuple[SpreadRule, ...]

    def rules_of(self, kind: RuleKind) -> tuple[SpreadRule, ...]:
        """Rules of one kind in their evaluation order."""
        selected = [rule for rule in self.rules if rule.kind == kind]
        if kind == RuleKind.LTV:
            selected.sort(key=lambda rule: (rule.key, rule.sort_key))
        else:
            selected.sort(key=lambda rule: rule.sort_key)
        return tuple(selected)


@dataclass(frozen=True)
class YieldPoint:
    """A point on the government bond yield curve."""

    maturity_years: Decimal
    yield_pct: Decimal


@dataclass(frozen=True)
class RateQuote:
    """Market inputs bound to one calculation."""

    base_point: YieldPoint
    reference_rate_pct: Decimal


@dataclass
class TariffResult:
    """Outcome of resolving a loan's interest rate."""

    annual_rate_pct: Decimal
    ltv_pct: Decimal
    base_rate_pct: Decimal
    base_maturity_years: Decimal
    ltv_spread_bps: int
    rating_spread_bps: int
    extra_spread_bps: int
    spread_table_version: int
    reference_rate_pct: Decimal
    high_ltv: bool = False
    rating: str | None = None

    @property
    def total_spread_bps(self) -> int:
        """LTV spread + rating spread + extra spread."""
        return self.ltv_spread_bps + self.rating_spread_bps + self.extra_spread_bps


@dataclass
class BseYear:
    """BSE contribution of one loan year."""

    year: int
    reference_interest: Decimal
    charged_interest: Decimal
    difference: Decimal
    discounted_value: Decimal


@dataclass
class BseResult:
    """Gross support equivalent of a loan."""

    amount: Decimal
    reference_rate_pct: Decimal
    charged_rate_pct: Decimal
    yearly: list[BseYear] = field(default_factory=list)


@dataclass
class CalculationResult:
    """Full response of a tariff calculation."""

    tariff: TariffResult
    bse: BseResult
    schedule: list[ScheduleEntry]
    monthly_payment: Decimal
    total_interest: Decimal
    total_amount: Decimal
