"""Loan, collateral and schedule models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from tariff_engine.models.enums import PaymentStatus, RedemptionScheme

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LoanTerms:
    """Contractual terms of a loan. Immutable once a schedule exists."""

    principal: Decimal
    term_months: int
    start_date: date
    interest_only_months: int = 0
    redemption: RedemptionScheme = RedemptionScheme.ANNUITY

    @property
    def amortizing_months(self) -> int:
        """Number of months in which principal is repaid."""
        return self.term_months - self.interest_only_months


@dataclass(frozen=True)
class CollateralFacts:
    """Collateral backing a loan.

    ``subordination_amount`` is the sum of senior claims ranking ahead of
    this loan; ``liquidity_haircut_pct`` is expressed in percent (0-100).
    """

    appraisal_value: Decimal
    subordination_amount: Decimal = Decimal("0")
    liquidity_haircut_pct: Decimal = Decimal("0")

    @property
    def effective_value(self) -> Decimal:
        """(appraisal - subordination) x (1 - haircut / 100)."""
        net = self.appraisal_value - self.subordination_amount
        return net * (1 - self.liquidity_haircut_pct / _HUNDRED)


@dataclass
class Loan:
    """Persisted loan contract."""

    loan_id: str
    debtor_id: str
    terms: LoanTerms
    annual_rate: Decimal  # Percent, e.g. Decimal("4.00")
    created_at: datetime | None = None


@dataclass
class ScheduleEntry:
    """One scheduled monthly payment of a loan."""

    loan_id: str
    month_index: int  # 1..term_months
    due_date: date
    principal: Decimal
    interest: Decimal
    balance_after: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    paid_date: date | None = None
    notes: str | None = None

    @property
    def total(self) -> Decimal:
        """Principal plus interest due for the month."""
        return self.principal + self.interest


@dataclass
class LoanFailure:
    """A loan that could not be processed in a batch run."""

    loan_id: str
    error_type: str
    message: str


@dataclass
class BatchResult:
    """Outcome of generating all missing schedules."""

    created_count: int = 0
    failures: list[LoanFailure] = field(default_factory=list)


@dataclass
class PaymentDisciplineSummary:
    """Payment behaviour of one debtor across all loans."""

    debtor_id: str
    on_time: int = 0
    late: int = 0
    missed: int = 0
    pending: int = 0
    average_delay_days: Decimal = Decimal("0")

    @property
    def total_paid(self) -> int:
        """Entries with a recorded payment."""
        return self.on_time + self.late

    @property
    def on_time_pct(self) -> Decimal:
        """Share of paid entries that were on time, in percent (one decimal)."""
        if self.total_paid == 0:
            return Decimal("0.0")
        share = Decimal(self.on_time) / Decimal(self.total_paid) * _HUNDRED
        return share.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
