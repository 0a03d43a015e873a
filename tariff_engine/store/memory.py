"""In-memory loan store with referential integrity."""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from tariff_engine.exceptions import (
    EntityNotFoundError,
    ReferentialIntegrityError,
    ScheduleAlreadyExistsError,
    ValidationError,
)
from tariff_engine.models.loan import Loan, ScheduleEntry


@dataclass
class InMemoryLoanStore:
    """In-memory store for loans and schedules with relationship tracking.

    Every mutation runs under one lock, so schedule insertion is the
    commit point at which ``(loan_id, month_index)`` uniqueness is enforced.
    Returned entries are copies; changes go back through ``update_entry``.
    """

    loans: dict[str, Loan] = field(default_factory=dict)

    # Schedule entries per loan, keyed by month index
    _schedules: dict[str, dict[int, ScheduleEntry]] = field(default_factory=dict)

    # Relationship indexes
    _debtor_loans: dict[str, list[str]] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_loan(self, loan: Loan) -> None:
        """Add a loan, or replace one that has no schedule yet.

        Raises
        ------
        ValidationError
            If a loan with this id already has a schedule; its terms are fixed.
        """
        with self._lock:
            if loan.loan_id in self._schedules:
                raise ValidationError(
                    f"Loan {loan.loan_id} already has a schedule and cannot be replaced"
                )
            previous = self.loans.get(loan.loan_id)
            if previous is not None and previous.debtor_id != loan.debtor_id:
                self._debtor_loans[previous.debtor_id].remove(loan.loan_id)
                if not self._debtor_loans[previous.debtor_id]:
                    del self._debtor_loans[previous.debtor_id]
            if loan.created_at is None:
                loan.created_at = datetime.now()
            self.loans[loan.loan_id] = loan
            self._debtor_loans.setdefault(loan.debtor_id, [])
            if loan.loan_id not in self._debtor_loans[loan.debtor_id]:
                self._debtor_loans[loan.debtor_id].append(loan.loan_id)

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        loan = self.loans.get(loan_id)
        if loan is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return loan

    def list_loans(self) -> list[Loan]:
        """Get all loans."""
        with self._lock:
            return list(self.loans.values())

    def loans_without_schedule(self) -> list[Loan]:
        """Get all loans that have no schedule yet."""
        with self._lock:
            return [loan for lid, loan in self.loans.items() if lid not in self._schedules]

    def has_schedule(self, loan_id: str) -> bool:
        """Check whether a schedule exists for a loan."""
        with self._lock:
            return loan_id in self._schedules

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Get a loan's schedule ordered by month index."""
        with self._lock:
            entries = self._schedules.get(loan_id, {})
            return [replace(entries[m]) for m in sorted(entries)]

    def insert_schedule(self, loan_id: str, entries: list[ScheduleEntry]) -> None:
        """Insert a complete schedule atomically."""
        months = [e.month_index for e in entries]
        if len(set(months)) != len(months):
            raise ValidationError(f"Duplicate month index in schedule for loan {loan_id}")
        if any(e.loan_id != loan_id for e in entries):
            raise ValidationError(f"Schedule entries do not all belong to loan {loan_id}")

        with self._lock:
            if loan_id not in self.loans:
                raise ReferentialIntegrityError(f"Loan {loan_id} not found")
            if loan_id in self._schedules:
                raise ScheduleAlreadyExistsError(f"Schedule for loan {loan_id} already exists")
            self._schedules[loan_id] = {e.month_index: replace(e) for e in entries}

    def get_entry(self, loan_id: str, month_index: int) -> ScheduleEntry:
        """Get one schedule entry."""
        with self._lock:
            entry = self._schedules.get(loan_id, {}).get(month_index)
            if entry is None:
                raise EntityNotFoundError(
                    f"Schedule entry {month_index} of loan {loan_id} not found"
                )
            return replace(entry)

    def update_entry(self, entry: ScheduleEntry) -> None:
        """Replace a stored schedule entry."""
        with self._lock:
            entries = self._schedules.get(entry.loan_id)
            if entries is None or entry.month_index not in entries:
                raise EntityNotFoundError(
                    f"Schedule entry {entry.month_index} of loan {entry.loan_id} not found"
                )
            entries[entry.month_index] = replace(entry)

    def debtor_entries(self, debtor_id: str) -> list[ScheduleEntry]:
        """Get all schedule entries of a debtor's loans."""
        with self._lock:
            result: list[ScheduleEntry] = []
            for loan_id in self._debtor_loans.get(debtor_id, []):
                entries = self._schedules.get(loan_id, {})
                result.extend(replace(entries[m]) for m in sorted(entries))
            return result

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._lock:
            return {
                "loans": len(self.loans),
                "debtors": len(self._debtor_loans),
                "schedules": len(self._schedules),
                "schedule_entries": sum(len(e) for e in self._schedules.values()),
            }
