"""Persistence collaborator interface."""

from __future__ import annotations

from typing import Protocol

from tariff_engine.models.loan import Loan, ScheduleEntry


class LoanStore(Protocol):
    """Loans and their schedule entries.

    ``insert_schedule`` must be atomic: either every entry of the loan is
    committed or none is, and a second schedule for the same loan raises
    ``ScheduleAlreadyExistsError`` (``(loan_id, month_index)`` is unique).
    Lookups of unknown loans or entries raise ``EntityNotFoundError``.
    """

    def add_loan(self, loan: Loan) -> None: ...

    def get_loan(self, loan_id: str) -> Loan: ...

    def list_loans(self) -> list[Loan]: ...

    def loans_without_schedule(self) -> list[Loan]: ...

    def has_schedule(self, loan_id: str) -> bool: ...

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]: ...

    def insert_schedule(self, loan_id: str, entries: list[ScheduleEntry]) -> None: ...

    def get_entry(self, loan_id: str, month_index: int) -> ScheduleEntry: ...

    def update_entry(self, entry: ScheduleEntry) -> None: ...

    def debtor_entries(self, debtor_id: str) -> list[ScheduleEntry]: ...
