"""Idempotent schedule generation for persisted loans."""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable
from datetime import date

from tariff_engine.config import PricingConfig, ReconciliationConfig
from tariff_engine.exceptions import ScheduleAlreadyExistsError, TariffEngineError
from tariff_engine.models.loan import BatchResult, LoanFailure, ScheduleEntry
from tariff_engine.schedule.amortization import build_schedule
from tariff_engine.schedule.reconciliation import derive_status
from tariff_engine.store.base import LoanStore

logger = logging.getLogger(__name__)


class ScheduleService:
    """Create schedules for loans, at most once per loan.

    Check-then-create runs under a per-loan lock, and the store enforces
    ``(loan_id, month_index)`` uniqueness when the schedule is committed, so
    concurrent callers for the same loan end with exactly one schedule.
    Entries are stored with their status derived against today, so months
    already past due are written as overdue.
    """

    def __init__(
        self,
        store: LoanStore,
        config: PricingConfig | None = None,
        reconciliation: ReconciliationConfig | None = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.config = config or PricingConfig()
        self.reconciliation = reconciliation or ReconciliationConfig()
        self.today_provider = today_provider
        self._registry_lock = threading.Lock()
        # A loan's lock lives only while some caller holds a reference to it
        self._loan_locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, loan_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._loan_locks.get(loan_id)
            if lock is None:
                lock = threading.Lock()
                self._loan_locks[loan_id] = lock
            return lock

    def generate_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Build and persist the schedule of one loan.

        Raises
        ------
        EntityNotFoundError
            If the loan does not exist.
        ScheduleAlreadyExistsError
            If the loan already has a schedule.
        ScheduleInvariantError
            If the schedule arithmetic breaks an invariant; nothing is stored.
        """
        loan = self.store.get_loan(loan_id)

        with self._lock_for(loan_id):
            if self.store.has_schedule(loan_id):
                raise ScheduleAlreadyExistsError(f"Schedule for loan {loan_id} already exists")

            entries = build_schedule(
                loan_id,
                loan.terms,
                loan.annual_rate,
                self.config.final_period_tolerance,
            )
            today = self.today_provider()
            for entry in entries:
                entry.status = derive_status(
                    entry.due_date, None, today, self.reconciliation.grace_days
                )
            self.store.insert_schedule(loan_id, entries)

        logger.info(
            "Generated %d-month schedule for loan %s at %s%%",
            len(entries),
            loan_id,
            loan.annual_rate,
            extra={"loan_id": loan_id},
        )
        return entries

    def generate_all_missing(self) -> BatchResult:
        """Generate schedules for every loan that has none.

        A failing loan is recorded and skipped; the others still proceed.
        """
        result = BatchResult()
        pending = self.store.loans_without_schedule()
        logger.info("Generating schedules for %d loans", len(pending))

        for loan in pending:
            try:
                self.generate_schedule(loan.loan_id)
            except TariffEngineError as exc:
                logger.warning(
                    "Schedule generation failed for loan %s: %s",
                    loan.loan_id,
                    exc,
                    extra={"loan_id": loan.loan_id},
                )
                result.failures.append(
                    LoanFailure(
                        loan_id=loan.loan_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )
                )
            else:
                result.created_count += 1

        logger.info(
            "Schedule batch complete: %d created, %d failed",
            result.created_count,
            len(result.failures),
        )
        return result
