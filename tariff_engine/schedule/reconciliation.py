"""Payment recording, status classification and discipline statistics."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from tariff_engine.config import ReconciliationConfig
from tariff_engine.models.enums import PaymentStatus
from tariff_engine.models.loan import PaymentDisciplineSummary, ScheduleEntry
from tariff_engine.store.base import LoanStore

logger = logging.getLogger(__name__)


def derive_status(
    due_date: date,
    paid_date: date | None,
    today: date,
    grace_days: int = 5,
) -> PaymentStatus:
    """Classify a schedule entry.

    This is the only place a status is decided; it depends on nothing but
    the dates and the grace window.
    """
    if paid_date is not None:
        if paid_date <= due_date + timedelta(days=grace_days):
            return PaymentStatus.PAID_ON_TIME
        return PaymentStatus.PAID_LATE
    if today > due_date:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


class PaymentReconciler:
    """Match received payments to schedule entries."""

    def __init__(
        self,
        store: LoanStore,
        config: ReconciliationConfig | None = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.config = config or ReconciliationConfig()
        self.today_provider = today_provider

    def _status(self, entry: ScheduleEntry, today: date) -> PaymentStatus:
        return derive_status(entry.due_date, entry.paid_date, today, self.config.grace_days)

    def record_payment(
        self,
        loan_id: str,
        month_index: int,
        paid_date: date,
        notes: str | None = None,
    ) -> ScheduleEntry:
        """Record the payment of one scheduled month.

        Raises
        ------
        EntityNotFoundError
            If the loan has no entry for ``month_index``.
        """
        entry = self.store.get_entry(loan_id, month_index)
        entry.paid_date = paid_date
        if notes is not None:
            entry.notes = notes
        entry.status = self._status(entry, self.today_provider())
        self.store.update_entry(entry)

        logger.info(
            "Recorded payment for loan %s month %d on %s: %s",
            loan_id,
            month_index,
            paid_date,
            entry.status.value,
            extra={"loan_id": loan_id, "month_index": month_index},
        )
        return entry

    def current_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """A loan's schedule with every status derived against today.

        Nothing is written back; ``refresh_statuses`` persists the result.
        """
        self.store.get_loan(loan_id)
        today = self.today_provider()
        entries = self.store.get_schedule(loan_id)
        for entry in entries:
            entry.status = self._status(entry, today)
        return entries

    def refresh_statuses(self, loan_id: str) -> list[ScheduleEntry]:
        """Re-derive every entry's status of a loan against today's date."""
        self.store.get_loan(loan_id)
        today = self.today_provider()
        entries = self.store.get_schedule(loan_id)

        changed = 0
        for entry in entries:
            status = self._status(entry, today)
            if status != entry.status:
                entry.status = status
                self.store.update_entry(entry)
                changed += 1

        logger.debug(
            "Refreshed statuses for loan %s: %d changed",
            loan_id,
            changed,
            extra={"loan_id": loan_id},
        )
        return entries

    def discipline_summary(self, debtor_id: str) -> PaymentDisciplineSummary:
        """Aggregate a debtor's payment behaviour over entries already due.

        Statuses are derived from the dates, never read from storage. The
        average delay covers paid entries, with early payments counted as 0.
        """
        today = self.today_provider()
        summary = PaymentDisciplineSummary(debtor_id=debtor_id)
        delays: list[int] = []

        for entry in self.store.debtor_entries(debtor_id):
            if entry.due_date > today:
                continue

            status = self._status(entry, today)
            if status == PaymentStatus.PAID_ON_TIME:
                summary.on_time += 1
            elif status == PaymentStatus.PAID_LATE:
                summary.late += 1
            elif status == PaymentStatus.OVERDUE:
                summary.missed += 1
            else:
                summary.pending += 1

            if entry.paid_date is not None:
                delays.append(max((entry.paid_date - entry.due_date).days, 0))

        if delays:
            summary.average_delay_days = (Decimal(sum(delays)) / len(delays)).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            )
        return summary
