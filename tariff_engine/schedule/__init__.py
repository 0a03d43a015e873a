"""Amortization schedules and payment reconciliation."""

from tariff_engine.schedule.amortization import build_schedule, due_date_for, payment_totals
from tariff_engine.schedule.reconciliation import PaymentReconciler, derive_status
from tariff_engine.schedule.scheduler import ScheduleService

__all__ = [
    "PaymentReconciler",
    "ScheduleService",
    "build_schedule",
    "derive_status",
    "due_date_for",
    "payment_totals",
]
