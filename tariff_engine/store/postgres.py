"""PostgreSQL loan store (psycopg 3)."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Any

from tariff_engine.config import PostgresConfig
from tariff_engine.exceptions import (
    EntityNotFoundError,
    ReferentialIntegrityError,
    ScheduleAlreadyExistsError,
    StoreError,
    ValidationError,
)
from tariff_engine.models.enums import PaymentStatus, RedemptionScheme
from tariff_engine.models.loan import Loan, LoanTerms, ScheduleEntry

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS loans (
        loan_id TEXT PRIMARY KEY,
        debtor_id TEXT NOT NULL,
        principal NUMERIC(18, 2) NOT NULL,
        term_months INTEGER NOT NULL,
        interest_only_months INTEGER NOT NULL DEFAULT 0,
        start_date DATE NOT NULL,
        redemption TEXT NOT NULL,
        annual_rate NUMERIC(9, 4) NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schedule_entries (
        loan_id TEXT NOT NULL REFERENCES loans (loan_id),
        month_index INTEGER NOT NULL,
        due_date DATE NOT NULL,
        principal NUMERIC(18, 2) NOT NULL,
        interest NUMERIC(18, 2) NOT NULL,
        balance_after NUMERIC(18, 2) NOT NULL,
        status TEXT NOT NULL,
        paid_date DATE,
        notes TEXT,
        CONSTRAINT schedule_entries_loan_month_key UNIQUE (loan_id, month_index)
    )
    """,
    "CREATE INDEX IF NOT EXISTS loans_debtor_idx ON loans (debtor_id)",
)

_LOAN_COLUMNS = (
    "loan_id, debtor_id, principal, term_months, interest_only_months, "
    "start_date, redemption, annual_rate, created_at"
)
_ENTRY_COLUMNS = (
    "loan_id, month_index, due_date, principal, interest, balance_after, "
    "status, paid_date, notes"
)


def _row_to_loan(row: tuple[Any, ...]) -> Loan:
    loan_id, debtor_id, principal, term, io, start, redemption, rate, created = row
    return Loan(
        loan_id=loan_id,
        debtor_id=debtor_id,
        terms=LoanTerms(
            principal=Decimal(principal),
            term_months=term,
            start_date=start,
            interest_only_months=io,
            redemption=RedemptionScheme(redemption),
        ),
        annual_rate=Decimal(rate),
        created_at=created,
    )


def _row_to_entry(row: tuple[Any, ...]) -> ScheduleEntry:
    loan_id, month, due, principal, interest, balance, status, paid, notes = row
    return ScheduleEntry(
        loan_id=loan_id,
        month_index=month,
        due_date=due,
        principal=Decimal(principal),
        interest=Decimal(interest),
        balance_after=Decimal(balance),
        status=PaymentStatus(status),
        paid_date=paid,
        notes=notes,
    )


class PostgresLoanStore:
    """Loan store backed by PostgreSQL.

    Schedule uniqueness is enforced by the ``(loan_id, month_index)``
    constraint at commit; a whole schedule is written in one transaction.

    All callers share one connection. A psycopg connection runs a single
    transaction at a time, so every statement goes through ``_lock`` and
    transactions of different loans never nest.
    """

    def __init__(self, conninfo: str) -> None:
        """Connect to PostgreSQL.

        Parameters
        ----------
        conninfo : str
            libpq connection string.
        """
        import psycopg

        self._psycopg = psycopg
        self._lock = threading.Lock()
        self.conn = psycopg.connect(conninfo, autocommit=True)

    @classmethod
    def from_config(cls, config: PostgresConfig) -> "PostgresLoanStore":
        """Connect using a ``PostgresConfig``."""
        return cls(config.connection_string)

    def ensure_schema(self) -> None:
        """Create tables and constraints if missing."""
        with self._lock, self.conn.transaction():
            with self.conn.cursor() as cur:
                for statement in SCHEMA:
                    cur.execute(statement)
        logger.info("Loan store schema ready")

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self.conn.close()

    def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()
        except self._psycopg.Error as exc:
            raise StoreError(f"Query failed: {exc}") from exc

    def add_loan(self, loan: Loan) -> None:
        """Insert a loan, or replace one that has no schedule yet.

        Raises
        ------
        ValidationError
            If the loan already has schedule entries; its terms are fixed.
        """
        terms = loan.terms
        created_at = loan.created_at or datetime.now()
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO loans ({_LOAN_COLUMNS}) "
                    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) "
                    "ON CONFLICT (loan_id) DO UPDATE SET "
                    "debtor_id = EXCLUDED.debtor_id, principal = EXCLUDED.principal, "
                    "term_months = EXCLUDED.term_months, "
                    "interest_only_months = EXCLUDED.interest_only_months, "
                    "start_date = EXCLUDED.start_date, redemption = EXCLUDED.redemption, "
                    "annual_rate = EXCLUDED.annual_rate "
                    "WHERE NOT EXISTS "
                    "(SELECT 1 FROM schedule_entries s WHERE s.loan_id = loans.loan_id)",
                    (
                        loan.loan_id,
                        loan.debtor_id,
                        terms.principal,
                        terms.term_months,
                        terms.interest_only_months,
                        terms.start_date,
                        terms.redemption.value,
                        loan.annual_rate,
                        created_at,
                    ),
                )
                written = cur.rowcount
        except self._psycopg.Error as exc:
            raise StoreError(f"Failed to store loan {loan.loan_id}: {exc}") from exc

        if written == 0:
            raise ValidationError(
                f"Loan {loan.loan_id} already has a schedule and cannot be replaced"
            )
        loan.created_at = created_at

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        rows = self._fetchall(
            f"SELECT {_LOAN_COLUMNS} FROM loans WHERE loan_id = %s", (loan_id,)
        )
        if not rows:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return _row_to_loan(rows[0])

    def list_loans(self) -> list[Loan]:
        """Get all loans."""
        rows = self._fetchall(f"SELECT {_LOAN_COLUMNS} FROM loans ORDER BY loan_id")
        return [_row_to_loan(row) for row in rows]

    def loans_without_schedule(self) -> list[Loan]:
        """Get all loans that have no schedule yet."""
        rows = self._fetchall(
            f"SELECT {_LOAN_COLUMNS} FROM loans l WHERE NOT EXISTS "
            "(SELECT 1 FROM schedule_entries s WHERE s.loan_id = l.loan_id) "
            "ORDER BY l.loan_id"
        )
        return [_row_to_loan(row) for row in rows]

    def has_schedule(self, loan_id: str) -> bool:
        """Check whether a schedule exists for a loan."""
        rows = self._fetchall(
            "SELECT 1 FROM schedule_entries WHERE loan_id = %s LIMIT 1", (loan_id,)
        )
        return bool(rows)

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Get a loan's schedule ordered by month index."""
        rows = self._fetchall(
            f"SELECT {_ENTRY_COLUMNS} FROM schedule_entries "
            "WHERE loan_id = %s ORDER BY month_index",
            (loan_id,),
        )
        return [_row_to_entry(row) for row in rows]

    def insert_schedule(self, loan_id: str, entries: list[ScheduleEntry]) -> None:
        """Insert a complete schedule in one transaction."""
        errors = self._psycopg.errors
        rows = [
            (
                e.loan_id,
                e.month_index,
                e.due_date,
                e.principal,
                e.interest,
                e.balance_after,
                e.status.value,
                e.paid_date,
                e.notes,
            )
            for e in entries
        ]
        try:
            with self._lock, self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.executemany(
                        f"INSERT INTO schedule_entries ({_ENTRY_COLUMNS}) "
                        "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)",
                        rows,
                    )
        except errors.UniqueViolation as exc:
            raise ScheduleAlreadyExistsError(
                f"Schedule for loan {loan_id} already exists"
            ) from exc
        except errors.ForeignKeyViolation as exc:
            raise ReferentialIntegrityError(f"Loan {loan_id} not found") from exc
        except self._psycopg.Error as exc:
            raise StoreError(f"Failed to store schedule for loan {loan_id}: {exc}") from exc

        logger.debug("Stored %d schedule entries for loan %s", len(rows), loan_id)

    def get_entry(self, loan_id: str, month_index: int) -> ScheduleEntry:
        """Get one schedule entry."""
        rows = self._fetchall(
            f"SELECT {_ENTRY_COLUMNS} FROM schedule_entries "
            "WHERE loan_id = %s AND month_index = %s",
            (loan_id, month_index),
        )
        if not rows:
            raise EntityNotFoundError(
                f"Schedule entry {month_index} of loan {loan_id} not found"
            )
        return _row_to_entry(rows[0])

    def update_entry(self, entry: ScheduleEntry) -> None:
        """Persist the payment fields of a schedule entry."""
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute(
                    "UPDATE schedule_entries SET status = %s, paid_date = %s, notes = %s "
                    "WHERE loan_id = %s AND month_index = %s",
                    (
                        entry.status.value,
                        entry.paid_date,
                        entry.notes,
                        entry.loan_id,
                        entry.month_index,
                    ),
                )
                updated = cur.rowcount
        except self._psycopg.Error as exc:
            raise StoreError(f"Failed to update schedule entry: {exc}") from exc

        if updated == 0:
            raise EntityNotFoundError(
                f"Schedule entry {entry.month_index} of loan {entry.loan_id} not found"
            )

    def debtor_entries(self, debtor_id: str) -> list[ScheduleEntry]:
        """Get all schedule entries of a debtor's loans."""
        columns = ", ".join(f"s.{c.strip()}" for c in _ENTRY_COLUMNS.split(","))
        rows = self._fetchall(
            f"SELECT {columns} FROM schedule_entries s "
            "JOIN loans l ON l.loan_id = s.loan_id "
            "WHERE l.debtor_id = %s ORDER BY s.loan_id, s.month_index",
            (debtor_id,),
        )
        return [_row_to_entry(row) for row in rows]
