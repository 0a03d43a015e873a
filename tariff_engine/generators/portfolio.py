"""Sample loan portfolios and simulated payment behaviour."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator

from tariff_engine.engine import LoanEngine
from tariff_engine.generators.base import BaseGenerator
from tariff_engine.models.enums import RedemptionScheme
from tariff_engine.models.loan import CollateralFacts, Loan, LoanTerms, ScheduleEntry
from tariff_engine.money import to_cents
from tariff_engine.schedule.reconciliation import PaymentReconciler

logger = logging.getLogger(__name__)


@dataclass
class LoanRequest:
    """Inputs of one generated loan application."""

    debtor_id: str
    terms: LoanTerms
    collateral: CollateralFacts
    rating: str | None = None


class LoanGenerator(BaseGenerator):
    """Generate synthetic secured loan requests."""

    RATINGS = ["AAA", "AA", "A", "BBB", "BB", "B"]
    TERMS = [60, 120, 180, 240, 360]
    HAIRCUTS = [0, 5, 10, 20]

    REDEMPTION_WEIGHTS = {
        RedemptionScheme.ANNUITY: 0.75,
        RedemptionScheme.LINEAR: 0.20,
        RedemptionScheme.BULLET: 0.05,
    }
    INTEREST_ONLY_WEIGHTS = {0: 0.80, 12: 0.15, 24: 0.05}

    def generate_request(self, debtor_id: str | None = None) -> LoanRequest:
        """Generate one loan request.

        Parameters
        ----------
        debtor_id : str | None
            Debtor to attach the request to; a new one when omitted.

        Returns
        -------
        LoanRequest
            Terms, collateral and rating of the request.
        """
        principal = self.whole_amount(50_000, 1_000_000)
        term = random.choice(self.TERMS)
        interest_only = self.weighted(self.INTEREST_ONLY_WEIGHTS)
        redemption = self.weighted(self.REDEMPTION_WEIGHTS)
        start = self.month_start_between("-3y")

        # Target LTV between 40% and 110% before subordination and haircut
        target_ltv = Decimal(random.randint(40, 110))
        appraisal = to_cents(principal / target_ltv * 100)
        subordination = Decimal(0)
        if random.random() < 0.2:
            subordination = to_cents(appraisal * Decimal(random.randint(5, 25)) / 100)

        return LoanRequest(
            debtor_id=debtor_id or self.entity_id(),
            terms=LoanTerms(
                principal=principal,
                term_months=term,
                start_date=start,
                interest_only_months=interest_only,
                redemption=redemption,
            ),
            collateral=CollateralFacts(
                appraisal_value=appraisal,
                subordination_amount=subordination,
                liquidity_haircut_pct=Decimal(random.choice(self.HAIRCUTS)),
            ),
            rating=random.choice(self.RATINGS),
        )

    def generate_batch(self, n_debtors: int, max_loans_per_debtor: int = 3) -> Iterator[LoanRequest]:
        """Generate requests for ``n_debtors`` debtors with 1..max loans each."""
        for _ in range(n_debtors):
            debtor_id = self.entity_id()
            for _ in range(random.randint(1, max_loans_per_debtor)):
                yield self.generate_request(debtor_id)

    def generate_portfolio(
        self,
        engine: LoanEngine,
        n_debtors: int,
        max_loans_per_debtor: int = 3,
    ) -> list[Loan]:
        """Price and register generated loans through the engine."""
        loans = [
            engine.create_loan(
                request.debtor_id,
                request.terms,
                request.collateral,
                rating=request.rating,
                loan_id=self.entity_id(),
            )
            for request in self.generate_batch(n_debtors, max_loans_per_debtor)
        ]
        logger.info("Generated portfolio of %d loans for %d debtors", len(loans), n_debtors)
        return loans


class PaymentBehaviorSimulator(BaseGenerator):
    """Record realistic payments against generated schedules.

    Each loan gets one payer profile. Payers behave better during the first
    six months and worse after more than two consecutive late payments.
    """

    # profile: (weight, on-time, minor late, moderate late) cumulative thresholds
    PROFILES = {
        "good": (0.70, 0.85, 0.97, 1.00),
        "fair": (0.20, 0.60, 0.85, 0.97),
        "poor": (0.10, 0.30, 0.60, 0.85),
    }

    HONEYMOON_MONTHS = 6
    HONEYMOON_BOOST = 0.15
    DETERIORATION_PENALTY = 0.10
    MAX_ON_TIME = 0.95
    MISSED_SHARE = 0.3

    def __init__(self, reconciler: PaymentReconciler, seed: int | None = None) -> None:
        super().__init__(seed)
        self.reconciler = reconciler

    def pick_profile(self) -> str:
        """Draw a payer profile by weight."""
        return self.weighted({name: p[0] for name, p in self.PROFILES.items()})

    def payment_delay(self, month_index: int, profile: str, consecutive_late: int) -> int | None:
        """Days after the due date the payment arrives; ``None`` when missed."""
        _, on_time, minor, moderate = self.PROFILES[profile]

        boost = self.HONEYMOON_BOOST if month_index <= self.HONEYMOON_MONTHS else 0.0
        penalty = self.DETERIORATION_PENALTY if consecutive_late > 2 else 0.0
        on_time = min(self.MAX_ON_TIME, on_time + boost - penalty)

        p = random.random()
        if p < on_time:
            return random.randint(-2, 3)
        if p < minor:
            return random.randint(4, 14)
        if p < moderate:
            return random.randint(15, 45)
        if random.random() < self.MISSED_SHARE:
            return None
        return random.randint(46, 120)

    def simulate_loan(
        self,
        loan_id: str,
        reference_date: date | None = None,
        profile: str | None = None,
    ) -> list[ScheduleEntry]:
        """Record payments for every entry of a loan due by ``reference_date``.

        Payments that would arrive after ``reference_date`` are left open.

        Returns
        -------
        list[ScheduleEntry]
            Entries for which a payment was recorded.
        """
        if reference_date is None:
            reference_date = date.today()
        profile = profile or self.pick_profile()

        recorded: list[ScheduleEntry] = []
        consecutive_late = 0

        for entry in self.reconciler.store.get_schedule(loan_id):
            if entry.due_date > reference_date:
                break

            delay = self.payment_delay(entry.month_index, profile, consecutive_late)
            if delay is None or delay > 3:
                consecutive_late += 1
            else:
                consecutive_late = 0

            if delay is None:
                continue
            paid_date = entry.due_date + timedelta(days=delay)
            if paid_date > reference_date:
                continue

            recorded.append(
                self.reconciler.record_payment(
                    loan_id,
                    entry.month_index,
                    paid_date,
                    notes=f"simulated ({profile} payer)",
                )
            )

        logger.debug(
            "Simulated %d payments for loan %s as %s payer",
            len(recorded),
            loan_id,
            profile,
            extra={"loan_id": loan_id},
        )
        return recorded
