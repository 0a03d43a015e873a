#!/usr/bin/env python3
"""Generate missing amortization schedules in PostgreSQL.

Connects to the loan database, creates every schedule that does not exist
yet and prints a JSON summary of the batch. Loans that fail are reported
per loan and do not stop the run.

Optionally seeds the database with a generated sample portfolio first
(``--sample-debtors``), priced against a flat yield curve and a default
spread table, and simulates payment history for it.
"""

import argparse
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tariff_engine.config import EngineConfig
from tariff_engine.engine import LoanEngine
from tariff_engine.exceptions import TariffEngineError
from tariff_engine.generators import LoanGenerator, PaymentBehaviorSimulator
from tariff_engine.logging import setup_logging
from tariff_engine.models.tariff import YieldPoint
from tariff_engine.pricing.market import StaticMarketRateSource
from tariff_engine.serialization import to_dict
from tariff_engine.store.postgres import PostgresLoanStore

logger = logging.getLogger(__name__)

DEFAULT_LTV_TIERS = [
    (Decimal("60"), 25),
    (Decimal("70"), 50),
    (Decimal("80"), 75),
    (Decimal("90"), 125),
    (Decimal("100"), 200),
]
DEFAULT_RATING_SPREADS = [
    ("AAA", 0),
    ("AA", 10),
    ("A", 25),
    ("BBB", 50),
    ("BB", 100),
    ("B", 175),
]
CURVE_MATURITIES = [1, 2, 5, 10, 20, 30]


def flat_market(base_rate: Decimal, reference_rate: Decimal) -> StaticMarketRateSource:
    """Market snapshot with the same yield at every maturity."""
    curve = [YieldPoint(Decimal(m), base_rate) for m in CURVE_MATURITIES]
    return StaticMarketRateSource(curve, reference_rate)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate missing loan amortization schedules",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="PostgreSQL connection string (default: from POSTGRES_* environment)",
    )
    parser.add_argument(
        "--ensure-schema",
        action="store_true",
        help="Create tables if they do not exist",
    )
    parser.add_argument(
        "--sample-debtors",
        type=int,
        default=0,
        help="Seed a generated portfolio for this many debtors first",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for sample data",
    )
    parser.add_argument(
        "--base-rate",
        type=Decimal,
        default=Decimal("2.50"),
        help="Flat yield curve rate for sample pricing, in percent",
    )
    parser.add_argument(
        "--reference-rate",
        type=Decimal,
        default=Decimal("3.20"),
        help="Statutory reference rate for sample pricing, in percent",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )

    args = parser.parse_args()

    config = EngineConfig.from_env()
    setup_logging(
        args.log_level or config.log_level,
        "json" if args.json_logs else config.log_format,
    )

    try:
        store = PostgresLoanStore(args.postgres_url or config.postgres.connection_string)
    except Exception as exc:
        logger.error("Could not connect to PostgreSQL: %s", exc)
        return 1

    try:
        if args.ensure_schema:
            store.ensure_schema()

        engine = LoanEngine(
            store,
            flat_market(args.base_rate, args.reference_rate),
            config=config,
        )

        if args.sample_debtors > 0:
            engine.publish_spread_table(DEFAULT_LTV_TIERS, DEFAULT_RATING_SPREADS)
            loans = LoanGenerator(seed=args.seed).generate_portfolio(engine, args.sample_debtors)
            engine.generate_all_missing_schedules()
            simulator = PaymentBehaviorSimulator(engine.reconciler, seed=args.seed)
            for loan in loans:
                simulator.simulate_loan(loan.loan_id)

        result = engine.generate_all_missing_schedules()
    except TariffEngineError as exc:
        logger.error("Schedule generation aborted: %s", exc)
        return 1
    finally:
        store.close()

    print(json.dumps(to_dict(result), indent=2))
    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())
