"""Seeded random draws shared by the sample portfolio generators."""

from __future__ import annotations

import random
from abc import ABC
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import TypeVar

from faker import Faker

T = TypeVar("T")


class BaseGenerator(ABC):
    """Base class for sample portfolio generators.

    One seed drives both the Faker instance (ids, dates) and the
    module-level ``random`` generator (amounts, profiles, delays), so a
    seeded run reproduces the same portfolio and the same payment history.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``nl_NL``).
    """

    def __init__(self, seed: int | None = None, locale: str = "nl_NL") -> None:
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
            random.seed(seed)

    def entity_id(self) -> str:
        """New debtor or loan id."""
        return self.fake.uuid4()

    @staticmethod
    def weighted(weights: Mapping[T, float]) -> T:
        """Draw one key with probability proportional to its weight."""
        return random.choices(list(weights), weights=list(weights.values()), k=1)[0]

    @staticmethod
    def whole_amount(low: int, high: int, step: int = 1000) -> Decimal:
        """Amount in ``[low, high]`` that is a multiple of ``step``."""
        return Decimal(random.randint(low // step, high // step) * step)

    def month_start_between(self, start_date: str, end_date: str = "today") -> date:
        """First day of a random month in a Faker date range such as ``"-3y"``."""
        return self.fake.date_between(start_date=start_date, end_date=end_date).replace(day=1)
