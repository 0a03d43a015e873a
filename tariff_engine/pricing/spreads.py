"""Versioned spread tables and spread resolution.

A ``SpreadTable`` is immutable once published. ``SpreadTableStore`` keeps
every version and a pointer to the active one; publishing a new version
swaps that pointer under a lock, so a reader either sees the old table or
the new one, never a mix. Callers take one snapshot with ``active()`` and
resolve every spread of a calculation against it.

LTV tiers are matched by ascending ``max_ltv``; the first tier whose
``max_ltv`` is greater than or equal to the LTV wins (inclusive upper
bound). An LTV above every tier falls into the last tier: the highest tier
is open-ended and carries the maximum spread.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal

from tariff_engine.exceptions import ConfigurationError, ValidationError
from tariff_engine.models.enums import RuleKind
from tariff_engine.models.tariff import SpreadRule, SpreadTable

logger = logging.getLogger(__name__)


def _first_match(
    rules: Iterable[SpreadRule],
    predicate: Callable[[SpreadRule], bool],
) -> SpreadRule | None:
    """Return the first rule, in evaluation order, accepted by ``predicate``."""
    for rule in rules:
        if predicate(rule):
            return rule
    return None


def resolve_ltv_spread(table: SpreadTable, ltv_pct: Decimal) -> int:
    """Resolve the LTV spread in basis points.

    Parameters
    ----------
    table : SpreadTable
        Snapshot to resolve against.
    ltv_pct : Decimal
        Loan-to-value in percent.

    Returns
    -------
    int
        Spread of the matching tier, or of the top tier when the LTV
        exceeds every ``max_ltv``.

    Raises
    ------
    ConfigurationError
        If the table has no LTV tiers.
    """
    tiers = table.rules_of(RuleKind.LTV)
    if not tiers:
        raise ConfigurationError(f"Spread table v{table.version} has no LTV tiers")

    tier = _first_match(tiers, lambda rule: rule.key >= ltv_pct)
    if tier is None:
        tier = tiers[-1]
        logger.debug("LTV %s above all tiers, using top tier %s", ltv_pct, tier.key)
    return tier.spread_bps


def resolve_rating_spread(table: SpreadTable, rating: str) -> int:
    """Resolve the credit rating spread in basis points.

    Matching is exact and case-insensitive. An unknown rating raises
    ``ValidationError`` instead of pricing at zero spread.
    """
    code = rating.strip().upper()
    rule = _first_match(table.rules_of(RuleKind.RATING), lambda r: r.key == code)
    if rule is None:
        raise ValidationError(f"Unknown credit rating: {rating!r}")
    return rule.spread_bps


def build_rules(
    ltv_tiers: Sequence[tuple[Decimal, int]],
    rating_spreads: Sequence[tuple[str, int]],
) -> tuple[SpreadRule, ...]:
    """Validate raw tier and rating lists and turn them into rules.

    The position of each item in its list becomes its ``sort_key``.
    """
    rules: list[SpreadRule] = []
    seen_ltv: set[Decimal] = set()
    for position, (max_ltv, spread_bps) in enumerate(ltv_tiers):
        rule = SpreadRule.ltv_tier(Decimal(max_ltv), spread_bps, sort_key=position)
        if rule.key <= 0:
            raise ValidationError(f"max_ltv must be positive, got {max_ltv}")
        if rule.key in seen_ltv:
            raise ValidationError(f"Duplicate LTV tier max_ltv={max_ltv}")
        if rule.spread_bps < 0:
            raise ValidationError(f"Negative spread for LTV tier {max_ltv}")
        seen_ltv.add(rule.key)
        rules.append(rule)

    seen_codes: set[str] = set()
    for position, (code, spread_bps) in enumerate(rating_spreads):
        rule = SpreadRule.rating(code, spread_bps, sort_key=position)
        if not rule.key:
            raise ValidationError("Rating code must not be empty")
        if rule.key in seen_codes:
            raise ValidationError(f"Duplicate rating code {code!r}")
        if rule.spread_bps < 0:
            raise ValidationError(f"Negative spread for rating {code!r}")
        seen_codes.add(rule.key)
        rules.append(rule)

    if not seen_ltv:
        raise ValidationError("A spread table needs at least one LTV tier")
    return tuple(rules)


class SpreadTableStore:
    """Holds published spread table versions and the active pointer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._versions: list[SpreadTable] = []
        self._active: SpreadTable | None = None

    def publish(
        self,
        ltv_tiers: Sequence[tuple[Decimal, int]],
        rating_spreads: Sequence[tuple[str, int]],
    ) -> SpreadTable:
        """Create a new version from both lists and make it the active one.

        Validation happens before the lock is taken; a rejected table never
        becomes visible.
        """
        rules = build_rules(ltv_tiers, rating_spreads)
        with self._lock:
            table = SpreadTable(
                version=len(self._versions) + 1,
                created_at=datetime.now(timezone.utc),
                rules=rules,
            )
            self._versions.append(table)
            self._active = table

        logger.info(
            "Published spread table v%d (%d LTV tiers, %d ratings)",
            table.version,
            len(ltv_tiers),
            len(rating_spreads),
            extra={"spread_table_version": table.version},
        )
        return table

    def active(self) -> SpreadTable:
        """Return the active snapshot."""
        table = self._active
        if table is None:
            raise ConfigurationError("No spread table has been published")
        return table

    def history(self) -> list[SpreadTable]:
        """Return every published version, oldest first."""
        with self._lock:
            return list(self._versions)
