"""Spread tables, market data, rate resolution and BSE."""

from tariff_engine.pricing.bse import calculate_bse
from tariff_engine.pricing.market import (
    FixingsMarketRateSource,
    MarketRateSource,
    StaticMarketRateSource,
    fetch_quote,
    reference_rate_from_fixings,
    select_base_point,
)
from tariff_engine.pricing.spreads import (
    SpreadTableStore,
    resolve_ltv_spread,
    resolve_rating_spread,
)
from tariff_engine.pricing.tariff import TariffResolver, loan_to_value

__all__ = [
    "FixingsMarketRateSource",
    "MarketRateSource",
    "SpreadTableStore",
    "StaticMarketRateSource",
    "TariffResolver",
    "calculate_bse",
    "fetch_quote",
    "loan_to_value",
    "reference_rate_from_fixings",
    "resolve_ltv_spread",
    "resolve_rating_spread",
    "select_base_point",
]
