"""JSON-ready conversion of engine results."""

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

DERIVED_FIELDS = ("total", "total_spread_bps", "total_paid", "on_time_pct", "effective_value")


def to_dict(obj: Any) -> dict:
    """Convert a result object to a dictionary of JSON-compatible values.

    Dataclass properties that carry derived figures (``total``,
    ``total_spread_bps``, ``on_time_pct``) are included alongside the fields.
    """
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert a dataclass without a deep copy, recursing into nested values."""
    result = {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}
    for name in DERIVED_FIELDS:
        if isinstance(getattr(type(obj), name, None), property):
            result[name] = serialize_value(getattr(obj, name))
    return result


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return dataclass_to_dict(value)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value
