"""Enumeration types for the loan pricing domain."""

from enum import Enum


class RedemptionScheme(str, Enum):
    ANNUITY = "ANNUITY"
    LINEAR = "LINEAR"
    BULLET = "BULLET"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID_ON_TIME = "PAID_ON_TIME"
    PAID_LATE = "PAID_LATE"
    OVERDUE = "OVERDUE"


class RuleKind(str, Enum):
    LTV = "LTV"
    RATING = "RATING"
