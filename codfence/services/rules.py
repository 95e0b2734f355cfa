"""
Order classification rules shared by the state machine, the risk engines
and the analytics pipeline.

Every definition of "COD", "success" and "boom" lives here; other modules
import these predicates instead of re-declaring status sets.
"""

from typing import Optional, Sequence
from datetime import datetime, timezone
import re

from ..models import Order, OrderStatus, RiskLevel


SUCCESS_STATUSES = frozenset({
    OrderStatus.ORDER_PAID.value,
    OrderStatus.COMPLETED.value,
})

BOOM_STATUSES = frozenset({
    OrderStatus.CUSTOMER_CANCELLED.value,
    OrderStatus.CUSTOMER_UNREACHABLE.value,
    OrderStatus.ORDER_REJECTED.value,
})

# Statuses a medium/high risk order sits in until the shop approves it
PENDING_REVIEW_STATUSES = frozenset({
    OrderStatus.PENDING_REVIEW.value,
    OrderStatus.VERIFICATION_REQUIRED.value,
    OrderStatus.ORDER_CONFIRMATION_SENT.value,
})

CUSTOMER_CONFIRMED_STATUSES = frozenset({
    OrderStatus.CUSTOMER_CONFIRMED.value,
    OrderStatus.DELIVERING.value,
    OrderStatus.COMPLETED.value,
})


def map_score_to_level(score: Optional[float]) -> RiskLevel:
    """null -> none, [0,30] -> low, (30,70] -> medium, (70,100] -> high."""
    return RiskLevel.from_score(score)


def clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    return max(lo, min(hi, value))


def pct(num: float, denom: float) -> Optional[float]:
    """Percentage rounded to one decimal; None when there is nothing to divide by."""
    if not denom or denom <= 0:
        return None
    return round(num / denom * 100, 1)


def mean(values: Sequence[float], digits: int = 1) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), digits)


# === Order predicates ===

def is_cod(order: Order) -> bool:
    """Empty payment method or "COD" (any case) means cash-on-delivery."""
    method = (order.payment_method or "").strip().upper()
    return method == "" or method == "COD"


def is_success(order: Order) -> bool:
    return order.status in SUCCESS_STATUSES


def is_boom(order: Order) -> bool:
    """Cancelled, unreachable or rejected: the order failed to convert."""
    return order.status in BOOM_STATUSES


def has_been_paid(order: Order) -> bool:
    """Paid at some point, whatever the current status is."""
    return order.paid_at is not None


def is_medium_or_high_risk_cod(order: Order) -> bool:
    return is_cod(order) and order.risk_level in (RiskLevel.MEDIUM, RiskLevel.HIGH)


def has_been_customer_confirmed(order: Order) -> bool:
    """
    True when a medium/high risk COD order was explicitly confirmed by the
    customer. Low risk COD orders skip the confirmation step and never count.
    """
    if not is_medium_or_high_risk_cod(order):
        return False
    return (
        order.customer_confirmed_at is not None
        or order.status in CUSTOMER_CONFIRMED_STATUSES
    )


def is_pending_review(order: Order) -> bool:
    return order.status in PENDING_REVIEW_STATUSES


def is_customer_cancelled(order: Order) -> bool:
    return order.status == OrderStatus.CUSTOMER_CANCELLED.value


def is_rejected_by_shop(order: Order) -> bool:
    return order.status == OrderStatus.ORDER_REJECTED.value


def is_approved_cod(order: Order) -> bool:
    """
    Low risk (or unscored) COD orders are auto-approved unless rejected.
    Medium/high risk COD orders are approved once they leave the pending
    review statuses without being rejected.
    """
    if not is_cod(order) or is_rejected_by_shop(order):
        return False
    if order.risk_level in (RiskLevel.LOW, RiskLevel.NONE):
        return True
    return not is_pending_review(order)


def is_cod_payment_pending(order: Order) -> bool:
    """COD money still expected: not paid, not failed, and past confirmation if required."""
    if not is_cod(order) or has_been_paid(order) or is_boom(order):
        return False
    if order.risk_level in (RiskLevel.LOW, RiskLevel.NONE):
        return True
    return has_been_customer_confirmed(order)


# === Dates ===

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so mixed inputs stay comparable."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def effective_date(order: Order) -> Optional[datetime]:
    """Business date of the order, falling back to its creation time."""
    return as_utc(order.order_date or order.created_at)


# === Phones ===

def normalize_phone(raw: Optional[str]) -> str:
    """
    Canonical Vietnamese phone form: digits only, leading zero restored for
    9-digit inputs and "84" country prefixes rewritten to "0".
    """
    if not raw:
        return ""
    value = str(raw).strip()
    # Spreadsheet exports turn 912345678 into "912345678.0"
    value = re.sub(r"^(\d+)\.0+$", r"\1", value)
    value = re.sub(r"[^0-9]", "", value)
    if len(value) == 9:
        return "0" + value
    if len(value) == 11 and value.startswith("84"):
        return "0" + value[2:]
    return value


def is_valid_phone(raw: Optional[str]) -> bool:
    return re.fullmatch(r"0\d{9}", normalize_phone(raw)) is not None


def phone_key(order: Order) -> str:
    """Grouping key for customer-level views; blank when the order has no phone."""
    return (order.phone or "").strip()
