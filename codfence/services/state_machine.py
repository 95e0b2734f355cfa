"""
Order Lifecycle State Machine - the single source of truth for which status
an order may move to next.

Every status write must be validated here against the status that was just
read; callers persist with compare-and-set and abort the whole write when
validation fails.
"""

from typing import Dict, FrozenSet, List, Optional, Union
from datetime import datetime, timezone
import logging

from ..models import Order, OrderStatus, UnknownStatus, Status, parse_status

logger = logging.getLogger(__name__)

S = OrderStatus

VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING_REVIEW: frozenset({
        S.VERIFICATION_REQUIRED,
        S.ORDER_APPROVED,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,  # paid through another channel right away
    }),
    S.VERIFICATION_REQUIRED: frozenset({
        S.ORDER_APPROVED,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,
    }),
    S.ORDER_APPROVED: frozenset({
        S.ORDER_CONFIRMATION_SENT,
        S.CUSTOMER_CONFIRMED,
        S.CUSTOMER_CANCELLED,
        S.ORDER_PAID,
        S.DELIVERING,
        S.ORDER_REJECTED,
    }),
    S.ORDER_CONFIRMATION_SENT: frozenset({
        S.CUSTOMER_CONFIRMED,
        S.CUSTOMER_CANCELLED,
        S.CUSTOMER_UNREACHABLE,
        S.ORDER_PAID,
        S.ORDER_REJECTED,
        S.DELIVERING,
    }),
    S.CUSTOMER_CONFIRMED: frozenset({
        S.DELIVERING,
        S.ORDER_PAID,
        S.CUSTOMER_CANCELLED,
        S.ORDER_REJECTED,
    }),
    S.DELIVERING: frozenset({
        S.COMPLETED,
        S.ORDER_PAID,  # COD collected mid-delivery
        S.CUSTOMER_CANCELLED,
        S.CUSTOMER_UNREACHABLE,
        S.ORDER_REJECTED,
        S.RETURNED,
        S.EXCHANGED,
    }),
    S.ORDER_PAID: frozenset({
        S.DELIVERING,
        S.COMPLETED,
        S.CUSTOMER_CANCELLED,  # needs refund
        S.ORDER_REJECTED,      # needs refund
    }),
    S.COMPLETED: frozenset({
        S.ORDER_PAID,
        S.RETURNED,
        S.EXCHANGED,
    }),
    S.CUSTOMER_CANCELLED: frozenset({S.PENDING_REVIEW}),
    S.ORDER_REJECTED: frozenset({S.PENDING_REVIEW}),
    S.CUSTOMER_UNREACHABLE: frozenset({
        S.PENDING_REVIEW,
        S.ORDER_REJECTED,
        S.CUSTOMER_CANCELLED,
    }),
    S.RETURNED: frozenset({S.PENDING_REVIEW}),
    S.EXCHANGED: frozenset({S.PENDING_REVIEW}),
}

# Timestamp stamped on the order when it enters a status
STATUS_TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    S.ORDER_CONFIRMATION_SENT: "confirmation_sent_at",
    S.CUSTOMER_CONFIRMED: "customer_confirmed_at",
    S.CUSTOMER_CANCELLED: "cancelled_at",
    S.DELIVERING: "shipped_at",
    S.COMPLETED: "completed_at",
    S.ORDER_PAID: "paid_at",
}

StatusInput = Union[str, OrderStatus, UnknownStatus, None]


class InvalidStatusTransition(ValueError):
    """Raised when a status write is not allowed from the current status."""

    def __init__(self, current: Status, requested: Status):
        self.current = current
        self.requested = requested
        super().__init__(
            f'Invalid order status transition from "{current.value}" to "{requested.value}"'
        )


def can_transition(current: StatusInput, new: StatusInput) -> bool:
    """
    Identity moves are always allowed. Statuses outside the canonical set
    may move anywhere so legacy records are never stuck.
    """
    current_status = parse_status(current)
    new_status = parse_status(new)

    if current_status == new_status:
        return True
    if isinstance(current_status, UnknownStatus):
        return True
    return new_status in VALID_TRANSITIONS.get(current_status, frozenset())


def validate_transition(current: StatusInput, new: StatusInput) -> None:
    """Raise InvalidStatusTransition if the move is not allowed."""
    if not can_transition(current, new):
        error = InvalidStatusTransition(parse_status(current), parse_status(new))
        logger.warning(str(error))
        raise error


def allowed_transitions(current: StatusInput) -> List[OrderStatus]:
    """Statuses reachable in one step; every status for an unknown one."""
    current_status = parse_status(current)
    if isinstance(current_status, UnknownStatus):
        return list(OrderStatus)
    return [s for s in OrderStatus if s in VALID_TRANSITIONS.get(current_status, frozenset())]


def apply_transition(
    order: Order,
    new_status: StatusInput,
    at: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> Order:
    """
    Validate a status change and return the updated order.

    The matching lifecycle timestamp is stamped (confirmation sent, customer
    confirmed, cancelled, shipped, completed, paid). Recording a payment on
    a DELIVERING or COMPLETED order keeps the status and only stamps paid_at.
    The input order is never modified; on InvalidStatusTransition nothing
    is applied.
    """
    target = parse_status(new_status)
    at = at or datetime.now(timezone.utc)
    current = order.lifecycle_status

    if target == S.ORDER_PAID and current in (S.DELIVERING, S.COMPLETED):
        logger.info(f"Order {order.id} paid while {current.value}; status kept")
        return order.model_copy(update={"paid_at": at})

    validate_transition(current, target)

    updates = {"status": target.value}
    if isinstance(target, OrderStatus):
        field = STATUS_TIMESTAMP_FIELDS.get(target)
        if field:
            updates[field] = at
    if reason is not None:
        if target == S.CUSTOMER_CANCELLED:
            updates["cancel_reason"] = reason
        elif target == S.ORDER_REJECTED:
            updates["reject_reason"] = reason

    logger.info(f"Order {order.id} moved {current.value} -> {target.value}")
    return order.model_copy(update=updates)
