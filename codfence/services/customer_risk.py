"""
Customer Risk Learning Engine.

A customer's risk is a read model over their whole order history: it is
recomputed from the orders on every call and never stored as a mutable row.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple
from datetime import datetime
import logging

from ..models import Order, OrderStatus, BlacklistEntry
from ..schemas import CustomerRiskProfile, RiskReplayStep
from ..config import LEARNING_DELTAS, HIGH_AMOUNT_THRESHOLD, NEUTRAL_BASELINE_SCORE
from .rules import (
    is_cod, is_success, is_boom, effective_date, as_utc, clamp, map_score_to_level
)

logger = logging.getLogger(__name__)


def _phone(value: Optional[str]) -> str:
    return (value or "").strip()


def build_blacklist_index(entries: Iterable[BlacklistEntry]) -> Dict[str, datetime]:
    """Earliest blacklist timestamp per phone."""
    index: Dict[str, datetime] = {}
    for entry in entries:
        phone = _phone(entry.phone)
        if not phone:
            continue
        created = as_utc(entry.created_at)
        if phone not in index or created < index[phone]:
            index[phone] = created
    return index


def group_orders_by_phone(orders: Iterable[Order]) -> Dict[str, List[Order]]:
    """Partition orders by phone, skipping orders without one."""
    groups: Dict[str, List[Order]] = {}
    for order in orders:
        phone = _phone(order.phone)
        if not phone:
            continue
        groups.setdefault(phone, []).append(order)
    return groups


def baseline_score(orders: Iterable[Order]) -> float:
    """Mean risk_score of scored COD orders, or the neutral default."""
    scores = [o.risk_score for o in orders if is_cod(o) and o.risk_score is not None]
    if not scores:
        return float(NEUTRAL_BASELINE_SCORE)
    return sum(scores) / len(scores)


def chronological(orders: Iterable[Order]) -> List[Order]:
    """Sort by business date; orders with no date at all go first."""
    return sorted(
        orders,
        key=lambda o: (effective_date(o) is not None, effective_date(o) or datetime.min),
    )


def order_delta(order: Order, blacklisted_at: Optional[datetime] = None) -> Tuple[int, bool]:
    """
    Score change contributed by one order.

    Returns (delta, multiplied) where multiplied tells whether the blacklist
    multiplier applied: the phone was blacklisted strictly before the order
    date and the shop did not reject the order.
    """
    delta = 0
    if is_success(order):
        delta = LEARNING_DELTAS["success"]
        if order.amount >= HIGH_AMOUNT_THRESHOLD:
            delta = LEARNING_DELTAS["success_high_amount"]
    elif is_boom(order):
        delta = LEARNING_DELTAS["boom"]

    order_at = effective_date(order)
    multiplied = (
        blacklisted_at is not None
        and order_at is not None
        and as_utc(blacklisted_at) < order_at
        and order.status != OrderStatus.ORDER_REJECTED.value
    )
    if multiplied:
        delta *= LEARNING_DELTAS["blacklist_multiplier"]
    return delta, multiplied


def replay(
    orders: Iterable[Order],
    baseline: float,
    blacklisted_at: Optional[datetime] = None,
) -> Tuple[float, List[RiskReplayStep]]:
    """Walk the orders in date order from the baseline; returns the clamped score and the trail."""
    current = baseline
    steps: List[RiskReplayStep] = []
    for order in chronological(orders):
        delta, multiplied = order_delta(order, blacklisted_at)
        current += delta
        steps.append(RiskReplayStep(
            order_id=order.id or order.order_code,
            status=order.status,
            effective_date=effective_date(order),
            delta=delta,
            blacklist_multiplied=multiplied,
            score_after=current,
        ))
    return clamp(current), steps


def learn_customer_risk(
    phone: str,
    orders: Iterable[Order],
    blacklisted_at: Optional[datetime] = None,
    include_history: bool = False,
) -> Optional[CustomerRiskProfile]:
    """
    Learned risk profile for one phone from its full order history.

    Orders belonging to other phones are ignored. Returns None when the phone
    has no orders.
    """
    key = _phone(phone)
    history = [o for o in orders if key and _phone(o.phone) == key]
    if not history:
        return None

    base = baseline_score(history)
    score, steps = replay(history, base, blacklisted_at)

    latest = max(
        (o for o in history if effective_date(o) is not None),
        key=effective_date,
        default=None,
    )

    profile = CustomerRiskProfile(
        phone=key,
        full_name=latest.customer_name if latest else history[-1].customer_name,
        total_orders=len(history),
        success_count=sum(1 for o in history if is_success(o)),
        failed_count=sum(1 for o in history if is_boom(o)),
        base_risk_score=base,
        customer_risk_score=score,
        customer_risk_level=map_score_to_level(score),
        last_order_at=effective_date(latest) if latest else None,
        blacklisted_at=as_utc(blacklisted_at),
        history=steps if include_history else [],
    )
    logger.debug(f"Customer {key}: baseline {base:.1f} -> {score:.1f} over {len(history)} orders")
    return profile


def compute_customer_profiles(
    orders: Iterable[Order],
    blacklist: Iterable[BlacklistEntry] = (),
    include_history: bool = False,
) -> List[CustomerRiskProfile]:
    """Profiles for every phone of a tenant, most recently active first."""
    index = build_blacklist_index(blacklist)
    profiles = []
    for phone, phone_orders in group_orders_by_phone(orders).items():
        profile = learn_customer_risk(phone, phone_orders, index.get(phone), include_history)
        if profile is not None:
            profiles.append(profile)

    profiles.sort(
        key=lambda p: p.last_order_at.timestamp() if p.last_order_at else float("-inf"),
        reverse=True,
    )
    logger.info(f"Computed {len(profiles)} customer risk profiles")
    return profiles


class CustomerRiskCache:
    """
    Memoized customer profiles keyed by phone.

    The loader returns (orders, blacklist_entries) for a phone. Call
    invalidate(phone) when that phone gets a new order or its blacklist
    entry changes.
    """

    def __init__(self, loader: Callable[[str], Tuple[List[Order], List[BlacklistEntry]]]):
        self._loader = loader
        self._profiles: Dict[str, Optional[CustomerRiskProfile]] = {}

    def get(self, phone: str) -> Optional[CustomerRiskProfile]:
        key = _phone(phone)
        if key not in self._profiles:
            orders, entries = self._loader(key)
            blacklisted_at = build_blacklist_index(entries).get(key)
            self._profiles[key] = learn_customer_risk(key, orders, blacklisted_at)
        return self._profiles[key]

    def invalidate(self, phone: str) -> None:
        self._profiles.pop(_phone(phone), None)

    def clear(self) -> None:
        self._profiles.clear()

    def __contains__(self, phone: str) -> bool:
        return _phone(phone) in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
