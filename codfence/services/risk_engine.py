"""
Risk Engine Service - baseline risk scoring at order ingestion.
Implements rule-based COD risk evaluation with configurable weights.
"""

from typing import List, Dict, Optional, Iterable
import logging

from ..models import Order, RiskLevel
from ..schemas import OrderRiskInput, RiskAssessment
from ..config import (
    DEFAULT_RISK_WEIGHTS, HIGH_AMOUNT_THRESHOLD, BLACKLIST_SCORE_FLOOR,
    RISKY_ADDRESS_KEYWORDS
)
from .rules import (
    is_boom, is_success, map_score_to_level, normalize_phone, is_valid_phone, clamp
)

logger = logging.getLogger(__name__)


class RiskEngineService:
    """
    Baseline risk scorer for imported orders.
    A pure function of its inputs: same order, history and weights give the
    same score, so learning and analytics downstream stay reproducible.
    """

    @staticmethod
    def get_risk_weights(overrides: Optional[Dict[str, int]] = None) -> Dict[str, int]:
        """Default weights with optional per-tenant overrides applied."""
        weights = dict(DEFAULT_RISK_WEIGHTS)
        if overrides:
            weights.update(overrides)
        return weights

    @staticmethod
    def calculate_risk_level(score: Optional[int]) -> RiskLevel:
        """Calculate risk level from score using thresholds."""
        return map_score_to_level(score)

    @staticmethod
    def summarize_history(phone: Optional[str], past_orders: Iterable[Order]) -> Dict[str, int]:
        """Count boom and successful orders previously placed by this phone."""
        key = normalize_phone(phone)
        booms = 0
        successes = 0
        if not key:
            return {"boom_orders": 0, "success_orders": 0}
        for past in past_orders:
            if normalize_phone(past.phone) != key:
                continue
            if is_boom(past):
                booms += 1
            elif is_success(past):
                successes += 1
        return {"boom_orders": booms, "success_orders": successes}

    @classmethod
    def assess_order_risk(
        cls,
        order: OrderRiskInput,
        past_orders: Iterable[Order] = (),
        blacklisted_phones: Iterable[str] = (),
        weight_overrides: Optional[Dict[str, int]] = None
    ) -> RiskAssessment:
        """
        Perform the ingestion-time risk assessment for one order.

        Only COD orders are scored; prepaid orders get no score and level
        "none".

        Returns:
            RiskAssessment with score, level, reasons, applied rules and the
            input snapshot used.
        """
        weights = cls.get_risk_weights(weight_overrides)
        history = cls.summarize_history(order.phone, past_orders)
        blacklist = {normalize_phone(p) for p in blacklisted_phones if p}
        phone_key = normalize_phone(order.phone)

        input_data = {
            "phone": order.phone,
            "amount": order.amount,
            "payment_method": order.payment_method,
            "address": order.address,
            "reachable": order.reachable,
            "history": history,
            "blacklisted": bool(phone_key) and phone_key in blacklist,
        }

        method = (order.payment_method or "").strip().upper()
        if method and method != "COD":
            return RiskAssessment(
                risk_score=None,
                risk_level=RiskLevel.NONE,
                risk_reasons=["Prepaid order - not scored"],
                applied_rules=[],
                input_data=input_data,
                weights_used=weights,
            )

        risk_score = 0
        reasons: List[str] = []
        applied_rules: List[str] = []

        # 1. COD base risk
        risk_score += weights["cod_base"]
        reasons.append("COD order")
        applied_rules.append("RULE: cod_base")

        # 2. High amount
        if order.amount >= HIGH_AMOUNT_THRESHOLD:
            risk_score += weights["high_amount"]
            reasons.append(f"High order value: {order.amount:,}")
            applied_rules.append("RULE: high_amount")

        # 3. Repeat offender
        booms = history["boom_orders"]
        if booms >= 3:
            risk_score += weights["repeat_boom_heavy"]
            reasons.append(f"Customer has {booms} failed COD orders")
            applied_rules.append("RULE: repeat_boom_heavy")
        elif booms >= 1:
            risk_score += weights["repeat_boom"]
            reasons.append("Customer previously failed COD")
            applied_rules.append("RULE: repeat_boom")

        # 4. Clean history discount
        if booms == 0 and history["success_orders"] >= 3:
            risk_score += weights["good_history"]
            reasons.append(f"Good customer history: {history['success_orders']} successful orders")
            applied_rules.append("RULE: good_history")

        # 5. Not reachable on the messaging channel
        if order.reachable is False:
            risk_score += weights["unreachable_channel"]
            reasons.append("Customer not reachable on messaging channel")
            applied_rules.append("RULE: unreachable_channel")

        # 6. Phone quality
        if not is_valid_phone(order.phone):
            risk_score += weights["invalid_phone"]
            reasons.append("Invalid phone number")
            applied_rules.append("RULE: invalid_phone")

        # 7. Address heuristic
        address = (order.address or "").lower()
        if address and any(keyword in address for keyword in RISKY_ADDRESS_KEYWORDS):
            risk_score += weights["risky_address"]
            reasons.append("Address in industrial area")
            applied_rules.append("RULE: risky_address")

        # === Hard override: blacklisted phone ===
        if input_data["blacklisted"]:
            risk_score = max(risk_score, BLACKLIST_SCORE_FLOOR)
            reasons.append("Customer is in blacklist (forced high risk)")
            applied_rules.append("HARD_OVERRIDE: blacklist")

        risk_score = int(clamp(risk_score))
        risk_level = cls.calculate_risk_level(risk_score)

        return RiskAssessment(
            risk_score=risk_score,
            risk_level=risk_level,
            risk_reasons=reasons,
            applied_rules=applied_rules,
            input_data=input_data,
            weights_used=weights,
        )

    @classmethod
    def score_order(
        cls,
        order: Order,
        past_orders: Iterable[Order] = (),
        reachable: Optional[bool] = None,
        blacklisted_phones: Iterable[str] = ()
    ) -> Order:
        """
        Assign the baseline risk_score to a freshly imported order.
        Orders that already carry a score are returned unchanged.
        """
        if order.risk_score is not None:
            logger.debug(f"Order {order.order_code or order.id} already scored; keeping {order.risk_score}")
            return order

        assessment = cls.assess_order_risk(
            OrderRiskInput(
                phone=order.phone,
                amount=order.amount,
                payment_method=order.payment_method,
                address=order.address,
                reachable=reachable,
            ),
            past_orders=past_orders,
            blacklisted_phones=blacklisted_phones,
        )

        if assessment.risk_level == RiskLevel.HIGH:
            logger.warning(
                f"High risk order {order.order_code or order.id}: score {assessment.risk_score} "
                f"({'; '.join(assessment.risk_reasons)})"
            )

        return order.model_copy(update={"risk_score": assessment.risk_score})
