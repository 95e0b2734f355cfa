"""
Tests for the baseline (ingestion-time) risk scorer.
"""

import pytest
from hypothesis import given, strategies as st

from codfence.models import OrderStatus, RiskLevel
from codfence.schemas import OrderRiskInput
from codfence.services.risk_engine import RiskEngineService

from factories import make_order, history

PHONE = "0912345678"


def assess(**kwargs):
    past = kwargs.pop("past_orders", ())
    blacklisted = kwargs.pop("blacklisted_phones", ())
    data = {"phone": PHONE, "amount": 300_000, "payment_method": "COD"}
    data.update(kwargs)
    return RiskEngineService.assess_order_risk(OrderRiskInput(**data), past, blacklisted)


class TestAssessOrderRisk:

    def test_prepaid_is_not_scored(self):
        result = assess(payment_method="BANK_TRANSFER", amount=5_000_000)
        assert result.risk_score is None
        assert result.risk_level == RiskLevel.NONE
        assert result.applied_rules == []

    def test_plain_cod_order(self):
        result = assess()
        assert result.risk_score == 30
        assert result.risk_level == RiskLevel.LOW
        assert result.applied_rules == ["RULE: cod_base"]

    def test_missing_payment_method_is_cod(self):
        assert assess(payment_method=None).risk_score == 30

    def test_high_amount(self):
        result = assess(amount=1_000_000)
        assert result.risk_score == 50
        assert "RULE: high_amount" in result.applied_rules

    def test_single_past_boom(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED])
        assert assess(past_orders=past).risk_score == 40

    def test_repeat_offender(self):
        past = history([
            OrderStatus.CUSTOMER_CANCELLED,
            OrderStatus.CUSTOMER_UNREACHABLE,
            OrderStatus.ORDER_REJECTED,
        ])
        result = assess(past_orders=past)
        assert result.risk_score == 60
        assert "RULE: repeat_boom_heavy" in result.applied_rules
        assert result.input_data["history"] == {"boom_orders": 3, "success_orders": 0}

    def test_good_history_discount(self):
        past = history([OrderStatus.COMPLETED, OrderStatus.ORDER_PAID, OrderStatus.COMPLETED])
        assert assess(past_orders=past).risk_score == 20

    def test_other_phones_ignored(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED] * 3, phone="0987654321")
        assert assess(past_orders=past).risk_score == 30

    def test_history_matches_normalized_phone(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED], phone="+84 912 345 678")
        assert assess(past_orders=past).risk_score == 40

    def test_dotted_phones_are_separate_customers(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED] * 3, phone="0912.999.999")
        result = assess(phone="0912.345.678", amount=100_000, past_orders=past)
        assert result.risk_score == 30
        assert result.applied_rules == ["RULE: cod_base"]

    def test_dotted_phone_matches_own_history(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED], phone="0912345678")
        assert assess(phone="0912.345.678", past_orders=past).risk_score == 40

    def test_unreachable_customer(self):
        assert assess(reachable=False).risk_score == 45
        assert assess(reachable=True).risk_score == 30
        assert assess(reachable=None).risk_score == 30

    def test_invalid_phone(self):
        result = assess(phone="12345")
        assert result.risk_score == 50
        assert "RULE: invalid_phone" in result.applied_rules

    def test_industrial_zone_address(self):
        result = assess(address="Lô B2, khu công nghiệp Sóng Thần, Bình Dương")
        assert result.risk_score == 40
        assert "RULE: risky_address" in result.applied_rules

    def test_blacklist_floor(self):
        result = assess(blacklisted_phones=["912345678"])
        assert result.risk_score == 80
        assert result.risk_level == RiskLevel.HIGH
        assert "HARD_OVERRIDE: blacklist" in result.applied_rules

    def test_blacklist_does_not_lower_score(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED] * 3)
        result = assess(amount=2_000_000, reachable=False, past_orders=past, blacklisted_phones=[PHONE])
        assert result.risk_score == 95

    def test_score_is_clamped(self):
        past = history([OrderStatus.CUSTOMER_CANCELLED] * 3, phone="12345")
        result = assess(
            phone="12345", amount=2_000_000, reachable=False,
            address="kcn Tân Tạo", past_orders=past,
        )
        assert result.risk_score == 100

    def test_weights_snapshot(self):
        result = assess()
        assert result.weights_used == RiskEngineService.get_risk_weights()

    def test_weight_overrides(self):
        result = RiskEngineService.assess_order_risk(
            OrderRiskInput(phone=PHONE, amount=100_000, payment_method="COD"),
            weight_overrides={"cod_base": 10},
        )
        assert result.risk_score == 10

    @given(
        amount=st.integers(min_value=0, max_value=10_000_000),
        reachable=st.one_of(st.none(), st.booleans()),
        booms=st.integers(min_value=0, max_value=5),
        blacklisted=st.booleans(),
    )
    def test_pure_and_bounded(self, amount, reachable, booms, blacklisted):
        past = history([OrderStatus.CUSTOMER_CANCELLED] * booms)
        kwargs = dict(
            amount=amount, reachable=reachable, past_orders=past,
            blacklisted_phones=[PHONE] if blacklisted else [],
        )
        first = assess(**kwargs)
        second = assess(**kwargs)
        assert first == second
        assert 0 <= first.risk_score <= 100
        if blacklisted:
            assert first.risk_score >= 80


class TestScoreOrder:

    def test_assigns_score_once(self):
        order = make_order(risk_score=None, amount=1_500_000)
        scored = RiskEngineService.score_order(order)
        assert scored.risk_score == 50
        assert order.risk_score is None

        rescored = RiskEngineService.score_order(scored, blacklisted_phones=[PHONE])
        assert rescored.risk_score == 50

    def test_prepaid_stays_unscored(self):
        order = make_order(risk_score=None, payment_method="PREPAID")
        assert RiskEngineService.score_order(order).risk_score is None

    def test_high_risk_logged(self, caplog):
        order = make_order(risk_score=None)
        with caplog.at_level("WARNING", logger="codfence.services.risk_engine"):
            scored = RiskEngineService.score_order(order, blacklisted_phones=[PHONE])
        assert scored.risk_score == 80
        assert "High risk order" in caplog.text
