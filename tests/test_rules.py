"""
Tests for the shared order classification rules.
"""

import pytest
from hypothesis import given, strategies as st

from codfence.models import OrderStatus, RiskLevel, UnknownStatus, parse_status
from codfence.services.rules import (
    map_score_to_level, is_cod, is_success, is_boom, has_been_paid,
    has_been_customer_confirmed, is_approved_cod, is_cod_payment_pending,
    effective_date, normalize_phone, is_valid_phone, pct, clamp
)

from factories import make_order, T0


class TestScoreToLevel:
    """Risk level is a pure, total function of the score."""

    @pytest.mark.parametrize("score,level", [
        (None, RiskLevel.NONE),
        (0, RiskLevel.LOW),
        (30, RiskLevel.LOW),
        (31, RiskLevel.MEDIUM),
        (70, RiskLevel.MEDIUM),
        (71, RiskLevel.HIGH),
        (100, RiskLevel.HIGH),
    ])
    def test_boundaries(self, score, level):
        assert map_score_to_level(score) == level

    @given(score=st.one_of(st.none(), st.integers(min_value=0, max_value=100)))
    def test_order_level_matches_mapping(self, score):
        order = make_order(risk_score=score)
        assert order.risk_level == map_score_to_level(score)

    @given(score=st.integers(min_value=0, max_value=100))
    def test_mapping_is_monotonic(self, score):
        ranks = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH]
        if score < 100:
            assert ranks.index(map_score_to_level(score)) <= ranks.index(map_score_to_level(score + 1))


class TestPaymentMethod:

    @pytest.mark.parametrize("method", [None, "", "COD", "cod", " Cod "])
    def test_cod(self, method):
        assert is_cod(make_order(payment_method=method))

    @pytest.mark.parametrize("method", ["BANK_TRANSFER", "PREPAID", "momo"])
    def test_not_cod(self, method):
        assert not is_cod(make_order(payment_method=method))


class TestOutcomes:

    @pytest.mark.parametrize("status", [OrderStatus.ORDER_PAID, OrderStatus.COMPLETED])
    def test_success(self, status):
        order = make_order(status=status)
        assert is_success(order)
        assert not is_boom(order)

    @pytest.mark.parametrize("status", [
        OrderStatus.CUSTOMER_CANCELLED,
        OrderStatus.CUSTOMER_UNREACHABLE,
        OrderStatus.ORDER_REJECTED,
    ])
    def test_boom(self, status):
        order = make_order(status=status)
        assert is_boom(order)
        assert not is_success(order)

    def test_unknown_status_is_neither(self):
        order = make_order(status="LEGACY_SHIPPED")
        assert isinstance(order.lifecycle_status, UnknownStatus)
        assert not is_success(order)
        assert not is_boom(order)

    def test_paid_mid_delivery_counts_as_paid(self):
        order = make_order(status=OrderStatus.DELIVERING, paid_at=T0)
        assert has_been_paid(order)
        assert not is_success(order)


class TestCustomerConfirmation:

    def test_low_risk_never_counts(self):
        order = make_order(risk_score=10, status=OrderStatus.CUSTOMER_CONFIRMED, customer_confirmed_at=T0)
        assert not has_been_customer_confirmed(order)

    def test_medium_risk_with_timestamp(self):
        order = make_order(risk_score=50, status=OrderStatus.ORDER_PAID, customer_confirmed_at=T0)
        assert has_been_customer_confirmed(order)

    @pytest.mark.parametrize("status", [
        OrderStatus.CUSTOMER_CONFIRMED, OrderStatus.DELIVERING, OrderStatus.COMPLETED,
    ])
    def test_high_risk_by_status(self, status):
        assert has_been_customer_confirmed(make_order(risk_score=90, status=status))

    def test_prepaid_never_counts(self):
        order = make_order(risk_score=90, payment_method="BANK", status=OrderStatus.CUSTOMER_CONFIRMED)
        assert not has_been_customer_confirmed(order)


class TestApproval:

    def test_low_risk_auto_approved(self):
        assert is_approved_cod(make_order(risk_score=20, status=OrderStatus.PENDING_REVIEW))

    def test_unscored_auto_approved(self):
        assert is_approved_cod(make_order(risk_score=None))

    def test_low_risk_rejected(self):
        assert not is_approved_cod(make_order(risk_score=20, status=OrderStatus.ORDER_REJECTED))

    def test_medium_risk_pending(self):
        assert not is_approved_cod(make_order(risk_score=50, status=OrderStatus.VERIFICATION_REQUIRED))

    def test_medium_risk_out_of_review(self):
        assert is_approved_cod(make_order(risk_score=50, status=OrderStatus.ORDER_APPROVED))

    def test_payment_pending(self):
        assert is_cod_payment_pending(make_order(risk_score=10, status=OrderStatus.DELIVERING))
        assert not is_cod_payment_pending(make_order(risk_score=10, status=OrderStatus.DELIVERING, paid_at=T0))
        assert not is_cod_payment_pending(make_order(risk_score=10, status=OrderStatus.CUSTOMER_CANCELLED))
        assert not is_cod_payment_pending(make_order(risk_score=80, status=OrderStatus.ORDER_APPROVED))
        assert is_cod_payment_pending(make_order(risk_score=80, status=OrderStatus.DELIVERING))


class TestHelpers:

    def test_effective_date_falls_back_to_created_at(self):
        assert effective_date(make_order(order_date=None)) == T0
        assert effective_date(make_order(order_date=None, created_at=None)) is None

    def test_naive_dates_are_utc(self):
        naive = T0.replace(tzinfo=None)
        assert effective_date(make_order(order_date=naive)) == T0

    @pytest.mark.parametrize("raw,expected", [
        ("0912345678", "0912345678"),
        ("912345678", "0912345678"),
        ("84912345678", "0912345678"),
        ("+84 912 345 678", "0912345678"),
        ("912345678.0", "0912345678"),
        ("0912.345.678", "0912345678"),
        ("0912.345.000", "0912345000"),
        ("(091) 234-5678", "0912345678"),
        (None, ""),
    ])
    def test_normalize_phone(self, raw, expected):
        assert normalize_phone(raw) == expected

    def test_valid_phone(self):
        assert is_valid_phone("0912345678")
        assert not is_valid_phone("12345")
        assert not is_valid_phone(None)
        assert is_valid_phone("0912.345.678")

    def test_pct(self):
        assert pct(1, 3) == 33.3
        assert pct(0, 0) is None
        assert pct(5, 5) == 100.0

    @given(value=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False))
    def test_clamp_bounds(self, value):
        assert 0 <= clamp(value) <= 100

    def test_parse_status(self):
        assert parse_status("COMPLETED") is OrderStatus.COMPLETED
        assert parse_status(" COMPLETED ") is OrderStatus.COMPLETED
        assert parse_status("shipped") == UnknownStatus("shipped")
