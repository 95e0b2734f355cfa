"""
Tests for dimension breakdowns and leaderboard picks.
"""

from datetime import timedelta

from codfence.models import OrderStatus
from codfence.services.breakdowns import (
    geo_breakdown, product_breakdown, channel_breakdown, source_breakdown, districts_by_province,
    cod_returns, address_risk, address_key
)

from factories import make_order, T0

S = OrderStatus


def province_orders(province, total, booms, **overrides):
    return [
        make_order(
            province=province,
            status=S.CUSTOMER_CANCELLED if i < booms else S.COMPLETED,
            **overrides
        )
        for i in range(total)
    ]


class TestLeaderboards:

    def test_small_groups_excluded_from_boom_leaderboard(self):
        orders = (
            province_orders("Cà Mau", 3, booms=3)
            + province_orders("Hà Nội", 12, booms=6)
            + province_orders("TP HCM", 20, booms=2)
        )
        result = geo_breakdown(orders)

        rows = {r.key: r for r in result.rows}
        assert rows["Cà Mau"].boom_rate == 100.0
        assert result.highest_boom_rate.key == "Hà Nội"
        assert result.highest_boom_rate.boom_rate == 50.0

    def test_no_eligible_group(self):
        result = geo_breakdown(province_orders("Cà Mau", 9, booms=9))
        assert result.highest_boom_rate is None
        assert result.highest_risk is None
        assert result.safest is None
        assert result.top_by_orders.key == "Cà Mau"

    def test_prepaid_orders_do_not_count_towards_volume(self):
        orders = province_orders("Huế", 5, booms=5) + province_orders("Huế", 10, booms=0, payment_method="BANK")
        result = geo_breakdown(orders)
        (row,) = result.rows
        assert row.order_count == 15
        assert row.cod_orders == 5
        assert row.prepaid_orders == 10
        assert result.highest_boom_rate is None

    def test_risk_picks(self):
        orders = (
            province_orders("Hà Nội", 10, booms=0, risk_score=20)
            + province_orders("Đà Nẵng", 10, booms=0, risk_score=80)
            + province_orders("Huế", 2, booms=0, risk_score=100)
        )
        result = geo_breakdown(orders)
        assert result.highest_risk.key == "Đà Nẵng"
        assert result.safest.key == "Hà Nội"

    def test_revenue_counts_ever_paid_orders(self):
        orders = [
            make_order(province="Hà Nội", amount=100, status=S.DELIVERING, paid_at=T0),
            make_order(province="Hà Nội", amount=900, status=S.COMPLETED),
            make_order(province="Huế", amount=500, status=S.ORDER_PAID, paid_at=T0),
        ]
        result = geo_breakdown(orders)
        rows = {r.key: r for r in result.rows}
        assert rows["Hà Nội"].revenue == 100
        assert result.top_by_revenue.key == "Huế"
        assert result.top_by_orders.key == "Hà Nội"

    def test_orders_without_province_skipped(self):
        result = geo_breakdown([make_order(province=None), make_order(province="  ")])
        assert result.rows == []


class TestDimensions:

    def test_product_key_and_label(self):
        orders = [
            make_order(product_id="P1", product="Áo thun"),
            make_order(product_id="P1", product="Áo thun"),
            make_order(product="Quần"),
            make_order(),
        ]
        rows = {r.key: r for r in product_breakdown(orders).rows}
        assert rows["P1"].label == "Áo thun"
        assert rows["P1"].order_count == 2
        assert rows["Quần"].label == "Quần"
        assert rows["Unknown"].label == "Unknown Product"

    def test_channel_and_source_default_to_unknown(self):
        orders = [make_order(channel="Facebook", source="Ads"), make_order(channel=" ", source=None)]
        assert {r.key for r in channel_breakdown(orders).rows} == {"Facebook", "Unknown"}
        assert {r.key for r in source_breakdown(orders).rows} == {"Ads", "Unknown"}

    def test_conversion_rates(self):
        orders = [
            make_order(channel="Zalo", status=S.COMPLETED),
            make_order(channel="Zalo", status=S.CUSTOMER_CANCELLED),
            make_order(channel="Shopee", status=S.ORDER_PAID),
            make_order(channel="Shopee", status=S.DELIVERING),
        ]
        result = channel_breakdown(orders)
        rows = {r.key: r for r in result.rows}
        assert rows["Zalo"].conversion_rate == 50.0
        assert rows["Zalo"].boom_rate == 50.0
        assert rows["Shopee"].boom_rate == 0.0
        assert result.overall_conversion_rate == 50.0

    def test_districts_by_province(self):
        orders = [
            make_order(province="Hà Nội", district="Đống Đa"),
            make_order(province="Hà Nội", district="Ba Đình"),
            make_order(province="Hà Nội", district="Ba Đình"),
            make_order(province="Huế", district=None),
        ]
        assert districts_by_province(orders) == {"Hà Nội": ["Ba Đình", "Đống Đa"]}
        assert geo_breakdown(orders).districts_by_province == {"Hà Nội": ["Ba Đình", "Đống Đa"]}


class TestCodReturns:

    def test_empty(self):
        result = cod_returns([])
        assert result.cod_status == []
        assert result.cod_by_region == []

    def test_status_counts_cover_cod_only(self):
        orders = [
            make_order(status=S.COMPLETED),
            make_order(status=S.COMPLETED),
            make_order(status=S.CUSTOMER_CANCELLED),
            make_order(status=S.COMPLETED, payment_method="BANK"),
        ]
        result = cod_returns(orders)
        assert [(r.status, r.count) for r in result.cod_status] == [("COMPLETED", 2), ("CUSTOMER_CANCELLED", 1)]

    def test_boom_rate_per_province_and_district(self):
        orders = [
            make_order(province="Hà Nội", district="Đống Đa", status=S.CUSTOMER_CANCELLED),
            make_order(province="Hà Nội", district="Đống Đa", status=S.COMPLETED),
            make_order(province="Hà Nội", district="Ba Đình", status=S.COMPLETED),
            make_order(province="Huế", district=None, status=S.CUSTOMER_UNREACHABLE),
        ]
        regions = cod_returns(orders).cod_by_region
        assert [(r.province, r.district, r.boom_rate) for r in regions] == [
            ("Huế", "Unknown", 100.0),
            ("Hà Nội", "Đống Đa", 50.0),
            ("Hà Nội", "Ba Đình", 0.0),
        ]
        assert regions[1].total_cod_orders == 2
        assert regions[1].failed_cod_orders == 1


class TestAddressRisk:

    def test_empty(self):
        assert address_risk([]).addresses == []

    def test_address_key(self):
        assert address_key("  12 Lê Lợi,  Q.1;  TP HCM ") == "12 lê lợi q1 tp hcm"
        assert address_key(None) == ""

    def test_groups_spellings_of_one_address(self):
        orders = [
            make_order(address="12 Lê Lợi, Q.1", status=S.CUSTOMER_CANCELLED, order_date=T0),
            make_order(address="12 lê lợi q1", status=S.ORDER_REJECTED, order_date=T0 + timedelta(days=2)),
            make_order(address="5 Trần Phú", status=S.COMPLETED),
            make_order(address="  ", status=S.CUSTOMER_CANCELLED),
            make_order(address=None),
        ]
        rows = address_risk(orders).addresses
        assert [r.address_key for r in rows] == ["12 lê lợi q1", "5 trần phú"]
        top = rows[0]
        assert top.full_address == "12 Lê Lợi, Q.1"
        assert (top.total_orders, top.success_orders, top.failed_orders, top.boom_orders) == (2, 0, 2, 2)
        assert top.last_order_at == T0 + timedelta(days=2)
        assert rows[1].success_orders == 1
