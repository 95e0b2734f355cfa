"""
Dimension breakdowns (province, product, channel, source) with leaderboard
picks, plus COD returns by region and outcomes per delivery address.

Rate-based picks only consider groups with at least
ANALYTICS_DEFAULTS["leaderboard_min_cod_orders"] COD orders.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple
import re

from ..models import Order
from ..schemas import (
    Breakdown, BreakdownRow, GeoBreakdown,
    CodStatusCount, CodRegionRow, CodReturnAnalytics, AddressOutcomeRow, AddressRiskAnalytics
)
from ..config import ANALYTICS_DEFAULTS
from .rules import is_cod, is_boom, is_success, has_been_paid, effective_date, pct, mean

UNKNOWN = "Unknown"
UNKNOWN_PRODUCT = "Unknown Product"

# Returns (key, label) for an order, or None to leave the order out
KeyFn = Callable[[Order], Optional[Tuple[str, str]]]


def province_key(order: Order) -> Optional[Tuple[str, str]]:
    province = (order.province or "").strip()
    if not province:
        return None
    return province, province


def product_key(order: Order) -> Optional[Tuple[str, str]]:
    name = (order.product or "").strip()
    key = (order.product_id or "").strip() or name or UNKNOWN
    return key, name or UNKNOWN_PRODUCT


def channel_key(order: Order) -> Optional[Tuple[str, str]]:
    channel = (order.channel or "").strip() or UNKNOWN
    return channel, channel


def source_key(order: Order) -> Optional[Tuple[str, str]]:
    source = (order.source or "").strip() or UNKNOWN
    return source, source


def _row(key: str, label: str, orders: List[Order]) -> BreakdownRow:
    cod = [o for o in orders if is_cod(o)]
    boom = [o for o in cod if is_boom(o)]
    converted = [o for o in cod if is_success(o)]
    scores = [o.risk_score for o in cod if o.risk_score is not None]
    return BreakdownRow(
        key=key,
        label=label,
        order_count=len(orders),
        cod_orders=len(cod),
        prepaid_orders=len(orders) - len(cod),
        boom_cod_orders=len(boom),
        converted_cod_orders=len(converted),
        revenue=sum(o.amount for o in orders if has_been_paid(o)),
        boom_rate=pct(len(boom), len(cod)),
        conversion_rate=pct(len(converted), len(cod)),
        avg_risk_score=mean(scores),
    )


def group_rows(orders: Iterable[Order], key_fn: KeyFn) -> List[BreakdownRow]:
    """One row per dimension value, busiest first."""
    groups: Dict[str, List[Order]] = {}
    labels: Dict[str, str] = {}
    for order in orders:
        picked = key_fn(order)
        if picked is None:
            continue
        key, label = picked
        groups.setdefault(key, []).append(order)
        labels.setdefault(key, label)

    rows = [_row(key, labels[key], group) for key, group in groups.items()]
    rows.sort(key=lambda r: (-r.order_count, r.key))
    return rows


def _max_by(rows: List[BreakdownRow], attr: str) -> Optional[BreakdownRow]:
    candidates = [r for r in rows if getattr(r, attr) is not None]
    if not candidates:
        return None
    return max(candidates, key=lambda r: getattr(r, attr))


def _min_by(rows: List[BreakdownRow], attr: str) -> Optional[BreakdownRow]:
    candidates = [r for r in rows if getattr(r, attr) is not None]
    if not candidates:
        return None
    return min(candidates, key=lambda r: getattr(r, attr))


def build_breakdown(
    orders: Iterable[Order],
    dimension: str,
    key_fn: KeyFn,
    min_cod_orders: Optional[int] = None,
) -> Breakdown:
    """Group orders by one dimension and pick the leaderboard rows."""
    orders = list(orders)
    if min_cod_orders is None:
        min_cod_orders = ANALYTICS_DEFAULTS["leaderboard_min_cod_orders"]

    rows = group_rows(orders, key_fn)
    eligible = [r for r in rows if r.cod_orders >= min_cod_orders]

    cod = [o for o in orders if is_cod(o)]
    converted = [o for o in cod if is_success(o)]

    return Breakdown(
        dimension=dimension,
        rows=rows,
        top_by_revenue=_max_by(rows, "revenue"),
        top_by_orders=_max_by(rows, "order_count"),
        highest_boom_rate=_max_by(eligible, "boom_rate"),
        highest_risk=_max_by(eligible, "avg_risk_score"),
        safest=_min_by(eligible, "avg_risk_score"),
        overall_conversion_rate=pct(len(converted), len(cod)),
    )


def districts_by_province(orders: Iterable[Order]) -> Dict[str, List[str]]:
    """Distinct districts seen per province, sorted."""
    found: Dict[str, set] = {}
    for order in orders:
        province = (order.province or "").strip()
        district = (order.district or "").strip()
        if not province or not district:
            continue
        found.setdefault(province, set()).add(district)
    return {province: sorted(districts) for province, districts in found.items()}


def geo_breakdown(orders: Iterable[Order], min_cod_orders: Optional[int] = None) -> GeoBreakdown:
    orders = list(orders)
    breakdown = build_breakdown(orders, "province", province_key, min_cod_orders)
    return GeoBreakdown(
        **breakdown.model_dump(),
        districts_by_province=districts_by_province(orders),
    )


def product_breakdown(orders: Iterable[Order], min_cod_orders: Optional[int] = None) -> Breakdown:
    return build_breakdown(orders, "product", product_key, min_cod_orders)


def channel_breakdown(orders: Iterable[Order], min_cod_orders: Optional[int] = None) -> Breakdown:
    return build_breakdown(orders, "channel", channel_key, min_cod_orders)


def source_breakdown(orders: Iterable[Order], min_cod_orders: Optional[int] = None) -> Breakdown:
    return build_breakdown(orders, "source", source_key, min_cod_orders)


def cod_returns(orders: Iterable[Order]) -> CodReturnAnalytics:
    """
    COD status counts plus boom rate per province and district.

    Missing province or district is reported as "Unknown". Regions are
    sorted by boom rate, highest first.
    """
    statuses: Dict[str, int] = {}
    regions: Dict[Tuple[str, str], CodRegionRow] = {}

    for order in orders:
        if not is_cod(order):
            continue
        statuses[order.status] = statuses.get(order.status, 0) + 1

        province = (order.province or "").strip() or UNKNOWN
        district = (order.district or "").strip() or UNKNOWN
        region = regions.get((province, district))
        if region is None:
            region = regions[(province, district)] = CodRegionRow(province=province, district=district)
        region.total_cod_orders += 1
        if is_boom(order):
            region.failed_cod_orders += 1

    for region in regions.values():
        region.boom_rate = pct(region.failed_cod_orders, region.total_cod_orders)

    cod_status = [CodStatusCount(status=s, count=c) for s, c in statuses.items()]
    cod_status.sort(key=lambda r: (-r.count, r.status))
    cod_by_region = sorted(
        regions.values(),
        key=lambda r: (-(r.boom_rate or 0.0), -r.total_cod_orders, r.province, r.district),
    )
    return CodReturnAnalytics(cod_status=cod_status, cod_by_region=cod_by_region)


def address_key(address: Optional[str]) -> str:
    """Lowercase, drop . , ; : and collapse whitespace."""
    value = re.sub(r"[.,;:]+", "", (address or "").lower())
    return re.sub(r"\s+", " ", value).strip()


def address_risk(orders: Iterable[Order]) -> AddressRiskAnalytics:
    """Outcomes per delivery address, most booms first. Orders without an address are skipped."""
    rows: Dict[str, AddressOutcomeRow] = {}

    for order in orders:
        key = address_key(order.address)
        if not key:
            continue
        row = rows.get(key)
        if row is None:
            row = rows[key] = AddressOutcomeRow(address_key=key, full_address=order.address.strip())
        row.total_orders += 1
        if is_success(order):
            row.success_orders += 1
        if is_boom(order):
            row.failed_orders += 1
            row.boom_orders += 1

        placed_at = effective_date(order)
        if placed_at is not None and (row.last_order_at is None or placed_at > row.last_order_at):
            row.last_order_at = placed_at

    addresses = sorted(rows.values(), key=lambda r: (-r.boom_orders, -r.total_orders, r.address_key))
    return AddressRiskAnalytics(addresses=addresses)


BREAKDOWNS = {
    "province": geo_breakdown,
    "product": product_breakdown,
    "channel": channel_breakdown,
    "source": source_breakdown,
}
