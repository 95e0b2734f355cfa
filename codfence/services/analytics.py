"""
Analytics Service - derived dashboard views over an order collection.

Every method takes orders already filtered to one tenant and one period and
returns a schema from ..schemas. Input orders are never modified, and an
empty collection yields zero counts, empty series and None rates.
"""

from typing import Callable, Dict, Iterable, List, Optional
from datetime import datetime, timedelta, timezone
import logging

from ..models import Order, OrderStatus, RiskLevel, Granularity
from ..schemas import (
    DateRange, OverviewKpis, TrendPoint, OverviewAnalytics, FinancialSummary,
    OrderSeriesPoint, RevenueSeriesPoint, RevenueKpiProgress,
    FunnelStep, VerificationFunnel, FunnelSummary, FunnelStagePoint,
    VerificationOutcomePoint, ReasonCount,
    RiskBucket, ScorePoint, ScoreByDimension, RepeatOffender, RiskStats,
    OperationalTimers, TimeToConfirmPoint,
    CustomerSegments, FrequencyBucket, CustomerOutcomeRow, CustomerActivityPoint,
    CustomerAnalytics, DashboardAnalytics
)
from ..config import ANALYTICS_DEFAULTS, REVENUE_KPI_TARGETS, REVENUE_KPI_DISPLAY_CAP
from .rules import (
    is_cod, is_success, is_boom, has_been_paid, has_been_customer_confirmed,
    is_medium_or_high_risk_cod, is_pending_review, is_customer_cancelled,
    is_rejected_by_shop, is_approved_cod, is_cod_payment_pending,
    effective_date, as_utc, phone_key, pct, mean
)
from .date_ranges import (
    aggregation_granularity, granularity_for_orders, bucket_key, in_range
)
from .breakdowns import (
    geo_breakdown, product_breakdown, channel_breakdown, source_breakdown, cod_returns, address_risk
)

logger = logging.getLogger(__name__)

UNSPECIFIED_REASON = "Other / Unspecified"
UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_CUSTOMER = "Unknown Customer"

VERIFIED_POSITIVE_STATUSES = frozenset({
    OrderStatus.CUSTOMER_CONFIRMED.value,
    OrderStatus.ORDER_PAID.value,
    OrderStatus.COMPLETED.value,
})

VERIFIED_NEGATIVE_STATUSES = frozenset({
    OrderStatus.CUSTOMER_CANCELLED.value,
    OrderStatus.ORDER_REJECTED.value,
})

# Medium/high risk COD orders the shop let through verification
VERIFICATION_APPROVED_STATUSES = frozenset({
    OrderStatus.ORDER_CONFIRMATION_SENT.value,
    OrderStatus.CUSTOMER_CONFIRMED.value,
    OrderStatus.DELIVERING.value,
    OrderStatus.ORDER_PAID.value,
    OrderStatus.COMPLETED.value,
})

RISK_BUCKETS = (
    ("0-30", "0-30"),
    ("31-70", "31-70"),
    ("71-100", "71-100"),
    ("no_score", "No Score"),
)

FREQUENCY_BUCKETS = ("1 order", "2–3 orders", "4–5 orders", "6+ orders")


def _amount(orders: Iterable[Order]) -> int:
    return sum(o.amount for o in orders)


def _series(
    orders: Iterable[Order],
    granularity: Granularity,
    date_fn: Callable[[Order], Optional[datetime]] = effective_date,
) -> Dict[str, List[Order]]:
    """Group orders into time buckets, dropping orders without a date; keys sorted."""
    buckets: Dict[str, List[Order]] = {}
    for order in orders:
        when = date_fn(order)
        if when is None:
            continue
        buckets.setdefault(bucket_key(when, granularity), []).append(order)
    return dict(sorted(buckets.items()))


def _hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    if start is None or end is None:
        return None
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600


class AnalyticsService:
    """
    Read-side aggregation pipeline for the merchant dashboard.
    """

    # === Overview ===

    @staticmethod
    def overview_kpis(orders: List[Order]) -> OverviewKpis:
        cod = [o for o in orders if is_cod(o)]
        return OverviewKpis(
            total_orders=len(orders),
            cod_orders=len(cod),
            prepaid_orders=len(orders) - len(cod),
            gross_revenue=_amount(o for o in orders if has_been_paid(o)),
            realized_revenue=_amount(o for o in orders if is_success(o)),
            cod_return_rate=pct(sum(1 for o in cod if is_boom(o)), len(cod)),
            confirmation_rate=pct(sum(1 for o in cod if o.confirmation_sent_at), len(cod)),
            paid_rate=pct(sum(1 for o in orders if has_been_paid(o)), len(orders)),
        )

    @staticmethod
    def trend(orders: List[Order], granularity: Granularity) -> List[TrendPoint]:
        return [
            TrendPoint(
                date=key,
                total_orders=len(bucket),
                cod_orders=sum(1 for o in bucket if is_cod(o)),
                boom_orders=sum(1 for o in bucket if is_boom(o)),
            )
            for key, bucket in _series(orders, granularity).items()
        ]

    @classmethod
    def overview(cls, orders: List[Order], granularity: Optional[Granularity] = None) -> OverviewAnalytics:
        granularity = granularity or granularity_for_orders(orders)
        return OverviewAnalytics(
            granularity=granularity,
            kpis=cls.overview_kpis(orders),
            trend=cls.trend(orders, granularity),
        )

    # === Financial ===

    @staticmethod
    def financial_summary(orders: List[Order]) -> FinancialSummary:
        """Revenue, cost and conversion figures for the period."""
        cod = [o for o in orders if is_cod(o)]
        paid = [o for o in orders if has_been_paid(o)]

        gross_revenue = _amount(paid)
        refund_amount = sum(o.refunded_amount for o in orders)
        logistics_cost = sum(o.seller_shipping_paid for o in orders)
        customer_shipping = sum(o.customer_shipping_paid for o in orders)

        verified = [
            o for o in cod
            if o.status in VERIFIED_POSITIVE_STATUSES or o.status in VERIFIED_NEGATIVE_STATUSES
        ]
        converted = [o for o in cod if has_been_paid(o)]
        confirmed = [o for o in cod if has_been_customer_confirmed(o)]
        cancelled = [o for o in cod if is_boom(o)]
        responses = len(cancelled) + len(confirmed)

        levels = [o.risk_level for o in orders]

        return FinancialSummary(
            total_orders=len(orders),
            cod_orders=len(cod),
            prepaid_orders=len(orders) - len(cod),
            gross_revenue=gross_revenue,
            refund_amount=refund_amount,
            logistics_cost=logistics_cost,
            net_revenue=gross_revenue - refund_amount - logistics_cost,
            shipping_profit=customer_shipping - logistics_cost,
            avg_order_value=round(gross_revenue / len(paid)) if paid else 0,
            pending_verification=sum(1 for o in orders if is_pending_review(o)),
            verified_outcome_count=len(verified),
            verified_outcome_rate=pct(len(verified), len(cod)),
            converted_orders=len(converted),
            converted_revenue=_amount(converted),
            converted_rate=pct(len(converted), len(cod)),
            pending_revenue=_amount(o for o in orders if is_cod_payment_pending(o)),
            confirmed_cod_revenue=_amount(confirmed),
            delivered_not_paid_revenue=_amount(
                o for o in cod
                if o.status == OrderStatus.COMPLETED.value and not has_been_paid(o)
            ),
            cod_cancelled=len(cancelled),
            cod_confirmed=len(confirmed),
            customer_responses=responses,
            cancel_rate=pct(len(cancelled), responses),
            risk_low=levels.count(RiskLevel.LOW),
            risk_medium=levels.count(RiskLevel.MEDIUM),
            risk_high=levels.count(RiskLevel.HIGH),
        )

    @staticmethod
    def orders_series(orders: List[Order], granularity: Granularity) -> List[OrderSeriesPoint]:
        points = []
        for key, bucket in _series(orders, granularity).items():
            point = OrderSeriesPoint(date=key, total_orders=len(bucket))
            for o in bucket:
                if not is_cod(o):
                    continue
                if is_pending_review(o):
                    point.cod_pending += 1
                elif has_been_customer_confirmed(o):
                    point.cod_confirmed += 1
                elif is_boom(o):
                    point.cod_cancelled += 1
            points.append(point)
        return points

    @staticmethod
    def revenue_series(orders: List[Order], granularity: Granularity) -> List[RevenueSeriesPoint]:
        """Paid revenue bucketed by payment date, COD share split out."""
        paid = [o for o in orders if has_been_paid(o)]
        points = []
        for key, bucket in _series(paid, granularity, lambda o: as_utc(o.paid_at)).items():
            total = _amount(bucket)
            converted = _amount(o for o in bucket if is_cod(o))
            points.append(RevenueSeriesPoint(
                date=key,
                total_revenue=total,
                converted_revenue=converted,
                other_revenue=max(0, total - converted),
            ))
        return points

    @staticmethod
    def revenue_kpi_progress(actual: int, period: str = "month", target: Optional[int] = None) -> RevenueKpiProgress:
        """Progress of paid revenue against the monthly, quarterly or yearly target."""
        if target is None:
            if period not in REVENUE_KPI_TARGETS:
                raise ValueError(f"Unknown revenue KPI period: {period}")
            target = REVENUE_KPI_TARGETS[period]
        if not target or target <= 0:
            return RevenueKpiProgress(
                target=target or 0, actual=actual, percent=0, clamped_percent=0, is_over_target=False
            )
        percent = round(actual / target * 100)
        return RevenueKpiProgress(
            target=target,
            actual=actual,
            percent=percent,
            clamped_percent=min(percent, REVENUE_KPI_DISPLAY_CAP),
            is_over_target=percent >= 100,
        )

    # === Funnels ===

    @staticmethod
    def verification_funnel(orders: List[Order]) -> VerificationFunnel:
        """
        COD verification funnel. "No response" is approximated as
        confirmations sent minus (confirmed + cancelled), floored at zero.
        """
        cod = [o for o in orders if is_cod(o)]
        created = len(cod)
        sent = sum(1 for o in cod if o.confirmation_sent_at)
        confirmed = sum(1 for o in cod if o.customer_confirmed_at)
        cancelled = sum(1 for o in cod if is_customer_cancelled(o))
        paid = sum(1 for o in cod if has_been_paid(o) or is_success(o))
        no_response = max(0, sent - (confirmed + cancelled))

        return VerificationFunnel(steps=[
            FunnelStep(key="created", label="Created", count=created),
            FunnelStep(key="confirmation_sent", label="Confirmation Sent", count=sent),
            FunnelStep(key="customer_confirmed", label="Confirmed", count=confirmed),
            FunnelStep(key="customer_cancelled", label="Cancelled", count=cancelled),
            FunnelStep(key="no_response", label="No Response", count=no_response),
            FunnelStep(key="paid", label="Paid", count=paid),
        ])

    @staticmethod
    def funnel_summary(orders: List[Order]) -> FunnelSummary:
        """Strict COD funnel: approved -> paid -> completed, with failures."""
        cod = [o for o in orders if is_cod(o)]
        approved = sum(1 for o in cod if is_approved_cod(o))
        paid = sum(1 for o in cod if has_been_paid(o))
        completed = sum(1 for o in cod if o.status == OrderStatus.COMPLETED.value)
        cancelled = sum(1 for o in cod if is_customer_cancelled(o))
        rejected = sum(1 for o in cod if is_rejected_by_shop(o))
        failed = cancelled + rejected

        return FunnelSummary(
            total_cod_orders=len(cod),
            approved_cod_orders=approved,
            paid_cod_orders=paid,
            completed_cod_orders=completed,
            customer_cancelled_cod_orders=cancelled,
            rejected_cod_orders=rejected,
            failed_cod_orders=failed,
            approval_rate=pct(approved, len(cod)),
            payment_conversion_rate=pct(paid, approved),
            delivery_success_rate=pct(completed, approved),
            failed_rate=pct(failed, len(cod)),
        )

    @staticmethod
    def funnel_stage_series(orders: List[Order], granularity: Granularity) -> List[FunnelStagePoint]:
        cod = [o for o in orders if is_cod(o)]
        return [
            FunnelStagePoint(
                date=key,
                cod_orders=len(bucket),
                approved=sum(1 for o in bucket if is_approved_cod(o)),
                paid=sum(1 for o in bucket if has_been_paid(o)),
                completed=sum(1 for o in bucket if o.status == OrderStatus.COMPLETED.value),
                failed=sum(1 for o in bucket if is_customer_cancelled(o) or is_rejected_by_shop(o)),
            )
            for key, bucket in _series(cod, granularity).items()
        ]

    @staticmethod
    def verification_outcome_series(orders: List[Order], granularity: Granularity) -> List[VerificationOutcomePoint]:
        """Outcomes of medium/high risk COD orders that needed verification."""
        candidates = [o for o in orders if is_medium_or_high_risk_cod(o)]
        points = []
        for key, bucket in _series(candidates, granularity).items():
            point = VerificationOutcomePoint(date=key)
            for o in bucket:
                if o.status in VERIFICATION_APPROVED_STATUSES:
                    point.approved += 1
                elif is_customer_cancelled(o):
                    point.customer_cancelled += 1
                elif is_rejected_by_shop(o):
                    point.rejected += 1
            points.append(point)
        return points

    @staticmethod
    def reason_breakdown(
        orders: List[Order],
        predicate: Callable[[Order], bool],
        reason_fn: Callable[[Order], Optional[str]],
    ) -> List[ReasonCount]:
        counts: Dict[str, int] = {}
        for o in orders:
            if not is_cod(o) or not predicate(o):
                continue
            reason = (reason_fn(o) or "").strip() or UNSPECIFIED_REASON
            counts[reason] = counts.get(reason, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [ReasonCount(reason=reason, count=count) for reason, count in ranked]

    @classmethod
    def cancel_reasons(cls, orders: List[Order]) -> List[ReasonCount]:
        return cls.reason_breakdown(orders, is_customer_cancelled, lambda o: o.cancel_reason)

    @classmethod
    def reject_reasons(cls, orders: List[Order]) -> List[ReasonCount]:
        return cls.reason_breakdown(orders, is_rejected_by_shop, lambda o: o.reject_reason)

    # === Risk ===

    @staticmethod
    def risk_buckets(orders: List[Order]) -> List[RiskBucket]:
        """COD orders bucketed by baseline score: 0-30, 31-70, 71-100 and unscored."""
        buckets = {key: RiskBucket(label=label) for key, label in RISK_BUCKETS}
        for o in orders:
            if not is_cod(o):
                continue
            if o.risk_score is None:
                key = "no_score"
            elif o.risk_score <= 30:
                key = "0-30"
            elif o.risk_score <= 70:
                key = "31-70"
            else:
                key = "71-100"
            bucket = buckets[key]
            bucket.total += 1
            if is_success(o):
                bucket.success += 1
            if is_boom(o):
                bucket.failed += 1

        for bucket in buckets.values():
            bucket.boom_rate = pct(bucket.failed, bucket.total)
        return list(buckets.values())

    @staticmethod
    def repeat_offenders(orders: List[Order]) -> List[RepeatOffender]:
        """Customers with at least two high risk COD orders, most orders first."""
        counts: Dict[str, int] = {}
        for o in orders:
            if not is_cod(o) or o.risk_level != RiskLevel.HIGH:
                continue
            customer = phone_key(o) or (o.customer_name or "").strip() or UNKNOWN_CUSTOMER
            counts[customer] = counts.get(customer, 0) + 1

        offenders = [
            RepeatOffender(customer=customer, orders=count)
            for customer, count in counts.items()
            if count >= ANALYTICS_DEFAULTS["repeat_offender_min_high_risk"]
        ]
        offenders.sort(key=lambda r: (-r.orders, r.customer))
        return offenders[:ANALYTICS_DEFAULTS["repeat_offender_limit"]]

    @staticmethod
    def _score_by(orders: List[Order], key_fn: Callable[[Order], Optional[str]]) -> List[ScoreByDimension]:
        scores: Dict[str, List[int]] = {}
        for o in orders:
            key = key_fn(o)
            if key:
                scores.setdefault(key, []).append(o.risk_score)
        rows = [ScoreByDimension(key=key, avg_score=mean(values)) for key, values in scores.items()]
        rows.sort(key=lambda r: (-r.avg_score, r.key))
        return rows[:ANALYTICS_DEFAULTS["top_n"]]

    @classmethod
    def risk_stats(cls, orders: List[Order], granularity: Granularity) -> RiskStats:
        cod = [o for o in orders if is_cod(o)]
        scored = [o for o in cod if o.risk_score is not None]
        levels = [o.risk_level for o in cod]

        score_over_time = [
            ScorePoint(date=key, avg_score=mean([o.risk_score for o in bucket]))
            for key, bucket in _series(scored, granularity).items()
        ]

        return RiskStats(
            avg_risk_score=mean([o.risk_score for o in scored]),
            high_risk_orders=levels.count(RiskLevel.HIGH),
            medium_risk_orders=levels.count(RiskLevel.MEDIUM),
            low_risk_orders=levels.count(RiskLevel.LOW),
            buckets=cls.risk_buckets(orders),
            score_over_time=score_over_time,
            by_province=cls._score_by(scored, lambda o: (o.province or "").strip()),
            by_product=cls._score_by(scored, lambda o: (o.product or "").strip() or UNKNOWN_PRODUCT),
            repeat_offenders=cls.repeat_offenders(orders),
        )

    @staticmethod
    def high_risk_pending(orders: List[Order]) -> List[Order]:
        """High risk orders still waiting on review or customer confirmation."""
        return [o for o in orders if o.risk_level == RiskLevel.HIGH and is_pending_review(o)]

    # === Operations ===

    @staticmethod
    def operational_timers(orders: List[Order], now: Optional[datetime] = None) -> OperationalTimers:
        """
        Average time to customer confirmation (COD, minutes) and to payment
        (all orders, hours), plus counts of stale COD orders pending
        confirmation and of shipments delivering for too long.
        """
        now = as_utc(now or datetime.now(timezone.utc))
        cod = [o for o in orders if is_cod(o)]

        confirm_minutes = []
        for o in cod:
            hours = _hours_between(o.created_at, o.customer_confirmed_at)
            if hours is not None and hours > 0:
                confirm_minutes.append(hours * 60)

        paid_hours = []
        for o in orders:
            hours = _hours_between(o.created_at, o.paid_at)
            if hours is not None and hours > 0:
                paid_hours.append(hours)

        pending_cutoff = now - timedelta(hours=ANALYTICS_DEFAULTS["pending_confirmation_alert_hours"])
        delivering_cutoff = now - timedelta(days=ANALYTICS_DEFAULTS["delivering_alert_days"])

        pending_overdue = sum(
            1 for o in cod
            if is_pending_review(o) and o.created_at and as_utc(o.created_at) < pending_cutoff
        )
        delivering_overdue = sum(
            1 for o in orders
            if o.status == OrderStatus.DELIVERING.value
            and o.shipped_at and as_utc(o.shipped_at) < delivering_cutoff
        )

        return OperationalTimers(
            avg_minutes_to_confirmation=round(sum(confirm_minutes) / len(confirm_minutes)) if confirm_minutes else None,
            avg_hours_to_paid=round(sum(paid_hours) / len(paid_hours)) if paid_hours else None,
            pending_confirmation_overdue=pending_overdue,
            delivering_overdue=delivering_overdue,
        )

    @staticmethod
    def time_to_confirm_series(orders: List[Order], granularity: Granularity) -> List[TimeToConfirmPoint]:
        """Average hours from order date to customer confirmation, bucketed by confirmation date."""
        buckets: Dict[str, List[float]] = {}
        for o in orders:
            if not is_cod(o) or o.customer_confirmed_at is None:
                continue
            hours = _hours_between(effective_date(o), o.customer_confirmed_at)
            if hours is None or hours < 0:
                continue
            key = bucket_key(o.customer_confirmed_at, granularity)
            buckets.setdefault(key, []).append(hours)

        return [
            TimeToConfirmPoint(date=key, avg_hours=mean(values), confirmations=len(values))
            for key, values in sorted(buckets.items())
        ]

    # === Customers ===

    @staticmethod
    def first_order_dates(all_orders: Iterable[Order]) -> Dict[str, datetime]:
        """Earliest business date per phone across the tenant's whole history."""
        first: Dict[str, datetime] = {}
        for o in all_orders:
            phone = phone_key(o)
            when = as_utc(o.order_date)
            if not phone or when is None:
                continue
            if phone not in first or when < first[phone]:
                first[phone] = when
        return first

    @staticmethod
    def frequency_buckets(all_orders: Iterable[Order]) -> List[FrequencyBucket]:
        counts: Dict[str, int] = {}
        for o in all_orders:
            phone = phone_key(o)
            if phone:
                counts[phone] = counts.get(phone, 0) + 1

        tally = [0, 0, 0, 0]
        for count in counts.values():
            if count <= 1:
                tally[0] += 1
            elif count <= 3:
                tally[1] += 1
            elif count <= 5:
                tally[2] += 1
            else:
                tally[3] += 1
        return [FrequencyBucket(label=label, customers=n) for label, n in zip(FREQUENCY_BUCKETS, tally)]

    @staticmethod
    def customer_outcomes(orders: List[Order]) -> List[CustomerOutcomeRow]:
        rows: Dict[str, CustomerOutcomeRow] = {}
        for o in orders:
            phone = phone_key(o)
            if not phone:
                continue
            row = rows.setdefault(phone, CustomerOutcomeRow(phone=phone))
            row.total_orders += 1
            if is_success(o):
                row.success_orders += 1
            if is_boom(o):
                row.failed_orders += 1
            created = as_utc(o.created_at)
            if created and (row.last_order_at is None or created > row.last_order_at):
                row.last_order_at = created

        for row in rows.values():
            row.boom_rate = pct(row.failed_orders, row.total_orders)
        return list(rows.values())

    @classmethod
    def customer_analytics(
        cls,
        orders: List[Order],
        all_orders: List[Order],
        date_range: DateRange,
        granularity: Optional[Granularity] = None,
    ) -> CustomerAnalytics:
        """
        New vs returning customers in the period, judged against each phone's
        first order in the full history, plus frequency buckets and the best
        and worst customers of the period.
        """
        granularity = granularity or aggregation_granularity(date_range)
        first_orders = cls.first_order_dates(all_orders)
        start = as_utc(date_range.start)

        def segment(phone: str) -> Optional[str]:
            first = first_orders.get(phone)
            if first is None:
                return None
            if in_range(first, date_range):
                return "new"
            if first < start:
                return "returning"
            return None

        phones = {phone_key(o) for o in orders if phone_key(o)}
        segments = [segment(p) for p in phones]
        new_count = segments.count("new")
        returning_count = segments.count("returning")

        activity = []
        for key, bucket in _series(orders, granularity).items():
            new_phones = set()
            returning_phones = set()
            for o in bucket:
                phone = phone_key(o)
                kind = segment(phone) if phone else None
                if kind == "new":
                    new_phones.add(phone)
                elif kind == "returning":
                    returning_phones.add(phone)
            activity.append(CustomerActivityPoint(
                date=key, new_customers=len(new_phones), returning_customers=len(returning_phones)
            ))

        outcomes = cls.customer_outcomes(orders)
        limit = ANALYTICS_DEFAULTS["top_customers_limit"]
        top_boom = sorted(
            (r for r in outcomes if r.failed_orders > 0),
            key=lambda r: (-r.boom_rate, -r.total_orders, r.phone),
        )[:limit]
        top_good = sorted(
            (r for r in outcomes if r.failed_orders == 0 and r.total_orders >= 2),
            key=lambda r: (-r.total_orders, r.phone),
        )[:limit]

        return CustomerAnalytics(
            segments=CustomerSegments(
                new_customers=new_count,
                returning_customers=returning_count,
                repeat_purchase_rate=pct(returning_count, new_count + returning_count),
            ),
            frequency=cls.frequency_buckets(all_orders),
            activity=activity,
            top_boom_customers=top_boom,
            top_good_customers=top_good,
        )

    # === Bundle ===

    @classmethod
    def build_dashboard(
        cls,
        orders: List[Order],
        date_range: Optional[DateRange] = None,
        now: Optional[datetime] = None,
    ) -> DashboardAnalytics:
        """Compute every dashboard view for one tenant and period."""
        granularity = aggregation_granularity(date_range) if date_range else granularity_for_orders(orders)
        logger.info(f"Building dashboard for {len(orders)} orders ({granularity.value} buckets)")

        return DashboardAnalytics(
            date_range=date_range,
            granularity=granularity,
            overview=cls.overview(orders, granularity),
            financial=cls.financial_summary(orders),
            orders_series=cls.orders_series(orders, granularity),
            revenue_series=cls.revenue_series(orders, granularity),
            verification_funnel=cls.verification_funnel(orders),
            funnel_summary=cls.funnel_summary(orders),
            funnel_stages=cls.funnel_stage_series(orders, granularity),
            verification_outcomes=cls.verification_outcome_series(orders, granularity),
            cancel_reasons=cls.cancel_reasons(orders),
            reject_reasons=cls.reject_reasons(orders),
            risk=cls.risk_stats(orders, granularity),
            operations=cls.operational_timers(orders, now),
            time_to_confirm=cls.time_to_confirm_series(orders, granularity),
            geo=geo_breakdown(orders),
            products=product_breakdown(orders),
            channels=channel_breakdown(orders),
            sources=source_breakdown(orders),
            cod_returns=cod_returns(orders),
            address_risk=address_risk(orders),
            high_risk_pending=cls.high_risk_pending(orders),
        )
