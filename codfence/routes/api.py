"""
API Routes for the CodFence engine.
Stateless endpoints: callers send the order slice they already fetched and
get the derived view back. Nothing is stored here.
"""

from fastapi import APIRouter, HTTPException, Query
from typing import List, Tuple
import logging

from ..models import Order, OrderStatus, Granularity
from ..schemas import (
    DateRange, RiskAssessment, CustomerRiskProfile,
    TransitionCheckRequest, TransitionCheckResponse, ApplyTransitionRequest,
    ScoreOrderRequest, CustomerRiskRequest, AnalyticsRequest, CustomerAnalyticsRequest,
    StatusCatalogEntry, DashboardAnalytics, OverviewAnalytics, FinancialSummary,
    VerificationFunnel, FunnelSummary, Breakdown, RiskStats, OperationalTimers,
    CustomerAnalytics, RevenueKpiProgress, CodReturnAnalytics, AddressRiskAnalytics
)
from ..services import (
    RiskEngineService, AnalyticsService, InvalidStatusTransition,
    can_transition, allowed_transitions, apply_transition,
    learn_customer_risk, compute_customer_profiles
)
from ..services.customer_risk import build_blacklist_index
from ..services.date_ranges import resolve_date_range, aggregation_granularity
from ..services.breakdowns import BREAKDOWNS, cod_returns, address_risk

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve(request: AnalyticsRequest) -> Tuple[DateRange, Granularity]:
    try:
        date_range = resolve_date_range(
            request.preset, request.custom_from, request.custom_to, request.now
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return date_range, aggregation_granularity(date_range)


# === Lifecycle Endpoints ===

@router.get("/statuses", response_model=List[StatusCatalogEntry], tags=["Lifecycle"])
async def list_statuses():
    """Every canonical status with the statuses reachable from it."""
    return [
        StatusCatalogEntry(status=status, allowed_next=allowed_transitions(status))
        for status in OrderStatus
    ]


@router.post("/transitions/check", response_model=TransitionCheckResponse, tags=["Lifecycle"])
async def check_transition(body: TransitionCheckRequest):
    """Tell whether a status write is allowed from the status just read."""
    return TransitionCheckResponse(
        current_status=body.current_status,
        new_status=body.new_status,
        allowed=can_transition(body.current_status, body.new_status),
    )


@router.post("/transitions/apply", response_model=Order, tags=["Lifecycle"])
async def apply_status_transition(body: ApplyTransitionRequest):
    """
    Validate and apply a status change to the given order.
    Returns the updated order; 409 when the move is not allowed.
    """
    try:
        return apply_transition(body.order, body.new_status, at=body.at, reason=body.reason)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))


# === Risk Endpoints ===

@router.get("/config/weights", tags=["Risk Assessment"])
async def get_risk_weights():
    """Get current baseline risk weights."""
    return {"weights": RiskEngineService.get_risk_weights()}


@router.post("/risk/score", response_model=RiskAssessment, tags=["Risk Assessment"])
async def score_order(body: ScoreOrderRequest):
    """Baseline risk assessment for an order being imported."""
    assessment = RiskEngineService.assess_order_risk(
        body.order, body.past_orders, body.blacklisted_phones
    )
    logger.info(f"Scored order for {body.order.phone}: {assessment.risk_score} ({assessment.risk_level.value})")
    return assessment


@router.post("/customers/risk", response_model=List[CustomerRiskProfile], tags=["Customers"])
async def customer_risk_profiles(body: CustomerRiskRequest):
    """Learned risk profiles for every customer in the given order history."""
    return compute_customer_profiles(body.orders, body.blacklist, body.include_history)


@router.post("/customers/{phone}/risk", response_model=CustomerRiskProfile, tags=["Customers"])
async def customer_risk_profile(phone: str, body: CustomerRiskRequest):
    """Learned risk profile of one customer."""
    blacklisted_at = build_blacklist_index(body.blacklist).get(phone.strip())
    profile = learn_customer_risk(phone, body.orders, blacklisted_at, body.include_history)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"No orders found for {phone}")
    return profile


# === Analytics Endpoints ===

@router.post("/analytics/dashboard", response_model=DashboardAnalytics, tags=["Analytics"])
async def dashboard(body: AnalyticsRequest):
    """All dashboard views for the period."""
    date_range, _ = _resolve(body)
    return AnalyticsService.build_dashboard(body.orders, date_range, body.now)


@router.post("/analytics/overview", response_model=OverviewAnalytics, tags=["Analytics"])
async def overview(body: AnalyticsRequest):
    _, granularity = _resolve(body)
    return AnalyticsService.overview(body.orders, granularity)


@router.post("/analytics/financial", response_model=FinancialSummary, tags=["Analytics"])
async def financial(body: AnalyticsRequest):
    return AnalyticsService.financial_summary(body.orders)


@router.post("/analytics/funnel", response_model=VerificationFunnel, tags=["Analytics"])
async def verification_funnel(body: AnalyticsRequest):
    return AnalyticsService.verification_funnel(body.orders)


@router.post("/analytics/funnel/summary", response_model=FunnelSummary, tags=["Analytics"])
async def funnel_summary(body: AnalyticsRequest):
    return AnalyticsService.funnel_summary(body.orders)


@router.post("/analytics/breakdowns/{dimension}", response_model=Breakdown, tags=["Analytics"])
async def breakdown(dimension: str, body: AnalyticsRequest):
    """Province, product, channel or source breakdown with leaderboards."""
    builder = BREAKDOWNS.get(dimension)
    if builder is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown dimension {dimension}; expected one of {sorted(BREAKDOWNS)}"
        )
    return builder(body.orders)


@router.post("/analytics/cod-returns", response_model=CodReturnAnalytics, tags=["Analytics"])
async def cod_return_analytics(body: AnalyticsRequest):
    """COD status counts and boom rate per province and district."""
    return cod_returns(body.orders)


@router.post("/analytics/addresses", response_model=AddressRiskAnalytics, tags=["Analytics"])
async def address_risk_analytics(body: AnalyticsRequest):
    return address_risk(body.orders)


@router.post("/analytics/risk", response_model=RiskStats, tags=["Analytics"])
async def risk_stats(body: AnalyticsRequest):
    _, granularity = _resolve(body)
    return AnalyticsService.risk_stats(body.orders, granularity)


@router.post("/analytics/operations", response_model=OperationalTimers, tags=["Analytics"])
async def operations(body: AnalyticsRequest):
    return AnalyticsService.operational_timers(body.orders, body.now)


@router.post("/analytics/customers", response_model=CustomerAnalytics, tags=["Analytics"])
async def customers(body: CustomerAnalyticsRequest):
    """New vs returning customers, judged against the tenant's full history."""
    date_range, granularity = _resolve(body)
    all_orders = body.all_orders or body.orders
    return AnalyticsService.customer_analytics(body.orders, all_orders, date_range, granularity)


@router.get("/analytics/revenue-kpi", response_model=RevenueKpiProgress, tags=["Analytics"])
async def revenue_kpi(
    actual: int = Query(..., ge=0),
    period: str = Query("month", pattern="^(month|quarter|year)$")
):
    """Revenue progress against the period target."""
    return AnalyticsService.revenue_kpi_progress(actual, period)
