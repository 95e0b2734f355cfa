"""
Pydantic schemas for derived views and request/response validation.
Every analytics function returns one of these shapes.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from .models import Order, BlacklistEntry, RiskLevel, Granularity, OrderStatus


class DateRangePreset(str, Enum):
    TODAY = "today"
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"


class DateRange(BaseModel):
    """Resolved, inclusive date range."""
    start: datetime
    end: datetime

    @validator("end")
    def validate_end(cls, v, values):
        if "start" in values and v < values["start"]:
            raise ValueError("end must not be before start")
        return v


# === Risk Scoring Schemas ===

class OrderRiskInput(BaseModel):
    """Attributes the baseline scorer looks at when an order is imported."""
    phone: Optional[str] = None
    amount: int = Field(0, ge=0, description="Order value in currency units")
    payment_method: Optional[str] = None
    address: Optional[str] = None
    reachable: Optional[bool] = Field(
        None, description="Customer found on the messaging channel; None when unknown"
    )


class RiskAssessment(BaseModel):
    """Auditable result of a baseline risk assessment."""
    risk_score: Optional[int]
    risk_level: RiskLevel
    risk_reasons: List[str]
    applied_rules: List[str]
    input_data: Dict[str, Any]
    weights_used: Dict[str, int]


class RiskReplayStep(BaseModel):
    """One order's contribution during a customer risk replay."""
    order_id: Optional[str]
    status: str
    effective_date: Optional[datetime]
    delta: int
    blacklist_multiplied: bool
    score_after: float


class CustomerRiskProfile(BaseModel):
    """Current learned risk of one customer (phone)."""
    phone: str
    full_name: Optional[str]
    total_orders: int
    success_count: int
    failed_count: int
    base_risk_score: Optional[float] = Field(None, description="Mean COD risk score; None when no scored COD orders")
    customer_risk_score: float
    customer_risk_level: RiskLevel
    last_order_at: Optional[datetime]
    blacklisted_at: Optional[datetime] = None
    history: List[RiskReplayStep] = Field(default_factory=list)


# === Overview Schemas ===

class OverviewKpis(BaseModel):
    total_orders: int = 0
    cod_orders: int = 0
    prepaid_orders: int = 0
    gross_revenue: int = 0       # ever-paid orders
    realized_revenue: int = 0    # orders currently in a success status
    cod_return_rate: Optional[float] = None
    confirmation_rate: Optional[float] = None
    paid_rate: Optional[float] = None


class TrendPoint(BaseModel):
    date: str
    total_orders: int = 0
    cod_orders: int = 0
    boom_orders: int = 0


class OverviewAnalytics(BaseModel):
    granularity: Granularity
    kpis: OverviewKpis
    trend: List[TrendPoint]


class FinancialSummary(BaseModel):
    """Revenue and conversion figures for a dashboard period."""
    total_orders: int = 0
    cod_orders: int = 0
    prepaid_orders: int = 0
    gross_revenue: int = 0
    refund_amount: int = 0
    logistics_cost: int = 0
    net_revenue: int = 0
    shipping_profit: int = 0
    avg_order_value: int = 0
    pending_verification: int = 0
    verified_outcome_count: int = 0
    verified_outcome_rate: Optional[float] = None
    converted_orders: int = 0
    converted_revenue: int = 0
    converted_rate: Optional[float] = None
    pending_revenue: int = 0
    confirmed_cod_revenue: int = 0
    delivered_not_paid_revenue: int = 0
    cod_cancelled: int = 0
    cod_confirmed: int = 0
    customer_responses: int = 0
    cancel_rate: Optional[float] = None
    risk_low: int = 0
    risk_medium: int = 0
    risk_high: int = 0


class OrderSeriesPoint(BaseModel):
    date: str
    total_orders: int = 0
    cod_pending: int = 0
    cod_confirmed: int = 0
    cod_cancelled: int = 0


class RevenueSeriesPoint(BaseModel):
    date: str
    total_revenue: int = 0
    converted_revenue: int = 0
    other_revenue: int = 0


class RevenueKpiProgress(BaseModel):
    target: int
    actual: int
    percent: int
    clamped_percent: int
    is_over_target: bool


# === Funnel Schemas ===

class FunnelStep(BaseModel):
    key: str
    label: str
    count: int


class VerificationFunnel(BaseModel):
    steps: List[FunnelStep]


class FunnelSummary(BaseModel):
    total_cod_orders: int = 0
    approved_cod_orders: int = 0
    paid_cod_orders: int = 0
    completed_cod_orders: int = 0
    customer_cancelled_cod_orders: int = 0
    rejected_cod_orders: int = 0
    failed_cod_orders: int = 0
    approval_rate: Optional[float] = None
    payment_conversion_rate: Optional[float] = None
    delivery_success_rate: Optional[float] = None
    failed_rate: Optional[float] = None


class FunnelStagePoint(BaseModel):
    date: str
    cod_orders: int = 0
    approved: int = 0
    paid: int = 0
    completed: int = 0
    failed: int = 0


class VerificationOutcomePoint(BaseModel):
    date: str
    approved: int = 0
    customer_cancelled: int = 0
    rejected: int = 0


class ReasonCount(BaseModel):
    reason: str
    count: int


# === Breakdown Schemas ===

class BreakdownRow(BaseModel):
    """Aggregate for one value of a dimension (province, product, channel, source)."""
    key: str
    label: str
    order_count: int = 0
    cod_orders: int = 0
    prepaid_orders: int = 0
    boom_cod_orders: int = 0
    converted_cod_orders: int = 0
    revenue: int = 0
    boom_rate: Optional[float] = None
    conversion_rate: Optional[float] = None
    avg_risk_score: Optional[float] = None


class Breakdown(BaseModel):
    dimension: str
    rows: List[BreakdownRow]
    top_by_revenue: Optional[BreakdownRow] = None
    top_by_orders: Optional[BreakdownRow] = None
    highest_boom_rate: Optional[BreakdownRow] = None
    highest_risk: Optional[BreakdownRow] = None
    safest: Optional[BreakdownRow] = None
    overall_conversion_rate: Optional[float] = None


class GeoBreakdown(Breakdown):
    districts_by_province: Dict[str, List[str]] = Field(default_factory=dict)


class CodStatusCount(BaseModel):
    status: str
    count: int


class CodRegionRow(BaseModel):
    """COD outcomes for one province and district pair."""
    province: str
    district: str
    total_cod_orders: int = 0
    failed_cod_orders: int = 0
    boom_rate: Optional[float] = None


class CodReturnAnalytics(BaseModel):
    cod_status: List[CodStatusCount] = Field(default_factory=list)
    cod_by_region: List[CodRegionRow] = Field(default_factory=list)


class AddressOutcomeRow(BaseModel):
    address_key: str = Field(..., description="Lowercased address without punctuation")
    full_address: str = Field(..., description="First spelling seen for this address")
    total_orders: int = 0
    success_orders: int = 0
    failed_orders: int = 0
    boom_orders: int = 0
    last_order_at: Optional[datetime] = None


class AddressRiskAnalytics(BaseModel):
    addresses: List[AddressOutcomeRow] = Field(default_factory=list)


# === Risk Analytics Schemas ===

class RiskBucket(BaseModel):
    label: str
    total: int = 0
    success: int = 0
    failed: int = 0
    boom_rate: Optional[float] = None


class ScorePoint(BaseModel):
    date: str
    avg_score: float


class ScoreByDimension(BaseModel):
    key: str
    avg_score: float


class RepeatOffender(BaseModel):
    customer: str
    orders: int


class RiskStats(BaseModel):
    avg_risk_score: Optional[float] = None
    high_risk_orders: int = 0
    medium_risk_orders: int = 0
    low_risk_orders: int = 0
    buckets: List[RiskBucket] = Field(default_factory=list)
    score_over_time: List[ScorePoint] = Field(default_factory=list)
    by_province: List[ScoreByDimension] = Field(default_factory=list)
    by_product: List[ScoreByDimension] = Field(default_factory=list)
    repeat_offenders: List[RepeatOffender] = Field(default_factory=list)


# === Operations Schemas ===

class OperationalTimers(BaseModel):
    avg_minutes_to_confirmation: Optional[int] = None
    avg_hours_to_paid: Optional[int] = None
    pending_confirmation_overdue: int = 0
    delivering_overdue: int = 0


class TimeToConfirmPoint(BaseModel):
    date: str
    avg_hours: float
    confirmations: int


# === Customer Analytics Schemas ===

class CustomerSegments(BaseModel):
    new_customers: int = 0
    returning_customers: int = 0
    repeat_purchase_rate: Optional[float] = None


class FrequencyBucket(BaseModel):
    label: str
    customers: int = 0


class CustomerOutcomeRow(BaseModel):
    phone: str
    total_orders: int = 0
    success_orders: int = 0
    failed_orders: int = 0
    boom_rate: Optional[float] = None
    last_order_at: Optional[datetime] = None


class CustomerActivityPoint(BaseModel):
    date: str
    new_customers: int = 0
    returning_customers: int = 0


class CustomerAnalytics(BaseModel):
    segments: CustomerSegments
    frequency: List[FrequencyBucket]
    activity: List[CustomerActivityPoint]
    top_boom_customers: List[CustomerOutcomeRow]
    top_good_customers: List[CustomerOutcomeRow]


# === Dashboard Bundle ===

class DashboardAnalytics(BaseModel):
    """Every derived view for one tenant and period."""
    date_range: Optional[DateRange]
    granularity: Granularity
    overview: OverviewAnalytics
    financial: FinancialSummary
    orders_series: List[OrderSeriesPoint]
    revenue_series: List[RevenueSeriesPoint]
    verification_funnel: VerificationFunnel
    funnel_summary: FunnelSummary
    funnel_stages: List[FunnelStagePoint]
    verification_outcomes: List[VerificationOutcomePoint]
    cancel_reasons: List[ReasonCount]
    reject_reasons: List[ReasonCount]
    risk: RiskStats
    operations: OperationalTimers
    time_to_confirm: List[TimeToConfirmPoint]
    geo: GeoBreakdown
    products: Breakdown
    channels: Breakdown
    sources: Breakdown
    cod_returns: CodReturnAnalytics
    address_risk: AddressRiskAnalytics
    high_risk_pending: List[Order]


# === Request Schemas ===

class TransitionCheckRequest(BaseModel):
    current_status: str = Field(..., description="Status just read from storage")
    new_status: str


class TransitionCheckResponse(BaseModel):
    current_status: str
    new_status: str
    allowed: bool


class ApplyTransitionRequest(BaseModel):
    order: Order
    new_status: str
    at: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=500)


class ScoreOrderRequest(BaseModel):
    order: OrderRiskInput
    past_orders: List[Order] = Field(default_factory=list, description="Earlier orders for the same phone")
    blacklisted_phones: List[str] = Field(default_factory=list)


class CustomerRiskRequest(BaseModel):
    orders: List[Order]
    blacklist: List[BlacklistEntry] = Field(default_factory=list)
    include_history: bool = False


class AnalyticsRequest(BaseModel):
    """Orders already filtered to one tenant and period, plus the period itself."""
    orders: List[Order]
    preset: DateRangePreset = DateRangePreset.LAST_MONTH
    custom_from: Optional[datetime] = None
    custom_to: Optional[datetime] = None
    now: Optional[datetime] = None


class CustomerAnalyticsRequest(AnalyticsRequest):
    all_orders: List[Order] = Field(default_factory=list, description="Tenant's full order history")


class StatusCatalogEntry(BaseModel):
    status: OrderStatus
    allowed_next: List[OrderStatus]
