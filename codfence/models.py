"""
Domain models for the CodFence Order Risk & Lifecycle Engine.
Plain in-memory records: the engine does not own their persistence.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Union
from dataclasses import dataclass
from datetime import datetime
import enum

from .config import DEFAULT_RISK_THRESHOLDS


class OrderStatus(str, enum.Enum):
    """Canonical order lifecycle statuses."""
    PENDING_REVIEW = "PENDING_REVIEW"
    VERIFICATION_REQUIRED = "VERIFICATION_REQUIRED"
    ORDER_APPROVED = "ORDER_APPROVED"
    ORDER_CONFIRMATION_SENT = "ORDER_CONFIRMATION_SENT"
    CUSTOMER_CONFIRMED = "CUSTOMER_CONFIRMED"
    CUSTOMER_CANCELLED = "CUSTOMER_CANCELLED"
    CUSTOMER_UNREACHABLE = "CUSTOMER_UNREACHABLE"
    ORDER_REJECTED = "ORDER_REJECTED"
    DELIVERING = "DELIVERING"
    ORDER_PAID = "ORDER_PAID"
    COMPLETED = "COMPLETED"
    RETURNED = "RETURNED"
    EXCHANGED = "EXCHANGED"


@dataclass(frozen=True)
class UnknownStatus:
    """A status value outside the canonical set (legacy or imported data)."""
    raw: str

    @property
    def value(self) -> str:
        return self.raw


Status = Union[OrderStatus, UnknownStatus]


def parse_status(value: Union[str, OrderStatus, UnknownStatus, None]) -> Status:
    """Map a raw status value onto the canonical enum or an UnknownStatus."""
    if isinstance(value, (OrderStatus, UnknownStatus)):
        return value
    raw = (value or "").strip()
    try:
        return OrderStatus(raw)
    except ValueError:
        return UnknownStatus(raw)


class RiskLevel(str, enum.Enum):
    """Risk level classifications."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_score(cls, score: Optional[float]) -> "RiskLevel":
        """Map a 0-100 score onto a level: <=30 low, <=70 medium, above high."""
        if score is None:
            return cls.NONE
        if score <= DEFAULT_RISK_THRESHOLDS["low_max"]:
            return cls.LOW
        if score <= DEFAULT_RISK_THRESHOLDS["medium_max"]:
            return cls.MEDIUM
        return cls.HIGH


class Granularity(str, enum.Enum):
    """Time bucket size for analytics series."""
    DAY = "day"
    MONTH = "month"


MONEY_FIELDS = (
    "amount",
    "discount_amount",
    "shipping_fee",
    "customer_shipping_paid",
    "seller_shipping_paid",
    "refunded_amount",
)


class Order(BaseModel):
    """A merchant order as seen by the risk and analytics engines."""

    # Identity
    id: Optional[str] = None
    tenant_id: Optional[str] = None
    order_code: Optional[str] = None
    phone: Optional[str] = None
    customer_name: Optional[str] = None
    address: Optional[str] = None

    # Commercial (integer currency units)
    amount: int = 0
    discount_amount: int = 0
    shipping_fee: int = 0
    customer_shipping_paid: int = 0
    seller_shipping_paid: int = 0
    refunded_amount: int = 0
    payment_method: Optional[str] = None

    # Classification
    status: str = OrderStatus.PENDING_REVIEW.value
    risk_score: Optional[int] = Field(None, ge=0, le=100)

    # Geography / catalog
    province: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None
    product_id: Optional[str] = None
    product: Optional[str] = None
    channel: Optional[str] = None
    source: Optional[str] = None

    # Timeline
    created_at: Optional[datetime] = None
    order_date: Optional[datetime] = None
    confirmation_sent_at: Optional[datetime] = None
    customer_confirmed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    reject_reason: Optional[str] = None

    class Config:
        frozen = True

    @validator("status", pre=True)
    def normalize_status(cls, v):
        if isinstance(v, (OrderStatus, UnknownStatus)):
            return v.value
        return (v or "").strip()

    @validator(*MONEY_FIELDS, pre=True)
    def default_money(cls, v):
        return 0 if v is None else v

    @property
    def lifecycle_status(self) -> Status:
        return parse_status(self.status)

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_score(self.risk_score)


class BlacklistEntry(BaseModel):
    """A phone flagged as risky by the merchant at a point in time."""
    tenant_id: Optional[str] = None
    phone: str
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        frozen = True
