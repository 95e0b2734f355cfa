from .risk_engine import RiskEngineService
from .analytics import AnalyticsService
from .state_machine import (
    InvalidStatusTransition, can_transition, validate_transition,
    allowed_transitions, apply_transition
)
from .customer_risk import (
    learn_customer_risk, compute_customer_profiles, CustomerRiskCache
)

__all__ = [
    "RiskEngineService",
    "AnalyticsService",
    "InvalidStatusTransition",
    "can_transition",
    "validate_transition",
    "allowed_transitions",
    "apply_transition",
    "learn_customer_risk",
    "compute_customer_profiles",
    "CustomerRiskCache",
]
