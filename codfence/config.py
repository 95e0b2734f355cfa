"""
Configuration settings for the CodFence Order Risk & Lifecycle Engine.
Contains risk weights, thresholds, learning deltas and analytics tunables.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "CodFence Order Risk & Lifecycle Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


# Baseline (ingestion-time) risk weights for COD orders
DEFAULT_RISK_WEIGHTS = {
    "cod_base": 30,
    "high_amount": 20,
    "repeat_boom": 10,          # 1-2 past boom orders
    "repeat_boom_heavy": 30,    # 3+ past boom orders
    "good_history": -10,        # 3+ successful orders and no boom
    "unreachable_channel": 15,
    "invalid_phone": 20,
    "risky_address": 10,
}

# Amount (currency units) from which an order counts as high value
HIGH_AMOUNT_THRESHOLD = 1_000_000

# Floor applied to the score of a blacklisted phone
BLACKLIST_SCORE_FLOOR = 80

# Address fragments that flag an order for the risky address rule
RISKY_ADDRESS_KEYWORDS = [
    "khu công nghiệp",
    "kcn ",
]

# Risk Level Thresholds
DEFAULT_RISK_THRESHOLDS = {
    "low_max": 30,       # 0-30 = Low Risk
    "medium_max": 70,    # 31-70 = Medium Risk, 71+ = High Risk
}

# Customer risk learning
LEARNING_DELTAS = {
    "success": -5,
    "success_high_amount": -10,
    "boom": 20,
    "blacklist_multiplier": 2,
}
NEUTRAL_BASELINE_SCORE = 50

# Analytics tunables
ANALYTICS_DEFAULTS = {
    "monthly_granularity_after_days": 60,
    "leaderboard_min_cod_orders": 10,
    "repeat_offender_min_high_risk": 2,
    "repeat_offender_limit": 5,
    "top_n": 5,
    "top_customers_limit": 20,
    "pending_confirmation_alert_hours": 24,
    "delivering_alert_days": 3,
}

# Revenue KPI targets per period
REVENUE_KPI_TARGETS = {
    "month": 100_000_000,
    "quarter": 300_000_000,
    "year": 1_200_000_000,
}

# Gauge display cap for revenue KPI progress
REVENUE_KPI_DISPLAY_CAP = 120
