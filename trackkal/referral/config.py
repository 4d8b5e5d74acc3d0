"""
Referral program config: typed wrappers over trackkal.core.config.settings.
"""
from __future__ import annotations

from trackkal.core.config import settings


def get_reward_entries() -> int:
    return settings.referral_reward_entries


def get_completion_threshold() -> int:
    return settings.referral_completion_threshold


def get_weekly_limit() -> int:
    return settings.referral_weekly_limit


def get_monthly_limit() -> int:
    return settings.referral_monthly_limit


def get_weekly_window_days() -> int:
    return settings.referral_weekly_window_days


def get_monthly_window_days() -> int:
    return settings.referral_monthly_window_days


def get_fraud_device_threshold() -> int:
    return settings.referral_fraud_device_threshold


def get_code_max_attempts() -> int:
    return settings.referral_code_max_attempts


def meals_remaining(meals_logged: int) -> int:
    """Meals still needed before the bonus unlocks (never negative)."""
    return max(0, get_completion_threshold() - meals_logged)
