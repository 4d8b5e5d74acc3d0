"""
RateLimiter: sliding-window caps on referrer payouts.

Always recomputed from the ledger (completed redemptions, by completion time);
no counters are kept in the process.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from trackkal.referral.config import (
    get_monthly_limit,
    get_monthly_window_days,
    get_weekly_limit,
    get_weekly_window_days,
)
from trackkal.referral.models import RateLimitDecision
from trackkal.referral.store import ReferralStore

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, store: ReferralStore):
        self.store = store

    def can_award_referrer(self, referrer_id: str, now: datetime | None = None) -> RateLimitDecision:
        now = now or datetime.now(timezone.utc)

        weekly = self.store.count_completed_for_referrer(
            referrer_id, now - timedelta(days=get_weekly_window_days())
        )
        monthly = self.store.count_completed_for_referrer(
            referrer_id, now - timedelta(days=get_monthly_window_days())
        )

        reason = None
        if weekly >= get_weekly_limit():
            reason = (
                f"You have reached your weekly referral limit ({get_weekly_limit()}). "
                "Try again next week."
            )
        elif monthly >= get_monthly_limit():
            reason = (
                f"You have reached your monthly referral limit ({get_monthly_limit()}). "
                "Try again next month."
            )

        if reason:
            logger.info(
                "referral_referrer_rate_limited",
                extra={"referrer_id": referrer_id, "reason": reason},
            )
            return RateLimitDecision(
                allowed=False, reason=reason, weekly_count=weekly, monthly_count=monthly
            )
        return RateLimitDecision(allowed=True, weekly_count=weekly, monthly_count=monthly)
