"""
Referral dashboard: the user's code, its aggregates, referral history counts
and progress as a referee.
"""
from __future__ import annotations

from trackkal.referral.config import meals_remaining
from trackkal.referral.models import (
    RedemptionStatus,
    RefereeProgress,
    ReferralStats,
    RewardRole,
)
from trackkal.referral.store import ReferralStore


def get_referral_stats(store: ReferralStore, user_id: str) -> ReferralStats:
    """Get referral dashboard stats for a user. Does not issue a code."""
    code = store.load_code(user_id)
    as_referrer = store.list_redemptions_for_user(user_id, RewardRole.REFERRER)
    as_referee = store.list_redemptions_for_user(user_id, RewardRole.REFEREE)
    rewards = store.list_rewards_for_user(user_id)

    by_status = {status: 0 for status in RedemptionStatus}
    for redemption in as_referrer:
        by_status[RedemptionStatus(redemption.status)] += 1

    progress = None
    if as_referee:
        own = as_referee[0]
        progress = RefereeProgress(
            redemption_id=own.id,
            status=RedemptionStatus(own.status),
            meals_logged=own.meals_logged,
            meals_remaining=(
                meals_remaining(own.meals_logged)
                if own.status == RedemptionStatus.PENDING.value
                else 0
            ),
        )

    return ReferralStats(
        code=code.code if code else None,
        total_referrals=code.total_referrals if code else 0,
        total_earned_entries=code.total_earned_entries if code else 0,
        pending_referrals=by_status[RedemptionStatus.PENDING],
        completed_referrals=by_status[RedemptionStatus.COMPLETED],
        failed_referrals=by_status[RedemptionStatus.FAILED],
        as_referee=progress,
        rewards_total=sum(r.amount for r in rewards),
    )
