"""
RewardDistributor: append-only reward records keyed by (redemption_id, role).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from trackkal.models.referral_reward import ReferralReward
from trackkal.referral.exceptions import DuplicateReward
from trackkal.referral.models import RewardRole
from trackkal.referral.sinks import AnalyticsSink, safe_track
from trackkal.referral.store import ReferralStore
from trackkal.utils.metrics import referral_rewards_total

logger = logging.getLogger(__name__)


class RewardDistributor:
    def __init__(self, store: ReferralStore, analytics: AnalyticsSink | None = None):
        self.store = store
        self.analytics = analytics

    def award(
        self,
        redemption_id: str,
        beneficiary_id: str,
        role: RewardRole,
        amount: int,
    ) -> ReferralReward:
        """
        Write one reward. The caller has already won the finalization transition;
        the unique (redemption_id, role) key rejects anything that slipped past it.
        """
        role = RewardRole(role)
        reward = ReferralReward(
            id=str(uuid4()),
            beneficiary_id=beneficiary_id,
            redemption_id=redemption_id,
            role=role.value,
            amount=amount,
            awarded_at=datetime.now(timezone.utc),
        )
        try:
            self.store.save_reward(reward)
        except IntegrityError:
            self.store.rollback()
            logger.warning(
                "referral_reward_duplicate",
                extra={"redemption_id": redemption_id, "role": role.value},
            )
            raise DuplicateReward(redemption_id, role.value)

        referral_rewards_total.labels(role=role.value).inc()
        logger.info(
            "referral_reward_awarded",
            extra={
                "redemption_id": redemption_id,
                "user_id": reward.beneficiary_id,
                "role": role.value,
                "amount": amount,
            },
        )
        safe_track(
            self.analytics,
            "referral_reward_earned",
            {"user_id": reward.beneficiary_id, "entries": amount, "role": role.value},
        )
        return reward

    def apply_code_aggregates(self, owner_id: str, referrals: int, entries: int) -> bool:
        updated = self.store.update_code_aggregates(owner_id, referrals, entries)
        if not updated:
            logger.warning("referral_code_aggregates_missing", extra={"owner_id": owner_id})
        return updated
