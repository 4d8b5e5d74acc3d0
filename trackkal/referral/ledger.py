"""
RedemptionLedger: redemption creation, meal progress and one-time finalization.

Lifecycle: pending -> completed | failed (terminal). Finalization is claimed with
a conditional UPDATE (status must still be pending); only the caller that wins
the claim writes rewards, so duplicate ActivityLogged deliveries pay out once.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from trackkal.models.referral_redemption import ReferralRedemption
from trackkal.referral.config import (
    get_completion_threshold,
    get_reward_entries,
    meals_remaining,
)
from trackkal.referral.exceptions import DuplicateReward, FraudBlocked, RedemptionRejected
from trackkal.referral.fraud import FraudDetector
from trackkal.referral.models import (
    FAILURE_REFERRER_RATE_LIMITED,
    ProgressResult,
    RedemptionStatus,
    RejectionReason,
    RewardRole,
)
from trackkal.referral.rate_limit import RateLimiter
from trackkal.referral.rewards import RewardDistributor
from trackkal.referral.sinks import AnalyticsSink, NotificationSink, safe_notify, safe_track
from trackkal.referral.store import ReferralStore
from trackkal.referral.validator import RedemptionValidator
from trackkal.utils.metrics import referral_finalizations_total, referral_redemptions_total

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "unknown"


class RedemptionLedger:
    def __init__(
        self,
        store: ReferralStore,
        notifications: NotificationSink | None = None,
        analytics: AnalyticsSink | None = None,
    ):
        self.store = store
        self.notifications = notifications
        self.analytics = analytics
        self.validator = RedemptionValidator(store)
        self.fraud = FraudDetector(store)
        self.rate_limiter = RateLimiter(store)
        self.rewards = RewardDistributor(store, analytics)

    # ------------------------------------------------------------------
    # Redemption creation (onboarding)
    # ------------------------------------------------------------------

    def redeem(
        self,
        code: str,
        referee_id: str,
        referee_name: str | None,
        device_fingerprint: str | None,
    ) -> ReferralRedemption:
        """
        Create a pending redemption for a referee.
        Raises RedemptionRejected (or FraudBlocked) without persisting anything.
        """
        validation = self.validator.validate_for_redemption(code, referee_id)
        if not validation.valid:
            referral_redemptions_total.labels(outcome=validation.reason.value).inc()
            raise RedemptionRejected(validation.reason, validation.message)

        device_fingerprint = device_fingerprint or UNKNOWN_DEVICE
        fraud = self.fraud.check(device_fingerprint)
        if fraud.suspicious:
            referral_redemptions_total.labels(outcome=RejectionReason.FRAUD_BLOCKED.value).inc()
            safe_track(
                self.analytics,
                "referral_redemption_blocked",
                {"referee_id": referee_id, "redemptions_count": fraud.redemptions_count},
            )
            raise FraudBlocked(device_fingerprint, fraud.redemptions_count)

        record = validation.code_record
        redemption = ReferralRedemption(
            id=str(uuid4()),
            code=record.code,
            referrer_id=record.owner_id,
            referee_id=referee_id,
            referee_name=referee_name,
            device_fingerprint=device_fingerprint,
            status=RedemptionStatus.PENDING.value,
            meals_logged=0,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.store.save_redemption(redemption)
        except IntegrityError:
            # a concurrent redeem for the same referee got there first
            self.store.rollback()
            referral_redemptions_total.labels(outcome=RejectionReason.ALREADY_USED.value).inc()
            raise RedemptionRejected(RejectionReason.ALREADY_USED)

        referral_redemptions_total.labels(outcome="created").inc()
        logger.info(
            "referral_redemption_created",
            extra={
                "redemption_id": redemption.id,
                "code": redemption.code,
                "referrer_id": redemption.referrer_id,
                "referee_id": redemption.referee_id,
            },
        )
        safe_track(
            self.analytics,
            "referral_code_redeemed",
            {"code": redemption.code, "referee_id": redemption.referee_id},
        )
        return redemption

    # ------------------------------------------------------------------
    # Progress (ActivityLogged)
    # ------------------------------------------------------------------

    def record_progress(self, referee_id: str) -> ProgressResult:
        """Count one logged meal for the referee and finalize at the threshold."""
        pending = next(
            (
                r
                for r in self.store.list_redemptions_for_user(referee_id, RewardRole.REFEREE)
                if r.status == RedemptionStatus.PENDING.value
            ),
            None,
        )
        if pending is None:
            return ProgressResult()

        meals = self.store.increment_meals_logged(pending.id)
        if meals is None:
            # finalized by a concurrent delivery between the read and the increment
            return ProgressResult(already_awarded=True)

        if meals < get_completion_threshold():
            remaining = meals_remaining(meals)
            return ProgressResult(
                meals_logged=meals,
                meals_remaining=remaining,
                status=RedemptionStatus.PENDING,
                message=f"Keep logging meals! {remaining} more to unlock your referral bonus.",
            )

        return self.finalize(pending.id)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self, redemption_id: str) -> ProgressResult:
        """Pay out a pending redemption that reached the threshold; otherwise a no-op."""
        redemption = self.store.get_redemption(redemption_id)
        if redemption is None:
            return ProgressResult()

        threshold = get_completion_threshold()
        if redemption.status != RedemptionStatus.PENDING.value:
            logger.info(
                "referral_already_finalized",
                extra={"redemption_id": redemption_id, "status": redemption.status},
            )
            return ProgressResult(already_awarded=True, meals_logged=redemption.meals_logged)
        if redemption.meals_logged < threshold:
            remaining = meals_remaining(redemption.meals_logged)
            return ProgressResult(
                meals_logged=redemption.meals_logged,
                meals_remaining=remaining,
                status=RedemptionStatus.PENDING,
            )

        if self.store.list_rewards_for_redemption(redemption_id):
            logger.info("referral_already_awarded", extra={"redemption_id": redemption_id})
            return ProgressResult(already_awarded=True, meals_logged=redemption.meals_logged)

        decision = self.rate_limiter.can_award_referrer(redemption.referrer_id)
        status = RedemptionStatus.COMPLETED if decision.allowed else RedemptionStatus.FAILED
        fields = {"status": status, "completed_at": datetime.now(timezone.utc)}
        if not decision.allowed:
            fields["failure_reason"] = FAILURE_REFERRER_RATE_LIMITED

        claimed = self.store.update_redemption(
            redemption_id,
            expected_status=RedemptionStatus.PENDING,
            min_meals_logged=threshold,
            **fields,
        )
        if not claimed:
            referral_finalizations_total.labels(status="lost_race").inc()
            logger.info("referral_finalize_lost_race", extra={"redemption_id": redemption_id})
            return ProgressResult(already_awarded=True, meals_logged=redemption.meals_logged)

        entries = get_reward_entries()
        try:
            self.rewards.award(redemption_id, redemption.referee_id, RewardRole.REFEREE, entries)
            if decision.allowed:
                self.rewards.award(
                    redemption_id, redemption.referrer_id, RewardRole.REFERRER, entries
                )
                self.rewards.apply_code_aggregates(redemption.referrer_id, 1, entries)
        except DuplicateReward as e:
            # the rollback also reverted the claim; the redemption is pending again
            referral_finalizations_total.labels(status="rolled_back").inc()
            logger.warning(
                "referral_finalize_rolled_back",
                extra={"redemption_id": redemption_id, "role": e.role},
            )
            return ProgressResult(already_awarded=True, status=RedemptionStatus.PENDING)

        referral_finalizations_total.labels(status=status.value).inc()
        logger.info(
            "referral_finalized",
            extra={
                "redemption_id": redemption_id,
                "referrer_id": redemption.referrer_id,
                "referee_id": redemption.referee_id,
                "status": status.value,
                "meals_logged": redemption.meals_logged,
            },
        )

        if not decision.allowed:
            return ProgressResult(
                rewards_awarded=True,
                entries_awarded=entries,
                meals_logged=redemption.meals_logged,
                meals_remaining=0,
                status=status,
                message=(
                    f"You earned +{entries} free entries! Your friend has reached their "
                    "referral limit, so they did not receive a reward."
                ),
            )

        safe_notify(self.notifications, redemption.referrer_id, redemption.referee_name)
        return ProgressResult(
            rewards_awarded=True,
            entries_awarded=entries,
            meals_logged=redemption.meals_logged,
            meals_remaining=0,
            status=status,
            message=(
                f"You've earned +{entries} free entries! Your friend "
                f"{redemption.referrer_id} also received +{entries} entries."
            ),
        )
