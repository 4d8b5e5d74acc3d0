"""
Persistence contract consumed by the referral ledger, plus the SQLAlchemy
adapter used in production.

The adapter only flushes; committing the unit of work is the caller's job
(see trackkal.referral.tasks).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import exists, func, select, update
from sqlalchemy.orm import Session

from trackkal.models.referral_code import ReferralCode
from trackkal.models.referral_redemption import ReferralRedemption
from trackkal.models.referral_reward import ReferralReward
from trackkal.referral.models import RedemptionStatus, RewardRole


def normalize_user_id(user_id: str) -> str:
    """User ids are e-mail-like; all lookups are case-insensitive."""
    return user_id.strip().lower()


def normalize_code(code: str) -> str:
    return code.strip().upper()


class ReferralStore(ABC):
    @abstractmethod
    def rollback(self) -> None:
        """Discard the current unit of work after a rejected write."""
        raise NotImplementedError

    # ----- codes -----

    @abstractmethod
    def load_code(self, owner_id: str) -> ReferralCode | None:
        raise NotImplementedError

    @abstractmethod
    def save_code(self, code: ReferralCode) -> None:
        """Insert a new code; raises IntegrityError on owner or code collision."""
        raise NotImplementedError

    @abstractmethod
    def find_code_by_value(self, code: str) -> ReferralCode | None:
        raise NotImplementedError

    @abstractmethod
    def update_code_aggregates(self, owner_id: str, delta_referrals: int, delta_entries: int) -> bool:
        raise NotImplementedError

    # ----- redemptions -----

    @abstractmethod
    def save_redemption(self, redemption: ReferralRedemption) -> None:
        """Insert a new redemption; raises IntegrityError if the referee already has one."""
        raise NotImplementedError

    @abstractmethod
    def get_redemption(self, redemption_id: str) -> ReferralRedemption | None:
        raise NotImplementedError

    @abstractmethod
    def update_redemption(
        self,
        redemption_id: str,
        expected_status: RedemptionStatus | None = None,
        min_meals_logged: int | None = None,
        **fields,
    ) -> bool:
        """
        Atomic partial merge of ``fields`` into one redemption.
        With ``expected_status`` the update only applies while the row still has
        that status, so exactly one concurrent caller gets True.
        ``min_meals_logged`` further requires the row to have reached that count.
        """
        raise NotImplementedError

    @abstractmethod
    def increment_meals_logged(self, redemption_id: str) -> int | None:
        """Add one meal to a pending redemption; None if it is no longer pending."""
        raise NotImplementedError

    @abstractmethod
    def list_redemptions_for_user(self, user_id: str, role: RewardRole) -> list[ReferralRedemption]:
        raise NotImplementedError

    @abstractmethod
    def count_redemptions_for_device(self, device_fingerprint: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def count_completed_for_referrer(self, referrer_id: str, since: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    def has_any_redemption_as_referee(self, user_id: str) -> bool:
        raise NotImplementedError

    # ----- rewards -----

    @abstractmethod
    def save_reward(self, reward: ReferralReward) -> None:
        """Insert a reward; raises IntegrityError on a duplicate (redemption_id, role)."""
        raise NotImplementedError

    @abstractmethod
    def list_rewards_for_redemption(self, redemption_id: str) -> list[ReferralReward]:
        raise NotImplementedError

    @abstractmethod
    def list_rewards_for_user(self, user_id: str) -> list[ReferralReward]:
        raise NotImplementedError


class SqlReferralStore(ReferralStore):
    def __init__(self, db: Session):
        self.db = db

    def rollback(self) -> None:
        self.db.rollback()

    # ------------------------------------------------------------------
    # Codes
    # ------------------------------------------------------------------

    def load_code(self, owner_id: str) -> ReferralCode | None:
        return (
            self.db.query(ReferralCode)
            .filter(ReferralCode.owner_id == normalize_user_id(owner_id))
            .one_or_none()
        )

    def save_code(self, code: ReferralCode) -> None:
        code.owner_id = normalize_user_id(code.owner_id)
        code.code = normalize_code(code.code)
        self.db.add(code)
        self.db.flush()

    def find_code_by_value(self, code: str) -> ReferralCode | None:
        return (
            self.db.query(ReferralCode)
            .filter(ReferralCode.code == normalize_code(code))
            .one_or_none()
        )

    def update_code_aggregates(self, owner_id: str, delta_referrals: int, delta_entries: int) -> bool:
        result = self.db.execute(
            update(ReferralCode)
            .where(ReferralCode.owner_id == normalize_user_id(owner_id))
            .values(
                total_referrals=ReferralCode.total_referrals + delta_referrals,
                total_earned_entries=ReferralCode.total_earned_entries + delta_entries,
            )
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Redemptions
    # ------------------------------------------------------------------

    def save_redemption(self, redemption: ReferralRedemption) -> None:
        redemption.referrer_id = normalize_user_id(redemption.referrer_id)
        redemption.referee_id = normalize_user_id(redemption.referee_id)
        self.db.add(redemption)
        self.db.flush()

    def get_redemption(self, redemption_id: str) -> ReferralRedemption | None:
        return (
            self.db.query(ReferralRedemption)
            .filter(ReferralRedemption.id == redemption_id)
            .one_or_none()
        )

    def update_redemption(
        self,
        redemption_id: str,
        expected_status: RedemptionStatus | None = None,
        min_meals_logged: int | None = None,
        **fields,
    ) -> bool:
        values = {
            key: value.value if isinstance(value, RedemptionStatus) else value
            for key, value in fields.items()
        }
        stmt = update(ReferralRedemption).where(ReferralRedemption.id == redemption_id)
        if expected_status is not None:
            stmt = stmt.where(ReferralRedemption.status == RedemptionStatus(expected_status).value)
        if min_meals_logged is not None:
            stmt = stmt.where(ReferralRedemption.meals_logged >= min_meals_logged)
        result = self.db.execute(
            stmt.values(**values).execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount > 0

    def increment_meals_logged(self, redemption_id: str) -> int | None:
        result = self.db.execute(
            update(ReferralRedemption)
            .where(
                ReferralRedemption.id == redemption_id,
                ReferralRedemption.status == RedemptionStatus.PENDING.value,
            )
            .values(meals_logged=ReferralRedemption.meals_logged + 1)
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        if result.rowcount == 0:
            return None
        return self.db.scalar(
            select(ReferralRedemption.meals_logged).where(ReferralRedemption.id == redemption_id)
        )

    def list_redemptions_for_user(self, user_id: str, role: RewardRole) -> list[ReferralRedemption]:
        column = (
            ReferralRedemption.referrer_id
            if RewardRole(role) == RewardRole.REFERRER
            else ReferralRedemption.referee_id
        )
        return (
            self.db.query(ReferralRedemption)
            .filter(column == normalize_user_id(user_id))
            .order_by(ReferralRedemption.created_at.asc())
            .all()
        )

    def count_redemptions_for_device(self, device_fingerprint: str) -> int:
        return (
            self.db.query(func.count(ReferralRedemption.id))
            .filter(ReferralRedemption.device_fingerprint == device_fingerprint)
            .scalar()
            or 0
        )

    def count_completed_for_referrer(self, referrer_id: str, since: datetime) -> int:
        return (
            self.db.query(func.count(ReferralRedemption.id))
            .filter(
                ReferralRedemption.referrer_id == normalize_user_id(referrer_id),
                ReferralRedemption.status == RedemptionStatus.COMPLETED.value,
                ReferralRedemption.completed_at.is_not(None),
                ReferralRedemption.completed_at >= since,
            )
            .scalar()
            or 0
        )

    def has_any_redemption_as_referee(self, user_id: str) -> bool:
        return bool(
            self.db.scalar(
                select(
                    exists().where(ReferralRedemption.referee_id == normalize_user_id(user_id))
                )
            )
        )

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    def save_reward(self, reward: ReferralReward) -> None:
        reward.beneficiary_id = normalize_user_id(reward.beneficiary_id)
        self.db.add(reward)
        self.db.flush()

    def list_rewards_for_redemption(self, redemption_id: str) -> list[ReferralReward]:
        return (
            self.db.query(ReferralReward)
            .filter(ReferralReward.redemption_id == redemption_id)
            .all()
        )

    def list_rewards_for_user(self, user_id: str) -> list[ReferralReward]:
        return (
            self.db.query(ReferralReward)
            .filter(ReferralReward.beneficiary_id == normalize_user_id(user_id))
            .order_by(ReferralReward.awarded_at.asc())
            .all()
        )
