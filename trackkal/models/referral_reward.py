from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from trackkal.db.base import Base


class ReferralReward(Base):
    __tablename__ = "referral_rewards"
    __table_args__ = (
        UniqueConstraint("redemption_id", "role", name="uq_referral_reward_redemption_role"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    beneficiary_id = Column(String, nullable=False, index=True)
    redemption_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)  # referrer, referee
    amount = Column(Integer, nullable=False)
    awarded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
