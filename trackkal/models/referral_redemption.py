from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from trackkal.db.base import Base


class ReferralRedemption(Base):
    __tablename__ = "referral_redemptions"
    __table_args__ = (
        CheckConstraint("meals_logged >= 0", name="ck_referral_redemption_meals_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="ck_referral_redemption_status",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    code = Column(String(10), nullable=False, index=True)
    referrer_id = Column(String, nullable=False, index=True)
    # a referee redeems at most once, ever
    referee_id = Column(String, nullable=False, unique=True)
    referee_name = Column(String, nullable=True)
    device_fingerprint = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")  # pending, completed, failed
    meals_logged = Column(Integer, nullable=False, default=0)
    failure_reason = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
