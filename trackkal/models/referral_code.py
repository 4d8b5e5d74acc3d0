from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from trackkal.db.base import Base


class ReferralCode(Base):
    __tablename__ = "referral_codes"

    # one code per owner; a second insert for the same owner fails on the PK
    owner_id = Column(String, primary_key=True)
    code = Column(String(10), unique=True, nullable=False, index=True)
    total_referrals = Column(Integer, nullable=False, default=0)
    total_earned_entries = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
