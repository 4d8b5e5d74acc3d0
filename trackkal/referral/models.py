"""
DTO referral ledger: statuses, rejection reasons and the results returned by
the validator, fraud detector, rate limiter, ledger and stats.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from trackkal.models.referral_code import ReferralCode


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RewardRole(str, Enum):
    REFERRER = "referrer"
    REFEREE = "referee"


class RejectionReason(str, Enum):
    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    SELF_REFERRAL = "self_referral"
    ALREADY_USED = "already_used"
    FRAUD_BLOCKED = "fraud_blocked"


REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.INVALID_FORMAT: "Invalid code format. Code must be 8-10 alphanumeric characters.",
    RejectionReason.NOT_FOUND: "Referral code not found.",
    RejectionReason.SELF_REFERRAL: "You cannot use your own referral code.",
    RejectionReason.ALREADY_USED: "You have already used a referral code.",
    RejectionReason.FRAUD_BLOCKED: "This device can no longer redeem referral codes.",
}

FAILURE_REFERRER_RATE_LIMITED = "referrer_rate_limited"


# ----- Validator -----


class ValidationResult(BaseModel):
    """Outcome of a code check; rejections are data, never exceptions."""

    valid: bool
    code_record: ReferralCode | None = None
    reason: RejectionReason | None = None
    message: str | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "ValidationResult":
        return cls(valid=False, reason=reason, message=REJECTION_MESSAGES[reason])


# ----- Fraud / rate limit -----


class FraudCheck(BaseModel):
    suspicious: bool
    redemptions_count: int
    message: str | None = None

    model_config = {"frozen": True}


class RateLimitDecision(BaseModel):
    allowed: bool
    reason: str | None = None
    weekly_count: int = 0
    monthly_count: int = 0

    model_config = {"frozen": True}


# ----- Ledger -----


class ProgressResult(BaseModel):
    """Result of one ActivityLogged event for a referee."""

    rewards_awarded: bool = False
    entries_awarded: int | None = None
    meals_logged: int | None = None
    meals_remaining: int | None = None
    status: RedemptionStatus | None = None
    already_awarded: bool = Field(
        False,
        description="True when another delivery already finalized this redemption",
    )
    message: str | None = None

    model_config = {"frozen": True}


# ----- Stats -----


class RefereeProgress(BaseModel):
    redemption_id: str
    status: RedemptionStatus
    meals_logged: int
    meals_remaining: int

    model_config = {"frozen": True}


class ReferralStats(BaseModel):
    """Referral dashboard numbers for a single user."""

    code: str | None = None
    total_referrals: int = 0
    total_earned_entries: int = 0
    pending_referrals: int = 0
    completed_referrals: int = 0
    failed_referrals: int = 0
    as_referee: RefereeProgress | None = None
    rewards_total: int = 0

    model_config = {"frozen": True}
