"""
Referral redemption & reward ledger: code issuance, redemption validation,
meal progress, referrer rate limits, device fraud heuristic and idempotent
dual-party rewards.
"""
from trackkal.referral.codes import CodeGenerator
from trackkal.referral.exceptions import (
    CodeGenerationError,
    DuplicateReward,
    FraudBlocked,
    RedemptionRejected,
    ReferralError,
)
from trackkal.referral.fraud import FraudDetector
from trackkal.referral.ledger import RedemptionLedger
from trackkal.referral.models import (
    FraudCheck,
    ProgressResult,
    RateLimitDecision,
    RedemptionStatus,
    RejectionReason,
    ReferralStats,
    RewardRole,
    ValidationResult,
)
from trackkal.referral.rate_limit import RateLimiter
from trackkal.referral.rewards import RewardDistributor
from trackkal.referral.stats import get_referral_stats
from trackkal.referral.store import ReferralStore, SqlReferralStore
from trackkal.referral.validator import RedemptionValidator

__all__ = [
    "CodeGenerator",
    "CodeGenerationError",
    "DuplicateReward",
    "FraudBlocked",
    "FraudCheck",
    "FraudDetector",
    "ProgressResult",
    "RateLimitDecision",
    "RateLimiter",
    "RedemptionLedger",
    "RedemptionRejected",
    "RedemptionStatus",
    "RedemptionValidator",
    "ReferralError",
    "ReferralStats",
    "ReferralStore",
    "RejectionReason",
    "RewardDistributor",
    "RewardRole",
    "SqlReferralStore",
    "ValidationResult",
    "get_referral_stats",
]
