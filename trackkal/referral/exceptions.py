"""
Referral Ledger Exceptions

Domain exceptions for the referral ledger.
Expected validation outcomes are returned as ValidationResult; these are raised
only where the caller has to stop (redeem) or storage rejected a write.
"""

from trackkal.referral.models import REJECTION_MESSAGES, RejectionReason


class ReferralError(Exception):
    """Base exception for referral ledger errors"""
    pass


class RedemptionRejected(ReferralError):
    """Raised by redeem() when the code cannot be redeemed by this referee"""

    def __init__(self, reason: RejectionReason, message: str | None = None):
        self.reason = reason
        self.message = message or REJECTION_MESSAGES[reason]
        super().__init__(self.message)


class FraudBlocked(RedemptionRejected):
    """Raised when the device fingerprint has too many redemptions on file"""

    def __init__(self, device_fingerprint: str, redemptions_count: int):
        self.device_fingerprint = device_fingerprint
        self.redemptions_count = redemptions_count
        super().__init__(RejectionReason.FRAUD_BLOCKED)


class DuplicateReward(ReferralError):
    """Raised when a reward for (redemption_id, role) already exists"""

    def __init__(self, redemption_id: str, role: str):
        self.redemption_id = redemption_id
        self.role = role
        super().__init__(f"Reward already recorded: redemption={redemption_id} role={role}")


class CodeGenerationError(ReferralError):
    """Raised when no referral code could be stored for an owner"""
    pass
