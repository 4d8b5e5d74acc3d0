"""
RedemptionValidator: format, existence, self-referral and already-used checks.
Expected rejections are returned as ValidationResult; only storage errors raise.
"""
from __future__ import annotations

import logging

from trackkal.referral.codes import is_valid_code_format
from trackkal.referral.models import RejectionReason, ValidationResult
from trackkal.referral.store import ReferralStore, normalize_user_id

logger = logging.getLogger(__name__)


class RedemptionValidator:
    def __init__(self, store: ReferralStore):
        self.store = store

    def validate_code(self, code: str) -> ValidationResult:
        """Format and existence only: used before the referee account exists."""
        if not code or not is_valid_code_format(code):
            return ValidationResult.reject(RejectionReason.INVALID_FORMAT)
        record = self.store.find_code_by_value(code)
        if record is None:
            return ValidationResult.reject(RejectionReason.NOT_FOUND)
        return ValidationResult(valid=True, code_record=record)

    def validate_for_redemption(self, code: str, referee_id: str) -> ValidationResult:
        result = self.validate_code(code)
        if not result.valid:
            logger.info(
                "referral_validation_rejected",
                extra={"code": code, "referee_id": referee_id, "reason": result.reason.value},
            )
            return result

        record = result.code_record
        if normalize_user_id(record.owner_id) == normalize_user_id(referee_id):
            logger.info(
                "referral_self_referral_rejected",
                extra={"code": record.code, "referee_id": referee_id},
            )
            return ValidationResult.reject(RejectionReason.SELF_REFERRAL)

        if self.store.has_any_redemption_as_referee(referee_id):
            logger.info(
                "referral_already_used_rejected",
                extra={"code": record.code, "referee_id": referee_id},
            )
            return ValidationResult.reject(RejectionReason.ALREADY_USED)

        return result
