"""
FraudDetector: device-fingerprint reuse heuristic.
A device that already carries N redemptions cannot create another one.
"""
from __future__ import annotations

import logging

from trackkal.referral.config import get_fraud_device_threshold
from trackkal.referral.models import FraudCheck
from trackkal.referral.store import ReferralStore

logger = logging.getLogger(__name__)


class FraudDetector:
    def __init__(self, store: ReferralStore):
        self.store = store

    def check(self, device_fingerprint: str) -> FraudCheck:
        count = self.store.count_redemptions_for_device(device_fingerprint)
        if count >= get_fraud_device_threshold():
            logger.warning(
                "referral_fraud_suspicious_device",
                extra={"device_fingerprint": device_fingerprint, "redemptions_count": count},
            )
            return FraudCheck(
                suspicious=True,
                redemptions_count=count,
                message=f"Device {device_fingerprint} has {count} referral redemptions",
            )
        return FraudCheck(suspicious=False, redemptions_count=count)
