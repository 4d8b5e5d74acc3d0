"""
CodeGenerator: one referral code per owner, issued lazily and never regenerated.
"""
from __future__ import annotations

import logging
import re
import secrets
import time
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from trackkal.models.referral_code import ReferralCode
from trackkal.referral.config import get_code_max_attempts
from trackkal.referral.exceptions import CodeGenerationError
from trackkal.referral.sinks import AnalyticsSink, safe_track
from trackkal.referral.store import ReferralStore, normalize_code
from trackkal.utils.metrics import referral_codes_issued_total

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_PATTERN = re.compile(r"^[A-Z0-9]{8,10}$")
CODE_MIN_LENGTH = 8
CODE_MAX_LENGTH = 10
FALLBACK_PREFIX_LENGTH = 6
FALLBACK_SUFFIX_LENGTH = 4
# storage-level retries after an IntegrityError on insert
MAX_STORE_ATTEMPTS = 3


def is_valid_code_format(code: str) -> bool:
    return bool(CODE_PATTERN.match(normalize_code(code)))


def _random_chars(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def fallback_code(now_ms: int | None = None) -> str:
    """6 random chars + tail of the base-36 millisecond timestamp (10 chars)."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = _base36(now_ms)[-FALLBACK_SUFFIX_LENGTH:].rjust(FALLBACK_SUFFIX_LENGTH, "0")
    return _random_chars(FALLBACK_PREFIX_LENGTH) + suffix


class CodeGenerator:
    def __init__(self, store: ReferralStore, analytics: AnalyticsSink | None = None):
        self.store = store
        self.analytics = analytics

    def generate_unique_code(self) -> tuple[str, str]:
        """Return (code, method); method is "random" or "fallback"."""
        for _ in range(get_code_max_attempts()):
            length = CODE_MIN_LENGTH + secrets.randbelow(CODE_MAX_LENGTH - CODE_MIN_LENGTH + 1)
            code = _random_chars(length)
            if self.store.find_code_by_value(code) is None:
                return code, "random"
        logger.warning("referral_code_random_exhausted", extra={"attempt": get_code_max_attempts()})
        return fallback_code(), "fallback"

    def get_or_create(self, owner_id: str) -> ReferralCode:
        existing = self.store.load_code(owner_id)
        if existing:
            return existing

        for attempt in range(1, MAX_STORE_ATTEMPTS + 1):
            code, method = self.generate_unique_code()
            record = ReferralCode(
                owner_id=owner_id,
                code=code,
                total_referrals=0,
                total_earned_entries=0,
                created_at=datetime.now(timezone.utc),
            )
            try:
                self.store.save_code(record)
            except IntegrityError:
                # either the code was taken meanwhile or the owner got a code concurrently
                self.store.rollback()
                existing = self.store.load_code(owner_id)
                if existing:
                    return existing
                logger.warning(
                    "referral_code_collision",
                    extra={"owner_id": owner_id, "code": code, "attempt": attempt},
                )
                continue

            referral_codes_issued_total.labels(method=method).inc()
            logger.info(
                "referral_code_created",
                extra={"owner_id": record.owner_id, "code": record.code},
            )
            safe_track(self.analytics, "referral_code_generated", {"user_id": record.owner_id})
            return record

        raise CodeGenerationError(f"Could not store a referral code for {owner_id}")
