"""
Drops exact redeliveries of the same ActivityLogged event before they reach the
ledger, so one logged meal is counted once. Redis SET NX with a TTL.

Fails open: when Redis is down the event is processed, and the ledger's
conditional finalization still guarantees a single payout.
"""
import logging

import redis

from trackkal.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "referral_activity"


class ActivityEventDeduplicator:
    def __init__(self, client: redis.Redis | None = None) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.ttl = settings.idempotency_ttl

    @staticmethod
    def _key(event_id: str) -> str:
        return f"{KEY_PREFIX}:{event_id}"

    def claim(self, event_id: str) -> bool:
        """True if this delivery is the first one seen for event_id."""
        try:
            created = self.client.set(self._key(event_id), "1", nx=True, ex=self.ttl)
        except redis.RedisError as e:
            logger.warning("referral_dedup_redis_error", extra={"event_id": event_id, "error": str(e)})
            return True
        return created is not None

    def release(self, event_id: str) -> None:
        """Forget event_id after a failed attempt so the redelivery is processed."""
        try:
            self.client.delete(self._key(event_id))
        except redis.RedisError as e:
            logger.warning("referral_dedup_redis_error", extra={"event_id": event_id, "error": str(e)})
