"""
Side-effect collaborators of the ledger: push notifications and analytics.

Both are fire-and-forget. The ledger calls them through the safe_* helpers so
a failing sink never rolls back a reward.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from trackkal.referral.config import get_completion_threshold, get_reward_entries

logger = logging.getLogger(__name__)

DEFAULT_REFEREE_NAME = "A friend"


class NotificationSink(Protocol):
    def notify_referrer_reward(self, referrer_id: str, referee_name: str) -> None: ...


class AnalyticsSink(Protocol):
    def track(self, event_name: str, properties: dict[str, Any]) -> None: ...


def referral_reward_message(referee_name: str | None, meals: int, entries: int) -> str:
    name = referee_name or DEFAULT_REFEREE_NAME
    return f"{name} completed {meals} meals! You earned +{entries} free entries."


class LoggingNotificationSink:
    """Default sink: records the push that a delivery worker would send."""

    def notify_referrer_reward(self, referrer_id: str, referee_name: str) -> None:
        logger.info(
            "referral_reward_notification",
            extra={
                "user_id": referrer_id,
                "event": referral_reward_message(
                    referee_name, get_completion_threshold(), get_reward_entries()
                ),
            },
        )


class LoggingAnalyticsSink:
    def track(self, event_name: str, properties: dict[str, Any]) -> None:
        logger.info("analytics_event", extra={"event": event_name, "properties": properties})


def safe_notify(sink: NotificationSink | None, referrer_id: str, referee_name: str | None) -> bool:
    if sink is None:
        return False
    try:
        sink.notify_referrer_reward(referrer_id, referee_name or DEFAULT_REFEREE_NAME)
        return True
    except Exception:
        logger.exception("referral_notify_reward_fail", extra={"referrer_id": referrer_id})
        return False


def safe_track(sink: AnalyticsSink | None, event_name: str, properties: dict[str, Any]) -> None:
    if sink is None:
        return
    try:
        sink.track(event_name, properties)
    except Exception:
        logger.exception("referral_analytics_fail", extra={"event": event_name})
