"""Tests for ActivityEventDeduplicator (redis mocked)."""
from unittest.mock import MagicMock

import redis


def test_first_delivery_claims():
    from trackkal.referral.dedup import ActivityEventDeduplicator

    client = MagicMock()
    client.set.return_value = True

    assert ActivityEventDeduplicator(client).claim("evt-1") is True
    args, kwargs = client.set.call_args
    assert args[0] == "referral_activity:evt-1"
    assert kwargs["nx"] is True
    assert kwargs["ex"] == 86400


def test_redelivery_is_rejected():
    from trackkal.referral.dedup import ActivityEventDeduplicator

    client = MagicMock()
    client.set.return_value = None

    assert ActivityEventDeduplicator(client).claim("evt-1") is False


def test_redis_down_fails_open():
    from trackkal.referral.dedup import ActivityEventDeduplicator

    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("refused")

    assert ActivityEventDeduplicator(client).claim("evt-1") is True


def test_release_deletes_key():
    from trackkal.referral.dedup import ActivityEventDeduplicator

    client = MagicMock()
    ActivityEventDeduplicator(client).release("evt-1")
    client.delete.assert_called_once_with("referral_activity:evt-1")


def test_release_ignores_redis_errors():
    from trackkal.referral.dedup import ActivityEventDeduplicator

    client = MagicMock()
    client.delete.side_effect = redis.TimeoutError("slow")
    ActivityEventDeduplicator(client).release("evt-1")
