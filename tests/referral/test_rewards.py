"""Tests for RewardDistributor: one reward per (redemption, role)."""
from unittest.mock import MagicMock

import pytest


class TestAward:
    def test_writes_reward(self, store):
        from trackkal.referral.models import RewardRole
        from trackkal.referral.rewards import RewardDistributor

        reward = RewardDistributor(store).award("red-1", "Amy@Example.com", RewardRole.REFEREE, 10)
        store.db.commit()

        rewards = store.list_rewards_for_redemption("red-1")
        assert len(rewards) == 1
        assert rewards[0].id == reward.id
        assert rewards[0].beneficiary_id == "amy@example.com"
        assert rewards[0].role == "referee"
        assert rewards[0].amount == 10

    def test_both_roles_for_one_redemption(self, store):
        from trackkal.referral.models import RewardRole
        from trackkal.referral.rewards import RewardDistributor

        dist = RewardDistributor(store)
        dist.award("red-1", "amy@example.com", RewardRole.REFEREE, 10)
        dist.award("red-1", "bob@example.com", RewardRole.REFERRER, 10)

        assert {r.role for r in store.list_rewards_for_redemption("red-1")} == {"referee", "referrer"}

    def test_repeated_key_raises_duplicate(self, store):
        from trackkal.referral.exceptions import DuplicateReward
        from trackkal.referral.models import RewardRole
        from trackkal.referral.rewards import RewardDistributor

        dist = RewardDistributor(store)
        dist.award("red-1", "amy@example.com", RewardRole.REFEREE, 10)
        store.db.commit()

        with pytest.raises(DuplicateReward) as exc_info:
            dist.award("red-1", "amy@example.com", RewardRole.REFEREE, 10)

        assert exc_info.value.redemption_id == "red-1"
        assert exc_info.value.role == "referee"
        assert len(store.list_rewards_for_redemption("red-1")) == 1

    def test_tracks_reward_earned(self, store):
        from trackkal.referral.models import RewardRole
        from trackkal.referral.rewards import RewardDistributor

        analytics = MagicMock()
        RewardDistributor(store, analytics).award("red-1", "amy@example.com", "referrer", 10)

        analytics.track.assert_called_once_with(
            "referral_reward_earned",
            {"user_id": "amy@example.com", "entries": 10, "role": RewardRole.REFERRER.value},
        )


class TestApplyCodeAggregates:
    def test_increments_counters(self, store, make_code):
        from trackkal.referral.rewards import RewardDistributor

        make_code("owner@example.com", "OWNER1234", total_referrals=2, total_earned_entries=20)
        assert RewardDistributor(store).apply_code_aggregates("owner@example.com", 1, 10) is True
        store.db.commit()

        record = store.load_code("owner@example.com")
        assert record.total_referrals == 3
        assert record.total_earned_entries == 30

    def test_missing_code_is_reported(self, store):
        from trackkal.referral.rewards import RewardDistributor

        assert RewardDistributor(store).apply_code_aggregates("ghost@example.com", 1, 10) is False
