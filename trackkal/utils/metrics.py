"""
Prometheus-based metrics for the referral ledger.
Exposed by whatever process hosts the ledger (Celery worker exporter).
"""
from prometheus_client import Counter


referral_codes_issued_total = Counter(
    "referral_codes_issued_total",
    "Total referral codes issued",
    ["method"],  # random, fallback
)

referral_redemptions_total = Counter(
    "referral_redemptions_total",
    "Redemption attempts by outcome",
    ["outcome"],  # created, invalid_format, not_found, self_referral, already_used, fraud_blocked
)

referral_finalizations_total = Counter(
    "referral_finalizations_total",
    "Redemption finalizations by terminal status",
    ["status"],  # completed, failed, lost_race, rolled_back
)

referral_rewards_total = Counter(
    "referral_rewards_total",
    "Reward records written",
    ["role"],  # referrer, referee
)
