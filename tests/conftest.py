from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")


@pytest.fixture
def db():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from trackkal.db.base import Base
    from trackkal.models import referral_code, referral_redemption, referral_reward  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def store(db):
    from trackkal.referral.store import SqlReferralStore

    return SqlReferralStore(db)


@pytest.fixture
def make_code(store):
    from trackkal.models.referral_code import ReferralCode

    def _make(owner_id: str, code: str, **kwargs):
        record = ReferralCode(
            owner_id=owner_id,
            code=code,
            total_referrals=kwargs.get("total_referrals", 0),
            total_earned_entries=kwargs.get("total_earned_entries", 0),
            created_at=kwargs.get("created_at", datetime.now(timezone.utc)),
        )
        store.save_code(record)
        store.db.commit()
        return record

    return _make


@pytest.fixture
def make_redemption(store):
    from trackkal.models.referral_redemption import ReferralRedemption

    def _make(**kwargs):
        redemption = ReferralRedemption(
            id=kwargs.get("id", str(uuid4())),
            code=kwargs.get("code", "ABCD2345"),
            referrer_id=kwargs.get("referrer_id", "referrer@example.com"),
            referee_id=kwargs.get("referee_id", f"{uuid4().hex[:8]}@example.com"),
            referee_name=kwargs.get("referee_name", "Sam"),
            device_fingerprint=kwargs.get("device_fingerprint", f"device-{uuid4().hex[:6]}"),
            status=kwargs.get("status", "pending"),
            meals_logged=kwargs.get("meals_logged", 0),
            created_at=kwargs.get("created_at", datetime.now(timezone.utc)),
            completed_at=kwargs.get("completed_at"),
            failure_reason=kwargs.get("failure_reason"),
        )
        store.save_redemption(redemption)
        store.db.commit()
        return redemption

    return _make


@pytest.fixture
def completed_ago(make_redemption):
    """Seed a completed redemption for a referrer, finished `days` ago."""

    def _make(referrer_id: str, days: float, **kwargs):
        when = datetime.now(timezone.utc) - timedelta(days=days)
        return make_redemption(
            referrer_id=referrer_id,
            status="completed",
            meals_logged=5,
            created_at=when - timedelta(days=1),
            completed_at=when,
            **kwargs,
        )

    return _make
