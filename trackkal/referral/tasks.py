"""
Celery task: ActivityLogged events from the meal-logging pipeline.
One task run = one unit of work: progress, finalization and rewards commit together.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from trackkal.core.celery_app import celery_app
from trackkal.core.config import settings
from trackkal.db.session import SessionLocal
from trackkal.referral.dedup import ActivityEventDeduplicator
from trackkal.referral.ledger import RedemptionLedger
from trackkal.referral.sinks import LoggingAnalyticsSink, LoggingNotificationSink
from trackkal.referral.store import SqlReferralStore

logger = logging.getLogger(__name__)


def build_ledger(db) -> RedemptionLedger:
    return RedemptionLedger(
        SqlReferralStore(db),
        notifications=LoggingNotificationSink(),
        analytics=LoggingAnalyticsSink(),
    )


@celery_app.task(
    bind=True,
    name="trackkal.referral.tasks.record_activity",
    time_limit=60,
    soft_time_limit=50,
)
def record_activity(self, referee_id: str, event_id: str | None = None) -> dict:
    """Count one logged meal for a referee; finalizes the redemption at the threshold."""
    dedup = ActivityEventDeduplicator() if event_id else None
    if dedup and not dedup.claim(event_id):
        logger.info(
            "referral_activity_duplicate",
            extra={"referee_id": referee_id, "event_id": event_id},
        )
        return {"ok": True, "duplicate": True}

    db = SessionLocal()
    try:
        result = build_ledger(db).record_progress(referee_id)
        db.commit()
        logger.info(
            "referral_activity_recorded",
            extra={
                "referee_id": referee_id,
                "event_id": event_id,
                "meals_logged": result.meals_logged,
                "status": result.status.value if result.status else None,
            },
        )
        return {"ok": True, **result.model_dump(mode="json")}
    except SQLAlchemyError as exc:
        db.rollback()
        if dedup:
            dedup.release(event_id)
        logger.exception(
            "referral_activity_storage_error",
            extra={"referee_id": referee_id, "event_id": event_id},
        )
        raise self.retry(
            exc=exc,
            countdown=settings.celery_task_retry_delay,
            max_retries=settings.celery_task_max_retries,
        )
    except Exception:
        db.rollback()
        if dedup:
            dedup.release(event_id)
        logger.exception(
            "referral_activity_error",
            extra={"referee_id": referee_id, "event_id": event_id},
        )
        raise
    finally:
        db.close()
