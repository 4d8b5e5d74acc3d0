"""
Celery application: broker and result backend from settings.
Referral progress tasks live in trackkal.referral.tasks.
"""
from celery import Celery
from celery.signals import after_setup_logger

from trackkal.core.config import settings
from trackkal.core.logging import configure_logging

celery_app = Celery(
    "trackkal",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "trackkal.referral.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=300,
    result_expires=86400,
)

celery_app.conf.task_routes = {
    "trackkal.referral.tasks.record_activity": {"queue": "referrals"},
}


@after_setup_logger.connect
def _setup_json_logging(**kwargs) -> None:
    configure_logging()
