from celery import Celery

from portal.config import settings

celery_app = Celery(
    "portal",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["portal.tasks.cleanup"],
)
celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    beat_schedule={
        "cleanup-expired-records": {
            "task": "portal.tasks.cleanup.cleanup_expired_records",
            "schedule": float(settings.cleanup_interval_seconds),
        },
    },
)
