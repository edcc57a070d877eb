import logging
from datetime import timedelta

from portal.celery_app import celery_app
from portal.config import settings

logger = logging.getLogger(__name__)


def run_cleanup() -> dict[str, int]:
    """Prune rate-limit rows, expired sessions and abandoned drafts.

    Each step runs on its own; a failing step is logged and the rest still run.
    """
    from portal.db import SessionLocal
    from portal.services.rate_limit import rate_limits
    from portal.services.sessions import admin_sessions, uploader_sessions
    from portal.services.storage import LocalStorage
    from portal.services.submissions import submissions

    storage = LocalStorage(settings.upload_dir)
    max_age = timedelta(minutes=settings.draft_max_age_minutes)
    steps = {
        "rate_limit_attempts": rate_limits.prune,
        "admin_sessions": admin_sessions.purge_expired,
        "uploader_sessions": uploader_sessions.purge_expired,
        "abandoned_drafts": lambda db: len(
            submissions.sweep_abandoned_drafts(db, storage, max_age)
        ),
    }

    results: dict[str, int] = {}
    db = SessionLocal()
    try:
        for name, step in steps.items():
            try:
                results[name] = step(db)
            except Exception as e:
                db.rollback()
                logger.warning("Cleanup step %s failed: %s", name, e)
                results[name] = -1
        logger.info("Cleanup finished: %s", results)
    finally:
        db.close()
    return results


@celery_app.task(name="portal.tasks.cleanup.cleanup_expired_records", ignore_result=True)
def cleanup_expired_records() -> None:
    try:
        run_cleanup()
    except Exception as e:
        logger.exception("Cleanup run failed: %s", e)
