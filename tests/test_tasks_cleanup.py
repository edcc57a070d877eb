from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from portal.models.auth import AdminSession, RateLimitAttempt, UploaderSession
from portal.models.submission import Submission
from portal.services.sessions import hash_token
from tests.factories import make_submission


def _run(db_session):
    with patch("portal.db.SessionLocal", return_value=db_session):
        with patch.object(db_session, "close"):
            from portal.tasks.cleanup import run_cleanup

            return run_cleanup()


class TestRunCleanup:
    def _seed(self, db_session, admin_user):
        now = datetime.now(timezone.utc)
        db_session.add_all(
            [
                RateLimitAttempt(
                    ip_address="198.51.100.7",
                    endpoint="admin_login",
                    attempted_at=now - timedelta(hours=2),
                ),
                RateLimitAttempt(
                    ip_address="198.51.100.7", endpoint="admin_login", attempted_at=now
                ),
                AdminSession(
                    admin_user_id=admin_user.id,
                    token_hash=hash_token("expired-admin"),
                    expires_at=now - timedelta(minutes=1),
                ),
                AdminSession(
                    admin_user_id=admin_user.id,
                    token_hash=hash_token("live-admin"),
                    expires_at=now + timedelta(hours=1),
                ),
            ]
        )
        db_session.commit()
        kept = make_submission(db_session)
        old = make_submission(db_session)
        old.created_at = now - timedelta(hours=2)
        db_session.add(
            UploaderSession(
                submission_id=kept.id,
                email="jan@gemeente-x.nl",
                token_hash=hash_token("expired-uploader"),
                expires_at=now - timedelta(minutes=1),
            )
        )
        db_session.commit()
        return kept

    def test_removes_expired_records(self, db_session, admin_user):
        kept = self._seed(db_session, admin_user)
        kept_id = kept.id

        results = _run(db_session)

        assert results == {
            "rate_limit_attempts": 1,
            "admin_sessions": 1,
            "uploader_sessions": 1,
            "abandoned_drafts": 1,
        }
        db_session.expunge_all()
        assert db_session.query(RateLimitAttempt).count() == 1
        assert [s.token_hash for s in db_session.query(AdminSession)] == [
            hash_token("live-admin")
        ]
        assert db_session.query(UploaderSession).count() == 0
        assert [s.id for s in db_session.query(Submission)] == [kept_id]

    def test_nothing_to_clean(self, db_session):
        assert _run(db_session) == {
            "rate_limit_attempts": 0,
            "admin_sessions": 0,
            "uploader_sessions": 0,
            "abandoned_drafts": 0,
        }

    def test_failing_step_does_not_stop_others(self, db_session, admin_user):
        self._seed(db_session, admin_user)
        with patch(
            "portal.services.rate_limit.RateLimits.prune",
            side_effect=SQLAlchemyError("locked"),
        ):
            results = _run(db_session)

        assert results["rate_limit_attempts"] == -1
        assert results["admin_sessions"] == 1
        assert results["abandoned_drafts"] == 1
        assert db_session.query(RateLimitAttempt).count() == 2


class TestCeleryTask:
    def test_task_runs_cleanup(self):
        with patch("portal.tasks.cleanup.run_cleanup") as run_cleanup:
            from portal.tasks.cleanup import cleanup_expired_records

            cleanup_expired_records()

        run_cleanup.assert_called_once_with()

    def test_task_swallows_errors(self):
        with patch("portal.tasks.cleanup.run_cleanup", side_effect=RuntimeError("down")):
            from portal.tasks.cleanup import cleanup_expired_records

            assert cleanup_expired_records() is None

    def test_beat_schedule(self):
        from portal.celery_app import celery_app

        entry = celery_app.conf.beat_schedule["cleanup-expired-records"]
        assert entry["task"] == "portal.tasks.cleanup.cleanup_expired_records"
        assert entry["schedule"] == 3600.0
