import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from portal.models.auth import AdminSession, AdminUser, UploaderSession
from portal.models.submission import Submission
from portal.services.common import utcnow

logger = logging.getLogger(__name__)

ADMIN_COOKIE_NAME = "rr_admin_session"
UPLOADER_COOKIE_NAME = "rr_uploader_session"


def generate_session_token() -> str:
    """256 random bits, hex encoded."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class UploaderIdentity:
    submission: Submission
    email: str
    expires_at: datetime


# ---------------------------------------------------------------------------
# Admin sessions
# ---------------------------------------------------------------------------


class AdminSessions:
    @staticmethod
    def issue(
        db: Session,
        admin_user: AdminUser,
        ttl: timedelta,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedSession:
        token = generate_session_token()
        expires_at = utcnow() + ttl
        db.add(
            AdminSession(
                admin_user_id=admin_user.id,
                token_hash=hash_token(token),
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:512] or None,
            )
        )
        db.commit()
        return IssuedSession(token=token, expires_at=expires_at)

    @staticmethod
    def validate(db: Session, token: str | None) -> AdminUser | None:
        if not token:
            return None
        stmt = (
            select(AdminUser)
            .join(AdminSession, AdminSession.admin_user_id == AdminUser.id)
            .where(AdminSession.token_hash == hash_token(token))
            .where(AdminSession.expires_at > utcnow())
            .where(AdminUser.is_active.is_(True))
        )
        return db.scalar(stmt)

    @staticmethod
    def revoke(db: Session, token: str | None) -> None:
        if not token:
            return
        stmt = delete(AdminSession).where(AdminSession.token_hash == hash_token(token))
        db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()

    @staticmethod
    def purge_expired(db: Session) -> int:
        stmt = delete(AdminSession).where(AdminSession.expires_at <= utcnow())
        result = db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Uploader sessions
# ---------------------------------------------------------------------------


class UploaderSessions:
    @staticmethod
    def issue(
        db: Session,
        submission: Submission,
        email: str,
        ttl: timedelta,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedSession:
        token = generate_session_token()
        expires_at = utcnow() + ttl
        db.add(
            UploaderSession(
                submission_id=submission.id,
                email=email,
                token_hash=hash_token(token),
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:512] or None,
            )
        )
        db.commit()
        return IssuedSession(token=token, expires_at=expires_at)

    @staticmethod
    def validate(db: Session, token: str | None) -> UploaderIdentity | None:
        if not token:
            return None
        row = db.execute(
            select(Submission, UploaderSession.email, UploaderSession.expires_at)
            .join(UploaderSession, UploaderSession.submission_id == Submission.id)
            .where(UploaderSession.token_hash == hash_token(token))
            .where(UploaderSession.expires_at > utcnow())
        ).first()
        if row is None:
            return None
        submission, email, expires_at = row
        return UploaderIdentity(submission=submission, email=email, expires_at=expires_at)

    @staticmethod
    def revoke(db: Session, token: str | None) -> None:
        if not token:
            return
        stmt = delete(UploaderSession).where(
            UploaderSession.token_hash == hash_token(token)
        )
        db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()

    @staticmethod
    def purge_expired(db: Session) -> int:
        stmt = delete(UploaderSession).where(UploaderSession.expires_at <= utcnow())
        result = db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()
        return result.rowcount or 0


admin_sessions = AdminSessions()
uploader_sessions = UploaderSessions()
