import logging
from datetime import timedelta

from fastapi import HTTPException, Request
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from portal.config import settings
from portal.models.auth import RateLimitAttempt
from portal.services.common import utcnow

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=1)

ADMIN_LOGIN = "admin_login"
UPLOADER_LOGIN = "uploader_login"
CREATE_SUBMISSION = "create_submission"


def resolve_client_ip(
    request: Request, trusted_proxies: tuple[str, ...] | None = None
) -> str:
    """Return the caller's address.

    Forwarding headers are only honoured when the direct peer matches one of
    the trusted proxy prefixes.
    """
    if trusted_proxies is None:
        trusted_proxies = settings.trusted_proxies
    peer = request.client.host if request.client else None
    if peer and any(peer.startswith(prefix) for prefix in trusted_proxies):
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    return peer or "unknown"


class RateLimits:
    @staticmethod
    def check_allowed(db: Session, ip: str, endpoint: str, max_attempts: int) -> bool:
        count = db.scalar(
            select(func.count())
            .select_from(RateLimitAttempt)
            .where(RateLimitAttempt.ip_address == ip)
            .where(RateLimitAttempt.endpoint == endpoint)
            .where(RateLimitAttempt.attempted_at > utcnow() - WINDOW)
        )
        return (count or 0) < max_attempts

    @staticmethod
    def record_attempt(db: Session, ip: str, endpoint: str) -> None:
        db.add(RateLimitAttempt(ip_address=ip, endpoint=endpoint, attempted_at=utcnow()))
        db.commit()

    @staticmethod
    def enforce(db: Session, ip: str, endpoint: str, max_attempts: int) -> None:
        """Reject with 429 once the window is full, otherwise count this attempt."""
        if not RateLimits.check_allowed(db, ip, endpoint, max_attempts):
            logger.warning("Rate limit hit for %s on %s", ip, endpoint)
            raise HTTPException(
                status_code=429,
                detail="Too many attempts. Please try again later.",
            )
        RateLimits.record_attempt(db, ip, endpoint)

    @staticmethod
    def prune(db: Session) -> int:
        stmt = delete(RateLimitAttempt).where(
            RateLimitAttempt.attempted_at <= utcnow() - WINDOW
        )
        result = db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()
        return result.rowcount or 0


rate_limits = RateLimits()
