import logging
from abc import ABC, abstractmethod
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portal.config import settings
from portal.models.auth import AdminUser
from portal.services.common import utcnow
from portal.services.passwords import (
    DUMMY_HASH,
    PasswordHashError,
    hash_password,
    verify_password,
)
from portal.services.sessions import IssuedSession, admin_sessions

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """How administrators prove who they are.

    Routes only talk to this interface; an SSO-backed provider plugs in by
    implementing both methods and registering under a new name in
    ``_PROVIDERS``.
    """

    name: str

    @abstractmethod
    def authenticate(
        self, db: Session, username: str, password: str
    ) -> AdminUser | None:
        ...

    @abstractmethod
    def validate(self, db: Session, token: str | None) -> AdminUser | None:
        ...

    def start_session(
        self,
        db: Session,
        admin_user: AdminUser,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedSession:
        issued = admin_sessions.issue(
            db,
            admin_user,
            timedelta(hours=settings.admin_session_hours),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        admin_user.last_login_at = utcnow()
        db.commit()
        return issued

    def end_session(self, db: Session, token: str | None) -> None:
        admin_sessions.revoke(db, token)


class LocalPasswordProvider(AuthProvider):
    name = "local"

    def authenticate(
        self, db: Session, username: str, password: str
    ) -> AdminUser | None:
        admin_user = db.scalar(
            select(AdminUser).where(
                func.lower(AdminUser.username) == username.strip().lower()
            )
        )
        try:
            if admin_user is None:
                verify_password(password, DUMMY_HASH)
                return None
            if not verify_password(password, admin_user.password_hash):
                return None
        except PasswordHashError:
            logger.error("Password hash for admin %s is unreadable", username)
            raise HTTPException(status_code=500, detail="Authentication error")
        if not admin_user.is_active:
            return None
        return admin_user

    def validate(self, db: Session, token: str | None) -> AdminUser | None:
        return admin_sessions.validate(db, token)


_PROVIDERS: dict[str, type[AuthProvider]] = {
    LocalPasswordProvider.name: LocalPasswordProvider,
}


def get_auth_provider(name: str | None = None) -> AuthProvider:
    name = name or settings.auth_provider
    try:
        return _PROVIDERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown AUTH_PROVIDER {name!r}. Available: {', '.join(sorted(_PROVIDERS))}"
        )


def seed_admin_user(
    db: Session,
    username: str,
    password: str,
    email: str,
    display_name: str | None = None,
) -> AdminUser | None:
    """Create the bootstrap admin unless an account with that username exists."""
    if not username or not password or not email:
        return None
    existing = db.scalar(
        select(AdminUser).where(func.lower(AdminUser.username) == username.lower())
    )
    if existing:
        return existing
    admin_user = AdminUser(
        username=username,
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
    )
    db.add(admin_user)
    db.commit()
    db.refresh(admin_user)
    logger.info("Seeded admin user %s", username)
    return admin_user
