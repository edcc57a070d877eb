from collections.abc import Generator

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from portal.config import settings
from portal.db import SessionLocal
from portal.models.auth import AdminUser
from portal.services.auth_provider import AuthProvider, get_auth_provider
from portal.services.rate_limit import resolve_client_ip
from portal.services.sessions import (
    ADMIN_COOKIE_NAME,
    UPLOADER_COOKIE_NAME,
    UploaderIdentity,
    uploader_sessions,
)
from portal.services.storage import LocalStorage


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_storage(request: Request) -> LocalStorage:
    storage = getattr(request.app.state, "storage", None)
    return storage or LocalStorage(settings.upload_dir)


def get_provider(request: Request) -> AuthProvider:
    provider = getattr(request.app.state, "auth_provider", None)
    return provider or get_auth_provider()


def client_ip(request: Request) -> str:
    return resolve_client_ip(request)


# ------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------


def require_admin(
    request: Request,
    db: Session = Depends(get_db),
    provider: AuthProvider = Depends(get_provider),
) -> AdminUser:
    admin_user = provider.validate(db, request.cookies.get(ADMIN_COOKIE_NAME))
    if admin_user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return admin_user


def optional_uploader(
    request: Request, db: Session = Depends(get_db)
) -> UploaderIdentity | None:
    return uploader_sessions.validate(db, request.cookies.get(UPLOADER_COOKIE_NAME))


def require_uploader(
    uploader: UploaderIdentity | None = Depends(optional_uploader),
) -> UploaderIdentity:
    if uploader is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return uploader


def set_session_cookie(response: Response, name: str, token: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response, name: str) -> None:
    set_session_cookie(response, name, "", 0)
