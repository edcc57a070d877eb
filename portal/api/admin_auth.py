import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from portal.api.deps import (
    clear_session_cookie,
    client_ip,
    get_db,
    get_provider,
    require_admin,
    set_session_cookie,
)
from portal.config import settings
from portal.models.audit import AuditAction, AuditActorType
from portal.models.auth import AdminUser
from portal.schemas.auth import AdminLoginRequest, AdminUserRead
from portal.schemas.common import ApiResponse, MessageData
from portal.services.audit import audit_log
from portal.services.auth_provider import AuthProvider
from portal.services.rate_limit import ADMIN_LOGIN, rate_limits
from portal.services.response import ok
from portal.services.sessions import ADMIN_COOKIE_NAME

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-auth"])


@router.post("/login", response_model=ApiResponse[AdminUserRead])
def admin_login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    provider: AuthProvider = Depends(get_provider),
    ip: str = Depends(client_ip),
):
    rate_limits.enforce(db, ip, ADMIN_LOGIN, settings.login_rate_limit)
    admin_user = provider.authenticate(db, payload.username, payload.password)
    if admin_user is None:
        logger.warning("Failed admin login for %r from %s", payload.username, ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    issued = provider.start_session(
        db, admin_user, ip_address=ip, user_agent=request.headers.get("user-agent")
    )
    set_session_cookie(
        response, ADMIN_COOKIE_NAME, issued.token, settings.admin_session_hours * 3600
    )
    logger.info("Admin %s logged in", admin_user.username)
    audit_log.record(
        db,
        AuditAction.admin_login,
        "admin_user",
        admin_user.id,
        actor_type=AuditActorType.admin,
        actor_id=admin_user.id,
        actor_ip=ip,
    )
    return ok(AdminUserRead.model_validate(admin_user))


@router.post("/logout", response_model=ApiResponse[MessageData])
def admin_logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    provider: AuthProvider = Depends(get_provider),
    ip: str = Depends(client_ip),
):
    token = request.cookies.get(ADMIN_COOKIE_NAME)
    admin_user = provider.validate(db, token)
    provider.end_session(db, token)
    clear_session_cookie(response, ADMIN_COOKIE_NAME)
    if admin_user is not None:
        audit_log.record(
            db,
            AuditAction.admin_logout,
            "admin_user",
            admin_user.id,
            actor_type=AuditActorType.admin,
            actor_id=admin_user.id,
            actor_ip=ip,
        )
    return ok(MessageData(message="Logged out"))


@router.get("/me", response_model=ApiResponse[AdminUserRead])
def get_current_admin(admin_user: AdminUser = Depends(require_admin)):
    return ok(AdminUserRead.model_validate(admin_user))
