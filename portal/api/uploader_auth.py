import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from portal.api.deps import (
    clear_session_cookie,
    client_ip,
    get_db,
    require_uploader,
    set_session_cookie,
)
from portal.config import settings
from portal.models.audit import AuditAction, AuditActorType
from portal.models.submission import Submission
from portal.schemas.auth import UploaderLoginRequest, UploaderSessionRead
from portal.schemas.common import ApiResponse, MessageData
from portal.schemas.submission import DocumentRead
from portal.services.audit import audit_log
from portal.services.rate_limit import UPLOADER_LOGIN, rate_limits
from portal.services.response import ok
from portal.services.sessions import (
    UPLOADER_COOKIE_NAME,
    UploaderIdentity,
    uploader_sessions,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploader", tags=["uploader-auth"])


def _session_view(submission: Submission, expires_at) -> UploaderSessionRead:
    return UploaderSessionRead(
        submission_id=submission.id,
        slug=submission.slug,
        status=submission.status,
        documents=[DocumentRead.model_validate(doc) for doc in submission.documents],
        session_expires_at=expires_at,
    )


@router.post("/login", response_model=ApiResponse[UploaderSessionRead])
def uploader_login(
    payload: UploaderLoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    ip: str = Depends(client_ip),
):
    rate_limits.enforce(db, ip, UPLOADER_LOGIN, settings.login_rate_limit)
    slug = payload.slug.strip().lower()
    email = payload.email.strip().lower()
    if not slug or not email:
        raise HTTPException(status_code=400, detail="Reference and email are required")

    submission = db.scalar(
        select(Submission)
        .options(selectinload(Submission.documents))
        .where(func.lower(Submission.slug) == slug)
        .where(func.lower(Submission.submitter_email) == email)
    )
    if submission is None:
        logger.warning("Failed uploader login for %r from %s", slug, ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    issued = uploader_sessions.issue(
        db,
        submission,
        email,
        timedelta(hours=settings.uploader_session_hours),
        ip_address=ip,
        user_agent=request.headers.get("user-agent"),
    )
    set_session_cookie(
        response,
        UPLOADER_COOKIE_NAME,
        issued.token,
        settings.uploader_session_hours * 3600,
    )
    logger.info("Uploader logged in to submission %s", submission.slug)
    audit_log.record(
        db,
        AuditAction.uploader_login,
        "submission",
        submission.id,
        actor_type=AuditActorType.uploader,
        actor_ip=ip,
        details={"email": email},
    )
    return ok(_session_view(submission, issued.expires_at))


@router.post("/logout", response_model=ApiResponse[MessageData])
def uploader_logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    ip: str = Depends(client_ip),
):
    token = request.cookies.get(UPLOADER_COOKIE_NAME)
    identity = uploader_sessions.validate(db, token)
    uploader_sessions.revoke(db, token)
    clear_session_cookie(response, UPLOADER_COOKIE_NAME)
    if identity is not None:
        audit_log.record(
            db,
            AuditAction.uploader_logout,
            "submission",
            identity.submission.id,
            actor_type=AuditActorType.uploader,
            actor_ip=ip,
        )
    return ok(MessageData(message="Logged out"))


@router.get("/me", response_model=ApiResponse[UploaderSessionRead])
def get_current_uploader(uploader: UploaderIdentity = Depends(require_uploader)):
    return ok(_session_view(uploader.submission, uploader.expires_at))
