from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portal.api.deps import client_ip, get_db, get_storage, require_admin
from portal.models.audit import AuditAction
from portal.models.auth import AdminUser
from portal.models.submission import SubmissionStatus
from portal.schemas.audit import AuditLogRead
from portal.schemas.calendar import (
    CalendarSlotAdminRead,
    CalendarSlotBatchCreate,
    as_utc,
)
from portal.schemas.common import ApiResponse, MessageData, PaginatedData
from portal.schemas.submission import (
    DashboardStats,
    ForwardRequest,
    StatusUpdate,
    SubmissionDetail,
)
from portal.services.audit import audit_log
from portal.services.calendar import calendar
from portal.services.export import exports
from portal.services.response import ok
from portal.services.storage import LocalStorage
from portal.services.submissions import submissions

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _page(result: dict, schema) -> PaginatedData:
    return PaginatedData(
        items=[schema.model_validate(item) for item in result["items"]],
        total=result["total"],
        page=result["page"],
        per_page=result["per_page"],
        total_pages=result["total_pages"],
    )


# ------------------------------------------------------------------
# Submissions
# ------------------------------------------------------------------


@router.get("/submissions", response_model=ApiResponse[PaginatedData[SubmissionDetail]])
def list_submissions(
    page: int = Query(default=1),
    per_page: int = Query(default=20),
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
):
    result = submissions.list_submissions(db, page, per_page, status_filter, search)
    return ok(_page(result, SubmissionDetail))


@router.get("/submissions/{submission_id}", response_model=ApiResponse[SubmissionDetail])
def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
):
    return ok(SubmissionDetail.model_validate(submissions.get(db, submission_id)))


@router.put(
    "/submissions/{submission_id}/status",
    response_model=ApiResponse[SubmissionDetail],
)
def update_submission_status(
    submission_id: str,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    submission = submissions.set_status(
        db, submission_id, payload.status, payload.notes, admin.id, actor_ip=ip
    )
    return ok(SubmissionDetail.model_validate(submission))


@router.post(
    "/submissions/{submission_id}/forward",
    response_model=ApiResponse[SubmissionDetail],
)
def forward_submission(
    submission_id: str,
    payload: ForwardRequest,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    submission = submissions.forward(
        db, submission_id, payload.forward_to, payload.notes, admin.id, actor_ip=ip
    )
    return ok(SubmissionDetail.model_validate(submission))


@router.delete("/submissions/{submission_id}", response_model=ApiResponse[MessageData])
def delete_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    submissions.delete(db, storage, submission_id, admin.id, actor_ip=ip)
    return ok(MessageData(message="Submission deleted"))


@router.get("/submissions/{submission_id}/export")
def export_submission_json(
    submission_id: str,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    filename, payload = exports.to_json(db, submission_id, admin.id, actor_ip=ip)
    return JSONResponse(
        content=ok(payload),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/submissions/{submission_id}/export/files")
def export_submission_files(
    submission_id: str,
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    filename, archive = exports.to_zip(db, storage, submission_id, admin.id, actor_ip=ip)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/dashboard", response_model=ApiResponse[DashboardStats])
def get_dashboard_stats(
    db: Session = Depends(get_db), admin: AdminUser = Depends(require_admin)
):
    return ok(DashboardStats(**submissions.dashboard(db)))


@router.get("/audit-log", response_model=ApiResponse[PaginatedData[AuditLogRead]])
def list_audit_log(
    page: int = Query(default=1),
    per_page: int = Query(default=50),
    entity_type: str | None = Query(default=None, max_length=50),
    entity_id: str | None = None,
    action: AuditAction | None = None,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
):
    result = audit_log.list_entries(db, page, per_page, entity_type, entity_id, action)
    return ok(_page(result, AuditLogRead))


# ------------------------------------------------------------------
# Calendar slots
# ------------------------------------------------------------------


@router.get(
    "/calendar/slots", response_model=ApiResponse[list[CalendarSlotAdminRead]]
)
def list_slots(
    from_: datetime | None = Query(default=None, alias="from"),
    to: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
):
    slots = calendar.list_all(
        db, as_utc(from_) if from_ else None, as_utc(to) if to else None
    )
    return ok([CalendarSlotAdminRead.model_validate(slot) for slot in slots])


@router.post(
    "/calendar/slots",
    response_model=ApiResponse[list[CalendarSlotAdminRead]],
    status_code=status.HTTP_201_CREATED,
)
def create_slots(
    payload: CalendarSlotBatchCreate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    slots = calendar.create_slots(db, payload.slots, admin.id, actor_ip=ip)
    return ok([CalendarSlotAdminRead.model_validate(slot) for slot in slots])


@router.delete("/calendar/slots/{slot_id}", response_model=ApiResponse[MessageData])
def delete_slot(
    slot_id: str,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin),
    ip: str = Depends(client_ip),
):
    calendar.delete_slot(db, slot_id, admin.id, actor_ip=ip)
    return ok(MessageData(message="Slot deleted"))
