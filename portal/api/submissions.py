from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from portal.api.deps import client_ip, get_db, get_storage, optional_uploader
from portal.config import settings
from portal.models.submission import DocumentCategory, DocumentClassification
from portal.schemas.common import ApiResponse, MessageData
from portal.schemas.submission import (
    DocumentRead,
    FormalLawCreate,
    SubmissionCreate,
    SubmissionDetail,
    SubmissionUpdate,
)
from portal.services.documents import authorize_document_change, documents
from portal.services.rate_limit import CREATE_SUBMISSION, rate_limits
from portal.services.response import ok
from portal.services.sessions import UploaderIdentity
from portal.services.storage import LocalStorage
from portal.services.submissions import submissions

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


# ------------------------------------------------------------------
# Dossier
# ------------------------------------------------------------------


@router.post(
    "",
    response_model=ApiResponse[SubmissionDetail],
    status_code=status.HTTP_201_CREATED,
)
def create_submission(
    payload: SubmissionCreate,
    db: Session = Depends(get_db),
    ip: str = Depends(client_ip),
):
    rate_limits.enforce(db, ip, CREATE_SUBMISSION, settings.submission_rate_limit)
    submission = submissions.create(db, payload, actor_ip=ip)
    return ok(SubmissionDetail.model_validate(submission))


@router.get("/{slug}", response_model=ApiResponse[SubmissionDetail])
def get_submission(slug: str, db: Session = Depends(get_db)):
    return ok(SubmissionDetail.model_validate(submissions.get_by_slug(db, slug)))


@router.put("/{slug}", response_model=ApiResponse[SubmissionDetail])
def update_submission(
    slug: str,
    payload: SubmissionUpdate,
    db: Session = Depends(get_db),
    ip: str = Depends(client_ip),
):
    submission = submissions.update(db, slug, payload, actor_ip=ip)
    return ok(SubmissionDetail.model_validate(submission))


@router.post("/{slug}/submit", response_model=ApiResponse[SubmissionDetail])
def submit_submission(
    slug: str, db: Session = Depends(get_db), ip: str = Depends(client_ip)
):
    return ok(SubmissionDetail.model_validate(submissions.submit(db, slug, actor_ip=ip)))


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------


@router.post(
    "/{slug}/documents",
    response_model=ApiResponse[DocumentRead],
    status_code=status.HTTP_201_CREATED,
)
def upload_document(
    slug: str,
    category: DocumentCategory = Query(...),
    classification: DocumentClassification = Query(...),
    description: str | None = Query(default=None, max_length=2000),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    uploader: UploaderIdentity | None = Depends(optional_uploader),
    ip: str = Depends(client_ip),
):
    submission = submissions.get_by_slug(db, slug)
    actor_type = authorize_document_change(submission, uploader)
    content = file.file.read(settings.max_upload_size + 1)
    if len(content) > settings.max_upload_size:
        raise HTTPException(
            status_code=400,
            detail=(
                "File too large. Maximum size: "
                f"{settings.max_upload_size // 1024 // 1024}MB"
            ),
        )
    document = documents.upload(
        db,
        storage,
        submission,
        category,
        classification,
        filename=file.filename or "",
        content_type=file.content_type,
        content=content,
        max_size=settings.max_upload_size,
        description=description,
        actor_type=actor_type,
        actor_ip=ip,
    )
    return ok(DocumentRead.model_validate(document))


@router.post(
    "/{slug}/formal-law",
    response_model=ApiResponse[DocumentRead],
    status_code=status.HTTP_201_CREATED,
)
def add_formal_law(
    slug: str,
    payload: FormalLawCreate,
    db: Session = Depends(get_db),
    uploader: UploaderIdentity | None = Depends(optional_uploader),
    ip: str = Depends(client_ip),
):
    submission = submissions.get_by_slug(db, slug)
    actor_type = authorize_document_change(submission, uploader)
    document = documents.add_formal_law(
        db,
        submission,
        payload.url,
        title=payload.title,
        description=payload.description,
        actor_type=actor_type,
        actor_ip=ip,
    )
    return ok(DocumentRead.model_validate(document))


@router.delete("/{slug}/documents/{document_id}", response_model=ApiResponse[MessageData])
def delete_document(
    slug: str,
    document_id: str,
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    uploader: UploaderIdentity | None = Depends(optional_uploader),
    ip: str = Depends(client_ip),
):
    submission = submissions.get_by_slug(db, slug)
    actor_type = authorize_document_change(submission, uploader)
    documents.delete(
        db, storage, submission, document_id, actor_type=actor_type, actor_ip=ip
    )
    return ok(MessageData(message="Document deleted"))
