import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.models.audit import AuditAction, AuditActorType
from portal.models.submission import (
    Document,
    DocumentCategory,
    DocumentClassification,
    Submission,
    SubmissionStatus,
)
from portal.services.audit import audit_log
from portal.services.common import coerce_uuid
from portal.services.sessions import UploaderIdentity
from portal.services.storage import LocalStorage
from portal.services.validation import (
    validate_classification,
    validate_external_url,
    validate_upload,
)

logger = logging.getLogger(__name__)


def authorize_document_change(
    submission: Submission, uploader: UploaderIdentity | None
) -> AuditActorType:
    """Drafts are open to anyone holding the slug; later changes need a session.

    Returns the actor type to record in the audit log.
    """
    if submission.status == SubmissionStatus.draft:
        return AuditActorType.applicant
    if uploader is None or uploader.submission.id != submission.id:
        raise HTTPException(
            status_code=401,
            detail="Please log in to modify documents of a submitted dossier",
        )
    return AuditActorType.uploader


class Documents:
    @staticmethod
    def upload(
        db: Session,
        storage: LocalStorage,
        submission: Submission,
        category: DocumentCategory,
        classification: DocumentClassification,
        filename: str,
        content_type: str | None,
        content: bytes,
        max_size: int,
        description: str | None = None,
        actor_type: AuditActorType = AuditActorType.applicant,
        actor_ip: str | None = None,
    ) -> Document:
        validate_classification(classification)
        if category == DocumentCategory.formal_law:
            raise HTTPException(
                status_code=400,
                detail="Formal laws must be added as a link, not uploaded",
            )
        if not filename:
            raise HTTPException(status_code=400, detail="Filename is required")
        validate_upload(filename, content_type, len(content), max_size)

        stored_filename, path = storage.save(submission.slug, filename, content)
        document = Document(
            submission_id=submission.id,
            category=category,
            classification=classification,
            filename=stored_filename,
            original_filename=filename,
            file_path=str(path),
            file_size=len(content),
            mime_type=(content_type or "").split(";")[0].strip().lower(),
            description=description,
        )
        try:
            db.add(document)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            storage.remove_file(path)
            logger.exception("Failed to record upload for submission %s", submission.slug)
            raise HTTPException(status_code=500, detail="Failed to save document")
        db.refresh(document)
        logger.info("Uploaded document %s to submission %s", document.id, submission.slug)
        audit_log.record(
            db,
            AuditAction.document_uploaded,
            "document",
            document.id,
            actor_type=actor_type,
            actor_ip=actor_ip,
            details={
                "submission_id": str(submission.id),
                "filename": filename,
                "category": category.value,
                "classification": classification.value,
                "file_size": len(content),
            },
        )
        return document

    @staticmethod
    def add_formal_law(
        db: Session,
        submission: Submission,
        url: str,
        title: str | None = None,
        description: str | None = None,
        actor_type: AuditActorType = AuditActorType.applicant,
        actor_ip: str | None = None,
    ) -> Document:
        url = validate_external_url(url)
        document = Document(
            submission_id=submission.id,
            category=DocumentCategory.formal_law,
            classification=DocumentClassification.public,
            external_url=url,
            external_title=(title or "").strip() or None,
            description=description,
        )
        db.add(document)
        db.commit()
        db.refresh(document)
        logger.info("Added formal law link %s to submission %s", document.id, submission.slug)
        audit_log.record(
            db,
            AuditAction.document_uploaded,
            "document",
            document.id,
            actor_type=actor_type,
            actor_ip=actor_ip,
            details={
                "submission_id": str(submission.id),
                "category": DocumentCategory.formal_law.value,
                "external_url": url,
            },
        )
        return document

    @staticmethod
    def delete(
        db: Session,
        storage: LocalStorage,
        submission: Submission,
        document_id: str,
        actor_type: AuditActorType = AuditActorType.applicant,
        actor_ip: str | None = None,
    ) -> None:
        document = db.scalar(
            select(Document)
            .where(Document.id == coerce_uuid(document_id))
            .where(Document.submission_id == submission.id)
        )
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        doc_id = document.id
        file_path = document.file_path
        label = document.original_filename or document.external_url
        db.delete(document)
        db.commit()
        storage.remove_file(file_path)
        logger.info("Deleted document %s from submission %s", doc_id, submission.slug)
        audit_log.record(
            db,
            AuditAction.document_deleted,
            "document",
            doc_id,
            actor_type=actor_type,
            actor_ip=actor_ip,
            details={"submission_id": str(submission.id), "document": label},
        )


documents = Documents()
