import logging
import secrets
import string
from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from portal.config import settings
from portal.models.audit import AuditAction, AuditActorType
from portal.models.submission import (
    FORWARDABLE_STATUSES,
    CalendarSlot,
    Document,
    Submission,
    SubmissionStatus,
)
from portal.schemas.submission import SubmissionCreate, SubmissionUpdate
from portal.services.audit import audit_log
from portal.services.common import add_months, coerce_uuid, paginate, utcnow
from portal.services.storage import LocalStorage
from portal.services.validation import (
    clean_email,
    clean_optional,
    clean_required,
    validate_slug,
)

logger = logging.getLogger(__name__)

SLUG_ALPHABET = string.ascii_lowercase + string.digits
SLUG_RANDOM_LENGTH = 8
SLUG_ATTEMPTS = 5


def generate_slug(now: datetime | None = None, prefix: str | None = None) -> str:
    now = now or utcnow()
    prefix = prefix or settings.slug_prefix
    suffix = "".join(secrets.choice(SLUG_ALPHABET) for _ in range(SLUG_RANDOM_LENGTH))
    return f"{prefix}-{now:%Y%m%d}-{suffix}"


def release_orphaned_slots(db: Session) -> int:
    """Free slots whose booking submission has gone away."""
    stmt = (
        update(CalendarSlot)
        .where(CalendarSlot.booked_by_submission.is_(None))
        .where(CalendarSlot.is_available.is_(False))
        .values(is_available=True)
    )
    result = db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount or 0


class Submissions:
    # ------------------------------------------------------------------
    # Applicant operations
    # ------------------------------------------------------------------

    @staticmethod
    def create(
        db: Session, payload: SubmissionCreate, actor_ip: str | None = None
    ) -> Submission:
        fields = dict(
            submitter_name=clean_required(payload.submitter_name, "Name"),
            submitter_email=clean_email(payload.submitter_email),
            organization=clean_required(payload.organization, "Organization"),
            organization_department=clean_optional(
                payload.organization_department, "Department"
            ),
            notes=payload.notes,
        )
        now = utcnow()
        for attempt in range(1, SLUG_ATTEMPTS + 1):
            slug = generate_slug(now)
            if db.scalar(select(exists().where(Submission.slug == slug))):
                continue
            submission = Submission(
                slug=slug,
                status=SubmissionStatus.draft,
                created_at=now,
                updated_at=now,
                retention_expiry_date=add_months(now, settings.retention_months),
                **fields,
            )
            db.add(submission)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning("Slug collision on %s (attempt %d)", slug, attempt)
                continue
            db.refresh(submission)
            logger.info("Created submission %s", submission.slug)
            audit_log.record(
                db,
                AuditAction.submission_created,
                "submission",
                submission.id,
                actor_type=AuditActorType.applicant,
                actor_ip=actor_ip,
                details={"slug": submission.slug, "organization": submission.organization},
            )
            return submission
        logger.error("Could not generate a unique slug after %d attempts", SLUG_ATTEMPTS)
        raise HTTPException(status_code=500, detail="Could not create submission")

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Submission:
        validate_slug(slug)
        submission = db.scalar(
            select(Submission)
            .options(selectinload(Submission.documents), selectinload(Submission.booked_slot))
            .where(Submission.slug == slug)
        )
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        return submission

    @staticmethod
    def update(
        db: Session,
        slug: str,
        payload: SubmissionUpdate,
        actor_ip: str | None = None,
    ) -> Submission:
        """Apply applicant edits; only a draft can change.

        A non-draft is refused with 409 before any field is looked at.
        """
        validate_slug(slug)
        status = db.scalar(select(Submission.status).where(Submission.slug == slug))
        if status is None:
            raise HTTPException(status_code=404, detail="Submission not found")
        if status != SubmissionStatus.draft:
            raise HTTPException(
                status_code=409, detail="Submission can only be edited while in draft"
            )
        values = {}
        provided = payload.model_fields_set
        if "submitter_name" in provided:
            values["submitter_name"] = clean_required(payload.submitter_name, "Name")
        if "organization" in provided:
            values["organization"] = clean_required(payload.organization, "Organization")
        if "submitter_email" in provided:
            values["submitter_email"] = clean_email(payload.submitter_email)
        if "organization_department" in provided:
            values["organization_department"] = clean_optional(
                payload.organization_department, "Department"
            )
        if "notes" in provided:
            values["notes"] = payload.notes
        values["updated_at"] = utcnow()

        stmt = (
            update(Submission)
            .where(Submission.slug == slug)
            .where(Submission.status == SubmissionStatus.draft)
            .values(**values)
            .returning(Submission.id)
        )
        submission_id = db.scalar(stmt.execution_options(synchronize_session=False))
        if submission_id is None:
            db.rollback()
            Submissions._raise_missing_or_conflict(
                db, slug, "Submission can only be edited while in draft"
            )
        db.commit()
        logger.info("Updated submission %s", slug)
        audit_log.record(
            db,
            AuditAction.submission_updated,
            "submission",
            submission_id,
            actor_type=AuditActorType.applicant,
            actor_ip=actor_ip,
            details={"fields": sorted(k for k in values if k != "updated_at")},
        )
        return Submissions._reload(db, submission_id)

    @staticmethod
    def submit(db: Session, slug: str, actor_ip: str | None = None) -> Submission:
        validate_slug(slug)
        now = utcnow()
        stmt = (
            update(Submission)
            .where(Submission.slug == slug)
            .where(Submission.status == SubmissionStatus.draft)
            .values(status=SubmissionStatus.submitted, submitted_at=now, updated_at=now)
            .returning(Submission.id)
        )
        submission_id = db.scalar(stmt.execution_options(synchronize_session=False))
        if submission_id is None:
            db.rollback()
            Submissions._raise_missing_or_conflict(
                db, slug, "Submission has already been submitted"
            )
        db.commit()
        logger.info("Submitted submission %s", slug)
        audit_log.record(
            db,
            AuditAction.submission_submitted,
            "submission",
            submission_id,
            actor_type=AuditActorType.applicant,
            actor_ip=actor_ip,
        )
        return Submissions._reload(db, submission_id)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    @staticmethod
    def get(db: Session, submission_id: str) -> Submission:
        submission = db.scalar(
            select(Submission)
            .options(selectinload(Submission.documents), selectinload(Submission.booked_slot))
            .where(Submission.id == coerce_uuid(submission_id))
        )
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        return submission

    @staticmethod
    def list_submissions(
        db: Session,
        page: int = 1,
        per_page: int = 20,
        status: SubmissionStatus | None = None,
        search: str | None = None,
    ) -> dict:
        stmt = select(Submission).options(
            selectinload(Submission.documents), selectinload(Submission.booked_slot)
        )
        if status:
            stmt = stmt.where(Submission.status == status)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Submission.submitter_name.ilike(pattern),
                    Submission.organization.ilike(pattern),
                    Submission.slug.ilike(pattern),
                )
            )
        stmt = stmt.order_by(Submission.created_at.desc())
        return paginate(db, stmt, page, per_page)

    @staticmethod
    def set_status(
        db: Session,
        submission_id: str,
        new_status: SubmissionStatus,
        notes: str | None,
        admin_id,
        actor_ip: str | None = None,
    ) -> Submission:
        """Overwrite the status from any state.

        This is the manual-correction path: unlike ``submit`` and ``forward``
        there is no source-state guard, and the old and new values are
        written to the audit log instead.
        """
        submission = Submissions.get(db, submission_id)
        old_status = submission.status
        submission.status = new_status
        if notes is not None:
            submission.notes = notes
        if new_status == SubmissionStatus.submitted and submission.submitted_at is None:
            submission.submitted_at = utcnow()
        db.commit()
        db.refresh(submission)
        logger.info(
            "Status of submission %s changed %s -> %s",
            submission.slug,
            old_status.value,
            new_status.value,
        )
        audit_log.record(
            db,
            AuditAction.submission_status_changed,
            "submission",
            submission.id,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
            details={
                "old_status": old_status.value,
                "new_status": new_status.value,
                "notes": notes,
            },
        )
        return submission

    @staticmethod
    def forward(
        db: Session,
        submission_id: str,
        forward_to: str,
        notes: str | None,
        admin_id,
        actor_ip: str | None = None,
    ) -> Submission:
        sub_uuid = coerce_uuid(submission_id)
        values = {"status": SubmissionStatus.forwarded, "updated_at": utcnow()}
        if notes is not None:
            values["notes"] = notes
        stmt = (
            update(Submission)
            .where(Submission.id == sub_uuid)
            .where(Submission.status.in_(FORWARDABLE_STATUSES))
            .values(**values)
            .returning(Submission.id)
        )
        if db.scalar(stmt.execution_options(synchronize_session=False)) is None:
            db.rollback()
            if not db.get(Submission, sub_uuid):
                raise HTTPException(status_code=404, detail="Submission not found")
            raise HTTPException(
                status_code=409,
                detail="Submission cannot be forwarded from its current status",
            )
        db.commit()
        submission = Submissions._reload(db, sub_uuid)
        logger.info("Forwarded submission %s to %s", submission.slug, forward_to)
        audit_log.record(
            db,
            AuditAction.submission_forwarded,
            "submission",
            sub_uuid,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
            details={"forward_to": forward_to, "notes": notes},
        )
        return submission

    @staticmethod
    def delete(
        db: Session,
        storage: LocalStorage,
        submission_id: str,
        admin_id,
        actor_ip: str | None = None,
    ) -> None:
        submission = Submissions.get(db, submission_id)
        slug = submission.slug
        sub_uuid = submission.id
        for document in submission.documents:
            storage.remove_file(document.file_path)
        storage.remove_submission_dir(slug)

        db.execute(
            update(CalendarSlot)
            .where(CalendarSlot.booked_by_submission == sub_uuid)
            .values(is_available=True, booked_by_submission=None)
            .execution_options(synchronize_session=False)
        )
        db.delete(submission)
        db.commit()
        logger.info("Deleted submission %s", slug)
        audit_log.record(
            db,
            AuditAction.submission_deleted,
            "submission",
            sub_uuid,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
            details={"slug": slug},
        )

    @staticmethod
    def dashboard(db: Session) -> dict:
        now = utcnow()
        counts = dict(
            db.execute(
                select(Submission.status, func.count()).group_by(Submission.status)
            ).all()
        )
        by_status = {status.value: counts.get(status, 0) for status in SubmissionStatus}
        return {
            "submissions_by_status": by_status,
            "total_submissions": sum(by_status.values()),
            "total_documents": db.scalar(select(func.count()).select_from(Document)) or 0,
            "available_meeting_slots": db.scalar(
                select(func.count())
                .select_from(CalendarSlot)
                .where(CalendarSlot.is_available.is_(True))
                .where(CalendarSlot.slot_start > now)
            )
            or 0,
            "upcoming_meetings": db.scalar(
                select(func.count())
                .select_from(CalendarSlot)
                .where(CalendarSlot.booked_by_submission.is_not(None))
                .where(CalendarSlot.slot_start > now)
            )
            or 0,
        }

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    @staticmethod
    def sweep_abandoned_drafts(
        db: Session, storage: LocalStorage, max_age: timedelta
    ) -> list[str]:
        """Delete drafts older than ``max_age`` and return their slugs."""
        cutoff = utcnow() - max_age
        stmt = (
            delete(Submission)
            .where(Submission.status == SubmissionStatus.draft)
            .where(Submission.created_at < cutoff)
            .returning(Submission.id, Submission.slug)
        )
        rows = db.execute(stmt.execution_options(synchronize_session=False)).all()
        if rows:
            release_orphaned_slots(db)
        db.commit()
        for submission_id, slug in rows:
            storage.remove_submission_dir(slug)
            audit_log.record(
                db,
                AuditAction.submission_expired,
                "submission",
                submission_id,
                details={"slug": slug},
            )
        if rows:
            logger.info("Removed %d abandoned drafts", len(rows))
        return [slug for _, slug in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _reload(db: Session, submission_id) -> Submission:
        return db.scalar(
            select(Submission)
            .options(selectinload(Submission.documents), selectinload(Submission.booked_slot))
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _raise_missing_or_conflict(db: Session, slug: str, conflict_detail: str):
        if not db.scalar(select(exists().where(Submission.slug == slug))):
            raise HTTPException(status_code=404, detail="Submission not found")
        raise HTTPException(status_code=409, detail=conflict_detail)


submissions = Submissions()
