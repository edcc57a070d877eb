import logging
from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlalchemy import delete, exists, select, update
from sqlalchemy.orm import Session

from portal.models.audit import AuditAction, AuditActorType
from portal.models.submission import CalendarSlot, Submission
from portal.schemas.calendar import CalendarSlotCreate
from portal.services.audit import audit_log
from portal.services.common import coerce_uuid, utcnow

logger = logging.getLogger(__name__)

PUBLIC_WINDOW = timedelta(days=30)
ADMIN_LOOKBACK = timedelta(days=7)
ADMIN_LOOKAHEAD = timedelta(days=60)


class Calendar:
    @staticmethod
    def list_available(
        db: Session, start: datetime | None = None, end: datetime | None = None
    ) -> list[CalendarSlot]:
        now = utcnow()
        start = start or now
        end = end or start + PUBLIC_WINDOW
        stmt = (
            select(CalendarSlot)
            .where(CalendarSlot.is_available.is_(True))
            .where(CalendarSlot.slot_start > now)
            .where(CalendarSlot.slot_start >= start)
            .where(CalendarSlot.slot_start <= end)
            .order_by(CalendarSlot.slot_start)
        )
        return db.scalars(stmt).all()

    @staticmethod
    def list_all(
        db: Session, start: datetime | None = None, end: datetime | None = None
    ) -> list[CalendarSlot]:
        now = utcnow()
        start = start or now - ADMIN_LOOKBACK
        end = end or now + ADMIN_LOOKAHEAD
        stmt = (
            select(CalendarSlot)
            .where(CalendarSlot.slot_start >= start)
            .where(CalendarSlot.slot_start <= end)
            .order_by(CalendarSlot.slot_start)
        )
        return db.scalars(stmt).all()

    @staticmethod
    def book(
        db: Session,
        submission: Submission,
        slot_id: str,
        actor_type: AuditActorType = AuditActorType.applicant,
        actor_ip: str | None = None,
    ) -> CalendarSlot:
        """Reserve a slot for ``submission``.

        The guarded UPDATE is the only thing that decides between two
        concurrent bookings of the same slot: the loser matches no row.
        One booking per submission is a read before the write, so two
        concurrent bookings on different slots can both succeed.
        """
        slot_uuid = coerce_uuid(slot_id)
        already_booked = db.scalar(
            select(
                exists().where(CalendarSlot.booked_by_submission == submission.id)
            )
        )
        if already_booked:
            raise HTTPException(
                status_code=409, detail="This submission already has a meeting booked"
            )
        stmt = (
            update(CalendarSlot)
            .where(CalendarSlot.id == slot_uuid)
            .where(CalendarSlot.is_available.is_(True))
            .where(CalendarSlot.slot_start > utcnow())
            .values(is_available=False, booked_by_submission=submission.id)
            .returning(CalendarSlot.id)
        )
        booked_id = db.scalar(stmt.execution_options(synchronize_session=False))
        if booked_id is None:
            db.rollback()
            raise HTTPException(
                status_code=409, detail="Slot not available or has already been booked"
            )
        db.commit()
        slot = db.get(CalendarSlot, booked_id, populate_existing=True)
        logger.info("Booked slot %s for submission %s", slot.id, submission.slug)
        audit_log.record(
            db,
            AuditAction.slot_booked,
            "calendar_slot",
            slot.id,
            actor_type=actor_type,
            actor_id=submission.id,
            actor_ip=actor_ip,
            details={
                "submission_id": str(submission.id),
                "slot_start": slot.slot_start.isoformat(),
            },
        )
        return slot

    @staticmethod
    def cancel(
        db: Session,
        submission: Submission,
        actor_type: AuditActorType = AuditActorType.applicant,
        actor_ip: str | None = None,
    ) -> None:
        stmt = (
            update(CalendarSlot)
            .where(CalendarSlot.booked_by_submission == submission.id)
            .values(is_available=True, booked_by_submission=None)
            .returning(CalendarSlot.id)
        )
        slot_id = db.scalar(stmt.execution_options(synchronize_session=False))
        if slot_id is None:
            db.rollback()
            raise HTTPException(
                status_code=404, detail="No booking found for this submission"
            )
        db.commit()
        logger.info("Cancelled booking of slot %s for submission %s", slot_id, submission.slug)
        audit_log.record(
            db,
            AuditAction.slot_cancelled,
            "calendar_slot",
            slot_id,
            actor_type=actor_type,
            actor_id=submission.id,
            actor_ip=actor_ip,
            details={"submission_id": str(submission.id)},
        )

    @staticmethod
    def create_slots(
        db: Session,
        payloads: list[CalendarSlotCreate],
        admin_id,
        actor_ip: str | None = None,
    ) -> list[CalendarSlot]:
        for payload in payloads:
            if payload.slot_end <= payload.slot_start:
                raise HTTPException(
                    status_code=400, detail="Slot end must be after slot start"
                )
        slots = [
            CalendarSlot(
                slot_start=payload.slot_start,
                slot_end=payload.slot_end,
                notes=payload.notes,
                is_available=True,
                created_by=coerce_uuid(admin_id),
            )
            for payload in payloads
        ]
        db.add_all(slots)
        db.commit()
        for slot in slots:
            db.refresh(slot)
        logger.info("Created %d calendar slots", len(slots))
        for slot in slots:
            audit_log.record(
                db,
                AuditAction.slot_created,
                "calendar_slot",
                slot.id,
                actor_type=AuditActorType.admin,
                actor_id=admin_id,
                actor_ip=actor_ip,
                details={"slot_start": slot.slot_start.isoformat()},
            )
        return slots

    @staticmethod
    def delete_slot(
        db: Session, slot_id: str, admin_id, actor_ip: str | None = None
    ) -> None:
        slot_uuid = coerce_uuid(slot_id)
        stmt = (
            delete(CalendarSlot)
            .where(CalendarSlot.id == slot_uuid)
            .where(CalendarSlot.booked_by_submission.is_(None))
            .returning(CalendarSlot.id)
        )
        deleted_id = db.scalar(stmt.execution_options(synchronize_session=False))
        if deleted_id is None:
            db.rollback()
            if not db.get(CalendarSlot, slot_uuid):
                raise HTTPException(status_code=404, detail="Slot not found")
            raise HTTPException(
                status_code=409,
                detail="Slot is booked; cancel the booking before deleting it",
            )
        db.commit()
        logger.info("Deleted calendar slot %s", slot_uuid)
        audit_log.record(
            db,
            AuditAction.slot_deleted,
            "calendar_slot",
            slot_uuid,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
        )


calendar = Calendar()
