import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.models.audit import AuditAction, AuditActorType, AuditLogEntry
from portal.services.common import coerce_uuid, paginate

logger = logging.getLogger(__name__)


class AuditLog:
    @staticmethod
    def record(
        db: Session,
        action: AuditAction,
        entity_type: str,
        entity_id=None,
        actor_type: AuditActorType = AuditActorType.system,
        actor_id=None,
        actor_ip: str | None = None,
        details: dict | None = None,
    ) -> AuditLogEntry | None:
        """Append an entry. Failures are logged and never raised.

        Callers commit their own change first, so a failed insert here only
        rolls back the audit row.
        """
        entry = AuditLogEntry(
            action=action,
            entity_type=entity_type,
            entity_id=coerce_uuid(entity_id),
            actor_type=actor_type,
            actor_id=coerce_uuid(actor_id),
            actor_ip=actor_ip,
            details=details,
        )
        try:
            db.add(entry)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Failed to write audit entry %s for %s %s: %s",
                action.value,
                entity_type,
                entity_id,
                exc,
            )
            return None
        return entry

    @staticmethod
    def for_entity(db: Session, entity_type: str, entity_id) -> list[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(AuditLogEntry.entity_type == entity_type)
            .where(AuditLogEntry.entity_id == coerce_uuid(entity_id))
            .order_by(AuditLogEntry.created_at)
        )
        return db.scalars(stmt).all()

    @staticmethod
    def list_entries(
        db: Session,
        page: int,
        per_page: int,
        entity_type: str | None = None,
        entity_id: str | None = None,
        action: AuditAction | None = None,
    ) -> dict:
        stmt = select(AuditLogEntry)
        if entity_type:
            stmt = stmt.where(AuditLogEntry.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLogEntry.entity_id == coerce_uuid(entity_id))
        if action:
            stmt = stmt.where(AuditLogEntry.action == action)
        stmt = stmt.order_by(AuditLogEntry.created_at.desc())
        return paginate(db, stmt, page, per_page)


audit_log = AuditLog()
