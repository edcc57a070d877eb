import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from portal.db import Base


class AuditAction(enum.Enum):
    submission_created = "submission_created"
    submission_updated = "submission_updated"
    submission_submitted = "submission_submitted"
    submission_status_changed = "submission_status_changed"
    submission_forwarded = "submission_forwarded"
    submission_deleted = "submission_deleted"
    submission_expired = "submission_expired"
    document_uploaded = "document_uploaded"
    document_deleted = "document_deleted"
    slot_booked = "slot_booked"
    slot_cancelled = "slot_cancelled"
    slot_created = "slot_created"
    slot_deleted = "slot_deleted"
    admin_login = "admin_login"
    admin_logout = "admin_logout"
    uploader_login = "uploader_login"
    uploader_logout = "uploader_logout"
    data_exported = "data_exported"


class AuditActorType(enum.Enum):
    applicant = "applicant"
    uploader = "uploader"
    admin = "admin"
    system = "system"


class AuditLogEntry(Base):
    """Append-only record of a state-changing action."""

    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, name="audit_action"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType, name="audit_actor_type"), nullable=False
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    actor_ip: Mapped[str | None] = mapped_column(String(64))
    details: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
