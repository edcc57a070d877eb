import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SubmissionStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    forwarded = "forwarded"
    completed = "completed"


FORWARDABLE_STATUSES = (
    SubmissionStatus.submitted,
    SubmissionStatus.under_review,
    SubmissionStatus.approved,
)


class DocumentCategory(enum.Enum):
    formal_law = "formal_law"
    circular = "circular"
    implementation_policy = "implementation_policy"
    work_instruction = "work_instruction"


class DocumentClassification(enum.Enum):
    public = "public"
    limited_use = "limited_use"
    restricted = "restricted"


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_status", "status"),
        Index("ix_submissions_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    submitter_name: Mapped[str] = mapped_column(String(255), nullable=False)
    submitter_email: Mapped[str | None] = mapped_column(String(255))
    organization: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_department: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, name="submission_status"),
        nullable=False,
        default=SubmissionStatus.draft,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    retention_expiry_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    documents: Mapped[list["Document"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Document.created_at",
    )
    booked_slot: Mapped["CalendarSlot | None"] = relationship(
        back_populates="booked_by", uselist=False, passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "(external_url IS NOT NULL AND file_path IS NULL)"
            " OR (external_url IS NULL AND file_path IS NOT NULL)",
            name="ck_documents_link_or_file",
        ),
        CheckConstraint(
            "category != 'formal_law' OR (classification = 'public'"
            " AND file_path IS NULL)",
            name="ck_documents_formal_law_public_link",
        ),
        Index("ix_documents_submission_id", "submission_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[DocumentCategory] = mapped_column(
        Enum(DocumentCategory, name="document_category"), nullable=False
    )
    classification: Mapped[DocumentClassification] = mapped_column(
        Enum(DocumentClassification, name="document_classification"),
        nullable=False,
    )

    # Link-type records
    external_url: Mapped[str | None] = mapped_column(String(2048))
    external_title: Mapped[str | None] = mapped_column(String(500))

    # Uploaded files
    filename: Mapped[str | None] = mapped_column(String(500))
    original_filename: Mapped[str | None] = mapped_column(String(500))
    file_path: Mapped[str | None] = mapped_column(String(1000))
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    mime_type: Mapped[str | None] = mapped_column(String(255))

    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    submission: Mapped["Submission"] = relationship(back_populates="documents")

    @property
    def is_link(self) -> bool:
        return self.external_url is not None


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


class CalendarSlot(Base):
    __tablename__ = "calendar_slots"
    __table_args__ = (
        CheckConstraint("slot_end > slot_start", name="ck_calendar_slots_range"),
        Index("ix_calendar_slots_start", "slot_start"),
        Index("ix_calendar_slots_booked_by", "booked_by_submission"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    slot_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    slot_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    booked_by_submission: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("submissions.id", ondelete="SET NULL")
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("admin_users.id", ondelete="SET NULL")
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    booked_by: Mapped["Submission | None"] = relationship(back_populates="booked_slot")
