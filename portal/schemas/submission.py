from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portal.models.submission import (
    DocumentCategory,
    DocumentClassification,
    SubmissionStatus,
)
from portal.schemas.calendar import CalendarSlotRead


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    category: DocumentCategory
    classification: DocumentClassification
    external_url: str | None = None
    external_title: str | None = None
    filename: str | None = Field(default=None, validation_alias="original_filename")
    file_size: int | None = None
    mime_type: str | None = None
    description: str | None = None
    created_at: datetime


class FormalLawCreate(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    title: str | None = Field(default=None, max_length=500)
    description: str | None = None

    @field_validator("url")
    @classmethod
    def strip_url(cls, value: str) -> str:
        return value.strip()


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class SubmissionCreate(BaseModel):
    submitter_name: str = Field(max_length=255)
    submitter_email: str | None = Field(default=None, max_length=255)
    organization: str = Field(max_length=255)
    organization_department: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class SubmissionUpdate(BaseModel):
    submitter_name: str | None = Field(default=None, max_length=255)
    submitter_email: str | None = Field(default=None, max_length=255)
    organization: str | None = Field(default=None, max_length=255)
    organization_department: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class SubmissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    submitter_name: str
    submitter_email: str | None = None
    organization: str
    organization_department: str | None = None
    status: SubmissionStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None = None
    retention_expiry_date: datetime | None = None


class SubmissionDetail(SubmissionRead):
    documents: list[DocumentRead] = []
    booked_slot: CalendarSlotRead | None = None


# ---------------------------------------------------------------------------
# Admin actions
# ---------------------------------------------------------------------------


class StatusUpdate(BaseModel):
    status: SubmissionStatus
    notes: str | None = None


class ForwardRequest(BaseModel):
    forward_to: str = Field(min_length=1, max_length=255)
    notes: str | None = None


class DashboardStats(BaseModel):
    submissions_by_status: dict[str, int]
    total_submissions: int
    total_documents: int
    available_meeting_slots: int
    upcoming_meetings: int
