from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from portal.models.submission import SubmissionStatus
from portal.schemas.submission import DocumentRead


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=1024)


class AdminUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    display_name: str | None = None
    last_login_at: datetime | None = None


class UploaderLoginRequest(BaseModel):
    slug: str = Field(max_length=100)
    email: str = Field(max_length=255)


class UploaderSessionRead(BaseModel):
    """Uploader view of a dossier; omits submitter name and organization."""

    submission_id: UUID
    slug: str
    status: SubmissionStatus
    documents: list[DocumentRead]
    session_expires_at: datetime
