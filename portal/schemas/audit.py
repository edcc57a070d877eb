from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from portal.models.audit import AuditAction, AuditActorType


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action: AuditAction
    entity_type: str
    entity_id: UUID | None = None
    actor_type: AuditActorType
    actor_id: UUID | None = None
    actor_ip: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime
