from portal.models.audit import AuditAction, AuditActorType, AuditLogEntry  # noqa: F401
from portal.models.auth import (  # noqa: F401
    AdminSession,
    AdminUser,
    RateLimitAttempt,
    UploaderSession,
)
from portal.models.submission import (  # noqa: F401
    FORWARDABLE_STATUSES,
    CalendarSlot,
    Document,
    DocumentCategory,
    DocumentClassification,
    Submission,
    SubmissionStatus,
)
