import io
import json
import logging
import zipfile

from sqlalchemy.orm import Session

from portal.models.audit import AuditAction, AuditActorType
from portal.models.submission import Submission
from portal.schemas.audit import AuditLogRead
from portal.schemas.submission import SubmissionDetail
from portal.services.audit import audit_log
from portal.services.storage import LocalStorage, sanitize_filename
from portal.services.submissions import submissions

logger = logging.getLogger(__name__)


def _submission_payload(db: Session, submission: Submission) -> dict:
    trail = audit_log.for_entity(db, "submission", submission.id)
    return {
        "submission": SubmissionDetail.model_validate(submission).model_dump(mode="json"),
        "audit_trail": [
            AuditLogRead.model_validate(entry).model_dump(mode="json") for entry in trail
        ],
    }


class Exports:
    @staticmethod
    def to_json(
        db: Session, submission_id: str, admin_id, actor_ip: str | None = None
    ) -> tuple[str, dict]:
        """Return ``(filename, payload)`` for a JSON export."""
        submission = submissions.get(db, submission_id)
        payload = _submission_payload(db, submission)
        audit_log.record(
            db,
            AuditAction.data_exported,
            "submission",
            submission.id,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
            details={"format": "json"},
        )
        return f"{submission.slug}.json", payload

    @staticmethod
    def to_zip(
        db: Session,
        storage: LocalStorage,
        submission_id: str,
        admin_id,
        actor_ip: str | None = None,
    ) -> tuple[str, bytes]:
        """Return ``(filename, archive_bytes)`` with a manifest and every stored file."""
        submission = submissions.get(db, submission_id)
        manifest = _submission_payload(db, submission)
        manifest["files"] = []

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for document in submission.documents:
                if not document.file_path:
                    continue
                content = storage.read(document.file_path)
                arcname = (
                    f"documents/{document.id}_"
                    f"{sanitize_filename(document.original_filename or document.filename)}"
                )
                if content is None:
                    logger.warning(
                        "Stored file for document %s is missing from disk", document.id
                    )
                    manifest["files"].append(
                        {"document_id": str(document.id), "path": None, "missing": True}
                    )
                    continue
                archive.writestr(arcname, content)
                manifest["files"].append(
                    {"document_id": str(document.id), "path": arcname, "missing": False}
                )
            archive.writestr("manifest.json", json.dumps(manifest, indent=2))

        audit_log.record(
            db,
            AuditAction.data_exported,
            "submission",
            submission.id,
            actor_type=AuditActorType.admin,
            actor_id=admin_id,
            actor_ip=actor_ip,
            details={"format": "zip", "files": len(manifest["files"])},
        )
        return f"{submission.slug}.zip", buffer.getvalue()


exports = Exports()
