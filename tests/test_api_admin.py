import io
import json
import zipfile
from datetime import datetime, timedelta, timezone

from portal.models.audit import AuditAction, AuditLogEntry
from portal.models.submission import (
    CalendarSlot,
    DocumentCategory,
    DocumentClassification,
    Submission,
)
from portal.services.documents import documents
from portal.services.sessions import ADMIN_COOKIE_NAME
from tests.factories import ADMIN_PASSWORD, make_submission

PDF = b"%PDF-1.4 minimal"


def _add_pdf(db_session, storage, submission, filename="report.pdf"):
    return documents.upload(
        db_session,
        storage,
        submission,
        DocumentCategory.circular,
        DocumentClassification.public,
        filename,
        "application/pdf",
        PDF,
        1024 * 1024,
    )


class TestAdminAuth:
    def test_login_me_logout(self, client, admin_user):
        resp = client.post(
            "/api/admin/login", json={"username": "Reviewer", "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["username"] == "reviewer"
        assert ADMIN_COOKIE_NAME in resp.cookies
        assert "max-age=28800" in resp.headers["set-cookie"].lower()

        me = client.get("/api/admin/me")
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "reviewer@example.org"
        assert me.json()["data"]["last_login_at"] is not None

        token = resp.cookies[ADMIN_COOKIE_NAME]
        assert client.post("/api/admin/logout").status_code == 200
        client.cookies.clear()
        resp = client.get("/api/admin/me", headers={"Cookie": f"{ADMIN_COOKIE_NAME}={token}"})
        assert resp.status_code == 401

    def test_wrong_password(self, client, admin_user):
        resp = client.post(
            "/api/admin/login", json={"username": "reviewer", "password": "nope"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid credentials"
        assert ADMIN_COOKIE_NAME not in resp.cookies

    def test_unknown_user(self, client):
        resp = client.post(
            "/api/admin/login", json={"username": "ghost", "password": "whatever"}
        )
        assert resp.status_code == 401

    def test_inactive_user(self, client, db_session, admin_user):
        admin_user.is_active = False
        db_session.commit()
        resp = client.post(
            "/api/admin/login", json={"username": "reviewer", "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 401

    def test_endpoints_require_session(self, client):
        for method, path in [
            ("get", "/api/admin/me"),
            ("get", "/api/admin/submissions"),
            ("get", "/api/admin/dashboard"),
            ("get", "/api/admin/audit-log"),
            ("get", "/api/admin/calendar/slots"),
        ]:
            resp = getattr(client, method)(path)
            assert resp.status_code == 401, path
            assert resp.json()["error"] == "Not authenticated"

    def test_login_is_audited(self, admin_client, db_session):
        entry = db_session.query(AuditLogEntry).filter_by(action=AuditAction.admin_login).one()
        assert entry.actor_ip == "testclient"


class TestAdminSubmissions:
    def test_list_and_filter(self, admin_client, db_session):
        make_submission(db_session, organization="Gemeente Utrecht")
        make_submission(db_session, organization="Provincie Zeeland")
        submitted = make_submission(db_session, organization="Gemeente Zwolle")
        admin_client.post(f"/api/submissions/{submitted.slug}/submit")

        data = admin_client.get("/api/admin/submissions").json()["data"]
        assert data["total"] == 3
        assert data["page"] == 1
        assert data["total_pages"] == 1

        data = admin_client.get("/api/admin/submissions", params={"status": "submitted"}).json()["data"]
        assert [item["slug"] for item in data["items"]] == [submitted.slug]

        data = admin_client.get("/api/admin/submissions", params={"search": "gemeente"}).json()["data"]
        assert data["total"] == 2

    def test_pagination_clamped(self, admin_client, db_session):
        for _ in range(3):
            make_submission(db_session)
        data = admin_client.get(
            "/api/admin/submissions", params={"page": 2, "per_page": 2}
        ).json()["data"]
        assert len(data["items"]) == 1
        assert data["total_pages"] == 2

        data = admin_client.get(
            "/api/admin/submissions", params={"page": 0, "per_page": 500}
        ).json()["data"]
        assert data["page"] == 1
        assert data["per_page"] == 100

    def test_get_by_id(self, admin_client, submitted_submission):
        resp = admin_client.get(f"/api/admin/submissions/{submitted_submission.id}")
        assert resp.status_code == 200
        assert resp.json()["data"]["slug"] == submitted_submission.slug

    def test_get_invalid_id(self, admin_client):
        assert admin_client.get("/api/admin/submissions/not-a-uuid").status_code == 400

    def test_set_status(self, admin_client, submitted_submission):
        resp = admin_client.put(
            f"/api/admin/submissions/{submitted_submission.id}/status",
            json={"status": "under_review", "notes": "Picked up"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "under_review"
        assert resp.json()["data"]["notes"] == "Picked up"

    def test_set_unknown_status(self, admin_client, submitted_submission):
        resp = admin_client.put(
            f"/api/admin/submissions/{submitted_submission.id}/status",
            json={"status": "archived"},
        )
        assert resp.status_code == 422

    def test_forward(self, admin_client, submitted_submission):
        path = f"/api/admin/submissions/{submitted_submission.id}/forward"
        resp = admin_client.post(path, json={"forward_to": "Team Regels"})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "forwarded"

        resp = admin_client.post(path, json={"forward_to": "Team Regels"})
        assert resp.status_code == 409

    def test_forward_draft_conflicts(self, admin_client, draft_submission):
        resp = admin_client.post(
            f"/api/admin/submissions/{draft_submission.id}/forward",
            json={"forward_to": "Team Regels"},
        )
        assert resp.status_code == 409

    def test_delete(self, admin_client, db_session, storage, submitted_submission, future_slot):
        submission_id = submitted_submission.id
        slot_id = future_slot.id
        slug = submitted_submission.slug
        _add_pdf(db_session, storage, submitted_submission)
        admin_client.post(f"/api/submissions/{slug}/book-slot", json={"slot_id": str(slot_id)})

        resp = admin_client.delete(f"/api/admin/submissions/{submission_id}")

        assert resp.status_code == 200
        db_session.expunge_all()
        assert db_session.get(Submission, submission_id) is None
        slot = db_session.get(CalendarSlot, slot_id)
        assert slot.is_available is True
        assert slot.booked_by_submission is None
        assert not (storage.root / slug).exists()


class TestExports:
    def test_json_export(self, admin_client, db_session, storage, submitted_submission):
        _add_pdf(db_session, storage, submitted_submission)
        resp = admin_client.get(f"/api/admin/submissions/{submitted_submission.id}/export")
        assert resp.status_code == 200
        assert (
            resp.headers["content-disposition"]
            == f'attachment; filename="{submitted_submission.slug}.json"'
        )
        data = resp.json()["data"]
        assert data["submission"]["slug"] == submitted_submission.slug
        assert len(data["submission"]["documents"]) == 1
        actions = [entry["action"] for entry in data["audit_trail"]]
        assert actions[:2] == ["submission_created", "submission_submitted"]

    def test_zip_export(self, admin_client, db_session, storage, submitted_submission):
        kept = _add_pdf(db_session, storage, submitted_submission, "kept.pdf")
        lost = _add_pdf(db_session, storage, submitted_submission, "lost.pdf")
        storage.remove_file(lost.file_path)

        resp = admin_client.get(
            f"/api/admin/submissions/{submitted_submission.id}/export/files"
        )

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        archive = zipfile.ZipFile(io.BytesIO(resp.content))
        names = archive.namelist()
        assert f"documents/{kept.id}_kept.pdf" in names
        assert "manifest.json" in names
        assert archive.read(f"documents/{kept.id}_kept.pdf") == PDF
        manifest = json.loads(archive.read("manifest.json"))
        missing = {item["document_id"]: item["missing"] for item in manifest["files"]}
        assert missing == {str(kept.id): False, str(lost.id): True}

    def test_export_is_audited(self, admin_client, db_session, submitted_submission):
        admin_client.get(f"/api/admin/submissions/{submitted_submission.id}/export")
        entry = db_session.query(AuditLogEntry).filter_by(action=AuditAction.data_exported).one()
        assert entry.details == {"format": "json"}


class TestDashboardAndAuditLog:
    def test_dashboard(self, admin_client, db_session, storage, submitted_submission, future_slot):
        make_submission(db_session)
        _add_pdf(db_session, storage, submitted_submission)
        data = admin_client.get("/api/admin/dashboard").json()["data"]
        assert data["submissions_by_status"]["draft"] == 1
        assert data["submissions_by_status"]["submitted"] == 1
        assert data["submissions_by_status"]["completed"] == 0
        assert data["total_submissions"] == 2
        assert data["total_documents"] == 1
        assert data["available_meeting_slots"] == 1
        assert data["upcoming_meetings"] == 0

    def test_audit_log_filters(self, admin_client, submitted_submission):
        data = admin_client.get(
            "/api/admin/audit-log",
            params={"entity_type": "submission", "entity_id": str(submitted_submission.id)},
        ).json()["data"]
        actions = {item["action"] for item in data["items"]}
        assert actions == {"submission_created", "submission_submitted"}

        data = admin_client.get(
            "/api/admin/audit-log", params={"action": "admin_login"}
        ).json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["actor_type"] == "admin"


class TestAdminCalendar:
    def test_create_list_delete(self, admin_client):
        start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=2)
        resp = admin_client.post(
            "/api/admin/calendar/slots",
            json={
                "slots": [
                    {
                        "slot_start": start.isoformat(),
                        "slot_end": (start + timedelta(hours=1)).isoformat(),
                        "notes": "Teams",
                    }
                ]
            },
        )
        assert resp.status_code == 201, resp.text
        created = resp.json()["data"][0]
        assert created["notes"] == "Teams"
        assert created["booked_by_submission"] is None

        listed = admin_client.get("/api/admin/calendar/slots").json()["data"]
        assert [slot["id"] for slot in listed] == [created["id"]]

        resp = admin_client.delete(f"/api/admin/calendar/slots/{created['id']}")
        assert resp.status_code == 200
        assert admin_client.get("/api/admin/calendar/slots").json()["data"] == []

    def test_inverted_range_rejected(self, admin_client):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        resp = admin_client.post(
            "/api/admin/calendar/slots",
            json={
                "slots": [
                    {
                        "slot_start": start.isoformat(),
                        "slot_end": (start - timedelta(hours=1)).isoformat(),
                    }
                ]
            },
        )
        assert resp.status_code == 400

    def test_empty_batch_rejected(self, admin_client):
        resp = admin_client.post("/api/admin/calendar/slots", json={"slots": []})
        assert resp.status_code == 422

    def test_booked_slot_cannot_be_deleted(self, admin_client, submitted_submission, future_slot):
        admin_client.post(
            f"/api/submissions/{submitted_submission.slug}/book-slot",
            json={"slot_id": str(future_slot.id)},
        )
        resp = admin_client.delete(f"/api/admin/calendar/slots/{future_slot.id}")
        assert resp.status_code == 409
