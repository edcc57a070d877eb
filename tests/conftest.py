import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="portal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT}/portal.db"
os.environ["ENVIRONMENT"] = "development"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["CLEANUP_SCHEDULER"] = "off"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TRUSTED_PROXIES"] = "10.0.0."
for _name in ("ADMIN_USERNAME", "ADMIN_PASSWORD", "ADMIN_EMAIL", "CORS_ORIGINS"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import portal.models  # noqa: E402,F401
from portal.db import Base, SessionLocal, engine  # noqa: E402
from portal.models.auth import AdminUser  # noqa: E402
from portal.services.passwords import hash_password  # noqa: E402
from portal.services.storage import LocalStorage  # noqa: E402
from portal.services.submissions import submissions  # noqa: E402
from tests.factories import ADMIN_PASSWORD, make_slot, make_submission  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture()
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def storage(tmp_path):
    return LocalStorage(tmp_path / "uploads")


@pytest.fixture()
def client(storage):
    from portal.api.deps import get_storage
    from portal.main import app

    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_user(db_session):
    admin = AdminUser(
        username="reviewer",
        email="reviewer@example.org",
        password_hash=hash_password(ADMIN_PASSWORD),
        display_name="Reviewer",
    )
    db_session.add(admin)
    db_session.commit()
    db_session.refresh(admin)
    return admin


@pytest.fixture()
def admin_client(client, admin_user):
    resp = client.post(
        "/api/admin/login",
        json={"username": admin_user.username, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    return client


@pytest.fixture()
def draft_submission(db_session):
    return make_submission(db_session)


@pytest.fixture()
def submitted_submission(db_session):
    submission = make_submission(db_session, submitter_email="uploader@gemeente-y.nl")
    return submissions.submit(db_session, submission.slug)


@pytest.fixture()
def future_slot(db_session):
    return make_slot(db_session)
