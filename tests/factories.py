from datetime import datetime, timedelta, timezone

from portal.models.submission import CalendarSlot
from portal.schemas.submission import SubmissionCreate
from portal.services.submissions import submissions

ADMIN_PASSWORD = "correct horse battery staple"


def make_submission(db_session, **overrides):
    fields = dict(
        submitter_name="Jan",
        submitter_email="jan@gemeente-x.nl",
        organization="Gemeente X",
    )
    fields.update(overrides)
    return submissions.create(db_session, SubmissionCreate(**fields))


def make_slot(db_session, start_in=timedelta(days=2), length=timedelta(hours=1)):
    start = datetime.now(timezone.utc) + start_in
    slot = CalendarSlot(slot_start=start, slot_end=start + length, is_available=True)
    db_session.add(slot)
    db_session.commit()
    db_session.refresh(slot)
    return slot
