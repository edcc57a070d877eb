from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.api.deps import client_ip, get_db
from portal.schemas.calendar import BookSlotRequest, CalendarSlotRead, as_utc
from portal.schemas.common import ApiResponse, MessageData
from portal.services.calendar import calendar
from portal.services.response import ok
from portal.services.submissions import submissions

router = APIRouter(prefix="/api", tags=["calendar"])


@router.get("/calendar/available", response_model=ApiResponse[list[CalendarSlotRead]])
def list_available_slots(
    from_: datetime | None = Query(default=None, alias="from"),
    to: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
):
    slots = calendar.list_available(
        db,
        as_utc(from_) if from_ else None,
        as_utc(to) if to else None,
    )
    return ok([CalendarSlotRead.model_validate(slot) for slot in slots])


@router.post("/submissions/{slug}/book-slot", response_model=ApiResponse[CalendarSlotRead])
def book_slot(
    slug: str,
    payload: BookSlotRequest,
    db: Session = Depends(get_db),
    ip: str = Depends(client_ip),
):
    submission = submissions.get_by_slug(db, slug)
    slot = calendar.book(db, submission, str(payload.slot_id), actor_ip=ip)
    return ok(CalendarSlotRead.model_validate(slot))


@router.post("/submissions/{slug}/cancel-booking", response_model=ApiResponse[MessageData])
def cancel_booking(slug: str, db: Session = Depends(get_db), ip: str = Depends(client_ip)):
    submission = submissions.get_by_slug(db, slug)
    calendar.cancel(db, submission, actor_ip=ip)
    return ok(MessageData(message="Booking cancelled"))
