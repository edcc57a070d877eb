import calendar
import math
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import func, select


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid identifier")


def clamp_pagination(page: int, per_page: int) -> tuple[int, int]:
    return max(page, 1), min(max(per_page, 1), 100)


def paginate(db, stmt, page: int, per_page: int) -> dict:
    """Run ``stmt`` for one page and return the paginated payload."""
    page, per_page = clamp_pagination(page, per_page)
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    items = db.scalars(stmt.limit(per_page).offset((page - 1) * per_page)).all()
    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": math.ceil(total / per_page) if total else 0,
    }


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
