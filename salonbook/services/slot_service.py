import datetime as dt
import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.core.config import settings
from salonbook.core.errors import InvalidInput
from salonbook.models.booking import Booking, BookingStatus
from salonbook.models.salon import Salon

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class SlotView:
    time: str
    taken: bool
    custom: bool


def parse_time(value: str) -> int:
    """Parse zero-padded HH:MM into minute of day. Raises InvalidInput."""
    m = _TIME_RE.match(value or "")
    if not m:
        raise InvalidInput(f"Invalid time of day {value!r}, expected HH:MM")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidInput(f"Invalid time of day {value!r}")
    return hours * 60 + minutes


def format_time(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def parse_date(value: str) -> dt.date:
    """Parse YYYY-MM-DD. Raises InvalidInput."""
    if not _DATE_RE.match(value or ""):
        raise InvalidInput(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return dt.date.fromisoformat(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid date {value!r}") from e


def generate_slots(
    open_time: str | None,
    close_time: str | None,
    *,
    interval: int | None = None,
    break_start: str | None = None,
    break_end: str | None = None,
) -> list[str]:
    """Canonical slot starts from open (inclusive) to close (exclusive), skipping the break.

    A step that lands inside the break jumps straight to the break end, so
    09:00-18:00 yields ... 12:00, 13:30, ... 17:30 and never 12:30 or 13:00.
    """
    if not open_time or not close_time:
        return []
    step = interval or settings.slot_interval_minutes
    lunch_start = parse_time(break_start or settings.break_start)
    lunch_end = parse_time(break_end or settings.break_end)
    current = parse_time(open_time)
    end = parse_time(close_time)

    slots: list[str] = []
    while current < end:
        if not lunch_start <= current < lunch_end:
            slots.append(format_time(current))
        current += step
        if lunch_start <= current < lunch_end:
            current = lunch_end
    return slots


async def get_taken_times(session: AsyncSession, salon_id: str, day: dt.date) -> set[str]:
    """Times held by non-cancelled bookings for this salon and date."""
    result = await session.execute(
        select(Booking.time).where(
            Booking.salon_id == salon_id,
            Booking.date == day,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    return {row[0] for row in result.all()}


async def resolve_availability(
    session: AsyncSession, salon: Salon, day: dt.date
) -> list[SlotView]:
    """All candidate slots for a salon on a date, each tagged taken/custom.

    Taken slots stay in the list so callers can show them disabled; a slot is
    selectable only when ``not taken``. A closed date yields nothing at all.
    """
    iso_day = day.isoformat()
    if iso_day in (salon.closed_dates or []):
        return []

    canonical = set(generate_slots(salon.open_time, salon.close_time))
    custom = set(salon.custom_times_on(iso_day))
    taken = await get_taken_times(session, salon.id, day)

    # A removed custom slot that is still booked stays visible until the booking resolves
    candidates = canonical | custom | taken
    return [
        SlotView(time=t, taken=t in taken, custom=t in custom and t not in canonical)
        for t in sorted(candidates)
    ]
