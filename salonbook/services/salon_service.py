import datetime as dt
import logging
import re

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.core.errors import InvalidInput, NotFound, PermissionDenied
from salonbook.core.security import SessionContext
from salonbook.models.booking import Booking
from salonbook.models.salon import CustomSlot, Salon, SalonCreate, SalonStatus, ServiceItem, utc_naive_now
from salonbook.models.user import UserRole
from salonbook.services.slot_service import format_time, parse_date, parse_time

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\d{10}$")


def validate_phone(phone: str) -> str:
    phone = (phone or "").strip()
    if not _PHONE_RE.match(phone):
        raise InvalidInput("Phone must be exactly 10 digits")
    return phone


def validate_hours(open_time: str, close_time: str) -> tuple[str, str]:
    """Normalise operating hours; open must be strictly before close."""
    open_min, close_min = parse_time(open_time), parse_time(close_time)
    if open_min >= close_min:
        raise InvalidInput(f"Opening time {open_time} must be before closing time {close_time}")
    return format_time(open_min), format_time(close_min)


def _require_owner(ctx: SessionContext) -> str:
    if not ctx.is_owner:
        raise PermissionDenied("Only a salon owner can manage a salon")
    return ctx.salon_id


def _require_admin(ctx: SessionContext) -> None:
    if ctx.role != UserRole.ADMIN:
        raise PermissionDenied("Only an administrator can do this")


async def get_salon(session: AsyncSession, salon_id: str) -> Salon:
    salon = await session.get(Salon, salon_id)
    if salon is None:
        raise NotFound(f"Salon {salon_id} not found")
    return salon


async def list_active_salons(session: AsyncSession) -> list[Salon]:
    result = await session.execute(
        select(Salon).where(Salon.status == SalonStatus.ACTIVE).order_by(Salon.name)
    )
    return list(result.scalars().all())


async def list_salons_with_booking_counts(
    session: AsyncSession, ctx: SessionContext
) -> list[tuple[Salon, int]]:
    """Every salon, INACTIVE included, with its total number of bookings (any status)."""
    _require_admin(ctx)
    result = await session.execute(
        select(Salon, func.count(Booking.id))
        .outerjoin(Booking, Booking.salon_id == Salon.id)
        .group_by(Salon.id)
        .order_by(Salon.name)
    )
    return [(salon, count) for salon, count in result.all()]


async def create_salon(session: AsyncSession, ctx: SessionContext, data: SalonCreate) -> Salon:
    _require_admin(ctx)
    open_time, close_time = validate_hours(data.open_time, data.close_time)
    salon = Salon(
        name=data.name,
        owner_name=data.owner_name,
        email=data.email,
        phone=validate_phone(data.phone),
        location=data.location,
        open_time=open_time,
        close_time=close_time,
        services=[s.model_dump() for s in data.services],
    )
    session.add(salon)
    await session.flush()
    await session.refresh(salon)
    logger.info("Registered salon %s (%s)", salon.id, salon.name)
    return salon


def touch_activity(salon: Salon) -> None:
    """Freshness signal read by the inactivity sweep."""
    salon.last_activity_at = utc_naive_now()


async def set_date_closed(
    session: AsyncSession, ctx: SessionContext, day: str, closed: bool
) -> Salon:
    salon = await get_salon(session, _require_owner(ctx))
    iso_day = parse_date(day).isoformat()
    dates = list(salon.closed_dates or [])
    if closed and iso_day not in dates:
        dates.append(iso_day)
    elif not closed:
        dates = [d for d in dates if d != iso_day]
    salon.closed_dates = dates
    touch_activity(salon)
    session.add(salon)
    await session.flush()
    return salon


async def add_custom_slot(
    session: AsyncSession, ctx: SessionContext, day: str, time: str
) -> Salon:
    salon = await get_salon(session, _require_owner(ctx))
    slot = CustomSlot(date=parse_date(day).isoformat(), time=format_time(parse_time(time)))
    slots = list(salon.custom_slots or [])
    if any(s.get("date") == slot.date and s.get("time") == slot.time for s in slots):
        return salon
    salon.custom_slots = [*slots, slot.model_dump()]
    touch_activity(salon)
    session.add(salon)
    await session.flush()
    return salon


async def remove_custom_slot(
    session: AsyncSession, ctx: SessionContext, day: str, time: str
) -> Salon:
    """Drop a custom slot. Bookings already made for it are left untouched."""
    salon = await get_salon(session, _require_owner(ctx))
    iso_day = parse_date(day).isoformat()
    hhmm = format_time(parse_time(time))
    salon.custom_slots = [
        s for s in salon.custom_slots or []
        if not (s.get("date") == iso_day and s.get("time") == hhmm)
    ]
    touch_activity(salon)
    session.add(salon)
    await session.flush()
    return salon


async def update_services(
    session: AsyncSession, ctx: SessionContext, services: list[ServiceItem]
) -> Salon:
    salon = await get_salon(session, _require_owner(ctx))
    salon.services = [s.model_dump() for s in services]
    touch_activity(salon)
    session.add(salon)
    await session.flush()
    return salon


async def mark_inactive_salons(session: AsyncSession, days: int) -> int:
    """Flag ACTIVE salons with no activity in the last `days` days as INACTIVE. Returns count."""
    cutoff = utc_naive_now() - dt.timedelta(days=days)
    result = await session.execute(
        update(Salon)
        .where(Salon.status == SalonStatus.ACTIVE, Salon.last_activity_at < cutoff)
        .values(status=SalonStatus.INACTIVE)
    )
    await session.flush()
    return result.rowcount or 0
