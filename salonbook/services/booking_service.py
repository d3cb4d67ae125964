"""Booking state machine and slot-conflict detection."""

import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.core.errors import InvalidInput, InvalidTransition, NotFound, PermissionDenied, SlotConflict
from salonbook.core.security import SessionContext
from salonbook.models.booking import Booking, BookingCreate, BookingStatus
from salonbook.models.salon import SalonStatus
from salonbook.models.user import User, UserRole
from salonbook.services.salon_service import get_salon, touch_activity
from salonbook.services.slot_service import format_time, parse_time, resolve_availability

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in TRANSITIONS[current]


async def is_slot_taken(session: AsyncSession, salon_id: str, day: dt.date, time: str) -> bool:
    result = await session.execute(
        select(Booking.id).where(
            Booking.salon_id == salon_id,
            Booking.date == day,
            Booking.time == time,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    return result.first() is not None


async def get_booking(session: AsyncSession, booking_id: str) -> Booking:
    booking = await session.get(Booking, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def create_booking(session: AsyncSession, ctx: SessionContext, data: BookingCreate) -> Booking:
    """Create a PENDING booking for the acting customer.

    Raises SlotConflict when a live booking already holds the slot, either
    found by the pre-check or reported by the unique index on insert.
    """
    if ctx.role != UserRole.CUSTOMER:
        raise PermissionDenied("Only customers can book")
    time = format_time(parse_time(data.time))
    salon = await get_salon(session, data.salon_id)
    if salon.status != SalonStatus.ACTIVE:
        raise InvalidInput(f"Salon {salon.id} is not accepting bookings")

    service = next((s for s in salon.service_items() if s.id == data.service_id), None)
    if service is None:
        raise InvalidInput(f"Service {data.service_id} is not offered by salon {salon.id}")

    slots = {s.time: s for s in await resolve_availability(session, salon, data.date)}
    if time not in slots:
        raise InvalidInput(f"{time} on {data.date.isoformat()} is not a bookable slot")
    if slots[time].taken:
        raise SlotConflict(f"{time} on {data.date.isoformat()} is already booked")

    customer = await session.get(User, ctx.user_id)
    booking = Booking(
        salon_id=salon.id,
        customer_id=ctx.user_id,
        customer_name=customer.name if customer else None,
        customer_phone=customer.phone if customer else None,
        service_id=service.id,
        service_name=service.name,
        price=service.price,
        date=data.date,
        time=time,
    )
    try:
        # Savepoint so a lost race leaves the outer transaction usable
        async with session.begin_nested():
            session.add(booking)
            await session.flush()
    except IntegrityError as e:
        logger.info("Concurrent booking won slot %s %s at salon %s", data.date, time, salon.id)
        raise SlotConflict(f"{time} on {data.date.isoformat()} is already booked") from e

    touch_activity(salon)
    session.add(salon)
    await session.flush()
    await session.refresh(booking)
    logger.info("Booking %s created for salon %s at %s %s", booking.id, salon.id, booking.date, booking.time)
    return booking


def _authorize_status_change(ctx: SessionContext, booking: Booking, new_status: BookingStatus) -> None:
    if ctx.role == UserRole.ADMIN:
        return
    if ctx.is_owner and ctx.salon_id == booking.salon_id:
        return
    if ctx.user_id == booking.customer_id and new_status == BookingStatus.CANCELLED:
        return
    raise PermissionDenied("Not allowed to change this booking")


async def update_status(
    session: AsyncSession, ctx: SessionContext, booking_id: str, new_status: BookingStatus
) -> Booking:
    booking = await get_booking(session, booking_id)
    _authorize_status_change(ctx, booking, new_status)
    if not can_transition(booking.status, new_status):
        raise InvalidTransition(
            f"Cannot move booking {booking.id} from {booking.status.value} to {new_status.value}"
        )
    booking.status = new_status
    session.add(booking)
    if new_status == BookingStatus.CONFIRMED:
        salon = await get_salon(session, booking.salon_id)
        touch_activity(salon)
        session.add(salon)
    await session.flush()
    logger.info("Booking %s -> %s", booking.id, new_status.value)
    return booking


async def confirm_arrival(session: AsyncSession, ctx: SessionContext, booking_id: str) -> Booking:
    """Customer acknowledges an imminent appointment. Only valid while CONFIRMED."""
    booking = await get_booking(session, booking_id)
    if ctx.user_id != booking.customer_id:
        raise PermissionDenied("Not your booking")
    if booking.status != BookingStatus.CONFIRMED:
        raise InvalidTransition(
            f"Arrival can only be confirmed for CONFIRMED bookings, {booking.id} is {booking.status.value}"
        )
    if not booking.customer_confirmed:
        booking.customer_confirmed = True
        session.add(booking)
        await session.flush()
    return booking


async def list_bookings_for_customer(session: AsyncSession, customer_id: str) -> list[Booking]:
    result = await session.execute(
        select(Booking)
        .where(Booking.customer_id == customer_id)
        .order_by(Booking.date, Booking.time)
    )
    return list(result.scalars().all())


async def list_bookings_for_salon(session: AsyncSession, salon_id: str) -> list[Booking]:
    """Pending requests first, then everything else by date and time."""
    result = await session.execute(
        select(Booking).where(Booking.salon_id == salon_id).order_by(Booking.date, Booking.time)
    )
    bookings = list(result.scalars().all())
    return sorted(bookings, key=lambda b: b.status != BookingStatus.PENDING)
