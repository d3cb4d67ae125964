import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.api.deps import get_context, get_customer_context, get_reminders, get_session
from salonbook.api.routes.salons import build_availability
from salonbook.api.schemas.booking import SlotConflictResponse, StatusUpdateRequest
from salonbook.core.errors import SlotConflict
from salonbook.core.security import SessionContext
from salonbook.models.booking import Booking, BookingCreate, BookingPublic
from salonbook.models.user import User
from salonbook.services import booking_service
from salonbook.services.email_service import send_booking_request_email, send_booking_status_email
from salonbook.services.reminder_service import ReminderRegistry
from salonbook.services.salon_service import get_salon

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


def booking_to_public(b: Booking) -> BookingPublic:
    return BookingPublic(
        id=b.id,
        salon_id=b.salon_id,
        customer_id=b.customer_id,
        customer_name=b.customer_name,
        customer_phone=b.customer_phone,
        service_id=b.service_id,
        service_name=b.service_name,
        price=b.price,
        date=b.date,
        time=b.time,
        status=b.status,
        customer_confirmed=b.customer_confirmed,
        created_at=b.created_at,
    )


@router.post(
    "",
    response_model=BookingPublic,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": SlotConflictResponse}},
)
async def create_booking(
    body: BookingCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
):
    try:
        booking = await booking_service.create_booking(session, ctx, body)
    except SlotConflict as e:
        # Hand back fresh availability so the customer picks another slot
        salon = await get_salon(session, body.salon_id)
        availability = await build_availability(session, salon, body.date)
        payload = SlotConflictResponse(detail=e.detail, availability=availability)
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=payload.model_dump(mode="json"))

    salon = await get_salon(session, booking.salon_id)
    if salon.email:
        background_tasks.add_task(send_booking_request_email, to_email=salon.email, booking=booking)
    # Background tasks run after the request session commits
    background_tasks.add_task(reminders.refresh, ctx.user_id)
    return booking_to_public(booking)


@router.get("", response_model=list[BookingPublic])
async def list_bookings(
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> list[BookingPublic]:
    """Owners see their salon's bookings (pending first); everyone else sees their own."""
    if ctx.is_owner:
        bookings = await booking_service.list_bookings_for_salon(session, ctx.salon_id)
    else:
        bookings = await booking_service.list_bookings_for_customer(session, ctx.user_id)
    return [booking_to_public(b) for b in bookings]


@router.patch("/{booking_id}/status", response_model=BookingPublic)
async def update_booking_status(
    booking_id: str,
    body: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> BookingPublic:
    booking = await booking_service.update_status(session, ctx, booking_id, body.status)
    customer = await session.get(User, booking.customer_id)
    if customer and customer.email:
        background_tasks.add_task(
            send_booking_status_email,
            to_email=customer.email,
            recipient_name=customer.name,
            booking=booking,
        )
    background_tasks.add_task(reminders.refresh, booking.customer_id)
    return booking_to_public(booking)


@router.post("/{booking_id}/confirm-arrival", response_model=BookingPublic)
async def confirm_arrival(
    booking_id: str,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> BookingPublic:
    booking = await booking_service.confirm_arrival(session, ctx, booking_id)
    background_tasks.add_task(reminders.refresh, ctx.user_id)
    return booking_to_public(booking)
