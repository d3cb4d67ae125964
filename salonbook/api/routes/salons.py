import datetime as dt

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.api.deps import get_context, get_session
from salonbook.api.schemas.salon import (
    AvailabilityResponse,
    ClosedDateRequest,
    CustomSlotRequest,
    ServicesRequest,
    SlotInfo,
)
from salonbook.core.security import SessionContext
from salonbook.models.salon import CustomSlot, Salon, SalonCreate, SalonPublic, ServiceItem
from salonbook.services import salon_service
from salonbook.services.slot_service import resolve_availability

router = APIRouter(prefix="/salons", tags=["salons"])


def salon_to_public(s: Salon) -> SalonPublic:
    return SalonPublic(
        id=s.id,
        name=s.name,
        owner_name=s.owner_name,
        phone=s.phone,
        location=s.location,
        open_time=s.open_time,
        close_time=s.close_time,
        status=s.status,
        services=[ServiceItem.model_validate(x) for x in s.services or []],
        closed_dates=list(s.closed_dates or []),
        custom_slots=[CustomSlot.model_validate(x) for x in s.custom_slots or []],
    )


async def build_availability(session: AsyncSession, salon: Salon, day: dt.date) -> AvailabilityResponse:
    slots = await resolve_availability(session, salon, day)
    return AvailabilityResponse(
        salon_id=salon.id,
        date=day.isoformat(),
        closed=day.isoformat() in (salon.closed_dates or []),
        slots=[SlotInfo(time=s.time, taken=s.taken, custom=s.custom) for s in slots],
    )


@router.get("", response_model=list[SalonPublic])
async def list_salons(session: AsyncSession = Depends(get_session)) -> list[SalonPublic]:
    return [salon_to_public(s) for s in await salon_service.list_active_salons(session)]


@router.post("", response_model=SalonPublic, status_code=status.HTTP_201_CREATED)
async def register_salon(
    body: SalonCreate,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> SalonPublic:
    return salon_to_public(await salon_service.create_salon(session, ctx, body))


@router.put("/mine/closed-dates/{day}", response_model=SalonPublic)
async def set_closed_date(
    day: str,
    body: ClosedDateRequest,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> SalonPublic:
    return salon_to_public(await salon_service.set_date_closed(session, ctx, day, body.closed))


@router.post("/mine/custom-slots", response_model=SalonPublic)
async def add_custom_slot(
    body: CustomSlotRequest,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> SalonPublic:
    return salon_to_public(await salon_service.add_custom_slot(session, ctx, body.date, body.time))


@router.delete("/mine/custom-slots", response_model=SalonPublic)
async def remove_custom_slot(
    date_param: str = Query(..., alias="date"),
    time_param: str = Query(..., alias="time"),
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> SalonPublic:
    return salon_to_public(await salon_service.remove_custom_slot(session, ctx, date_param, time_param))


@router.put("/mine/services", response_model=SalonPublic)
async def replace_services(
    body: ServicesRequest,
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> SalonPublic:
    return salon_to_public(await salon_service.update_services(session, ctx, body.services))


@router.get("/{salon_id}", response_model=SalonPublic)
async def get_salon(salon_id: str, session: AsyncSession = Depends(get_session)) -> SalonPublic:
    return salon_to_public(await salon_service.get_salon(session, salon_id))


@router.get("/{salon_id}/availability", response_model=AvailabilityResponse)
async def availability(
    salon_id: str,
    date_param: dt.date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> AvailabilityResponse:
    """Every candidate slot for the date; `taken` slots are shown but not selectable."""
    salon = await salon_service.get_salon(session, salon_id)
    return await build_availability(session, salon, date_param)
