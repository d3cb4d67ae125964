from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.api.deps import get_context, get_session
from salonbook.api.routes.salons import salon_to_public
from salonbook.api.schemas.salon import AdminSalonSummary
from salonbook.core.security import SessionContext
from salonbook.services import salon_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/salons", response_model=list[AdminSalonSummary])
async def salon_overview(
    session: AsyncSession = Depends(get_session),
    ctx: SessionContext = Depends(get_context),
) -> list[AdminSalonSummary]:
    """All salons, inactive ones included, with how many bookings each has taken."""
    rows = await salon_service.list_salons_with_booking_counts(session, ctx)
    return [
        AdminSalonSummary(
            **salon_to_public(salon).model_dump(),
            email=salon.email,
            last_activity_at=salon.last_activity_at,
            booking_count=count,
        )
        for salon, count in rows
    ]
