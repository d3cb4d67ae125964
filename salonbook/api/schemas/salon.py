import datetime as dt

from pydantic import BaseModel

from salonbook.models.salon import SalonPublic, ServiceItem


class SlotInfo(BaseModel):
    time: str  # HH:MM
    taken: bool
    custom: bool


class AvailabilityResponse(BaseModel):
    salon_id: str
    date: str  # YYYY-MM-DD
    closed: bool
    slots: list[SlotInfo]


class ClosedDateRequest(BaseModel):
    closed: bool


class CustomSlotRequest(BaseModel):
    date: str  # YYYY-MM-DD
    time: str  # HH:MM


class ServicesRequest(BaseModel):
    services: list[ServiceItem]


class AdminSalonSummary(SalonPublic):
    """Admin overview row: private contact details, activity and booking volume."""

    email: str | None = None
    last_activity_at: dt.datetime
    booking_count: int
