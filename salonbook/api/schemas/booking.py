from pydantic import BaseModel

from salonbook.api.schemas.salon import AvailabilityResponse
from salonbook.models.booking import BookingPublic, BookingStatus


class StatusUpdateRequest(BaseModel):
    status: BookingStatus


class SlotConflictResponse(BaseModel):
    """409 body: the failed request plus fresh availability so the caller can pick again."""

    detail: str
    availability: AvailabilityResponse


class ReminderPrompt(BaseModel):
    booking: BookingPublic | None = None
