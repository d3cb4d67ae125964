from salonbook.models.booking import Booking, BookingCreate, BookingPublic, BookingStatus
from salonbook.models.salon import CustomSlot, Salon, SalonCreate, SalonPublic, SalonStatus, ServiceItem
from salonbook.models.user import User, UserPublic, UserRole

__all__ = [
    "Booking",
    "BookingCreate",
    "BookingPublic",
    "BookingStatus",
    "CustomSlot",
    "Salon",
    "SalonCreate",
    "SalonPublic",
    "SalonStatus",
    "ServiceItem",
    "User",
    "UserPublic",
    "UserRole",
]
