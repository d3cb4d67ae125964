import datetime as dt
from enum import Enum
from uuid import uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from salonbook.models.salon import utc_naive_now


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


def _new_booking_id() -> str:
    return f"bk_{uuid4().hex[:12]}"


_ACTIVE_ROWS = text("status <> 'CANCELLED'")


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    # One live booking per salon/date/time; cancelled rows free the slot
    __table_args__ = (
        Index(
            "uq_bookings_active_slot",
            "salon_id",
            "date",
            "time",
            unique=True,
            postgresql_where=_ACTIVE_ROWS,
            sqlite_where=_ACTIVE_ROWS,
        ),
    )
    id: str = Field(default_factory=_new_booking_id, primary_key=True)
    salon_id: str = Field(foreign_key="salons.id", index=True)
    customer_id: str = Field(index=True)
    customer_name: str | None = None
    customer_phone: str | None = None
    service_id: str
    service_name: str | None = None
    price: float = 0
    date: dt.date = Field(index=True)  # local calendar date
    time: str  # HH:MM local wall-clock
    status: BookingStatus = BookingStatus.PENDING
    customer_confirmed: bool = False
    created_at: dt.datetime = Field(default_factory=utc_naive_now)

    def starts_at(self) -> dt.datetime:
        """Naive local start; date and time are wall-clock values, no timezone applied."""
        hours, minutes = (int(p) for p in self.time.split(":"))
        return dt.datetime.combine(self.date, dt.time(hours, minutes))

    @property
    def awaiting_arrival(self) -> bool:
        """CONFIRMED and not yet acknowledged by the customer."""
        return self.status == BookingStatus.CONFIRMED and not self.customer_confirmed


class BookingCreate(SQLModel):
    salon_id: str
    service_id: str
    date: dt.date
    time: str


class BookingPublic(SQLModel):
    id: str
    salon_id: str
    customer_id: str
    customer_name: str | None = None
    customer_phone: str | None = None
    service_id: str
    service_name: str | None = None
    price: float
    date: dt.date
    time: str
    status: BookingStatus
    customer_confirmed: bool
    created_at: dt.datetime
