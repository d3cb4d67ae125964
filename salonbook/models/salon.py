import datetime as dt
from enum import Enum
from uuid import uuid4

from pydantic import EmailStr
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class SalonStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


def utc_naive_now() -> dt.datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


def _new_salon_id() -> str:
    return f"salon_{uuid4().hex[:8]}"


def new_service_id() -> str:
    return f"srv_{uuid4().hex[:8]}"


class ServiceItem(SQLModel):
    id: str = Field(default_factory=new_service_id)
    name: str
    price: float = Field(ge=0)
    duration_mins: int = Field(default=30, gt=0)


class CustomSlot(SQLModel):
    date: str  # YYYY-MM-DD
    time: str  # HH:MM


class Salon(SQLModel, table=True):
    __tablename__ = "salons"
    id: str = Field(default_factory=_new_salon_id, primary_key=True)
    name: str
    owner_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    open_time: str = "09:00"
    close_time: str = "18:00"
    status: SalonStatus = Field(default=SalonStatus.ACTIVE, index=True)
    last_activity_at: dt.datetime = Field(default_factory=utc_naive_now)
    # Collections owned by the salon record, always read and written wholesale
    services: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    closed_dates: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    custom_slots: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    def service_items(self) -> list[ServiceItem]:
        return [ServiceItem.model_validate(s) for s in self.services or []]

    def custom_times_on(self, day: str) -> list[str]:
        return [s["time"] for s in self.custom_slots or [] if s.get("date") == day]


class SalonCreate(SQLModel):
    name: str
    owner_name: str
    email: EmailStr
    phone: str
    location: str
    open_time: str = "09:00"
    close_time: str = "18:00"
    services: list[ServiceItem] = []


class SalonPublic(SQLModel):
    id: str
    name: str
    owner_name: str | None = None
    phone: str | None = None
    location: str | None = None
    open_time: str
    close_time: str
    status: SalonStatus
    services: list[ServiceItem]
    closed_dates: list[str]
    custom_slots: list[CustomSlot]
