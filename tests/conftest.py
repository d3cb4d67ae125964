"""
Shared fixtures: an in-memory SQLite database per test and ready-made actors.
"""

import datetime as dt
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENV", "test")

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from salonbook.core.security import SessionContext
from salonbook.models import Booking, BookingStatus, Salon, ServiceItem, User, UserRole

BOOKING_DAY = dt.date(2030, 1, 15)


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_sqlite_engine(url: str, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, **kwargs)

    # pysqlite needs explicit BEGIN for SAVEPOINTs to behave
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@pytest.fixture
async def engine():
    engine = make_sqlite_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


def seed_salon(session: AsyncSession) -> Salon:
    """Add the standard test salon and two customers; caller commits."""
    salon = Salon(
        id="salon_test",
        name="Luxe Cuts",
        owner_name="Asha",
        email="owner@luxecuts.example",
        phone="9876543210",
        location="MG Road",
        open_time="09:00",
        close_time="18:00",
        services=[ServiceItem(id="srv_cut", name="Haircut", price=300, duration_mins=30).model_dump()],
    )
    session.add(salon)
    session.add(User(id="cust_1", email="ravi@example.com", name="Ravi", phone="9123456780"))
    session.add(User(id="cust_2", email="meena@example.com", name="Meena", phone="9000000001"))
    return salon


@pytest.fixture
async def salon(session):
    salon = seed_salon(session)
    await session.commit()
    return salon


@pytest.fixture
def customer_ctx():
    return SessionContext(user_id="cust_1", role=UserRole.CUSTOMER)


@pytest.fixture
def other_customer_ctx():
    return SessionContext(user_id="cust_2", role=UserRole.CUSTOMER)


@pytest.fixture
def owner_ctx():
    return SessionContext(user_id="owner_salon_test", role=UserRole.OWNER, salon_id="salon_test")


@pytest.fixture
def admin_ctx():
    return SessionContext(user_id="admin_1", role=UserRole.ADMIN)


def make_booking(
    day: dt.date = BOOKING_DAY,
    time: str = "10:00",
    status: BookingStatus = BookingStatus.CONFIRMED,
    customer_confirmed: bool = False,
    **kwargs,
) -> Booking:
    """Unsaved booking for tests that only need the object."""
    defaults = dict(salon_id="salon_test", customer_id="cust_1", service_id="srv_cut")
    defaults.update(kwargs)
    return Booking(date=day, time=time, status=status, customer_confirmed=customer_confirmed, **defaults)
