"""
Tests for salon record management and the inactivity sweep.
"""

import datetime as dt

import pytest

from conftest import make_booking
from salonbook.core.errors import InvalidInput, NotFound, PermissionDenied
from salonbook.models import BookingStatus, Salon, SalonCreate, SalonStatus, ServiceItem
from salonbook.services import salon_service


class TestValidation:
    """Tests for operating-hours and phone validation."""

    def test_hours_are_normalised(self):
        assert salon_service.validate_hours("09:00", "18:00") == ("09:00", "18:00")

    @pytest.mark.parametrize("open_time,close_time", [("18:00", "09:00"), ("10:00", "10:00"), ("9", "18:00")])
    def test_bad_hours(self, open_time, close_time):
        with pytest.raises(InvalidInput):
            salon_service.validate_hours(open_time, close_time)

    def test_phone_must_be_ten_digits(self):
        assert salon_service.validate_phone(" 9876543210 ") == "9876543210"
        for bad in ["98765", "98765432101", "98765-4321", ""]:
            with pytest.raises(InvalidInput):
                salon_service.validate_phone(bad)


def _new_salon(**overrides) -> SalonCreate:
    data = dict(
        name="Glow Studio",
        owner_name="Priya",
        email="priya@glow.example",
        phone="9988776655",
        location="Indiranagar",
        open_time="10:00",
        close_time="19:00",
        services=[ServiceItem(name="Facial", price=900, duration_mins=60)],
    )
    data.update(overrides)
    return SalonCreate(**data)


@pytest.mark.anyio
class TestCreateSalon:
    """Tests for salon registration."""

    async def test_admin_registers_salon(self, session, admin_ctx):
        salon = await salon_service.create_salon(session, admin_ctx, _new_salon())

        assert salon.id.startswith("salon_")
        assert salon.status == SalonStatus.ACTIVE
        assert salon.closed_dates == []
        assert salon.custom_slots == []
        assert salon.services[0]["name"] == "Facial"
        assert salon.services[0]["id"].startswith("srv_")

    async def test_rejects_inverted_hours(self, session, admin_ctx):
        with pytest.raises(InvalidInput):
            await salon_service.create_salon(session, admin_ctx, _new_salon(open_time="19:00", close_time="10:00"))

    async def test_only_admin(self, session, customer_ctx):
        with pytest.raises(PermissionDenied):
            await salon_service.create_salon(session, customer_ctx, _new_salon())


@pytest.mark.anyio
class TestOwnerChanges:
    """Tests for closures, custom slots and services."""

    async def test_close_and_reopen_date(self, session, salon, owner_ctx):
        await salon_service.set_date_closed(session, owner_ctx, "2030-01-15", True)
        await salon_service.set_date_closed(session, owner_ctx, "2030-01-15", True)
        assert salon.closed_dates == ["2030-01-15"]

        await salon_service.set_date_closed(session, owner_ctx, "2030-01-15", False)
        assert salon.closed_dates == []

    async def test_custom_slots_have_set_semantics(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-16", "19:00")

        assert salon.custom_slots == [
            {"date": "2030-01-15", "time": "19:00"},
            {"date": "2030-01-16", "time": "19:00"},
        ]
        assert salon.custom_times_on("2030-01-15") == ["19:00"]

        await salon_service.remove_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        assert salon.custom_slots == [{"date": "2030-01-16", "time": "19:00"}]

    async def test_custom_slot_time_is_validated(self, session, salon, owner_ctx):
        with pytest.raises(InvalidInput):
            await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "7pm")

    async def test_changes_persist(self, session_maker, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        await salon_service.set_date_closed(session, owner_ctx, "2030-01-20", True)
        await session.commit()

        async with session_maker() as fresh:
            stored = await fresh.get(Salon, salon.id)
            assert stored.custom_slots == [{"date": "2030-01-15", "time": "19:00"}]
            assert stored.closed_dates == ["2030-01-20"]

    async def test_update_services(self, session, salon, owner_ctx):
        salon.last_activity_at = dt.datetime(2000, 1, 1)

        await salon_service.update_services(
            session, owner_ctx, [ServiceItem(id="srv_shave", name="Shave", price=150, duration_mins=15)]
        )

        assert [s.id for s in salon.service_items()] == ["srv_shave"]
        assert salon.last_activity_at > dt.datetime(2000, 1, 1)

    async def test_customer_cannot_manage(self, session, salon, customer_ctx):
        with pytest.raises(PermissionDenied):
            await salon_service.set_date_closed(session, customer_ctx, "2030-01-15", True)
        with pytest.raises(PermissionDenied):
            await salon_service.add_custom_slot(session, customer_ctx, "2030-01-15", "19:00")


@pytest.mark.anyio
class TestLookupAndSweep:
    """Tests for lookups and the inactivity sweep."""

    async def test_get_missing_salon(self, session):
        with pytest.raises(NotFound):
            await salon_service.get_salon(session, "salon_missing")

    async def test_stale_salons_become_inactive(self, session, salon):
        fresh = Salon(id="salon_fresh", name="Fresh Fades")
        salon.last_activity_at = dt.datetime.now(dt.UTC).replace(tzinfo=None) - dt.timedelta(days=6)
        session.add(fresh)
        await session.commit()

        marked = await salon_service.mark_inactive_salons(session, days=5)
        await session.commit()

        assert marked == 1
        active = await salon_service.list_active_salons(session)
        assert [s.id for s in active] == ["salon_fresh"]

    async def test_admin_overview_includes_inactive_with_counts(self, session, salon, admin_ctx):
        dormant = Salon(id="salon_dormant", name="Aura Salon", status=SalonStatus.INACTIVE)
        session.add(dormant)
        session.add(make_booking(time="10:00"))
        session.add(make_booking(time="10:30", status=BookingStatus.CANCELLED))
        await session.commit()

        rows = await salon_service.list_salons_with_booking_counts(session, admin_ctx)

        assert [(s.id, count) for s, count in rows] == [("salon_dormant", 0), ("salon_test", 2)]

    async def test_admin_overview_is_admin_only(self, session, salon, owner_ctx):
        with pytest.raises(PermissionDenied):
            await salon_service.list_salons_with_booking_counts(session, owner_ctx)
