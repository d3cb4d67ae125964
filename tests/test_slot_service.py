"""
Tests for slot generation and availability resolution.
"""

import datetime as dt

import pytest

from conftest import BOOKING_DAY
from salonbook.core.errors import InvalidInput
from salonbook.models import Booking, BookingStatus
from salonbook.services import salon_service
from salonbook.services.slot_service import (
    format_time,
    generate_slots,
    get_taken_times,
    parse_date,
    parse_time,
    resolve_availability,
)


class TestTimeParsing:
    """Tests for HH:MM and YYYY-MM-DD parsing."""

    def test_parse_and_format(self):
        assert parse_time("09:30") == 570
        assert format_time(570) == "09:30"
        assert format_time(parse_time("00:00")) == "00:00"

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", "", "12:30:00"])
    def test_parse_time_rejects_malformed(self, value):
        with pytest.raises(InvalidInput):
            parse_time(value)

    def test_parse_date(self):
        assert parse_date("2030-01-15") == dt.date(2030, 1, 15)
        with pytest.raises(InvalidInput):
            parse_date("2030-02-30")
        with pytest.raises(InvalidInput):
            parse_date("15/01/2030")


class TestGenerateSlots:
    """Tests for canonical slot generation."""

    def test_full_day_jumps_over_break(self):
        """Test 09:00-18:00 skips 12:30 and 13:00 and excludes 18:00."""
        slots = generate_slots("09:00", "18:00")

        assert slots == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00",
            "13:30", "14:00", "14:30", "15:00", "15:30", "16:00", "16:30", "17:00", "17:30",
        ]

    def test_no_slot_inside_break(self):
        for open_time, close_time in [("08:15", "20:00"), ("12:00", "14:00"), ("10:10", "16:50")]:
            slots = generate_slots(open_time, close_time)
            assert slots, (open_time, close_time)
            assert all(not ("12:30" <= s < "13:30") for s in slots)
            assert slots[0] == open_time
            assert slots[-1] < close_time

    def test_offset_cadence_resets_at_break_end(self):
        """Test a 12:15 step lands in the break and the next slot is 13:30, not 13:15."""
        slots = generate_slots("11:45", "14:30")

        assert slots == ["11:45", "12:15", "13:30", "14:00"]

    def test_open_inside_break(self):
        assert generate_slots("12:45", "15:00") == ["13:30", "14:00", "14:30"]

    def test_close_is_exclusive(self):
        assert generate_slots("09:00", "09:30") == ["09:00"]
        assert generate_slots("09:00", "09:31") == ["09:00", "09:30"]

    @pytest.mark.parametrize("open_time,close_time", [("18:00", "09:00"), ("10:00", "10:00")])
    def test_empty_when_open_not_before_close(self, open_time, close_time):
        assert generate_slots(open_time, close_time) == []

    @pytest.mark.parametrize("open_time,close_time", [(None, "18:00"), ("09:00", None), ("", "")])
    def test_empty_when_bound_missing(self, open_time, close_time):
        assert generate_slots(open_time, close_time) == []

    def test_custom_interval_and_break(self):
        slots = generate_slots("09:00", "11:00", interval=45, break_start="10:00", break_end="10:15")

        assert slots == ["09:00", "09:45", "10:30"]

    def test_deterministic(self):
        assert generate_slots("09:00", "18:00") == generate_slots("09:00", "18:00")


@pytest.mark.anyio
class TestResolveAvailability:
    """Tests for merging canonical, custom, closed and taken slots."""

    async def test_open_day_lists_canonical_slots(self, session, salon):
        slots = await resolve_availability(session, salon, BOOKING_DAY)

        assert [s.time for s in slots] == generate_slots("09:00", "18:00")
        assert not any(s.taken or s.custom for s in slots)

    async def test_closed_date_overrides_everything(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        await salon_service.set_date_closed(session, owner_ctx, "2030-01-15", True)

        assert await resolve_availability(session, salon, BOOKING_DAY) == []

    async def test_custom_slot_is_added_and_tagged(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")

        slots = await resolve_availability(session, salon, BOOKING_DAY)

        assert slots[-1].time == "19:00"
        assert slots[-1].custom is True
        assert [s.time for s in slots] == sorted(s.time for s in slots)

    async def test_custom_slot_only_applies_to_its_date(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-16", "19:00")

        slots = await resolve_availability(session, salon, BOOKING_DAY)

        assert "19:00" not in [s.time for s in slots]

    async def test_removing_custom_slot_removes_it(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "12:45")
        await salon_service.remove_custom_slot(session, owner_ctx, "2030-01-15", "12:45")

        slots = await resolve_availability(session, salon, BOOKING_DAY)

        assert "12:45" not in [s.time for s in slots]

    async def test_custom_slot_matching_canonical_is_not_duplicated(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "10:00")

        slots = await resolve_availability(session, salon, BOOKING_DAY)
        matching = [s for s in slots if s.time == "10:00"]

        assert len(matching) == 1
        assert matching[0].custom is False

        await salon_service.remove_custom_slot(session, owner_ctx, "2030-01-15", "10:00")
        slots = await resolve_availability(session, salon, BOOKING_DAY)
        assert [s.custom for s in slots if s.time == "10:00"] == [False]

    async def test_taken_flag_follows_live_bookings(self, session, salon):
        booking = Booking(salon_id=salon.id, customer_id="cust_1", service_id="srv_cut", date=BOOKING_DAY, time="10:00")
        session.add(booking)
        await session.flush()

        slots = {s.time: s for s in await resolve_availability(session, salon, BOOKING_DAY)}
        assert slots["10:00"].taken is True
        assert slots["10:30"].taken is False

        booking.status = BookingStatus.CANCELLED
        await session.flush()

        slots = {s.time: s for s in await resolve_availability(session, salon, BOOKING_DAY)}
        assert slots["10:00"].taken is False

    async def test_booked_custom_slot_survives_removal_until_resolved(self, session, salon, owner_ctx):
        await salon_service.add_custom_slot(session, owner_ctx, "2030-01-15", "19:00")
        booking = Booking(salon_id=salon.id, customer_id="cust_1", service_id="srv_cut", date=BOOKING_DAY, time="19:00")
        session.add(booking)
        await session.flush()
        await salon_service.remove_custom_slot(session, owner_ctx, "2030-01-15", "19:00")

        slots = {s.time: s for s in await resolve_availability(session, salon, BOOKING_DAY)}
        assert slots["19:00"].taken is True
        assert await session.get(Booking, booking.id) is not None

        booking.status = BookingStatus.CANCELLED
        await session.flush()

        slots = await resolve_availability(session, salon, BOOKING_DAY)
        assert "19:00" not in [s.time for s in slots]

    async def test_get_taken_times_ignores_other_dates_and_salons(self, session, salon):
        session.add(Booking(salon_id=salon.id, customer_id="cust_1", service_id="srv_cut", date=BOOKING_DAY, time="09:00"))
        session.add(Booking(salon_id=salon.id, customer_id="cust_1", service_id="srv_cut", date=BOOKING_DAY + dt.timedelta(days=1), time="09:30"))
        await session.flush()

        assert await get_taken_times(session, salon.id, BOOKING_DAY) == {"09:00"}
        assert await get_taken_times(session, "salon_other", BOOKING_DAY) == set()
