"""Arrival-confirmation prompts for bookings that are about to start.

Each logged-in customer gets one polling task. Every tick looks at the
customer's bookings and, when a CONFIRMED booking the customer has not yet
acknowledged starts within the window, posts a single prompt. The prompt
stays until the customer confirms or cancels; a prompt nobody answers just
expires once the booking leaves the window.
"""

import asyncio
import datetime as dt
import logging
from collections.abc import Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from salonbook.core.config import settings
from salonbook.core.security import SessionContext
from salonbook.models.booking import Booking, BookingStatus
from salonbook.services.booking_service import confirm_arrival, list_bookings_for_customer, update_status

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def find_due_booking(
    bookings: Iterable[Booking], now: dt.datetime, window: dt.timedelta
) -> Booking | None:
    """First CONFIRMED, unacknowledged booking starting strictly within (now, now + window)."""
    for b in bookings:
        if not b.awaiting_arrival:
            continue
        remaining = b.starts_at() - now
        if dt.timedelta(0) < remaining < window:
            return b
    return None


class ReminderScheduler:
    def __init__(
        self,
        ctx: SessionContext,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        interval: float | None = None,
        window: dt.timedelta | None = None,
        clock: Clock = dt.datetime.now,
    ):
        self.ctx = ctx
        self.session_maker = session_maker
        self.interval = interval if interval is not None else settings.reminder_poll_seconds
        self.window = window or dt.timedelta(minutes=settings.reminder_window_minutes)
        self.clock = clock
        self.prompt: Booking | None = None
        self._task: asyncio.Task | None = None
        self._wake = asyncio.Event()
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"reminders:{self.ctx.user_id}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        self.prompt = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def refresh(self) -> None:
        """Re-evaluate now instead of waiting for the next tick."""
        self._wake.set()

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.exception("Reminder check failed for %s: %s", self.ctx.user_id, e)
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    async def tick(self) -> Booking | None:
        """One evaluation. Returns the outstanding prompt, if any."""
        async with self._lock:
            now = self.clock()
            async with self.session_maker() as session:
                if self.prompt is not None:
                    current = await session.get(Booking, self.prompt.id)
                    if self._still_open(current, now):
                        self.prompt = current
                        return self.prompt
                    logger.info("Withdrawing arrival prompt for booking %s", self.prompt.id)
                    self.prompt = None
                bookings = await list_bookings_for_customer(session, self.ctx.user_id)
            due = find_due_booking(bookings, now, self.window)
            if due is not None:
                logger.info("Posting arrival prompt for booking %s", due.id)
                self.prompt = due
            return self.prompt

    @staticmethod
    def _still_open(booking: Booking | None, now: dt.datetime) -> bool:
        """A posted prompt lapses once its booking changes elsewhere or starts."""
        return booking is not None and booking.awaiting_arrival and now < booking.starts_at()

    async def respond_confirm(self) -> Booking | None:
        return await self._respond(confirm_arrival)

    async def respond_cancel(self) -> Booking | None:
        async def cancel(session: AsyncSession, ctx: SessionContext, booking_id: str) -> Booking:
            return await update_status(session, ctx, booking_id, BookingStatus.CANCELLED)

        return await self._respond(cancel)

    async def _respond(self, action) -> Booking | None:
        async with self._lock:
            if self.prompt is None:
                return None
            async with self.session_maker() as session:
                current = await session.get(Booking, self.prompt.id)
                if current is None or not current.awaiting_arrival:
                    logger.info("Arrival prompt for booking %s already settled", self.prompt.id)
                    self.prompt = None
                    return None
                try:
                    booking = await action(session, self.ctx, current.id)
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
            self.prompt = None
            return booking


class ReminderRegistry:
    """One scheduler per customer session."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        interval: float | None = None,
        window: dt.timedelta | None = None,
        clock: Clock = dt.datetime.now,
    ):
        self.session_maker = session_maker
        self.interval = interval
        self.window = window
        self.clock = clock
        self._schedulers: dict[str, ReminderScheduler] = {}

    def get(self, customer_id: str) -> ReminderScheduler | None:
        return self._schedulers.get(customer_id)

    def start(self, ctx: SessionContext) -> ReminderScheduler:
        scheduler = self._schedulers.get(ctx.user_id)
        if scheduler is None:
            scheduler = ReminderScheduler(
                ctx,
                self.session_maker,
                interval=self.interval,
                window=self.window,
                clock=self.clock,
            )
            self._schedulers[ctx.user_id] = scheduler
        scheduler.start()
        return scheduler

    async def stop(self, customer_id: str) -> None:
        scheduler = self._schedulers.pop(customer_id, None)
        if scheduler is not None:
            await scheduler.stop()

    async def refresh(self, customer_id: str) -> None:
        # Must run on the event loop; sync background tasks go to a threadpool
        scheduler = self._schedulers.get(customer_id)
        if scheduler is not None:
            scheduler.refresh()

    async def shutdown(self) -> None:
        for customer_id in list(self._schedulers):
            await self.stop(customer_id)
