from fastapi import APIRouter, Depends, HTTPException, status

from salonbook.api.deps import get_customer_context, get_reminders
from salonbook.api.routes.bookings import booking_to_public
from salonbook.api.schemas.booking import ReminderPrompt
from salonbook.core.security import SessionContext
from salonbook.services.reminder_service import ReminderRegistry, ReminderScheduler

router = APIRouter(prefix="/reminders", tags=["reminders"])


def _scheduler(reminders: ReminderRegistry, ctx: SessionContext) -> ReminderScheduler:
    scheduler = reminders.get(ctx.user_id)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No reminder session running; POST /reminders/session first",
        )
    return scheduler


def _prompt(scheduler: ReminderScheduler) -> ReminderPrompt:
    return ReminderPrompt(booking=booking_to_public(scheduler.prompt) if scheduler.prompt else None)


@router.post("/session", response_model=ReminderPrompt)
async def start_session(
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> ReminderPrompt:
    """Start (or keep) the customer's reminder polling and evaluate right away."""
    scheduler = reminders.start(ctx)
    await scheduler.tick()
    return _prompt(scheduler)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> None:
    await reminders.stop(ctx.user_id)


@router.get("/prompt", response_model=ReminderPrompt)
async def current_prompt(
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> ReminderPrompt:
    scheduler = _scheduler(reminders, ctx)
    await scheduler.tick()
    return _prompt(scheduler)


@router.post("/prompt/confirm", response_model=ReminderPrompt)
async def confirm_prompt(
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> ReminderPrompt:
    scheduler = _scheduler(reminders, ctx)
    booking = await scheduler.respond_confirm()
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No outstanding prompt")
    return ReminderPrompt(booking=booking_to_public(booking))


@router.post("/prompt/cancel", response_model=ReminderPrompt)
async def cancel_prompt(
    ctx: SessionContext = Depends(get_customer_context),
    reminders: ReminderRegistry = Depends(get_reminders),
) -> ReminderPrompt:
    scheduler = _scheduler(reminders, ctx)
    booking = await scheduler.respond_cancel()
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No outstanding prompt")
    return ReminderPrompt(booking=booking_to_public(booking))
