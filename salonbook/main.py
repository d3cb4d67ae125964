import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from salonbook.api.routes import admin, bookings, reminders, salons
from salonbook.core.config import _ENV_FILE, settings
from salonbook.core.db import async_session_maker
from salonbook.core.errors import SalonBookError
from salonbook.services.reminder_service import ReminderRegistry
from salonbook.services.salon_service import mark_inactive_salons

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _run_inactivity_sweep() -> None:
    """Mark salons with no activity for salon_inactivity_days as INACTIVE."""
    try:
        async with async_session_maker() as session:
            try:
                n = await mark_inactive_salons(session, settings.salon_inactivity_days)
                await session.commit()
                if n:
                    logger.info("Inactivity sweep: marked %d salon(s) inactive after %d days", n, settings.salon_inactivity_days)
            except Exception:
                await session.rollback()
                raise
    except Exception as e:
        logger.exception("Inactivity sweep failed: %s", e)


async def _sweep_loop() -> None:
    while True:
        await asyncio.sleep(settings.inactivity_sweep_interval_seconds)
        await _run_inactivity_sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    app.state.reminders = ReminderRegistry(async_session_maker)
    await _run_inactivity_sweep()
    task = asyncio.create_task(_sweep_loop())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    await app.state.reminders.shutdown()


app = FastAPI(
    title="BookMySalon API",
    description="Salon slot availability, bookings and arrival reminders",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(salons.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(reminders.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(SalonBookError)
async def domain_exception_handler(request: Request, exc: SalonBookError) -> JSONResponse:
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
