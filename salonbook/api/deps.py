from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from salonbook.core.db import get_session
from salonbook.core.security import SessionContext, decode_access_token
from salonbook.models.user import UserRole
from salonbook.services.reminder_service import ReminderRegistry

security = HTTPBearer(auto_error=False)

__all__ = ["get_session", "get_context", "get_customer_context", "get_reminders"]


async def get_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> SessionContext:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    ctx = decode_access_token(credentials.credentials)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


async def get_customer_context(ctx: SessionContext = Depends(get_context)) -> SessionContext:
    if ctx.role != UserRole.CUSTOMER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer session required",
        )
    return ctx


def get_reminders(request: Request) -> ReminderRegistry:
    return request.app.state.reminders
