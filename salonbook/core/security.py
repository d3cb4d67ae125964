from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

from salonbook.core.config import settings
from salonbook.models.user import UserRole


class SessionContext(BaseModel):
    """Who is acting. Passed explicitly to every mutating core operation."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    salon_id: str | None = None

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER and self.salon_id is not None


def create_access_token(
    subject: str,
    role: UserRole,
    salon_id: str | None = None,
    expires_minutes: int = 60,
) -> str:
    """Mint a token the way the auth provider does. Used by tooling and tests."""
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": subject, "role": role.value, "exp": expire, "type": "access"}
    if salon_id:
        to_encode["salon_id"] = salon_id
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> SessionContext | None:
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    sub = payload.get("sub")
    if not sub:
        return None
    try:
        role = UserRole(payload.get("role", UserRole.CUSTOMER.value))
    except ValueError:
        return None
    return SessionContext(user_id=str(sub), role=role, salon_id=payload.get("salon_id"))
