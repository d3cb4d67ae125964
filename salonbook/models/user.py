from enum import Enum
from uuid import uuid4

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    OWNER = "OWNER"
    ADMIN = "ADMIN"


def _new_customer_id() -> str:
    return f"cust_{uuid4().hex[:12]}"


class UserBase(SQLModel):
    email: str = Field(index=True)
    role: UserRole = UserRole.CUSTOMER
    name: str | None = None
    phone: str | None = None  # ten digits


class User(UserBase, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=_new_customer_id, primary_key=True)
    salon_id: str | None = Field(default=None, foreign_key="salons.id")  # set for owners


class UserPublic(SQLModel):
    id: str
    email: str
    role: UserRole
    name: str | None = None
    phone: str | None = None
