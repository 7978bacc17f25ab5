# marketplace/models/user.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class UserRole(str, Enum):
    CUSTOMER = "customer"
    MERCHANT = "merchant"
    DRIVER = "driver"
    ADMIN = "admin"


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the auth provider's user id (UUID from JWT "sub")

    Role:
      - customer | merchant | driver | admin
      - "guest" is represented by the absence of a row / missing token.

    Passwords live with the auth provider; we only mirror identity,
    name, and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the auth provider user id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from the auth provider",
    )

    name: str = Field(
        max_length=50,
        description="Display name; first part of email by default",
    )

    role: UserRole = Field(
        default=UserRole.CUSTOMER,
        index=True,
        description="Application role: customer | merchant | driver | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
