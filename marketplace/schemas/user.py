# marketplace/schemas/user.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel

from marketplace.models.user import UserRole


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    created_at: datetime


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: UserRole
