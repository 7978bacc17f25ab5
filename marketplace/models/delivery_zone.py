# marketplace/models/delivery_zone.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class ZoneStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class DeliveryZone(SQLModel, table=True):
    """
    Admin-defined delivery area.

    geometry:
      GeoJSON Polygon / MultiPolygon, positions are [lng, lat].

    landmarks:
      list of {"name", "coordinates": {"lng", "lat"}, "category",
      "is_popular"} used as searchable neighborhood labels.
      JSON columns are not mutation-tracked: always assign a new list.
    """

    __tablename__ = "delivery_zones"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    code: str = Field(
        max_length=20,
        unique=True,
        index=True,
        description="Short human label, e.g. WEST",
    )

    name: str = Field(
        max_length=100,
        index=True,
    )

    description: str | None = None

    geometry: dict = Field(sa_column=Column(JSON, nullable=False))

    delivery_fee: float = Field(ge=0)
    estimated_delivery_minutes: int | None = Field(default=None, gt=0)
    min_order_amount: float | None = Field(default=None, ge=0)

    color: str = Field(default="#3B82F6", max_length=20)

    # Higher wins when zones overlap
    priority: int = Field(default=0, index=True)

    status: ZoneStatus = Field(default=ZoneStatus.ACTIVE, index=True)

    landmarks: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    # Bumped on every admin edit
    version: int = Field(default=1)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
