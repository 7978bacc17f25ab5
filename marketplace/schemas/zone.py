# marketplace/schemas/zone.py
import re
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator
from sqlmodel import SQLModel, Field

from marketplace.models.delivery_zone import ZoneStatus

ZONE_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{1,20}$")


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _normalize_code(v: str) -> str:
    v = v.strip().upper()
    if not ZONE_CODE_PATTERN.match(v):
        raise ValueError("code must be 1-20 characters of A-Z, 0-9, '_' or '-'")
    return v


class GeoPoint(SQLModel):
    """A single {lng, lat} coordinate."""

    model_config = ConfigDict(extra="forbid")

    lng: float = Field(ge=-180, le=180)
    lat: float = Field(ge=-90, le=90)


class Landmark(SQLModel):
    """
    Named place inside a zone, shown to customers as a neighborhood
    they can pick instead of typing an address.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    coordinates: GeoPoint
    category: str = Field(default="general", max_length=50)
    is_popular: bool = False

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)


class LandmarkUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    coordinates: GeoPoint | None = None
    category: str | None = Field(default=None, max_length=50)
    is_popular: bool | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)


class ZoneCreate(SQLModel):
    """
    Admin payload for a new delivery zone.

    `geometry` is a GeoJSON Polygon or MultiPolygon; its shape is checked
    by the zone service (malformed polygons are rejected as bad input).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    code: str
    description: str | None = None
    geometry: dict
    delivery_fee: float = Field(ge=0)
    estimated_delivery_minutes: int | None = Field(default=None, gt=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    color: str = Field(default="#3B82F6", max_length=20)
    priority: int = 0
    status: ZoneStatus = ZoneStatus.ACTIVE
    landmarks: list[Landmark] = []

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _normalize_code(v)


class ZoneUpdate(SQLModel):
    """
    Partial update; only provided fields change.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    code: str | None = None
    description: str | None = None
    geometry: dict | None = None
    delivery_fee: float | None = Field(default=None, ge=0)
    estimated_delivery_minutes: int | None = Field(default=None, gt=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    color: str | None = Field(default=None, max_length=20)
    priority: int | None = None
    status: ZoneStatus | None = None
    landmarks: list[Landmark] | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _normalize_code(v)


class ZoneSummary(SQLModel):
    """
    Public view of a zone (no geometry), used by zone pickers.
    """

    id: uuid.UUID
    name: str
    code: str
    description: str | None
    delivery_fee: float
    estimated_delivery_minutes: int | None
    min_order_amount: float | None
    color: str
    priority: int
    landmarks: list[Landmark]


class ZoneRead(ZoneSummary):
    """
    Full zone including geometry (admin and coordinate lookups).
    """

    geometry: dict
    status: ZoneStatus
    centroid: GeoPoint | None
    version: int
    created_at: datetime
    updated_at: datetime


class ZoneSearchResult(ZoneSummary):
    status: ZoneStatus
    matched_neighborhoods: list[str]


class ZoneValidateRequest(BaseModel):
    """Body of POST /delivery-zones/validate."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    zone_id: uuid.UUID = PydanticField(alias="zoneId")


class ZoneValidation(SQLModel):
    """
    Pricing data a caller applies to an order being placed in this zone.
    """

    valid: bool
    zone_id: uuid.UUID
    delivery_fee: float
    estimated_delivery_minutes: int | None
    min_order_amount: float | None


class ZoneOrderStats(SQLModel):
    zone_id: uuid.UUID
    name: str
    code: str
    status: ZoneStatus
    order_count: int
    completed_revenue: float


class ZoneStatistics(SQLModel):
    """
    Aggregate zone report.
    """

    total_zones: int
    zones_by_status: dict[str, int]
    orders_per_zone: list[ZoneOrderStats]


class ZoneDetailStats(SQLModel):
    """
    Single-zone report for the admin zone page.
    """

    zone: ZoneRead
    orders_count: int
    total_revenue: float
