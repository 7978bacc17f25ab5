# marketplace/schemas/order.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator, model_validator
from sqlmodel import SQLModel, Field

from marketplace.models.order import OrderStatus
from marketplace.models.user import UserRole


class OrderItemCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class OrderCreate(SQLModel):
    """
    Payload for placing an order with one merchant.

    Customer provides:
      - merchant_id and items
      - delivery_address (free text)
      - either delivery_zone_id (picked from the zone list) or
        latitude/longitude (pin on the map); with both, the pin must lie
        inside the picked zone

    Backend derives:
      - user_id from token
      - status = PENDING
      - unit prices from the catalog
      - delivery fee / ETA from the zone
    """

    model_config = ConfigDict(extra="forbid")

    merchant_id: uuid.UUID
    items: list[OrderItemCreate]
    delivery_address: str = Field(max_length=500)
    delivery_zone_id: uuid.UUID | None = None
    latitude: float | None = None
    longitude: float | None = None
    note: str | None = None

    @field_validator("items")
    @classmethod
    def at_least_one_item(cls, v: list[OrderItemCreate]) -> list[OrderItemCreate]:
        if not v:
            raise ValueError("order must contain at least one item")
        return v

    @field_validator("delivery_address")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("note")
    @classmethod
    def normalize_note(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def zone_or_coordinates(self) -> "OrderCreate":
        has_coordinates = self.latitude is not None and self.longitude is not None
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        if self.delivery_zone_id is None and not has_coordinates:
            raise ValueError("delivery_zone_id or latitude/longitude is required")
        return self


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    Handover codes are never included.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    merchant_id: uuid.UUID
    driver_id: uuid.UUID | None
    delivery_zone_id: uuid.UUID | None
    status: OrderStatus
    delivery_address: str
    delivery_latitude: float | None
    delivery_longitude: float | None
    note: str | None
    subtotal: float
    delivery_fee: float
    total: float
    estimated_delivery_minutes: int | None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    unit_price: float
    line_total: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class CustomerOrderRead(OrderWithItemsRead):
    """
    What the customer sees: includes the delivery code they hand to the
    driver at the door.
    """

    delivery_code: str | None


class MerchantOrderRead(OrderRead):
    """
    What the merchant sees: includes the pickup code they hand to the
    driver at the store.
    """

    pickup_code: str | None


class OrderStatusUpdate(BaseModel):
    """
    Body of PATCH .../orders/{order_id}/status.

    driver_id is only read by the admin route, to name the driver an
    order is handed to on READY_TO_DELIVER -> ACCEPTED_BY_DRIVER.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    new_status: OrderStatus = PydanticField(alias="newStatus")
    driver_id: uuid.UUID | None = PydanticField(default=None, alias="driverId")


class PickupCodePayload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    pickup_code: str = PydanticField(alias="pickupCode", min_length=1)


class DeliveryCodePayload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    delivery_code: str = PydanticField(alias="deliveryCode", min_length=1)


class DriverLocationUpdate(BaseModel):
    """
    Body of POST /driver/orders/{order_id}/location.
    Range checks happen in the service so they map to InvalidCoordinate.
    """

    model_config = ConfigDict(extra="forbid")

    latitude: float
    longitude: float


class StatusHistoryEntry(SQLModel):
    status: OrderStatus
    timestamp: datetime
    role: UserRole
    user_id: uuid.UUID


class DriverLocation(SQLModel):
    latitude: float
    longitude: float
    updated_at: datetime


class OrderTracking(SQLModel):
    """
    Live view of an order on its way: status, where the driver last was,
    where it is going, and every status change so far.
    """

    order_id: uuid.UUID
    status: OrderStatus
    driver_id: uuid.UUID | None
    driver_location: DriverLocation | None
    delivery_address: str
    delivery_latitude: float | None
    delivery_longitude: float | None
    estimated_delivery_minutes: int | None
    status_history: list[StatusHistoryEntry]
