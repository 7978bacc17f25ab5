# marketplace/models/order.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED_BY_MERCHANT = "ACCEPTED_BY_MERCHANT"
    REJECTED_BY_MERCHANT = "REJECTED_BY_MERCHANT"
    IN_PREPARATION = "IN_PREPARATION"
    READY_TO_DELIVER = "READY_TO_DELIVER"
    ACCEPTED_BY_DRIVER = "ACCEPTED_BY_DRIVER"
    REJECTED_BY_DRIVER = "REJECTED_BY_DRIVER"
    ON_THE_WAY = "ON_THE_WAY"
    COMPLETED = "COMPLETED"
    CANCELED_BY_MERCHANT = "CANCELED_BY_MERCHANT"
    CANCELED_BY_DRIVER = "CANCELED_BY_DRIVER"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.REJECTED_BY_MERCHANT,
        OrderStatus.CANCELED_BY_MERCHANT,
        OrderStatus.REJECTED_BY_DRIVER,
        OrderStatus.CANCELED_BY_DRIVER,
    }
)

# Statuses in which the order is held by its assigned driver
IN_DELIVERY_STATUSES = frozenset(
    {
        OrderStatus.ACCEPTED_BY_DRIVER,
        OrderStatus.ON_THE_WAY,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order placed with a single merchant.

    Prices and zone fee are snapshotted at placement time, so later zone
    edits never change an existing order.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
        description="Customer that placed the order",
    )

    merchant_id: uuid.UUID = Field(
        foreign_key="merchants.id",
        index=True,
    )

    driver_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
        description="Driver assigned when the order is accepted for delivery",
    )

    delivery_zone_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="delivery_zones.id",
        index=True,
    )

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        index=True,
        description="Order status lifecycle",
    )

    # Delivery details
    delivery_address: str = Field(description="Free-text delivery address")
    delivery_latitude: float | None = None
    delivery_longitude: float | None = None
    note: str | None = Field(
        default=None,
        description="Optional note / special instructions",
    )

    # Price snapshot
    subtotal: float = Field(ge=0)
    delivery_fee: float = Field(ge=0)
    total: float = Field(ge=0)

    estimated_delivery_minutes: int | None = None

    # Handover codes: pickup at the merchant, delivery at the customer
    pickup_code: str | None = Field(default=None, max_length=12)
    delivery_code: str | None = Field(default=None, max_length=12)

    # Last position shared by the assigned driver while delivering
    driver_latitude: float | None = None
    driver_longitude: float | None = None
    driver_location_updated_at: datetime | None = None

    # Append-only [{status, timestamp, role, user_id}], written with each transition.
    # JSON columns are not mutation-tracked: always assign a new list.
    status_history: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Bumped on every status transition (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Immutable once the order is placed.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Unit price at time of order",
    )
