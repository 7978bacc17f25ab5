# marketplace/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Merchant(SQLModel, table=True):
    """
    A store on the marketplace, owned by a merchant-role user.
    """

    __tablename__ = "merchants"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
        description="User that manages this merchant",
    )

    business_name: str = Field(max_length=100)

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
    )

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Product(SQLModel, table=True):
    """
    Catalog entry sold by a single merchant.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    merchant_id: uuid.UUID = Field(
        foreign_key="merchants.id",
        index=True,
    )

    title: str = Field(max_length=100, index=True)

    price: float = Field(
        gt=0,
        description="Unit price",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be ordered",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
