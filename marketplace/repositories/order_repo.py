# marketplace/repositories/order_repo.py
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.models.order import IN_DELIVERY_STATUSES, Order, OrderItem, OrderStatus


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation and status transitions are
        committed by the service.
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_for_merchant(
        self,
        session: Session,
        merchant_id: uuid.UUID,
        status: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.merchant_id == merchant_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_available_for_drivers(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        Orders waiting at the merchant with no driver yet, oldest first.
        """
        stmt = (
            select(Order)
            .where(
                Order.status == OrderStatus.READY_TO_DELIVER,
                Order.driver_id == None,  # noqa: E711
            )
            .order_by(Order.updated_at)
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def transition_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: OrderStatus,
        values: dict[str, Any],
    ) -> bool:
        """
        Compare-and-set update of an order row.

        Writes `values` only if the stored status still equals `expected`.
        Returns False when another writer changed the status first.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def update_driver_location(
        self,
        session: Session,
        order_id: uuid.UUID,
        driver_id: uuid.UUID,
        latitude: float,
        longitude: float,
        at: datetime,
    ) -> bool:
        """
        Store the driver's position, only while that driver still holds
        the order. Returns False otherwise.
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.driver_id == driver_id,
                Order.status.in_(list(IN_DELIVERY_STATUSES)),
            )
            .values(
                driver_latitude=latitude,
                driver_longitude=longitude,
                driver_location_updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
