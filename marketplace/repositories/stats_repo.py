# marketplace/repositories/stats_repo.py
import uuid

from sqlalchemy import case, func
from sqlmodel import Session, select

from marketplace.models.delivery_zone import DeliveryZone
from marketplace.models.order import Order, OrderStatus


class StatsRepository:
    """
    Read-only aggregated queries for zone reporting.
    """

    def count_zones_by_status(self, session: Session) -> list[tuple]:
        stmt = (
            select(DeliveryZone.status, func.count(DeliveryZone.id))
            .group_by(DeliveryZone.status)
        )
        return list(session.exec(stmt).all())

    def orders_per_zone(self, session: Session) -> list[tuple]:
        """
        (zone_id, order_count, completed_revenue) for every zone,
        including zones without orders.
        """
        completed_total = func.coalesce(
            func.sum(case((Order.status == OrderStatus.COMPLETED, Order.total), else_=0.0)),
            0.0,
        )
        stmt = (
            select(
                DeliveryZone.id,
                func.count(Order.id).label("order_count"),
                completed_total.label("completed_revenue"),
            )
            .select_from(DeliveryZone)
            .join(Order, Order.delivery_zone_id == DeliveryZone.id, isouter=True)
            .group_by(DeliveryZone.id)
        )
        return list(session.exec(stmt).all())

    def completed_revenue_for_zone(self, session: Session, zone_id: uuid.UUID) -> float:
        """
        Sum of order totals for COMPLETED orders delivered in the zone.
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total), 0.0))
            .where(
                Order.delivery_zone_id == zone_id,
                Order.status == OrderStatus.COMPLETED,
            )
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)
