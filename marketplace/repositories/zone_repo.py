# marketplace/repositories/zone_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select, or_

from marketplace.models.delivery_zone import DeliveryZone, ZoneStatus
from marketplace.models.order import Order


class ZoneRepository:
    """
    Data access layer for DeliveryZone.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    - Listings are ordered by priority desc, then newest first, which is
      also the precedence used for overlapping zones.
    """

    def get_by_id(self, session: Session, zone_id: uuid.UUID) -> DeliveryZone | None:
        return session.get(DeliveryZone, zone_id)

    def list_all(self, session: Session) -> list[DeliveryZone]:
        stmt = select(DeliveryZone).order_by(
            DeliveryZone.priority.desc(),
            DeliveryZone.created_at.desc(),
        )
        return list(session.exec(stmt).all())

    def list_active(self, session: Session) -> list[DeliveryZone]:
        stmt = (
            select(DeliveryZone)
            .where(DeliveryZone.status == ZoneStatus.ACTIVE)
            .order_by(
                DeliveryZone.priority.desc(),
                DeliveryZone.created_at.desc(),
            )
        )
        return list(session.exec(stmt).all())

    def find_duplicate(
        self,
        session: Session,
        code: str | None,
        name: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> DeliveryZone | None:
        """
        Another zone with the same code, or the same name ignoring case.
        """
        conditions = []
        if code:
            conditions.append(DeliveryZone.code == code)
        if name:
            conditions.append(func.lower(DeliveryZone.name) == name.lower())
        if not conditions:
            return None

        stmt = select(DeliveryZone).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(DeliveryZone.id != exclude_id)
        return session.exec(stmt).first()

    def create(self, session: Session, zone: DeliveryZone) -> DeliveryZone:
        session.add(zone)
        session.commit()
        session.refresh(zone)
        return zone

    def update(self, session: Session, zone: DeliveryZone) -> DeliveryZone:
        session.add(zone)
        session.commit()
        session.refresh(zone)
        return zone

    def delete(self, session: Session, zone: DeliveryZone) -> None:
        session.delete(zone)
        session.commit()

    def count_orders(self, session: Session, zone_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.delivery_zone_id == zone_id)
        )
        return int(session.exec(stmt).one() or 0)
