# marketplace/services/order_status.py
"""
Order status state machine.

    PENDING -> ACCEPTED_BY_MERCHANT -> IN_PREPARATION -> READY_TO_DELIVER
            -> ACCEPTED_BY_DRIVER -> ON_THE_WAY -> COMPLETED

with terminal side branches REJECTED_BY_MERCHANT, CANCELED_BY_MERCHANT,
REJECTED_BY_DRIVER and CANCELED_BY_DRIVER.

Each edge belongs to one role; admins may take any edge, but must name
the driver when handing an order over for delivery.
"""
import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlmodel import Session

from marketplace.core.errors import (
    ConflictingTransition,
    InvalidInput,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from marketplace.models.order import IN_DELIVERY_STATUSES, Order, OrderStatus
from marketplace.models.user import UserRole
from marketplace.repositories.order_repo import OrderRepository

logger = logging.getLogger(__name__)

S = OrderStatus

# (current status, role) -> statuses that role may move the order to
TRANSITIONS: dict[tuple[OrderStatus, UserRole], frozenset[OrderStatus]] = {
    (S.PENDING, UserRole.MERCHANT): frozenset(
        {S.ACCEPTED_BY_MERCHANT, S.REJECTED_BY_MERCHANT}
    ),
    (S.ACCEPTED_BY_MERCHANT, UserRole.MERCHANT): frozenset(
        {S.IN_PREPARATION, S.CANCELED_BY_MERCHANT}
    ),
    (S.IN_PREPARATION, UserRole.MERCHANT): frozenset(
        {S.READY_TO_DELIVER, S.CANCELED_BY_MERCHANT}
    ),
    (S.READY_TO_DELIVER, UserRole.MERCHANT): frozenset({S.CANCELED_BY_MERCHANT}),
    (S.READY_TO_DELIVER, UserRole.DRIVER): frozenset(
        {S.ACCEPTED_BY_DRIVER, S.REJECTED_BY_DRIVER}
    ),
    (S.ACCEPTED_BY_DRIVER, UserRole.DRIVER): frozenset(
        {S.ON_THE_WAY, S.COMPLETED, S.CANCELED_BY_DRIVER}
    ),
    (S.ON_THE_WAY, UserRole.DRIVER): frozenset({S.COMPLETED, S.CANCELED_BY_DRIVER}),
}

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def outgoing_transitions(current: OrderStatus) -> frozenset[OrderStatus]:
    """Every status reachable from `current` in one step, by any role."""
    targets: set[OrderStatus] = set()
    for (status, _role), allowed in TRANSITIONS.items():
        if status == current:
            targets |= allowed
    return frozenset(targets)


def allowed_transitions(current: OrderStatus, role: UserRole) -> frozenset[OrderStatus]:
    if role == UserRole.ADMIN:
        return outgoing_transitions(current)
    return TRANSITIONS.get((current, role), frozenset())


def generate_handover_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def history_entry(
    status: OrderStatus,
    role: UserRole,
    user_id: uuid.UUID,
    at: datetime,
) -> dict:
    return {
        "status": status.value,
        "timestamp": at.isoformat(),
        "role": role.value,
        "user_id": str(user_id),
    }


@dataclass(frozen=True)
class Actor:
    """
    Who is asking for a transition.

    merchant_id is set for merchant-scoped requests (the merchant the
    caller acts for); the order must belong to it.
    """

    role: UserRole
    user_id: uuid.UUID
    merchant_id: uuid.UUID | None = None


class OrderStatusService:
    """
    Validates and applies order status transitions.

    Check order:
      1. order exists                           -> NotFound
      2. actor owns the order (merchant/driver) -> Unauthorized
      3. target is an edge from current status  -> InvalidTransition
      4. edge belongs to the actor's role       -> Unauthorized
      5. compare-and-set write on the status    -> ConflictingTransition
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def transition(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        actor: Actor,
        pickup_code: str | None = None,
        delivery_code: str | None = None,
        driver_id: uuid.UUID | None = None,
    ) -> Order:
        """
        driver_id names the driver an admin hands the order to when taking
        READY_TO_DELIVER -> ACCEPTED_BY_DRIVER; drivers always take it
        themselves.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")

        self._check_ownership(order, actor)

        current = order.status
        if new_status not in outgoing_transitions(current):
            raise InvalidTransition(
                f"Cannot transition from {current.value} to {new_status.value}"
            )

        if new_status not in allowed_transitions(current, actor.role):
            raise Unauthorized(
                f"Role {actor.role.value} cannot move an order from "
                f"{current.value} to {new_status.value}"
            )

        values = self._transition_values(
            order, new_status, actor, pickup_code, delivery_code, driver_id
        )

        if not self.order_repo.transition_status(session, order.id, current, values):
            session.rollback()
            logger.warning(
                "Lost update on order %s: %s -> %s by %s",
                order_id,
                current.value,
                new_status.value,
                actor.role.value,
            )
            raise ConflictingTransition()

        session.commit()
        session.refresh(order)
        logger.info(
            "Order %s: %s -> %s by %s %s",
            order.id,
            current.value,
            new_status.value,
            actor.role.value,
            actor.user_id,
        )
        return order

    @staticmethod
    def _check_ownership(order: Order, actor: Actor) -> None:
        if actor.merchant_id is not None and order.merchant_id != actor.merchant_id:
            raise Unauthorized("Order belongs to another merchant")

        if actor.role == UserRole.MERCHANT and actor.merchant_id is None:
            raise Unauthorized("Merchant actions require a merchant")

        if actor.role != UserRole.DRIVER:
            return

        # once picked up, only the assigned driver moves the order on
        if order.status in IN_DELIVERY_STATUSES and order.driver_id != actor.user_id:
            raise Unauthorized("Order is not assigned to you")

        if order.driver_id is not None and order.driver_id != actor.user_id:
            raise Unauthorized("Order is assigned to another driver")

    @staticmethod
    def _transition_values(
        order: Order,
        new_status: OrderStatus,
        actor: Actor,
        pickup_code: str | None,
        delivery_code: str | None,
        driver_id: uuid.UUID | None,
    ) -> dict:
        now = datetime.now(timezone.utc)
        values: dict = {
            "status": new_status,
            "updated_at": now,
            # written under the same status guard as the transition
            "status_history": [
                *(order.status_history or []),
                history_entry(new_status, actor.role, actor.user_id, now),
            ],
        }

        if new_status == S.READY_TO_DELIVER and not order.pickup_code:
            values["pickup_code"] = generate_handover_code()

        if new_status == S.ACCEPTED_BY_DRIVER:
            if actor.role == UserRole.DRIVER:
                if not pickup_code or pickup_code.strip().upper() != order.pickup_code:
                    raise InvalidInput("Invalid pickup code")
                values["driver_id"] = actor.user_id
            elif driver_id is None:
                raise InvalidInput("A driver must be assigned to accept the order for delivery")
            else:
                values["driver_id"] = driver_id

        if new_status == S.COMPLETED and actor.role == UserRole.DRIVER:
            if not delivery_code or delivery_code.strip().upper() != order.delivery_code:
                raise InvalidInput("Invalid delivery code")

        return values
