# marketplace/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from marketplace.core.errors import (
    ConflictingTransition,
    InvalidCoordinate,
    InvalidInput,
    NotFound,
    Unauthorized,
)
from marketplace.core.geometry import is_valid_coordinate
from marketplace.models.order import IN_DELIVERY_STATUSES, Order, OrderItem, OrderStatus
from marketplace.models.product import Merchant, Product
from marketplace.models.user import User, UserRole
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.schemas.order import (
    CustomerOrderRead,
    DriverLocation,
    DriverLocationUpdate,
    MerchantOrderRead,
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderTracking,
    OrderWithItemsRead,
)
from marketplace.services.order_status import (
    Actor,
    OrderStatusService,
    generate_handover_code,
    history_entry,
)
from marketplace.services.zone_service import ZoneService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Place an order: validate merchant and products, resolve the
        delivery zone, snapshot prices and fee
      - Role-scoped order listings (customer, merchant, driver, admin)
      - Driver location updates and customer tracking
      - Map callers to transition actors and delegate status changes
        to OrderStatusService
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        zone_service: ZoneService,
        status_service: OrderStatusService,
        user_repo: UserRepository,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.zone_service = zone_service
        self.status_service = status_service
        self.user_repo = user_repo

    # -------- Customer operations --------

    def place_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: OrderCreate,
    ) -> CustomerOrderRead:
        """
        Create a PENDING order.

        Steps:
          1. Merchant must exist and be active.
          2. Every product must exist, be active and belong to the merchant.
          3. Resolve the zone: explicit zone id (the delivery point, if
             given, must lie inside it), else the delivery point.
          4. Subtotal must reach the zone's minimum order amount.
          5. Insert order + items with the zone fee snapshotted.
        """
        # 1) Merchant
        merchant = self.product_repo.get_merchant(session, payload.merchant_id)
        if not merchant or not merchant.is_active:
            raise NotFound("Merchant not found")

        # 2) Products
        products = self.product_repo.get_many(
            session, [item.product_id for item in payload.items]
        )
        errors = self._validate_items(payload, products, merchant)
        if errors:
            raise InvalidInput("Order validation failed: " + "; ".join(errors))

        # 3) Zone
        if payload.delivery_zone_id is not None:
            zone = self.zone_service.validate_order_for_zone(session, payload.delivery_zone_id)
            if payload.latitude is not None and not self.zone_service.zone_contains(
                session, zone.zone_id, payload.longitude, payload.latitude
            ):
                raise InvalidInput("Delivery location is outside the selected zone")
            zone_id = zone.zone_id
            delivery_fee = zone.delivery_fee
            eta = zone.estimated_delivery_minutes
            min_order_amount = zone.min_order_amount
        else:
            resolved = self.zone_service.resolve_zone(
                session, payload.longitude, payload.latitude
            )
            if resolved is None:
                raise InvalidInput("Delivery is not available at this location")
            zone_id = resolved.id
            delivery_fee = resolved.delivery_fee
            eta = resolved.estimated_delivery_minutes
            min_order_amount = resolved.min_order_amount

        # 4) Totals
        subtotal = round(
            sum(item.quantity * products[item.product_id].price for item in payload.items),
            2,
        )
        if min_order_amount and subtotal < min_order_amount:
            raise InvalidInput(
                f"Minimum order amount for this zone is {min_order_amount:.2f}"
            )

        # 5) Persist
        placed_at = datetime.now(timezone.utc)
        order = Order(
            user_id=user_id,
            merchant_id=merchant.id,
            delivery_zone_id=zone_id,
            status=OrderStatus.PENDING,
            delivery_address=payload.delivery_address,
            delivery_latitude=payload.latitude,
            delivery_longitude=payload.longitude,
            note=payload.note,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=round(subtotal + delivery_fee, 2),
            estimated_delivery_minutes=eta,
            delivery_code=generate_handover_code(),
            status_history=[
                history_entry(OrderStatus.PENDING, UserRole.CUSTOMER, user_id, placed_at)
            ],
            created_at=placed_at,
            updated_at=placed_at,
        )
        order = self.order_repo.create_order(session, order)

        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=products[item.product_id].price,
                )
                for item in payload.items
            ],
        )

        session.commit()
        session.refresh(order)
        logger.info("Order %s placed with merchant %s in zone %s", order.id, merchant.id, zone_id)

        return self._build_customer_dto(order, items)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> CustomerOrderRead:
        """
        Get a single order for the user, including items.

        - NotFound if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFound("Order not found")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_customer_dto(order, items)

    def get_user_order_tracking(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderTracking:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFound("Order not found")
        return self._build_tracking_dto(order)

    # -------- Merchant operations --------

    def list_merchant_orders(
        self,
        session: Session,
        user: User,
        merchant_id: uuid.UUID,
        status: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[MerchantOrderRead]:
        self._merchant_actor(session, user, merchant_id)
        orders = self.order_repo.list_for_merchant(session, merchant_id, status, skip, limit)
        return [MerchantOrderRead.model_validate(o) for o in orders]

    def update_status_as_merchant(
        self,
        session: Session,
        user: User,
        merchant_id: uuid.UUID,
        order_id: uuid.UUID,
        new_status: OrderStatus,
    ) -> MerchantOrderRead:
        actor = self._merchant_actor(session, user, merchant_id)
        order = self.status_service.transition(session, order_id, new_status, actor)
        return MerchantOrderRead.model_validate(order)

    # -------- Driver operations --------

    def list_available_for_drivers(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_available_for_drivers(session, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    def update_status_as_driver(
        self,
        session: Session,
        driver: User,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        pickup_code: str | None = None,
        delivery_code: str | None = None,
    ) -> OrderRead:
        actor = Actor(role=UserRole.DRIVER, user_id=driver.id)
        order = self.status_service.transition(
            session,
            order_id,
            new_status,
            actor,
            pickup_code=pickup_code,
            delivery_code=delivery_code,
        )
        return OrderRead.model_validate(order)

    def update_driver_location(
        self,
        session: Session,
        driver: User,
        order_id: uuid.UUID,
        payload: DriverLocationUpdate,
    ) -> OrderTracking:
        """
        Record where the assigned driver is, for customer tracking.

        - InvalidCoordinate for out-of-range values
        - NotFound / Unauthorized if the order is missing or not this driver's
        - InvalidInput once the order is no longer being delivered
        """
        if not is_valid_coordinate(payload.longitude, payload.latitude):
            raise InvalidCoordinate("Invalid coordinates")

        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        if order.driver_id != driver.id:
            raise Unauthorized("This order is not assigned to you")
        if order.status not in IN_DELIVERY_STATUSES:
            raise InvalidInput(f"Cannot share location for a {order.status.value} order")

        updated = self.order_repo.update_driver_location(
            session,
            order.id,
            driver.id,
            payload.latitude,
            payload.longitude,
            datetime.now(timezone.utc),
        )
        if not updated:
            # status moved on between the read and the write
            session.rollback()
            raise ConflictingTransition()

        session.commit()
        session.refresh(order)
        logger.debug(
            "Driver %s at (%s, %s) for order %s",
            driver.id,
            payload.latitude,
            payload.longitude,
            order.id,
        )
        return self._build_tracking_dto(order)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(session, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    def get_order_admin(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderWithItemsRead(
            **OrderRead.model_validate(order).model_dump(),
            items=self._build_item_dtos(items),
        )

    def update_status_as_admin(
        self,
        session: Session,
        admin: User,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        driver_id: uuid.UUID | None = None,
    ) -> OrderRead:
        """
        Handing an order over for delivery (-> ACCEPTED_BY_DRIVER) needs
        driver_id, naming a user with the driver role.
        """
        if new_status == OrderStatus.ACCEPTED_BY_DRIVER and driver_id is not None:
            driver = self.user_repo.get_by_id(session, driver_id)
            if not driver or driver.role != UserRole.DRIVER:
                raise InvalidInput("driverId must name a driver")

        actor = Actor(role=UserRole.ADMIN, user_id=admin.id)
        order = self.status_service.transition(
            session, order_id, new_status, actor, driver_id=driver_id
        )
        return OrderRead.model_validate(order)

    # -------- Helpers --------

    def _merchant_actor(
        self,
        session: Session,
        user: User,
        merchant_id: uuid.UUID,
    ) -> Actor:
        """
        A merchant user may only act for merchants they own; admins may act
        for any merchant.
        """
        merchant = self.product_repo.get_merchant(session, merchant_id)
        if not merchant:
            raise NotFound("Merchant not found")

        if user.role == UserRole.ADMIN:
            return Actor(role=UserRole.ADMIN, user_id=user.id, merchant_id=merchant.id)

        if user.role != UserRole.MERCHANT or merchant.owner_id != user.id:
            raise Unauthorized("You do not manage this merchant")

        return Actor(role=UserRole.MERCHANT, user_id=user.id, merchant_id=merchant.id)

    @staticmethod
    def _validate_items(
        payload: OrderCreate,
        products: dict[uuid.UUID, Product],
        merchant: Merchant,
    ) -> list[str]:
        errors: list[str] = []
        for item in payload.items:
            product = products.get(item.product_id)
            if not product:
                errors.append(f"{item.product_id}: product not found")
            elif product.merchant_id != merchant.id:
                errors.append(f"{item.product_id}: product belongs to another merchant")
            elif not product.is_active:
                errors.append(f"{item.product_id}: product is inactive")
        return errors

    @staticmethod
    def _build_item_dtos(items: list[OrderItem]) -> list[OrderItemRead]:
        return [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=round(it.quantity * it.unit_price, 2),
            )
            for it in items
        ]

    def _build_customer_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> CustomerOrderRead:
        return CustomerOrderRead(
            **OrderRead.model_validate(order).model_dump(),
            items=self._build_item_dtos(items),
            delivery_code=order.delivery_code,
        )

    @staticmethod
    def _build_tracking_dto(order: Order) -> OrderTracking:
        driver_location = None
        if order.driver_latitude is not None and order.driver_longitude is not None:
            driver_location = DriverLocation(
                latitude=order.driver_latitude,
                longitude=order.driver_longitude,
                updated_at=order.driver_location_updated_at,
            )

        return OrderTracking(
            order_id=order.id,
            status=order.status,
            driver_id=order.driver_id,
            driver_location=driver_location,
            delivery_address=order.delivery_address,
            delivery_latitude=order.delivery_latitude,
            delivery_longitude=order.delivery_longitude,
            estimated_delivery_minutes=order.estimated_delivery_minutes,
            status_history=order.status_history or [],
        )
