# marketplace/routers/driver_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.core.auth import require_driver
from marketplace.database import get_session
from marketplace.models.order import OrderStatus
from marketplace.models.user import User
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import (
    DeliveryCodePayload,
    DriverLocationUpdate,
    OrderRead,
    OrderTracking,
    PickupCodePayload,
)
from marketplace.services.order_service import OrderService
from marketplace.services.order_status import OrderStatusService
from marketplace.services.zone_service import ZoneService

router = APIRouter(prefix="/driver/orders", tags=["Driver Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
zone_service = ZoneService(ZoneRepository(), StatsRepository())
service = OrderService(
    order_repo,
    product_repo,
    zone_service,
    OrderStatusService(order_repo),
    UserRepository(),
)


@router.get(
    "/available",
    response_model=ApiResponse[list[OrderRead]],
    dependencies=[Depends(require_driver)],
)
def list_available_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    Orders ready for pickup that no driver has taken yet, oldest first.
    """
    return ApiResponse(data=service.list_available_for_drivers(session, skip, limit))


@router.post("/{order_id}/accept", response_model=ApiResponse[OrderRead])
def accept_order(
    order_id: uuid.UUID,
    payload: PickupCodePayload,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    """
    Take the order at the store. The pickup code shown to the merchant
    must match; the order is then assigned to this driver.
    """
    order = service.update_status_as_driver(
        session,
        driver,
        order_id,
        OrderStatus.ACCEPTED_BY_DRIVER,
        pickup_code=payload.pickup_code,
    )
    return ApiResponse(data=order, message="Order accepted")


@router.post("/{order_id}/reject", response_model=ApiResponse[OrderRead])
def reject_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    order = service.update_status_as_driver(
        session, driver, order_id, OrderStatus.REJECTED_BY_DRIVER
    )
    return ApiResponse(data=order, message="Order rejected")


@router.post("/{order_id}/on-the-way", response_model=ApiResponse[OrderRead])
def mark_on_the_way(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    order = service.update_status_as_driver(
        session, driver, order_id, OrderStatus.ON_THE_WAY
    )
    return ApiResponse(data=order, message="Order is on the way")


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderRead])
def cancel_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    order = service.update_status_as_driver(
        session, driver, order_id, OrderStatus.CANCELED_BY_DRIVER
    )
    return ApiResponse(data=order, message="Order canceled")


@router.post("/{order_id}/complete", response_model=ApiResponse[OrderRead])
def complete_order(
    order_id: uuid.UUID,
    payload: DeliveryCodePayload,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    """
    Hand the order over. The customer's delivery code must match.
    """
    order = service.update_status_as_driver(
        session,
        driver,
        order_id,
        OrderStatus.COMPLETED,
        delivery_code=payload.delivery_code,
    )
    return ApiResponse(data=order, message="Order completed")


@router.post("/{order_id}/location", response_model=ApiResponse[OrderTracking])
def update_location(
    order_id: uuid.UUID,
    payload: DriverLocationUpdate,
    session: Session = Depends(get_session),
    driver: User = Depends(require_driver),
):
    """
    Share the driver's current position while delivering the order.
    Only the assigned driver, and only in ACCEPTED_BY_DRIVER / ON_THE_WAY.
    """
    tracking = service.update_driver_location(session, driver, order_id, payload)
    return ApiResponse(data=tracking, message="Location updated")
