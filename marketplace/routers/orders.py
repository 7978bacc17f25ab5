# marketplace/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.core.auth import require_customer
from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import CustomerOrderRead, OrderCreate, OrderRead, OrderTracking
from marketplace.services.order_service import OrderService
from marketplace.services.order_status import OrderStatusService
from marketplace.services.zone_service import ZoneService

router = APIRouter(prefix="/orders", tags=["Orders"])

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


@router.post(
    "",
    response_model=ApiResponse[CustomerOrderRead],
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Place an order with one merchant.

    The delivery zone is taken from `delivery_zone_id` or resolved from
    the delivery coordinates; its fee is fixed on the order.

    Auth:
      - Customers only.
    """
    order = service.place_order(session, current_user.id, payload)
    return ApiResponse(data=order, message="Order placed")


@router.get("/me", response_model=ApiResponse[list[OrderRead]])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated customer's orders (without items).
    """
    return ApiResponse(data=service.list_user_orders(session, current_user.id, skip, limit))


@router.get("/me/{order_id}", response_model=ApiResponse[CustomerOrderRead])
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Single order with items and the delivery code the customer gives the
    driver on arrival.
    """
    return ApiResponse(data=service.get_user_order(session, current_user.id, order_id))


@router.get("/me/{order_id}/tracking", response_model=ApiResponse[OrderTracking])
def track_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Order status, the driver's last shared position and the status
    timeline. Poll while the order is on its way.
    """
    return ApiResponse(
        data=service.get_user_order_tracking(session, current_user.id, order_id)
    )
