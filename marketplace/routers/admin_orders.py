# marketplace/routers/admin_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.core.auth import require_admin
from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import OrderRead, OrderStatusUpdate, OrderWithItemsRead
from marketplace.services.order_service import OrderService
from marketplace.services.order_status import OrderStatusService
from marketplace.services.zone_service import ZoneService

router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])

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
    "",
    response_model=ApiResponse[list[OrderRead]],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only).
    """
    return ApiResponse(data=service.list_all_orders(session, skip, limit))


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderWithItemsRead],
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items (admin only).
    """
    return ApiResponse(data=service.get_order_admin(session, order_id))


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderRead])
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Admin override: any edge of the lifecycle from the order's current
    status. Terminal statuses still cannot be left. Moving an order to
    ACCEPTED_BY_DRIVER requires driverId.
    """
    order = service.update_status_as_admin(
        session, admin, order_id, payload.new_status, driver_id=payload.driver_id
    )
    return ApiResponse(data=order, message=f"Order status updated to {order.status.value}")
