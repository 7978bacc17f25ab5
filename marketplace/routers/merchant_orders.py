# marketplace/routers/merchant_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.core.auth import require_merchant
from marketplace.database import get_session
from marketplace.models.order import OrderStatus
from marketplace.models.user import User
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import MerchantOrderRead, OrderStatusUpdate
from marketplace.services.order_service import OrderService
from marketplace.services.order_status import OrderStatusService
from marketplace.services.zone_service import ZoneService

router = APIRouter(prefix="/merchants/{merchant_id}/orders", tags=["Merchant Orders"])

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


@router.get("", response_model=ApiResponse[list[MerchantOrderRead]])
def list_merchant_orders(
    merchant_id: uuid.UUID,
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_merchant),
):
    """
    Orders placed with this merchant, newest first, optionally filtered
    by status.

    Auth:
      - The merchant's owner, or an admin.
    """
    orders = service.list_merchant_orders(
        session, current_user, merchant_id, status, skip, limit
    )
    return ApiResponse(data=orders)


@router.patch("/{order_id}/status", response_model=ApiResponse[MerchantOrderRead])
def update_order_status(
    merchant_id: uuid.UUID,
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_merchant),
):
    """
    Move an order along the merchant side of the lifecycle:

      PENDING              -> ACCEPTED_BY_MERCHANT, REJECTED_BY_MERCHANT

      ACCEPTED_BY_MERCHANT -> IN_PREPARATION, CANCELED_BY_MERCHANT

      IN_PREPARATION       -> READY_TO_DELIVER, CANCELED_BY_MERCHANT

      READY_TO_DELIVER     -> CANCELED_BY_MERCHANT

    Reaching READY_TO_DELIVER issues the pickup code for the driver.
    """
    order = service.update_status_as_merchant(
        session, current_user, merchant_id, order_id, payload.new_status
    )
    return ApiResponse(data=order, message=f"Order status updated to {order.status.value}")
