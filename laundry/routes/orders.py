"""Customer order routes."""
import math
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from laundry.auth import Actor, require_actor, require_customer
from laundry.database import get_db
from laundry.models.order import Order
from laundry.schemas.order import (
    CancelResponse,
    OrderCancel,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderSummary,
    Pagination,
    StatusHistoryResponse,
    TimelineEntryResponse,
)
from laundry.services.notifications import NotificationService, get_notifier
from laundry.services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


def get_order_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, notifier=notifier, background_tasks=background_tasks)


def build_order_list(orders: List[Order], total: int, page: int, limit: int) -> OrderListResponse:
    summaries = []
    for order in orders:
        summary = OrderSummary.model_validate(order)
        summary.item_count = len(order.items)
        summaries.append(summary)
    total_pages = math.ceil(total / limit) if limit else 0
    return OrderListResponse(
        orders=summaries,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_more=page < total_pages,
        ),
    )


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_customer)
):
    """Place a new order (customer)."""
    return service.create_order(actor.id, order_data)


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="Order status or 'active'"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_customer)
):
    """List the customer's orders, newest first."""
    orders, total = service.list_customer_orders(actor.id, status=status_filter, page=page, limit=limit)
    return build_order_list(orders, total, page, limit)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_actor)
):
    """Get order details with items."""
    return service.get_order_details(order_id, actor)


@router.get("/{order_id}/timeline", response_model=List[TimelineEntryResponse])
async def get_order_timeline(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_actor)
):
    """Customer-facing timeline, newest first."""
    return service.get_order_timeline(order_id, actor)


@router.get("/{order_id}/history", response_model=List[StatusHistoryResponse])
async def get_order_history(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_actor)
):
    """Status audit trail, oldest first."""
    return service.get_status_history(order_id, actor)


@router.post("/{order_id}/cancel", response_model=CancelResponse)
async def cancel_order(
    order_id: int,
    cancel_data: OrderCancel,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_customer)
):
    """Cancel an order before processing starts (customer)."""
    order = service.cancel_order(order_id, actor.id, cancel_data.reason)
    return CancelResponse(
        message="Order cancelled successfully",
        order_number=order.order_number,
        status=order.status,
    )


@router.post("/{order_id}/confirm-delivery", response_model=OrderResponse)
async def confirm_delivery(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_customer)
):
    """Confirm an out-for-delivery order was received (customer)."""
    return service.confirm_delivery(order_id, actor.id)
