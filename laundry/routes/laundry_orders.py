"""Laundry-side order routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from laundry.auth import Actor, require_laundry
from laundry.routes.orders import build_order_list, get_order_service
from laundry.schemas.order import OrderListResponse, OrderResponse, OrderStatusUpdate
from laundry.services.orders import OrderService

router = APIRouter(prefix="/laundry/orders", tags=["Laundry Orders"])


@router.get("/", response_model=OrderListResponse)
async def list_laundry_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="Order status or 'active'"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_laundry)
):
    """List orders received by the laundry."""
    orders, total = service.list_laundry_orders(actor.id, status=status_filter, page=page, limit=limit)
    return build_order_list(orders, total, page, limit)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
    actor: Actor = Depends(require_laundry)
):
    """Advance an order to its next status."""
    return service.update_order_status(order_id, actor.id, status_data)
