"""Order schemas."""
from datetime import datetime
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field

from laundry.models.order import OrderStatus, OrderType, PickupType


class OrderItemCreate(BaseModel):
    """One requested line at checkout."""
    service_id: int
    clothing_item_id: int
    quantity: int = Field(default=1, ge=1)
    weight_kg: Optional[float] = Field(None, gt=0, description="For PER_KG pricing")
    special_notes: Optional[str] = Field(None, max_length=200)


class OrderCreate(BaseModel):
    """Schema for placing an order. Amounts are always computed server-side."""
    laundry_id: int
    order_type: OrderType = OrderType.STANDARD
    pickup_type: PickupType = PickupType.RIDER_PICKUP
    pickup_address: str = Field(..., min_length=10, max_length=500)
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    pickup_date: datetime
    pickup_time_slot: Optional[str] = Field(None, max_length=20)
    pickup_notes: Optional[str] = Field(None, max_length=200)
    delivery_address: Optional[str] = Field(None, max_length=500)
    delivery_latitude: Optional[float] = Field(None, ge=-90, le=90)
    delivery_longitude: Optional[float] = Field(None, ge=-180, le=180)
    delivery_notes: Optional[str] = Field(None, max_length=200)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    promo_code: Optional[str] = Field(None, max_length=20)
    special_instructions: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    """Schema for a laundry moving an order along its lifecycle."""
    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=500)
    scheduled_pickup_time: Optional[datetime] = None
    rejection_reason: Optional[str] = Field(None, max_length=500)


class OrderCancel(BaseModel):
    """Schema for a customer cancelling an order."""
    reason: str = Field(..., min_length=10, max_length=500)


class OrderItemResponse(BaseModel):
    """Response schema for order items."""
    id: int
    service_category_id: int
    clothing_item_id: int
    quantity: int
    weight_kg: Optional[float] = None
    unit_price: float
    price_unit: str
    total_price: float
    special_notes: Optional[str] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Response schema for orders."""
    id: int
    order_number: str
    customer_id: int
    laundry_id: int
    status: str
    order_type: str
    pickup_type: str
    pickup_address: str
    pickup_latitude: float
    pickup_longitude: float
    pickup_date: datetime
    pickup_time_slot: Optional[str] = None
    pickup_notes: Optional[str] = None
    delivery_address: str
    delivery_latitude: float
    delivery_longitude: float
    delivery_notes: Optional[str] = None
    expected_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    subtotal: float
    delivery_fee: float
    express_fee: float
    discount: float
    promo_code: Optional[str] = None
    total_amount: float
    payment_status: str
    payment_method: str
    special_instructions: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    accepted_at: Optional[datetime] = None
    pickup_scheduled_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    out_for_delivery_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderSummary(BaseModel):
    """Summary schema for order lists."""
    id: int
    order_number: str
    laundry_id: int
    customer_id: int
    status: str
    order_type: str
    total_amount: float
    item_count: int = 0
    pickup_date: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class OrderListResponse(BaseModel):
    orders: List[OrderSummary]
    pagination: Pagination


class TimelineEntryResponse(BaseModel):
    """Customer-facing timeline entry."""
    id: int
    event: str
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class StatusHistoryResponse(BaseModel):
    """Audit record of a status transition."""
    id: int
    from_status: Optional[str] = None
    to_status: str
    changed_by: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancelResponse(BaseModel):
    message: str
    order_number: str
    status: str
