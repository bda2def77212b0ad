"""Order status state machine.

The transition tables are the single source of truth for which status an
order may move to next. Laundries drive the order through ``TRANSITIONS``;
customers have their own, narrower paths (cancellation and delivery
confirmation) that are checked separately.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from laundry.config import settings
from laundry.exceptions import BadRequestError
from laundry.models.order import OrderStatus, OrderType, PickupType


TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELLED),
    OrderStatus.ACCEPTED: (OrderStatus.PICKUP_SCHEDULED, OrderStatus.CANCELLED),
    OrderStatus.PICKUP_SCHEDULED: (OrderStatus.PICKED_UP, OrderStatus.CANCELLED),
    OrderStatus.PICKED_UP: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.READY,),
    OrderStatus.READY: (OrderStatus.OUT_FOR_DELIVERY,),
    OrderStatus.OUT_FOR_DELIVERY: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (OrderStatus.COMPLETED,),
    OrderStatus.REJECTED: (),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

# Extra edges that only exist for a given pickup type.
# Self drop-off orders have no pickup leg, so ACCEPTED goes straight to PROCESSING.
CONDITIONAL_TRANSITIONS: Dict[PickupType, Dict[OrderStatus, Tuple[OrderStatus, ...]]] = {
    PickupType.SELF_DROP_OFF: {
        OrderStatus.ACCEPTED: (OrderStatus.PROCESSING,),
    },
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Statuses a customer may cancel from
CANCELLABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PICKUP_SCHEDULED,
    OrderStatus.PICKED_UP,
})

# Statuses matched by the "active" list filter
ACTIVE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PICKUP_SCHEDULED,
    OrderStatus.PICKED_UP,
    OrderStatus.PROCESSING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
)

# Order column stamped the first time the order enters each status
MILESTONE_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PICKUP_SCHEDULED: "pickup_scheduled_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.PROCESSING: "processing_started_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.REJECTED: "cancelled_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


@dataclass(frozen=True)
class TimelineEvent:
    event: str
    title: str
    description: str


ORDER_PLACED = TimelineEvent("ORDER_PLACED", "Order Placed", "Your order has been placed successfully")
ORDER_CANCELLED = TimelineEvent("ORDER_CANCELLED", "Order Cancelled", "Your order has been cancelled")

TIMELINE_EVENTS: Dict[OrderStatus, TimelineEvent] = {
    OrderStatus.ACCEPTED: TimelineEvent(
        "ORDER_ACCEPTED", "Order Accepted", "Your order has been accepted by the laundry"
    ),
    OrderStatus.REJECTED: TimelineEvent("ORDER_REJECTED", "Order Rejected", "Your order has been rejected"),
    OrderStatus.PICKUP_SCHEDULED: TimelineEvent("PICKUP_SCHEDULED", "Pickup Scheduled", "Pickup has been scheduled"),
    OrderStatus.PICKED_UP: TimelineEvent("PICKED_UP", "Picked Up", "Your clothes have been picked up"),
    OrderStatus.PROCESSING: TimelineEvent("PROCESSING", "Processing", "Your clothes are being processed"),
    OrderStatus.READY: TimelineEvent("READY", "Ready", "Your clothes are ready for delivery"),
    OrderStatus.OUT_FOR_DELIVERY: TimelineEvent(
        "OUT_FOR_DELIVERY", "Out for Delivery", "Your clothes are on the way"
    ),
    OrderStatus.DELIVERED: TimelineEvent("DELIVERED", "Delivered", "Your clothes have been delivered"),
    OrderStatus.COMPLETED: TimelineEvent("COMPLETED", "Completed", "Order completed successfully"),
    OrderStatus.CANCELLED: ORDER_CANCELLED,
}


def allowed_transitions(current: OrderStatus, pickup_type: Optional[PickupType] = None) -> List[OrderStatus]:
    """Statuses reachable from ``current`` for an order with the given pickup type."""
    allowed = list(TRANSITIONS[current])
    if pickup_type is not None:
        for target in CONDITIONAL_TRANSITIONS.get(pickup_type, {}).get(current, ()):
            if target not in allowed:
                allowed.append(target)
    return allowed


def can_transition(
    current: OrderStatus, target: OrderStatus, pickup_type: Optional[PickupType] = None
) -> bool:
    return target in allowed_transitions(current, pickup_type)


def ensure_transition(
    current: OrderStatus, target: OrderStatus, pickup_type: Optional[PickupType] = None
) -> None:
    """Raise if ``current -> target`` is not an edge of the state machine."""
    allowed = allowed_transitions(current, pickup_type)
    if target not in allowed:
        raise BadRequestError(
            f"Invalid status transition from {current.value} to {target.value}. "
            f"Allowed: {', '.join(s.value for s in allowed)}",
            code="INVALID_STATUS_TRANSITION",
        )


def ensure_cancellable(current: OrderStatus) -> None:
    """Raise unless a customer may still cancel an order in ``current``."""
    if current not in CANCELLABLE_STATUSES:
        raise BadRequestError(
            f"Cannot cancel order in {current.value} status. "
            "Cancellation is only allowed before processing starts.",
            code="ORDER_NOT_CANCELLABLE",
        )


def estimate_delivery(pickup_date: datetime, order_type: OrderType) -> datetime:
    """Expected delivery: pickup date plus the turnaround for the order type."""
    if order_type == OrderType.EXPRESS:
        hours = settings.EXPRESS_ESTIMATED_HOURS
    else:
        hours = settings.STANDARD_ESTIMATED_HOURS
    return pickup_date + timedelta(hours=hours)
