"""Timeline and status-history recorder.

Both logs are append-only. Entries are added to the caller's session and
committed together with the order change they describe, so a failed
transition leaves no trace.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from laundry.models.order import OrderStatus
from laundry.models.timeline import OrderStatusHistory, OrderTimeline
from laundry.utils.timeutils import utcnow

TIMELINE_ICONS = {
    "ORDER_PLACED": "clipboard-list",
    "ORDER_ACCEPTED": "check-circle",
    "ORDER_REJECTED": "x-circle",
    "ORDER_CANCELLED": "x-circle",
    "PICKUP_SCHEDULED": "calendar",
    "PICKED_UP": "truck",
    "PROCESSING": "loader",
    "READY": "package",
    "OUT_FOR_DELIVERY": "truck",
    "DELIVERED": "check",
    "COMPLETED": "check-circle",
}

DEFAULT_ICON = "circle"


def icon_for(event: str) -> str:
    return TIMELINE_ICONS.get(event, DEFAULT_ICON)


def append_timeline(
    db: Session,
    order_id: int,
    event: str,
    title: str,
    description: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> OrderTimeline:
    entry = OrderTimeline(
        order_id=order_id,
        event=event,
        title=title,
        description=description,
        icon=icon_for(event),
        details=details,
        timestamp=utcnow(),
    )
    db.add(entry)
    return entry


def append_history(
    db: Session,
    order_id: int,
    to_status: OrderStatus,
    changed_by: Optional[int] = None,
    from_status: Optional[OrderStatus] = None,
    notes: Optional[str] = None,
) -> OrderStatusHistory:
    entry = OrderStatusHistory(
        order_id=order_id,
        from_status=from_status.value if from_status else None,
        to_status=to_status.value,
        changed_by=changed_by,
        notes=notes,
        created_at=utcnow(),
    )
    db.add(entry)
    return entry


def get_timeline(db: Session, order_id: int) -> List[OrderTimeline]:
    """Timeline entries for display, newest first."""
    return db.query(OrderTimeline).filter(
        OrderTimeline.order_id == order_id
    ).order_by(OrderTimeline.timestamp.desc(), OrderTimeline.id.desc()).all()


def get_history(db: Session, order_id: int) -> List[OrderStatusHistory]:
    """Status history in the order the transitions happened."""
    return db.query(OrderStatusHistory).filter(
        OrderStatusHistory.order_id == order_id
    ).order_by(OrderStatusHistory.id).all()
