"""Order notifications - in-app records plus push delivery through an HTTP relay.

Every ``notify_*`` coroutine runs after the order change has been committed
(as a FastAPI background task). Callers wrap them in ``dispatch_safely`` so a
failed notification is logged and never touches the order.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog
from sqlalchemy.orm import Session

from laundry.config import settings
from laundry.database import SessionLocal
from laundry.models.laundry import Laundry
from laundry.models.notification import Notification, NotificationType
from laundry.models.user import Customer
from laundry.utils.timeutils import utcnow

logger = structlog.get_logger(__name__)

INVALID_TOKEN_ERROR = "Invalid or expired FCM token"

CUSTOMER_STATUS_MESSAGES = {
    "ACCEPTED": (
        "Order Accepted",
        "Your order {order_number} has been accepted! We'll pick up your clothes soon.",
    ),
    "REJECTED": (
        "Order Rejected",
        "Sorry, your order {order_number} has been rejected. Please try another laundry.",
    ),
    "PICKUP_SCHEDULED": (
        "Pickup Scheduled",
        "Pickup scheduled for order {order_number}. Please keep your clothes ready!",
    ),
    "PICKED_UP": (
        "Clothes Picked Up",
        "Your clothes for order {order_number} have been picked up. Processing will begin soon.",
    ),
    "PROCESSING": (
        "Processing Started",
        "Your order {order_number} is being cleaned and processed.",
    ),
    "READY": (
        "Ready for Delivery",
        "Great news! Your order {order_number} is ready and will be delivered soon.",
    ),
    "OUT_FOR_DELIVERY": (
        "Out for Delivery",
        "Your order {order_number} is on the way! Get ready to receive your fresh clothes.",
    ),
    "DELIVERED": (
        "Delivered",
        "Your order {order_number} has been delivered! Enjoy your fresh, clean clothes.",
    ),
    "COMPLETED": (
        "Order Completed",
        "Your order {order_number} is complete. Please rate your experience!",
    ),
    "CANCELLED": (
        "Order Cancelled",
        "Your order {order_number} has been cancelled.",
    ),
}


@dataclass
class PushResult:
    """Outcome of one push delivery attempt."""
    success: bool
    error: Optional[str] = None
    
    def to_dict(self):
        return {"success": self.success, "error": self.error}


class PushSender:
    """Posts push messages to an FCM-compatible HTTP relay."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url if url is not None else settings.PUSH_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.PUSH_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> PushResult:
        if not self.enabled:
            return PushResult(success=False, error="Push relay not configured")

        payload = {
            "token": token,
            "notification": {"title": title, "body": body},
            # FCM data payloads only carry strings
            "data": {k: str(v) for k, v in (data or {}).items()},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            return PushResult(success=False, error=f"Push relay unreachable: {e}")

        if response.status_code in (404, 410):
            return PushResult(success=False, error=INVALID_TOKEN_ERROR)
        if response.status_code >= 400:
            return PushResult(success=False, error=f"Push relay returned {response.status_code}")
        return PushResult(success=True)


class NotificationService:
    """Creates notification records and pushes them to the recipient's device."""

    def __init__(self, session_factory=SessionLocal, push_sender: Optional[PushSender] = None):
        self.session_factory = session_factory
        self.push_sender = push_sender or PushSender()

    def _create_notification(
        self,
        db: Session,
        title: str,
        body: str,
        user_id: Optional[int] = None,
        laundry_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            type=NotificationType.ORDER_UPDATE.value,
            title=title,
            body=body,
            user_id=user_id,
            laundry_id=laundry_id,
            data=data or {},
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    async def _push(self, db: Session, recipient, notification: Notification, data: Dict[str, Any]) -> Optional[PushResult]:
        """Push to a Customer or Laundry row and record the outcome."""
        kind = "customer" if isinstance(recipient, Customer) else "laundry"
        if not recipient.fcm_token:
            logger.warning("No device token, skipping push", recipient=kind, recipient_id=recipient.id)
            return None

        result = await self.push_sender.send(
            recipient.fcm_token,
            notification.title,
            notification.body,
            {**data, "notification_id": notification.id},
        )
        if result.success:
            notification.is_sent = True
            notification.sent_at = utcnow()
            logger.info("Push notification sent", recipient=kind, recipient_id=recipient.id)
        else:
            logger.warning("Push notification failed", recipient=kind, recipient_id=recipient.id, error=result.error)
            if result.error == INVALID_TOKEN_ERROR:
                recipient.fcm_token = None
                logger.info("Cleared invalid device token", recipient=kind, recipient_id=recipient.id)
        db.commit()
        return result

    async def notify_customer_order_status(
        self, customer_id: int, order_id: int, order_number: str, status: str
    ) -> Optional[Notification]:
        message = CUSTOMER_STATUS_MESSAGES.get(status)
        if not message:
            return None
        title, body = message[0], message[1].format(order_number=order_number)

        db = self.session_factory()
        try:
            notification = self._create_notification(
                db, title, body, user_id=customer_id, data={"order_id": order_id, "status": status}
            )
            customer = db.query(Customer).filter(Customer.id == customer_id).first()
            if customer:
                await self._push(db, customer, notification, {
                    "type": "ORDER_UPDATE", "order_id": order_id, "status": status,
                })
            return notification
        finally:
            db.close()

    async def _notify_laundry(
        self, laundry_id: int, title: str, body: str, push_type: str, data: Dict[str, Any]
    ) -> Notification:
        db = self.session_factory()
        try:
            notification = self._create_notification(db, title, body, laundry_id=laundry_id, data=data)
            laundry = db.query(Laundry).filter(Laundry.id == laundry_id).first()
            if laundry:
                await self._push(db, laundry, notification, {"type": push_type, **data})
            return notification
        finally:
            db.close()

    async def notify_laundry_new_order(self, laundry_id: int, order_id: int, order_number: str) -> Notification:
        return await self._notify_laundry(
            laundry_id,
            "New Order Received",
            f"You have received a new order {order_number}. Tap to view details.",
            "NEW_ORDER",
            {"order_id": order_id},
        )

    async def notify_laundry_cancellation(
        self, laundry_id: int, order_id: int, order_number: str, reason: str
    ) -> Notification:
        return await self._notify_laundry(
            laundry_id,
            "Order Cancelled",
            f"Order {order_number} has been cancelled by the customer.",
            "ORDER_CANCELLED",
            {"order_id": order_id, "reason": reason},
        )

    async def notify_laundry_delivery_confirmed(
        self, laundry_id: int, order_id: int, order_number: str
    ) -> Notification:
        return await self._notify_laundry(
            laundry_id,
            "Delivery Confirmed",
            f"The customer confirmed delivery of order {order_number}.",
            "DELIVERY_CONFIRMED",
            {"order_id": order_id},
        )


async def dispatch_safely(handler, *args, **kwargs) -> None:
    """Run a notification handler, logging instead of raising on failure."""
    try:
        await handler(*args, **kwargs)
    except Exception:
        logger.exception("Notification dispatch failed", handler=getattr(handler, "__name__", repr(handler)))


def get_notifier() -> NotificationService:
    """FastAPI dependency for the notification dispatcher."""
    return NotificationService()
