"""Order lifecycle engine - checkout and status transitions.

All writes for one operation (order row, items, payment, timeline, status
history, promo usage) go through a single session and are committed
together. Notifications are queued as background tasks and only run after
the commit succeeded.
"""
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from laundry.auth import Actor
from laundry.config import settings
from laundry.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    OrderNumberExhaustedError,
)
from laundry.models.laundry import AccountStatus, Laundry
from laundry.models.order import (
    CancelledBy,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PickupType,
)
from laundry.models.payment import Payment
from laundry.models.timeline import OrderStatusHistory, OrderTimeline
from laundry.models.user import ActorRole, Customer
from laundry.schemas.order import OrderCreate, OrderStatusUpdate
from laundry.services.lifecycle import (
    ACTIVE_STATUSES,
    MILESTONE_FIELDS,
    ORDER_CANCELLED,
    ORDER_PLACED,
    TIMELINE_EVENTS,
    ensure_cancellable,
    ensure_transition,
    estimate_delivery,
)
from laundry.services.notifications import dispatch_safely
from laundry.services.order_numbers import is_order_number_collision, next_order_number
from laundry.services.pricing import OrderCharges, PricedLine, calculate_charges, resolve_line
from laundry.services.promo import increment_usage, validate_promo
from laundry.services.timeline import append_history, append_timeline, get_history, get_timeline
from laundry.utils.timeutils import utcnow

logger = structlog.get_logger(__name__)

DELIVERY_CONFIRMED_NOTE = "Customer confirmed delivery"


class OrderService:
    """Checkout and lifecycle operations for orders."""

    def __init__(
        self,
        db: Session,
        notifier=None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.background_tasks = background_tasks if background_tasks is not None else BackgroundTasks()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_order(self, customer_id: int, data: OrderCreate) -> Order:
        """Price, validate and persist a new order in status PENDING."""
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer or not customer.is_active:
            raise NotFoundError("Customer not found", code="CUSTOMER_NOT_FOUND")

        laundry = self.db.query(Laundry).filter(Laundry.id == data.laundry_id).first()
        if not laundry or laundry.status != AccountStatus.ACTIVE.value:
            raise NotFoundError("Laundry not found or not active", code="LAUNDRY_NOT_AVAILABLE")

        lines = [
            resolve_line(
                self.db,
                laundry,
                item.service_id,
                item.clothing_item_id,
                quantity=item.quantity,
                weight_kg=item.weight_kg,
                order_type=data.order_type,
                special_notes=item.special_notes,
            )
            for item in data.items
        ]
        subtotal = round(sum(line.total_price for line in lines), 2)

        promo_id = None
        promo_code = None
        discount = 0
        if data.promo_code:
            result = validate_promo(self.db, data.promo_code, subtotal, customer_id, laundry.id)
            promo_id, promo_code, discount = result.promo.id, result.promo.code, result.discount

        charges = calculate_charges(subtotal, data.order_type, laundry.free_pickup_delivery, discount)
        expected_delivery = estimate_delivery(data.pickup_date, data.order_type)
        laundry_id = laundry.id

        max_attempts = max(settings.ORDER_NUMBER_MAX_RETRIES, 1)
        for attempt in range(1, max_attempts + 1):
            order_number = next_order_number(self.db)
            try:
                order = self._persist_order(
                    order_number, customer_id, laundry_id, data, lines, charges,
                    expected_delivery, promo_id, promo_code,
                )
                self.db.commit()
                break
            except IntegrityError as exc:
                self.db.rollback()
                if not is_order_number_collision(exc):
                    raise
                if attempt == max_attempts:
                    logger.error("Order number allocation exhausted", order_number=order_number, attempts=attempt)
                    raise OrderNumberExhaustedError(
                        f"Could not allocate a unique order number after {max_attempts} attempts"
                    ) from exc
                logger.warning("Order number collision, retrying", order_number=order_number, attempt=attempt)
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(order)
        logger.info(
            "Order created",
            order_number=order.order_number,
            customer_id=customer_id,
            laundry_id=laundry_id,
            total_amount=order.total_amount,
            promo_code=promo_code,
        )
        self._notify("notify_laundry_new_order", laundry_id, order.id, order.order_number)
        return order

    def _persist_order(
        self,
        order_number: str,
        customer_id: int,
        laundry_id: int,
        data: OrderCreate,
        lines: List[PricedLine],
        charges: OrderCharges,
        expected_delivery: datetime,
        promo_id: Optional[int],
        promo_code: Optional[str],
    ) -> Order:
        order = Order(
            order_number=order_number,
            customer_id=customer_id,
            laundry_id=laundry_id,
            status=OrderStatus.PENDING.value,
            order_type=data.order_type.value,
            pickup_type=data.pickup_type.value,
            pickup_address=data.pickup_address,
            pickup_latitude=data.pickup_latitude,
            pickup_longitude=data.pickup_longitude,
            pickup_date=data.pickup_date,
            pickup_time_slot=data.pickup_time_slot,
            pickup_notes=data.pickup_notes,
            delivery_address=data.delivery_address or data.pickup_address,
            delivery_latitude=data.delivery_latitude if data.delivery_latitude is not None else data.pickup_latitude,
            delivery_longitude=data.delivery_longitude if data.delivery_longitude is not None else data.pickup_longitude,
            delivery_notes=data.delivery_notes,
            expected_delivery_date=expected_delivery,
            subtotal=charges.subtotal,
            delivery_fee=charges.delivery_fee,
            express_fee=charges.express_fee,
            discount=charges.discount,
            promo_code=promo_code,
            total_amount=charges.total_amount,
            payment_method=PaymentMethod.COD.value,
            payment_status=PaymentStatus.PENDING.value,
            special_instructions=data.special_instructions,
        )
        order.items = [OrderItem(**asdict(line)) for line in lines]
        self.db.add(order)
        # Flush now so an order-number collision surfaces before the dependent rows
        self.db.flush()

        append_timeline(self.db, order.id, ORDER_PLACED.event, ORDER_PLACED.title, ORDER_PLACED.description)
        append_history(self.db, order.id, OrderStatus.PENDING, changed_by=customer_id)
        self.db.add(Payment(
            order_id=order.id,
            amount=charges.total_amount,
            payment_method=PaymentMethod.COD.value,
            payment_status=PaymentStatus.PENDING.value,
        ))

        if promo_id is not None and not increment_usage(self.db, promo_id):
            raise BadRequestError("Promo code usage limit reached", code="PROMO_LIMIT_REACHED")
        return order

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def update_order_status(self, order_id: int, laundry_id: int, data: OrderStatusUpdate) -> Order:
        """Move an order along the laundry-side state machine."""
        order = self._get_order(order_id)
        if order.laundry_id != laundry_id:
            raise ForbiddenError("Access denied")

        current = OrderStatus(order.status)
        target = data.status
        ensure_transition(current, target, PickupType(order.pickup_type))

        rejection_reason = (data.rejection_reason or "").strip() or None
        if target == OrderStatus.REJECTED and not rejection_reason:
            raise BadRequestError(
                "A rejection reason is required to reject an order", code="REJECTION_REASON_REQUIRED"
            )

        now = utcnow()
        values = self._transition_values(order, target, now)
        if target == OrderStatus.PICKUP_SCHEDULED and data.scheduled_pickup_time:
            values["pickup_date"] = data.scheduled_pickup_time
        elif target == OrderStatus.DELIVERED:
            values["actual_delivery_date"] = now
        elif target == OrderStatus.COMPLETED:
            values["payment_status"] = PaymentStatus.COMPLETED.value
        elif target == OrderStatus.REJECTED:
            values["cancellation_reason"] = rejection_reason
            values["cancelled_by"] = CancelledBy.LAUNDRY.value
        elif target == OrderStatus.CANCELLED:
            values["cancellation_reason"] = data.notes
            values["cancelled_by"] = CancelledBy.LAUNDRY.value

        event = TIMELINE_EVENTS[target]
        notes = data.notes or rejection_reason
        details = None
        if target in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
            details = {"reason": values["cancellation_reason"], "cancelled_by": CancelledBy.LAUNDRY.value}
        order_pk, order_number, customer_id = order.id, order.order_number, order.customer_id
        try:
            self._write_transition(order, current, values)
            if target == OrderStatus.COMPLETED:
                self._settle_payment(order_pk, now)
                self._refresh_laundry_stats(laundry_id)
            append_timeline(
                self.db, order_pk, event.event, event.title, notes or event.description, details=details
            )
            append_history(self.db, order_pk, target, changed_by=laundry_id, from_status=current, notes=notes)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(
            "Order status updated",
            order_number=order_number,
            from_status=current.value,
            to_status=target.value,
            laundry_id=laundry_id,
        )
        self._notify("notify_customer_order_status", customer_id, order_pk, order_number, target.value)
        return order

    def cancel_order(self, order_id: int, customer_id: int, reason: str) -> Order:
        """Customer cancellation, allowed only before processing starts."""
        order = self._get_order(order_id)
        if order.customer_id != customer_id:
            raise ForbiddenError("Access denied")

        reason = (reason or "").strip()
        if not reason:
            raise BadRequestError("A cancellation reason is required", code="CANCELLATION_REASON_REQUIRED")

        current = OrderStatus(order.status)
        ensure_cancellable(current)

        now = utcnow()
        values = self._transition_values(order, OrderStatus.CANCELLED, now)
        values["cancellation_reason"] = reason
        values["cancelled_by"] = CancelledBy.CUSTOMER.value

        order_pk, order_number, laundry_id = order.id, order.order_number, order.laundry_id
        try:
            self._write_transition(order, current, values)
            append_timeline(
                self.db, order_pk, ORDER_CANCELLED.event, ORDER_CANCELLED.title, reason,
                details={"reason": reason, "cancelled_by": CancelledBy.CUSTOMER.value},
            )
            append_history(
                self.db, order_pk, OrderStatus.CANCELLED,
                changed_by=customer_id, from_status=current, notes=reason,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info("Order cancelled by customer", order_number=order_number, from_status=current.value)
        self._notify("notify_laundry_cancellation", laundry_id, order_pk, order_number, reason)
        return order

    def confirm_delivery(self, order_id: int, customer_id: int) -> Order:
        """Customer confirms receipt: OUT_FOR_DELIVERY -> DELIVERED."""
        order = self._get_order(order_id)
        if order.customer_id != customer_id:
            raise ForbiddenError("Access denied")

        current = OrderStatus(order.status)
        if current != OrderStatus.OUT_FOR_DELIVERY:
            raise BadRequestError(
                f"Cannot confirm delivery for order in {current.value} status. "
                "Order must be out for delivery.",
                code="INVALID_STATUS_TRANSITION",
            )

        now = utcnow()
        values = self._transition_values(order, OrderStatus.DELIVERED, now)
        values["actual_delivery_date"] = now

        event = TIMELINE_EVENTS[OrderStatus.DELIVERED]
        order_pk, order_number, laundry_id = order.id, order.order_number, order.laundry_id
        try:
            self._write_transition(order, current, values)
            append_timeline(self.db, order_pk, event.event, event.title, DELIVERY_CONFIRMED_NOTE)
            append_history(
                self.db, order_pk, OrderStatus.DELIVERED,
                changed_by=customer_id, from_status=current, notes=DELIVERY_CONFIRMED_NOTE,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info("Delivery confirmed by customer", order_number=order_number)
        self._notify("notify_laundry_delivery_confirmed", laundry_id, order_pk, order_number)
        return order

    def _transition_values(self, order: Order, target: OrderStatus, now: datetime) -> Dict[str, Any]:
        values = {"status": target.value}
        milestone = MILESTONE_FIELDS.get(target)
        if milestone and getattr(order, milestone) is None:
            values[milestone] = now
        return values

    def _write_transition(self, order: Order, expected: OrderStatus, values: Dict[str, Any]) -> None:
        """Conditional UPDATE keyed on the status the decision was made from."""
        updated = self.db.query(Order).filter(
            Order.id == order.id,
            Order.status == expected.value,
        ).update(values, synchronize_session=False)
        if updated != 1:
            raise ConflictError(
                f"Order {order.order_number} is no longer {expected.value}; it was changed by another request",
                code="STATUS_CONFLICT",
            )

    def _settle_payment(self, order_id: int, now: datetime) -> None:
        self.db.query(Payment).filter(Payment.order_id == order_id).update(
            {"payment_status": PaymentStatus.COMPLETED.value, "paid_at": now},
            synchronize_session=False,
        )

    def _refresh_laundry_stats(self, laundry_id: int) -> None:
        completed = self.db.query(func.count(Order.id)).filter(
            Order.laundry_id == laundry_id,
            Order.status == OrderStatus.COMPLETED.value,
        ).scalar()
        self.db.query(Laundry).filter(Laundry.id == laundry_id).update(
            {"total_orders": completed}, synchronize_session=False
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order_details(self, order_id: int, actor: Actor) -> Order:
        order = self._get_order(order_id)
        self._check_access(order, actor)
        return order

    def get_order_timeline(self, order_id: int, actor: Actor) -> List[OrderTimeline]:
        order = self._get_order(order_id)
        self._check_access(order, actor)
        return get_timeline(self.db, order.id)

    def get_status_history(self, order_id: int, actor: Actor) -> List[OrderStatusHistory]:
        order = self._get_order(order_id)
        self._check_access(order, actor)
        return get_history(self.db, order.id)

    def list_customer_orders(
        self, customer_id: int, status: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Order], int]:
        return self._list_orders(Order.customer_id == customer_id, status, page, limit)

    def list_laundry_orders(
        self, laundry_id: int, status: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> Tuple[List[Order], int]:
        return self._list_orders(Order.laundry_id == laundry_id, status, page, limit)

    def _list_orders(self, owner_filter, status: Optional[str], page: int, limit: int) -> Tuple[List[Order], int]:
        """Newest first. ``status="active"`` means not yet delivered."""
        query = self.db.query(Order).filter(owner_filter)
        if status:
            if status.lower() == "active":
                query = query.filter(Order.status.in_([s.value for s in ACTIVE_STATUSES]))
            else:
                try:
                    status_value = OrderStatus(status.upper()).value
                except ValueError:
                    raise BadRequestError(f"Unknown order status filter: {status}", code="INVALID_STATUS_FILTER")
                query = query.filter(Order.status == status_value)

        total = query.count()
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return orders, total

    def _get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
        return order

    def _check_access(self, order: Order, actor: Actor) -> None:
        if actor.role == ActorRole.CUSTOMER and order.customer_id != actor.id:
            raise ForbiddenError("Access denied")
        if actor.role == ActorRole.LAUNDRY and order.laundry_id != actor.id:
            raise ForbiddenError("Access denied")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self, handler_name: str, *args) -> None:
        """Queue a best-effort notification to run after the response."""
        if self.notifier is None:
            return
        handler = getattr(self.notifier, handler_name)
        self.background_tasks.add_task(dispatch_safely, handler, *args)
