"""Promo code validation and usage accounting."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from laundry.config import settings
from laundry.exceptions import BadRequestError
from laundry.models.order import Order, OrderStatus
from laundry.models.promo import DiscountType, PromoCode
from laundry.utils.timeutils import as_utc, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class PromoResult:
    promo: PromoCode
    discount: int


def normalize_code(code: str) -> str:
    return code.strip().upper()


def round_half_up(value: float) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(math.floor(value + 0.5))


def calculate_discount(promo: PromoCode, order_amount: float) -> int:
    """
    Discount a promo gives on ``order_amount``.
    
    Percentage discounts are capped at ``max_discount``; no discount ever
    exceeds the order amount.
    """
    if promo.discount_type == DiscountType.PERCENTAGE.value:
        discount = order_amount * promo.discount_value / 100
        if promo.max_discount:
            discount = min(discount, promo.max_discount)
    else:
        discount = promo.discount_value
    discount = min(max(discount, 0), order_amount)
    return min(round_half_up(discount), int(math.floor(order_amount)))


def find_promo(db: Session, code: str) -> Optional[PromoCode]:
    return db.query(PromoCode).filter(PromoCode.code == normalize_code(code)).first()


def count_completed_orders(db: Session, customer_id: int) -> int:
    return db.query(Order).filter(
        Order.customer_id == customer_id,
        Order.status == OrderStatus.COMPLETED.value,
    ).count()


def validate_promo(
    db: Session,
    code: str,
    order_amount: float,
    customer_id: int,
    laundry_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> PromoResult:
    """Check every eligibility rule in order and compute the discount.
    
    Read-only: usage is counted by ``increment_usage`` once the order commits.
    """
    now = now or utcnow()
    promo = find_promo(db, code)

    if not promo:
        raise BadRequestError("Invalid promo code", code="INVALID_PROMO")

    if not promo.is_active:
        raise BadRequestError("Promo code is no longer active", code="PROMO_INACTIVE")

    if now < as_utc(promo.valid_from):
        raise BadRequestError("Promo code is not yet valid", code="PROMO_NOT_STARTED")

    if now > as_utc(promo.valid_until):
        raise BadRequestError("Promo code has expired", code="PROMO_EXPIRED")

    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        raise BadRequestError("Promo code usage limit reached", code="PROMO_LIMIT_REACHED")

    if order_amount < promo.min_order_amount:
        raise BadRequestError(
            f"Minimum order amount is {settings.CURRENCY_SYMBOL}{promo.min_order_amount:g}",
            code="MIN_ORDER_NOT_MET",
        )

    if promo.first_order_only and count_completed_orders(db, customer_id) > 0:
        raise BadRequestError("This promo code is for first order only", code="FIRST_ORDER_ONLY")

    specific_laundries = promo.specific_laundries or []
    if laundry_id is not None and specific_laundries:
        if str(laundry_id) not in {str(lid) for lid in specific_laundries}:
            raise BadRequestError(
                "Promo code is not valid for this laundry", code="LAUNDRY_NOT_APPLICABLE"
            )

    return PromoResult(promo=promo, discount=calculate_discount(promo, order_amount))


def increment_usage(db: Session, promo_id: int) -> bool:
    """
    Count one use of a promo inside the caller's transaction.
    
    The limit is re-checked in the UPDATE itself so two checkouts racing for
    the last use cannot both succeed. Returns False when the limit was hit.
    """
    updated = db.query(PromoCode).filter(
        PromoCode.id == promo_id,
        or_(PromoCode.usage_limit.is_(None), PromoCode.used_count < PromoCode.usage_limit),
    ).update({PromoCode.used_count: PromoCode.used_count + 1}, synchronize_session=False)
    if not updated:
        logger.warning("Promo usage limit reached at checkout", promo_id=promo_id)
    return updated == 1


def list_active_promos(db: Session, now: Optional[datetime] = None, limit: int = 10) -> List[PromoCode]:
    """Currently valid promos that still have uses left, newest first."""
    now = now or utcnow()
    promos = db.query(PromoCode).filter(
        PromoCode.is_active.is_(True),
        PromoCode.valid_from <= now,
        PromoCode.valid_until > now,
    ).order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).limit(limit).all()
    return [p for p in promos if p.usage_limit is None or p.used_count < p.usage_limit]
