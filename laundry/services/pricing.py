"""Checkout pricing - line pricing from the laundry's catalog and order charges."""
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from laundry.config import settings
from laundry.exceptions import BadRequestError
from laundry.models.catalog import LaundryPricing, PriceUnit
from laundry.models.laundry import Laundry
from laundry.models.order import OrderType


@dataclass
class PricedLine:
    """A resolved order line, ready to be stored as an OrderItem."""
    service_category_id: int
    clothing_item_id: int
    quantity: int
    weight_kg: Optional[float]
    unit_price: float
    price_unit: str
    total_price: float
    special_notes: Optional[str] = None


@dataclass
class OrderCharges:
    """Monetary breakdown of an order."""
    subtotal: float
    delivery_fee: float
    express_fee: float
    discount: float
    total_amount: float


def find_pricing(
    db: Session, laundry_id: int, service_category_id: int, clothing_item_id: int
) -> Optional[LaundryPricing]:
    """Get the active pricing entry for a laundry/category/item triple."""
    return db.query(LaundryPricing).filter(
        LaundryPricing.laundry_id == laundry_id,
        LaundryPricing.service_category_id == service_category_id,
        LaundryPricing.clothing_item_id == clothing_item_id,
        LaundryPricing.is_active.is_(True),
    ).first()


def express_unit_price(pricing: LaundryPricing, multiplier: float) -> float:
    """Express price for one unit, rounded up to a whole currency unit."""
    if pricing.express_price is not None:
        return pricing.express_price
    # round() first so float noise like 110.00000000000001 does not ceil up
    return float(math.ceil(round(pricing.price * multiplier, 6)))


def price_line(
    pricing: LaundryPricing,
    quantity: int = 1,
    weight_kg: Optional[float] = None,
    order_type: OrderType = OrderType.STANDARD,
    express_multiplier: Optional[float] = None,
    special_notes: Optional[str] = None,
) -> PricedLine:
    """
    Price one order line against a catalog entry.
    
    Per-piece lines are charged by quantity, per-kg lines by weight (the
    quantity is then always 1). Express orders use the express unit price.
    """
    if express_multiplier is None:
        express_multiplier = settings.DEFAULT_EXPRESS_MULTIPLIER

    if order_type == OrderType.EXPRESS:
        unit_price = express_unit_price(pricing, express_multiplier)
    else:
        unit_price = pricing.price

    if pricing.price_unit == PriceUnit.PER_KG.value:
        if weight_kg is None or weight_kg <= 0:
            raise BadRequestError(
                f"Weight is required for per-kg pricing "
                f"(service {pricing.service_category_id}, item {pricing.clothing_item_id})",
                code="WEIGHT_REQUIRED",
            )
        quantity = 1
        total_price = round(unit_price * weight_kg, 2)
    else:
        quantity = quantity or 1
        total_price = round(unit_price * quantity, 2)

    return PricedLine(
        service_category_id=pricing.service_category_id,
        clothing_item_id=pricing.clothing_item_id,
        quantity=quantity,
        weight_kg=weight_kg,
        unit_price=unit_price,
        price_unit=pricing.price_unit,
        total_price=total_price,
        special_notes=special_notes,
    )


def resolve_line(
    db: Session,
    laundry: Laundry,
    service_category_id: int,
    clothing_item_id: int,
    quantity: int = 1,
    weight_kg: Optional[float] = None,
    order_type: OrderType = OrderType.STANDARD,
    special_notes: Optional[str] = None,
) -> PricedLine:
    """Look up the laundry's price for a line and price it."""
    pricing = find_pricing(db, laundry.id, service_category_id, clothing_item_id)
    if not pricing:
        raise BadRequestError(
            f"Pricing not found for service {service_category_id} and item {clothing_item_id}",
            code="PRICING_NOT_FOUND",
        )
    return price_line(
        pricing,
        quantity=quantity,
        weight_kg=weight_kg,
        order_type=order_type,
        express_multiplier=laundry.express_multiplier,
        special_notes=special_notes,
    )


def delivery_fee_for(subtotal: float, free_pickup_delivery: bool = False) -> float:
    if free_pickup_delivery or subtotal >= settings.FREE_DELIVERY_THRESHOLD:
        return 0.0
    return float(settings.DELIVERY_FEE)


def express_fee_for(subtotal: float, order_type: OrderType) -> float:
    if order_type != OrderType.EXPRESS:
        return 0.0
    return round(subtotal * settings.EXPRESS_FEE_RATE, 2)


def calculate_charges(
    subtotal: float,
    order_type: OrderType = OrderType.STANDARD,
    free_pickup_delivery: bool = False,
    discount: float = 0,
) -> OrderCharges:
    """Derive fees and the total; the total never goes below zero."""
    delivery_fee = delivery_fee_for(subtotal, free_pickup_delivery)
    express_fee = express_fee_for(subtotal, order_type)
    discount = min(max(discount, 0), subtotal + delivery_fee + express_fee)
    total_amount = round(subtotal + delivery_fee + express_fee - discount, 2)
    return OrderCharges(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        express_fee=express_fee,
        discount=discount,
        total_amount=max(total_amount, 0.0),
    )
