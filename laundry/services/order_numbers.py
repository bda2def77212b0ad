"""Human-readable order numbers: ORD-YYYYMMDD-NNNN.

The sequence restarts every (UTC) day. Deriving the next number and inserting
the order are separate steps, so two concurrent checkouts can draw the same
number; the unique index on ``orders.order_number`` catches that and the
caller retries with a fresh number.
"""
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from laundry.models.order import Order
from laundry.utils.timeutils import utcnow

ORDER_NUMBER_PREFIX = "ORD"
SEQUENCE_WIDTH = 4


def order_number_prefix(day: date) -> str:
    return f"{ORDER_NUMBER_PREFIX}-{day.strftime('%Y%m%d')}-"


def format_order_number(day: date, sequence: int) -> str:
    return f"{order_number_prefix(day)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(order_number: str) -> Optional[int]:
    """Sequence part of an order number, or None if it is malformed."""
    parts = order_number.split("-")
    if len(parts) != 3:
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None


def next_order_number(db: Session, day: Optional[date] = None) -> str:
    """Next number after the highest one already issued for ``day``.

    Sequences past 9999 grow a fifth digit, so longer numbers rank higher.
    """
    day = day or utcnow().date()
    prefix = order_number_prefix(day)

    last = db.query(Order.order_number).filter(
        Order.order_number.like(f"{prefix}%")
    ).order_by(func.length(Order.order_number).desc(), Order.order_number.desc()).first()

    sequence = 1
    if last:
        last_sequence = parse_sequence(last[0])
        if last_sequence is not None:
            sequence = last_sequence + 1
    return format_order_number(day, sequence)


def is_order_number_collision(exc: IntegrityError) -> bool:
    """True when an insert failed on the order-number unique index."""
    return "order_number" in str(exc.orig)
