"""Tests for order number formatting and parsing."""
from datetime import date

from sqlalchemy.exc import IntegrityError

from laundry.services.order_numbers import (
    format_order_number,
    is_order_number_collision,
    order_number_prefix,
    parse_sequence,
)


def test_prefix_uses_the_day():
    assert order_number_prefix(date(2026, 3, 1)) == "ORD-20260301-"


def test_sequence_is_zero_padded():
    assert format_order_number(date(2026, 3, 1), 7) == "ORD-20260301-0007"


def test_parse_sequence():
    assert parse_sequence("ORD-20260301-0042") == 42


def test_parse_malformed_number():
    assert parse_sequence("ORD-20260301") is None
    assert parse_sequence("ORD-20260301-abc") is None


def test_collision_detection_on_order_number_index():
    exc = IntegrityError("INSERT INTO orders", {}, Exception("UNIQUE constraint failed: orders.order_number"))
    assert is_order_number_collision(exc)


def test_other_integrity_errors_are_not_collisions():
    exc = IntegrityError("INSERT INTO orders", {}, Exception("NOT NULL constraint failed: orders.customer_id"))
    assert not is_order_number_collision(exc)
