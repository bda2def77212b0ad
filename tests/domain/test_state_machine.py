"""Tests for the order status state machine tables."""
from datetime import datetime, timedelta, timezone
from itertools import product

import pytest

from laundry.exceptions import BadRequestError
from laundry.models.order import OrderStatus, OrderType, PickupType
from laundry.services.lifecycle import (
    CANCELLABLE_STATUSES,
    MILESTONE_FIELDS,
    TERMINAL_STATUSES,
    TIMELINE_EVENTS,
    TRANSITIONS,
    allowed_transitions,
    can_transition,
    ensure_cancellable,
    ensure_transition,
    estimate_delivery,
)


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(OrderStatus)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {OrderStatus.REJECTED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}

    @pytest.mark.parametrize("current,target", list(product(OrderStatus, OrderStatus)))
    def test_only_listed_edges_are_allowed(self, current, target):
        expected = target in TRANSITIONS[current]
        assert can_transition(current, target, PickupType.RIDER_PICKUP) is expected

    @pytest.mark.parametrize("current,target", [
        (s, t) for s, t in product(OrderStatus, OrderStatus) if t not in TRANSITIONS[s]
    ])
    def test_non_edges_raise(self, current, target):
        with pytest.raises(BadRequestError) as exc:
            ensure_transition(current, target, PickupType.RIDER_PICKUP)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"

    def test_forward_path(self):
        path = [
            OrderStatus.PENDING,
            OrderStatus.ACCEPTED,
            OrderStatus.PICKUP_SCHEDULED,
            OrderStatus.PICKED_UP,
            OrderStatus.PROCESSING,
            OrderStatus.READY,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
            OrderStatus.COMPLETED,
        ]
        for current, target in zip(path, path[1:]):
            ensure_transition(current, target)

    def test_no_cancellation_once_processing(self):
        for status in (OrderStatus.PROCESSING, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY):
            assert not can_transition(status, OrderStatus.CANCELLED)


class TestSelfDropOff:
    def test_accepted_to_processing_for_self_drop_off(self):
        assert can_transition(OrderStatus.ACCEPTED, OrderStatus.PROCESSING, PickupType.SELF_DROP_OFF)

    def test_accepted_to_processing_rejected_for_rider_pickup(self):
        assert not can_transition(OrderStatus.ACCEPTED, OrderStatus.PROCESSING, PickupType.RIDER_PICKUP)

    def test_self_drop_off_keeps_regular_edges(self):
        allowed = allowed_transitions(OrderStatus.ACCEPTED, PickupType.SELF_DROP_OFF)
        assert allowed == [OrderStatus.PICKUP_SCHEDULED, OrderStatus.CANCELLED, OrderStatus.PROCESSING]

    def test_self_drop_off_adds_nothing_elsewhere(self):
        for status in OrderStatus:
            if status == OrderStatus.ACCEPTED:
                continue
            assert allowed_transitions(status, PickupType.SELF_DROP_OFF) == list(TRANSITIONS[status])


class TestErrorMessages:
    def test_message_from_terminal_status(self):
        with pytest.raises(BadRequestError) as exc:
            ensure_transition(OrderStatus.COMPLETED, OrderStatus.PENDING)
        assert exc.value.message == "Invalid status transition from COMPLETED to PENDING. Allowed: "

    def test_message_lists_allowed_targets(self):
        with pytest.raises(BadRequestError) as exc:
            ensure_transition(OrderStatus.PENDING, OrderStatus.READY)
        assert exc.value.message == (
            "Invalid status transition from PENDING to READY. Allowed: ACCEPTED, REJECTED, CANCELLED"
        )


class TestCancellable:
    @pytest.mark.parametrize("status", sorted(CANCELLABLE_STATUSES, key=lambda s: s.value))
    def test_cancellable_statuses(self, status):
        ensure_cancellable(status)

    def test_processing_is_not_cancellable(self):
        with pytest.raises(BadRequestError) as exc:
            ensure_cancellable(OrderStatus.PROCESSING)
        assert "Cannot cancel order in PROCESSING status" in exc.value.message
        assert exc.value.code == "ORDER_NOT_CANCELLABLE"


class TestTables:
    def test_every_non_initial_status_has_a_timeline_event(self):
        assert set(TIMELINE_EVENTS) == set(OrderStatus) - {OrderStatus.PENDING}

    def test_milestones_cover_every_non_initial_status(self):
        assert set(MILESTONE_FIELDS) == set(OrderStatus) - {OrderStatus.PENDING}


class TestEstimateDelivery:
    pickup = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_standard_turnaround(self):
        assert estimate_delivery(self.pickup, OrderType.STANDARD) == self.pickup + timedelta(hours=24)

    def test_express_turnaround(self):
        assert estimate_delivery(self.pickup, OrderType.EXPRESS) == self.pickup + timedelta(hours=12)
