"""Tests for notification records and push delivery."""
import asyncio
import json

import httpx
import pytest

from laundry.models import Customer, Laundry, Notification
from laundry.services.notifications import (
    INVALID_TOKEN_ERROR,
    NotificationService,
    PushSender,
    dispatch_safely,
)

RELAY_URL = "https://push.example.test/send"


class Relay:
    """Records the requests the push sender makes and answers with a fixed status."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request):
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    def sender(self):
        return PushSender(url=RELAY_URL, timeout=5, transport=httpx.MockTransport(self))


@pytest.fixture()
def relay():
    return Relay()


def _notifications(session_factory):
    db = session_factory()
    try:
        return db.query(Notification).order_by(Notification.id).all()
    finally:
        db.close()


class TestPushSender:
    def test_payload(self, relay):
        result = asyncio.run(relay.sender().send("tok-1", "Hello", "World", {"order_id": 7}))

        assert result.success is True
        assert relay.requests == [{
            "token": "tok-1",
            "notification": {"title": "Hello", "body": "World"},
            "data": {"order_id": "7"},
        }]

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_invalid_token(self, status_code):
        result = asyncio.run(Relay(status_code).sender().send("tok-1", "Hello", "World"))

        assert result.success is False
        assert result.error == INVALID_TOKEN_ERROR

    def test_relay_error(self):
        result = asyncio.run(Relay(502).sender().send("tok-1", "Hello", "World"))

        assert result.to_dict() == {"success": False, "error": "Push relay returned 502"}

    def test_relay_unreachable(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        sender = PushSender(url=RELAY_URL, transport=httpx.MockTransport(unreachable))
        result = asyncio.run(sender.send("tok-1", "Hello", "World"))

        assert result.success is False
        assert result.error.startswith("Push relay unreachable")

    def test_disabled_without_url(self):
        sender = PushSender(url="")

        assert sender.enabled is False
        assert asyncio.run(sender.send("tok-1", "Hello", "World")).success is False


class TestNotificationService:
    def test_customer_status_notification(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        asyncio.run(service.notify_customer_order_status(catalog["customer"].id, 11, "ORD-20260301-0001", "ACCEPTED"))

        [notification] = _notifications(session_factory)
        assert notification.user_id == catalog["customer"].id
        assert notification.title == "Order Accepted"
        assert "ORD-20260301-0001" in notification.body
        assert notification.data == {"order_id": 11, "status": "ACCEPTED"}
        assert notification.is_sent is True
        assert relay.requests[0]["token"] == "customer-token"
        assert relay.requests[0]["data"]["type"] == "ORDER_UPDATE"

    def test_status_without_message_is_ignored(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        result = asyncio.run(service.notify_customer_order_status(catalog["customer"].id, 11, "ORD-1", "PENDING"))

        assert result is None
        assert _notifications(session_factory) == []
        assert relay.requests == []

    def test_new_order_goes_to_laundry(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        asyncio.run(service.notify_laundry_new_order(catalog["laundry"].id, 11, "ORD-20260301-0001"))

        [notification] = _notifications(session_factory)
        assert notification.laundry_id == catalog["laundry"].id
        assert notification.title == "New Order Received"
        assert relay.requests[0]["token"] == "laundry-token"
        assert relay.requests[0]["data"]["type"] == "NEW_ORDER"

    def test_cancellation_carries_reason(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        asyncio.run(service.notify_laundry_cancellation(catalog["laundry"].id, 11, "ORD-1", "Plans changed"))

        [notification] = _notifications(session_factory)
        assert notification.data == {"order_id": 11, "reason": "Plans changed"}
        assert relay.requests[0]["data"]["type"] == "ORDER_CANCELLED"

    def test_delivery_confirmation_goes_to_laundry(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        asyncio.run(service.notify_laundry_delivery_confirmed(catalog["laundry"].id, 11, "ORD-1"))

        [notification] = _notifications(session_factory)
        assert notification.title == "Delivery Confirmed"
        assert relay.requests[0]["data"]["type"] == "DELIVERY_CONFIRMED"

    def test_missing_token_skips_push(self, session_factory, catalog, relay):
        service = NotificationService(session_factory, push_sender=relay.sender())

        asyncio.run(service.notify_laundry_new_order(catalog["other_laundry"].id, 11, "ORD-1"))

        [notification] = _notifications(session_factory)
        assert notification.is_sent is False
        assert relay.requests == []

    def test_invalid_token_is_cleared(self, session_factory, catalog):
        service = NotificationService(session_factory, push_sender=Relay(410).sender())
        customer_id = catalog["customer"].id

        asyncio.run(service.notify_customer_order_status(customer_id, 11, "ORD-1", "READY"))

        db = session_factory()
        try:
            customer = db.query(Customer).filter(Customer.id == customer_id).one()
            assert customer.fcm_token is None
        finally:
            db.close()
        [notification] = _notifications(session_factory)
        assert notification.is_sent is False

    def test_other_relay_errors_keep_token(self, session_factory, catalog):
        service = NotificationService(session_factory, push_sender=Relay(500).sender())
        laundry_id = catalog["laundry"].id

        asyncio.run(service.notify_laundry_new_order(laundry_id, 11, "ORD-1"))

        db = session_factory()
        try:
            assert db.query(Laundry).filter(Laundry.id == laundry_id).one().fcm_token == "laundry-token"
        finally:
            db.close()


class TestDispatchSafely:
    def test_failure_is_swallowed(self):
        async def broken(*args):
            raise RuntimeError("boom")

        asyncio.run(dispatch_safely(broken, 1, 2))

    def test_arguments_are_passed(self):
        received = []

        async def handler(*args, **kwargs):
            received.append((args, kwargs))

        asyncio.run(dispatch_safely(handler, 1, reason="x"))
        assert received == [((1,), {"reason": "x"})]
