import asyncio
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Point the app at a throwaway database before anything imports laundry.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PUSH_WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from laundry.database import Base, get_db
from laundry.models import (
    AccountStatus,
    ClothingItem,
    Customer,
    DiscountType,
    Laundry,
    LaundryPricing,
    OrderType,
    PickupType,
    PriceUnit,
    PromoCode,
    ServiceCategory,
)
from laundry.schemas.order import OrderCreate, OrderItemCreate, OrderStatusUpdate
from laundry.services.notifications import get_notifier
from laundry.services.orders import OrderService
from laundry.utils.timeutils import utcnow


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class RecordingNotifier:
    """Stands in for NotificationService and records every call."""

    def __init__(self):
        self.calls = []

    async def notify_customer_order_status(self, customer_id, order_id, order_number, status):
        self.calls.append(("notify_customer_order_status", customer_id, order_id, order_number, status))

    async def notify_laundry_new_order(self, laundry_id, order_id, order_number):
        self.calls.append(("notify_laundry_new_order", laundry_id, order_id, order_number))

    async def notify_laundry_cancellation(self, laundry_id, order_id, order_number, reason):
        self.calls.append(("notify_laundry_cancellation", laundry_id, order_id, order_number, reason))

    async def notify_laundry_delivery_confirmed(self, laundry_id, order_id, order_number):
        self.calls.append(("notify_laundry_delivery_confirmed", laundry_id, order_id, order_number))

    def names(self):
        return [call[0] for call in self.calls]


class FailingNotifier(RecordingNotifier):
    """Every notification blows up after being recorded."""

    async def notify_customer_order_status(self, *args):
        await super().notify_customer_order_status(*args)
        raise RuntimeError("push relay down")

    async def notify_laundry_new_order(self, *args):
        await super().notify_laundry_new_order(*args)
        raise RuntimeError("push relay down")


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def failing_notifier():
    return FailingNotifier()


@pytest.fixture()
def catalog(db):
    """One active laundry with per-piece and per-kg prices, one customer."""
    customer = Customer(phone_number="+923001110000", name="Ayesha", fcm_token="customer-token")
    other_customer = Customer(phone_number="+923001110001", name="Bilal")
    laundry = Laundry(
        phone_number="+923002220000",
        laundry_name="Fresh Fold",
        status=AccountStatus.ACTIVE.value,
        is_open=True,
        express_multiplier=1.5,
        fcm_token="laundry-token",
    )
    other_laundry = Laundry(
        phone_number="+923002220001",
        laundry_name="Spin Cycle",
        status=AccountStatus.ACTIVE.value,
        is_open=True,
    )
    wash = ServiceCategory(name="Wash & Iron")
    dry_clean = ServiceCategory(name="Dry Clean")
    shirt = ClothingItem(name="Shirt")
    bedsheet = ClothingItem(name="Bedsheet")
    db.add_all([customer, other_customer, laundry, other_laundry, wash, dry_clean, shirt, bedsheet])
    db.flush()

    shirt_wash = LaundryPricing(
        laundry_id=laundry.id,
        service_category_id=wash.id,
        clothing_item_id=shirt.id,
        price=100,
        price_unit=PriceUnit.PER_PIECE.value,
        is_active=True,
    )
    sheet_wash = LaundryPricing(
        laundry_id=laundry.id,
        service_category_id=wash.id,
        clothing_item_id=bedsheet.id,
        price=180,
        price_unit=PriceUnit.PER_KG.value,
        is_active=True,
    )
    shirt_dry_clean = LaundryPricing(
        laundry_id=laundry.id,
        service_category_id=dry_clean.id,
        clothing_item_id=shirt.id,
        price=600,
        express_price=800,
        price_unit=PriceUnit.PER_PIECE.value,
        is_active=True,
    )
    db.add_all([shirt_wash, sheet_wash, shirt_dry_clean])
    db.commit()

    return {
        "customer": customer,
        "other_customer": other_customer,
        "laundry": laundry,
        "other_laundry": other_laundry,
        "wash": wash,
        "dry_clean": dry_clean,
        "shirt": shirt,
        "bedsheet": bedsheet,
        "shirt_wash": shirt_wash,
        "sheet_wash": sheet_wash,
        "shirt_dry_clean": shirt_dry_clean,
    }


@pytest.fixture()
def make_promo(db):
    def _make_promo(**overrides):
        now = utcnow()
        values = dict(
            code="WELCOME50",
            discount_type=DiscountType.PERCENTAGE.value,
            discount_value=50,
            min_order_amount=0,
            max_discount=100,
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=30),
            usage_limit=None,
            used_count=0,
            first_order_only=False,
            is_active=True,
        )
        values.update(overrides)
        promo = PromoCode(**values)
        db.add(promo)
        db.commit()
        return promo
    return _make_promo


@pytest.fixture()
def order_payload(catalog):
    """Build an OrderCreate for the catalog laundry; items default to 2 shirts washed."""
    def _order_payload(items=None, **overrides):
        if items is None:
            items = [
                OrderItemCreate(
                    service_id=catalog["wash"].id,
                    clothing_item_id=catalog["shirt"].id,
                    quantity=2,
                )
            ]
        values = dict(
            laundry_id=catalog["laundry"].id,
            order_type=OrderType.STANDARD,
            pickup_type=PickupType.RIDER_PICKUP,
            pickup_address="House 12, Street 4, Gulberg III, Lahore",
            pickup_latitude=31.5204,
            pickup_longitude=74.3587,
            pickup_date=datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc),
            items=items,
        )
        values.update(overrides)
        return OrderCreate(**values)
    return _order_payload


@pytest.fixture()
def client(session_factory, notifier):
    from laundry.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def service(db, notifier):
    return OrderService(db, notifier=notifier)


@pytest.fixture()
def place_order(service, catalog, order_payload):
    def _place_order(**overrides):
        return service.create_order(catalog["customer"].id, order_payload(**overrides))
    return _place_order


@pytest.fixture()
def advance(service, catalog):
    """Drive an order through the given statuses as its laundry."""
    def _advance(order, *statuses, **fields):
        for status in statuses:
            order = service.update_order_status(
                order.id, catalog["laundry"].id, OrderStatusUpdate(status=status, **fields)
            )
        return order
    return _advance


@pytest.fixture()
def run_notifications(service):
    """Run the notifications queued by the service, as FastAPI would after the response."""
    def _run():
        asyncio.run(service.background_tasks())
        service.background_tasks.tasks.clear()
    return _run
