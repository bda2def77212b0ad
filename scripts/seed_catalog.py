"""Script to seed a demo laundry, customer, catalog and promo."""
import sys
import os
from datetime import timedelta

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from laundry.database import SessionLocal, engine, Base
from laundry.models import (
    AccountStatus, ClothingItem, Customer, DiscountType, Laundry, LaundryPricing,
    PriceUnit, PromoCode, ServiceCategory,
)
from laundry.utils.timeutils import utcnow

SERVICES = [
    ("Wash & Iron", "washing-machine", 24),
    ("Dry Clean", "hanger", 48),
    ("Wash & Fold", "tshirt-crew", 24),
]

ITEMS = [
    ("Shirt", True),
    ("Trousers", True),
    ("Bedsheet", False),
]

# (service index, item index, price, unit)
PRICES = [
    (0, 0, 100, PriceUnit.PER_PIECE),
    (0, 1, 120, PriceUnit.PER_PIECE),
    (1, 0, 250, PriceUnit.PER_PIECE),
    (1, 1, 300, PriceUnit.PER_PIECE),
    (2, 2, 180, PriceUnit.PER_KG),
]


def seed_catalog():
    """Create demo rows if the database is empty."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(Laundry).first():
            print("Catalog already seeded, nothing to do.")
            return

        customer = Customer(phone_number="+923001234567", name="Demo Customer")
        laundry = Laundry(
            phone_number="+923007654321",
            laundry_name="Demo Laundry",
            address_text="Main Boulevard, Gulberg III, Lahore",
            status=AccountStatus.ACTIVE.value,
            is_open=True,
            express_multiplier=1.5,
        )
        services = [
            ServiceCategory(name=name, icon=icon, estimated_hours=hours, sort_order=i)
            for i, (name, icon, hours) in enumerate(SERVICES)
        ]
        items = [ClothingItem(name=name, is_popular=popular) for name, popular in ITEMS]
        db.add_all([customer, laundry, *services, *items])
        db.flush()

        for service_idx, item_idx, price, unit in PRICES:
            db.add(LaundryPricing(
                laundry_id=laundry.id,
                service_category_id=services[service_idx].id,
                clothing_item_id=items[item_idx].id,
                price=price,
                price_unit=unit.value,
                is_active=True,
            ))

        now = utcnow()
        db.add(PromoCode(
            code="WELCOME50",
            title="50% off your first order",
            subtitle="Up to Rs. 200",
            discount_type=DiscountType.PERCENTAGE.value,
            discount_value=50,
            min_order_amount=300,
            max_discount=200,
            valid_from=now,
            valid_until=now + timedelta(days=90),
            usage_limit=1000,
            first_order_only=True,
        ))
        db.commit()
        print("Demo catalog seeded successfully!")
        print(f"Customer id: {customer.id}  Laundry id: {laundry.id}")
        print("Promo code: WELCOME50")

    finally:
        db.close()


if __name__ == "__main__":
    seed_catalog()
