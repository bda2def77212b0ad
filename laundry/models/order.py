"""Order model."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from laundry.database import Base


class OrderStatus(str, enum.Enum):
    """Order status enum."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PICKED_UP = "PICKED_UP"
    PROCESSING = "PROCESSING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderType(str, enum.Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"


class PickupType(str, enum.Enum):
    RIDER_PICKUP = "RIDER_PICKUP"
    SELF_DROP_OFF = "SELF_DROP_OFF"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    COD = "COD"


class CancelledBy(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    LAUNDRY = "LAUNDRY"


class Order(Base):
    """Order model - one customer purchase from one laundry.
    
    Monetary fields are computed by the checkout service and the status is
    only ever written through the lifecycle engine.
    """
    __tablename__ = "orders"
    
    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), unique=True, index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    laundry_id = Column(Integer, ForeignKey("laundries.id"), nullable=False, index=True)
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)
    order_type = Column(String(20), default=OrderType.STANDARD.value, nullable=False)
    pickup_type = Column(String(20), default=PickupType.RIDER_PICKUP.value, nullable=False)
    
    # Pickup
    pickup_address = Column(Text, nullable=False)
    pickup_latitude = Column(Float, nullable=False)
    pickup_longitude = Column(Float, nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=False)
    pickup_time_slot = Column(String(20), nullable=True)
    pickup_notes = Column(Text, nullable=True)
    
    # Delivery
    delivery_address = Column(Text, nullable=False)
    delivery_latitude = Column(Float, nullable=False)
    delivery_longitude = Column(Float, nullable=False)
    delivery_notes = Column(Text, nullable=True)
    expected_delivery_date = Column(DateTime(timezone=True), nullable=True)
    actual_delivery_date = Column(DateTime(timezone=True), nullable=True)
    
    # Money - total_amount = subtotal + delivery_fee + express_fee - discount
    subtotal = Column(Float, default=0, nullable=False)
    delivery_fee = Column(Float, default=0, nullable=False)
    express_fee = Column(Float, default=0, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    promo_code = Column(String(20), nullable=True)
    total_amount = Column(Float, default=0, nullable=False)
    
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    payment_method = Column(String(20), default=PaymentMethod.COD.value, nullable=False)
    special_instructions = Column(Text, nullable=True)
    
    # Cancellation / rejection
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)
    
    # Milestones, each set once by the transition into that status
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    pickup_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    picked_up_at = Column(DateTime(timezone=True), nullable=True)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    out_for_delivery_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    customer = relationship("Customer", back_populates="orders")
    laundry = relationship("Laundry", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan")
    timeline = relationship(
        "OrderTimeline",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderTimeline.id",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
    )


class OrderItem(Base):
    """Order item - one (clothing item, service) line with its price snapshot."""
    __tablename__ = "order_items"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    service_category_id = Column(Integer, ForeignKey("service_categories.id"), nullable=False)
    clothing_item_id = Column(Integer, ForeignKey("clothing_items.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    weight_kg = Column(Float, nullable=True)
    unit_price = Column(Float, nullable=False)  # Price at time of order
    price_unit = Column(String(20), nullable=False)
    total_price = Column(Float, nullable=False)
    special_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    order = relationship("Order", back_populates="items")
    service_category = relationship("ServiceCategory")
    clothing_item = relationship("ClothingItem")
