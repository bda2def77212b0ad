"""Laundry shop model."""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from laundry.database import Base


class AccountStatus(str, enum.Enum):
    """Laundry account status. Only ACTIVE laundries accept orders."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    BLOCKED = "BLOCKED"


class Laundry(Base):
    """Laundry shop receiving orders."""
    __tablename__ = "laundries"
    
    id = Column(Integer, primary_key=True, index=True)
    phone_number = Column(String(20), unique=True, index=True, nullable=False)
    laundry_name = Column(String(150), nullable=True)
    address_text = Column(Text, nullable=True)
    status = Column(String(20), default=AccountStatus.PENDING.value, nullable=False)
    is_open = Column(Boolean, default=False)
    free_pickup_delivery = Column(Boolean, default=False, nullable=False)
    express_multiplier = Column(Float, nullable=True)  # Falls back to DEFAULT_EXPRESS_MULTIPLIER
    min_order_amount = Column(Integer, default=200, nullable=False)
    total_orders = Column(Integer, default=0, nullable=False)  # Count of COMPLETED orders
    fcm_token = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    pricing = relationship("LaundryPricing", back_populates="laundry", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="laundry")
