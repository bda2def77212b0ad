"""Promo code model."""
from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, JSON
from sqlalchemy.sql import func
import enum

from laundry.database import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class PromoCode(Base):
    """Discount code with eligibility rules and an optional usage cap."""
    __tablename__ = "promo_codes"
    
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, index=True, nullable=False)  # Stored upper-cased
    title = Column(String(100), nullable=True)
    subtitle = Column(String(200), nullable=True)
    discount_type = Column(String(20), default=DiscountType.PERCENTAGE.value, nullable=False)
    discount_value = Column(Float, nullable=False)
    min_order_amount = Column(Float, default=0, nullable=False)
    max_discount = Column(Float, nullable=True)
    valid_from = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    valid_until = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    first_order_only = Column(Boolean, default=False, nullable=False)
    specific_laundries = Column(JSON, nullable=True)  # List of laundry ids, empty/None = all
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
