"""Catalog models - service categories, clothing items and per-laundry pricing."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from laundry.database import Base


class PriceUnit(str, enum.Enum):
    """How a pricing entry is charged."""
    PER_PIECE = "PER_PIECE"
    PER_KG = "PER_KG"


class ServiceCategory(Base):
    """A type of laundry treatment, e.g. wash & iron or dry clean."""
    __tablename__ = "service_categories"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    estimated_hours = Column(Integer, default=24, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ClothingItem(Base):
    """A garment or household item type that can be priced."""
    __tablename__ = "clothing_items"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    is_popular = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class LaundryPricing(Base):
    """Price a laundry charges for one (service category, clothing item) pair."""
    __tablename__ = "laundry_pricing"
    __table_args__ = (
        UniqueConstraint("laundry_id", "service_category_id", "clothing_item_id", name="uq_laundry_pricing_triple"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    laundry_id = Column(Integer, ForeignKey("laundries.id"), nullable=False, index=True)
    service_category_id = Column(Integer, ForeignKey("service_categories.id"), nullable=False)
    clothing_item_id = Column(Integer, ForeignKey("clothing_items.id"), nullable=False)
    price = Column(Float, nullable=False)
    express_price = Column(Float, nullable=True)  # Overrides the express multiplier when set
    price_unit = Column(String(20), default=PriceUnit.PER_PIECE.value, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    laundry = relationship("Laundry", back_populates="pricing")
    service_category = relationship("ServiceCategory")
    clothing_item = relationship("ClothingItem")
