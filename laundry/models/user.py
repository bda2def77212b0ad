"""Customer model and actor role enumeration."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from laundry.database import Base


class ActorRole(str, enum.Enum):
    """Roles a request can be made under."""
    CUSTOMER = "CUSTOMER"
    LAUNDRY = "LAUNDRY"
    ADMIN = "ADMIN"


class Customer(Base):
    """Customer account placing orders."""
    __tablename__ = "customers"
    
    id = Column(Integer, primary_key=True, index=True)
    phone_number = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    fcm_token = Column(String(255), nullable=True)  # Device token for push
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    orders = relationship("Order", back_populates="customer")
