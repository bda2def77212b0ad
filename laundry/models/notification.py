"""In-app notification model."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
import enum

from laundry.database import Base


class NotificationType(str, enum.Enum):
    ORDER_UPDATE = "ORDER_UPDATE"
    SYSTEM = "SYSTEM"


class Notification(Base):
    """Notification addressed to a customer (user_id) or a laundry (laundry_id)."""
    __tablename__ = "notifications"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    laundry_id = Column(Integer, nullable=True, index=True)
    type = Column(String(30), default=NotificationType.SYSTEM.value, nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_sent = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
