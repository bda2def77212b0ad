"""Append-only order event logs: customer timeline and status audit trail."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from laundry.database import Base


class OrderTimeline(Base):
    """
    Customer-facing timeline entry for an order event.
    
    Rows are only ever inserted; display order is newest first.
    """
    __tablename__ = "order_timeline"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    event = Column(String(50), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    order = relationship("Order", back_populates="timeline")


class OrderStatusHistory(Base):
    """
    Audit record of one status transition.
    
    Written in the same transaction as the status change it describes.
    """
    __tablename__ = "order_status_history"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    from_status = Column(String(20), nullable=True)  # None for the creation entry
    to_status = Column(String(20), nullable=False)
    changed_by = Column(Integer, nullable=True)  # Customer or laundry id
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    order = relationship("Order", back_populates="status_history")
