"""
Order database model
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, Enum, Boolean

from app.core import utcnow
from app.db.base import Base


class OrderStatus(str, PyEnum):
    """Delivery status of an order."""
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    IN_TRANSIT = "In Transit"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    DELAYED = "Delayed"
    RESCHEDULED = "Rescheduled"


class Order(Base):
    """A tracked shipment, keyed by its AWB tracking number."""

    __tablename__ = "orders"

    awb = Column(String(9), primary_key=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PROCESSING)
    last_update = Column(DateTime, nullable=False, default=utcnow)
    estimated_delivery = Column(DateTime, nullable=True)
    scheduled_delivery = Column(DateTime, nullable=True)
    delay_reason = Column(String(500), nullable=True)

    # Customer contact (OTP and notification delivery)
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(20), nullable=True)

    rescheduled = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Order {self.awb} ({self.status.value})>"
