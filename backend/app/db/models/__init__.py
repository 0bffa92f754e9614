"""
Database models package
"""
from app.db.models.order import Order, OrderStatus

__all__ = [
    "Order",
    "OrderStatus",
]
