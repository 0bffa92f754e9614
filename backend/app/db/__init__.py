"""
Database package
"""
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.db.models import *

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "Order",
    "OrderStatus",
]
