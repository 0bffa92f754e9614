"""
Core module exports
"""
from datetime import datetime, timezone

from app.core.config import settings, get_settings
from app.core.logging import logger, get_logger, log_audit_event
from app.core.exceptions import (
    DeliveryBotError,
    OrderStoreError,
    IntentResolutionError,
    SessionConflictError,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how order times are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


__all__ = [
    "settings",
    "get_settings",
    "logger",
    "get_logger",
    "log_audit_event",
    "utcnow",
    "DeliveryBotError",
    "OrderStoreError",
    "IntentResolutionError",
    "SessionConflictError",
]
