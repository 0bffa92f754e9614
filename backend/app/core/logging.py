"""
Logging configuration with field masking for sensitive data
"""
import logging
import re
from typing import Any

from app.core.config import settings


# Patterns to mask in logs
MASK_PATTERNS = [
    (r'"customer_phone":\s*"[^"]*"', '"customer_phone": "***"'),
    (r"'customer_phone':\s*'[^']*'", "'customer_phone': '***'"),
    (r'"otp":\s*"\d+"', '"otp": "******"'),
    (r"'otp':\s*'\d+'", "'otp': '******'"),
    (r'verification code is: \d{6}', 'verification code is: ******'),
    (r'(whatsapp:)?\+\d{6,}(\d{4})', r'\1+******\2'),
]


class MaskingFormatter(logging.Formatter):
    """Custom formatter that masks sensitive fields."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for pattern, replacement in MASK_PATTERNS:
            message = re.sub(pattern, replacement, message, flags=re.IGNORECASE)
        return message


def setup_logging() -> logging.Logger:
    """Configure application logging."""
    logger = logging.getLogger("deliverybot")
    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    if logger.handlers:
        return logger

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    # Format with masking
    formatter = MaskingFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    return logger


# Global logger instance
logger = setup_logging()


def get_logger(name: str) -> logging.Logger:
    """Get a child of the application logger."""
    return logger.getChild(name)


def log_audit_event(
    event_type: str,
    session_id: str,
    details: dict[str, Any],
) -> None:
    """Log an audit event for a conversation session."""
    logger.info(
        f"AUDIT: {event_type} | session={session_id} | details={details}"
    )
