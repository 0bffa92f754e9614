"""
Base utilities for delivery state handlers.

Provides common functions for:
- Parsing user input (tracking numbers, OTP codes)
- Formatting order data for replies
- Building replies for the fixed engine responses
"""
import re
from datetime import datetime
from typing import Optional, List

from app.orchestration.delivery.state import (
    ChatReply,
    ConversationState,
    OrderSnapshot,
    Session,
    Transition,
)


AWB_PATTERN = re.compile(r"\bAWB[0-9]{6}\b", re.IGNORECASE)
OTP_PATTERN = re.compile(r"[0-9]{6}")

EXPIRED_MESSAGE = (
    "Your session has expired due to inactivity. "
    "Please start a new conversation to continue."
)
OTP_REQUEST_MESSAGE = (
    "For your security, please enter the 6-digit OTP sent to your "
    "WhatsApp number to access your order details."
)
OTP_REPROMPT_MESSAGE = "Please enter the 6-digit OTP sent to your WhatsApp number."
VERIFICATION_REQUIRED_MESSAGE = "Please complete OTP verification to access your order details."
STORE_UNAVAILABLE_MESSAGE = (
    "I'm having trouble accessing delivery information right now. "
    "Please try again in a moment."
)


def extract_awb(text: str) -> Optional[str]:
    """
    Find a tracking number (AWB + six digits) in user input.

    Args:
        text: User's input text

    Returns:
        Upper-cased tracking number, or None if absent
    """
    match = AWB_PATTERN.search(text)
    return match.group(0).upper() if match else None


def is_otp_format(text: str) -> bool:
    """Whether input is exactly six digits."""
    return OTP_PATTERN.fullmatch(text.strip()) is not None


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return f"{value.month}/{value.day}/{value.year}"


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return f"{format_date(value)}, {value.strftime('%I:%M:%S %p').lstrip('0')}"


def format_order_details(order: OrderSnapshot) -> str:
    """Format an order for display, one field per line."""
    lines = [
        f"AWB: {order.awb}",
        f"Status: {order.status.value}",
        f"Est. Delivery: {format_date(order.estimated_delivery)}",
    ]
    if order.scheduled_delivery:
        lines.append(f"Scheduled Delivery: {format_datetime(order.scheduled_delivery)}")
    if order.delay_reason:
        lines.append(f"Delay Reason: {order.delay_reason}")
    lines.append(f"Last Updated: {format_datetime(order.last_update)}")
    if order.rescheduled:
        lines.append("(Rescheduled)")
    return "\n".join(lines)


def format_options(labels: List[str]) -> str:
    """Number option labels for display, starting at 1."""
    return "\n".join(f"{i}. {label}" for i, label in enumerate(labels, start=1))


def reply(
    session: Session,
    response: str,
    **flags,
) -> Transition:
    """Build a transition that replies with the session's (new) state."""
    return Transition(
        session=session,
        reply=ChatReply(response=response, conversation_state=session.state, **flags),
    )


def expired_reply() -> ChatReply:
    """The fixed terminal reply for an expired session."""
    return ChatReply(
        response=EXPIRED_MESSAGE,
        conversation_state=ConversationState.SESSION_EXPIRED,
        requires_reschedule=False,
        requires_awb=False,
        show_details=False,
        end_conversation=True,
        session_expired=True,
    )


def store_unavailable(session: Session) -> Transition:
    """Critical-path order store failure: apologise and start over."""
    return reply(
        session.move_to(ConversationState.INITIAL),
        STORE_UNAVAILABLE_MESSAGE,
    )
