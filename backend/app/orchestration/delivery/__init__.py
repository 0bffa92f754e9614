"""
Delivery Conversation Module

A deterministic state machine for order tracking conversations: tracking
number lookup, OTP verification, status/details and rescheduling. The LLM
is only used to classify intent.

The engine itself lives in `app.orchestration.delivery.machine`.
"""
from app.orchestration.delivery.state import (
    ConversationState,
    OrderSnapshot,
    RescheduleOption,
    Session,
    ChatReply,
    Notification,
    Transition,
    create_initial_session,
)

__all__ = [
    "ConversationState",
    "OrderSnapshot",
    "RescheduleOption",
    "Session",
    "ChatReply",
    "Notification",
    "Transition",
    "create_initial_session",
]
