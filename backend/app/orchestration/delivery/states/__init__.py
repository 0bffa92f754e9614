"""
Delivery State Handlers

Each step of message processing has a handler that:
1. Inspects the session snapshot and the user's input
2. Builds the next session record and the reply
3. Queues any outbound notifications
"""
from app.orchestration.delivery.states.otp import generate_otp, issue_otp, verify_otp
from app.orchestration.delivery.states.reschedule import (
    generate_reschedule_options,
    select_slot,
    apply_selection,
)
from app.orchestration.delivery.states.tracking import handle_tracking_reference, require_verification
from app.orchestration.delivery.states.intents import dispatch_intent

__all__ = [
    "generate_otp",
    "issue_otp",
    "verify_otp",
    "generate_reschedule_options",
    "select_slot",
    "apply_selection",
    "handle_tracking_reference",
    "require_verification",
    "dispatch_intent",
]
