"""
AWAITING_OTP State Handler

Order details are only shown after the caller proves they own the order:
a 6-digit code is sent to the phone number on the order and must be typed
back within the validity window. A wrong or late code ends the attempt and
the caller has to start over with the tracking number.
"""
import hmac
import secrets
from datetime import datetime, timedelta

from app.core.logging import log_audit_event, logger
from app.orchestration.delivery.state import (
    ConversationState,
    Notification,
    OrderSnapshot,
    Session,
    Transition,
)
from app.orchestration.delivery.states.base import (
    OTP_REPROMPT_MESSAGE,
    OTP_REQUEST_MESSAGE,
    is_otp_format,
    reply,
)
from app.services.notifier import format_otp_message


def generate_otp() -> str:
    """Random 6-digit code (no leading zero)."""
    return str(100000 + secrets.randbelow(900000))


def issue_otp(
    session: Session,
    order: OrderSnapshot,
    code: str,
    now: datetime,
    validity: timedelta,
) -> Transition:
    """
    Start verification for an order.

    Moves the session to AWAITING_OTP and queues the code for delivery to
    the phone on the order. Delivery is best-effort; the state change
    does not depend on it.
    """
    updated = session.move_to(
        ConversationState.AWAITING_OTP,
        current_order=order,
        otp=code,
        otp_issued_at=now,
        otp_verified=False,
    )
    transition = reply(updated, OTP_REQUEST_MESSAGE, requires_otp=True)

    if order.customer_phone:
        transition.notifications.append(
            Notification(
                phone=order.customer_phone,
                message=format_otp_message(code, int(validity.total_seconds())),
                kind="otp",
            )
        )
    else:
        logger.warning(f"Order {order.awb} has no phone number; OTP for session {session.id} not delivered")

    log_audit_event("otp_issued", session.id, {"awb": order.awb})
    return transition


def verify_otp(
    session: Session,
    text: str,
    now: datetime,
    validity: timedelta,
) -> Transition:
    """
    Process input while AWAITING_OTP.

    Anything that is not six digits re-prompts without using up the code.
    Six digits must match the issued code AND arrive within the validity
    window; either failure clears the code and returns to INITIAL.
    """
    code = text.strip()

    if not is_otp_format(code):
        return reply(session, OTP_REPROMPT_MESSAGE, requires_otp=True)

    issued_at = session.otp_issued_at
    in_window = issued_at is not None and now - issued_at <= validity
    matches = session.otp is not None and hmac.compare_digest(code, session.otp)

    if in_window and matches:
        updated = session.move_to(
            ConversationState.ORDER_FOUND,
            otp=None,
            otp_issued_at=None,
            otp_verified=True,
        )
        log_audit_event("otp_verified", session.id, {"awb": updated.current_order.awb if updated.current_order else None})
        return reply(
            updated,
            "Verification successful! You can now access your order details.",
            requires_otp=False,
        )

    updated = session.move_to(
        ConversationState.INITIAL,
        current_order=None,
        otp=None,
        otp_issued_at=None,
        otp_verified=False,
    )
    log_audit_event(
        "otp_failed",
        session.id,
        {"reason": "mismatch" if not matches else "expired"},
    )
    return reply(updated, "Verification unsuccessful, try again later.", requires_otp=False)
