"""
Tracking Number Handler

Looks for a tracking number in every message that reaches it. A tracking
number always triggers a fresh order lookup; finding an order the session
has not verified starts OTP verification.
"""
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from app.core.exceptions import OrderStoreError
from app.core.logging import logger
from app.orchestration.delivery.state import ConversationState, Session, Transition
from app.orchestration.delivery.states.base import (
    VERIFICATION_REQUIRED_MESSAGE,
    extract_awb,
    reply,
    store_unavailable,
)
from app.orchestration.delivery.states.otp import issue_otp


async def handle_tracking_reference(
    session: Session,
    text: str,
    order_store,
    now: datetime,
    otp_validity: timedelta,
    otp_generator: Callable[[], str],
) -> Union[Session, Transition]:
    """
    Process a tracking number in the input, if any.

    Returns a Transition when the message is fully handled here, otherwise
    the (possibly refreshed) session to continue with.
    """
    awb = extract_awb(text)
    if awb is None:
        return session

    # Never trust the cached copy: it may predate a reschedule
    try:
        order = await order_store.get(awb)
    except OrderStoreError as e:
        logger.error(f"Order lookup for {awb} failed: {e}")
        return store_unavailable(session)

    if order is None:
        if session.current_order is None:
            return reply(
                session.move_to(ConversationState.AWAITING_AWB),
                f"I couldn't find an order with tracking number {awb}. Please check the number and try again.",
                requires_awb=True,
            )
        return session

    if session.is_verified_for(order.awb):
        return replace(session, current_order=order)

    return issue_otp(session, order, otp_generator(), now, otp_validity)


def require_verification(session: Session) -> Optional[Transition]:
    """Refuse to go further while an order is held but not verified."""
    if session.current_order is not None and not session.otp_verified:
        return reply(
            session.move_to(ConversationState.AWAITING_OTP),
            VERIFICATION_REQUIRED_MESSAGE,
            requires_otp=True,
        )
    return None
