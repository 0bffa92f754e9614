"""
RESCHEDULE_OPTIONS State Handler

Offers three future delivery slots and applies the one the caller picks.
"""
import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from app.core.exceptions import OrderStoreError
from app.core.logging import log_audit_event, logger
from app.db.models.order import OrderStatus
from app.orchestration.delivery.state import (
    ConversationState,
    Notification,
    OrderSnapshot,
    RescheduleOption,
    Session,
    Transition,
)
from app.orchestration.delivery.states.base import (
    format_order_details,
    reply,
)
from app.services.notifier import format_whatsapp_message


RESCHEDULE_OPTION_COUNT = 3

# (name, hour); the slot for day offset N is SLOT_CYCLE[N % 3]
SLOT_CYCLE: Tuple[Tuple[str, int], ...] = (
    ("Morning", 9),
    ("Afternoon", 13),
    ("Evening", 18),
)

SLOT_NUMBER_PATTERN = re.compile(r"[0-9]+")


def slot_label(date: datetime) -> str:
    """Display label for a delivery slot, e.g. "Thu, Jun 13 | Afternoon"."""
    label = f"{date:%a}, {date:%b} {date.day}"
    for slot_name, hour in SLOT_CYCLE:
        if date.hour == hour:
            return f"{label} | {slot_name}"
    return f"{label} | {date:%H:%M}"


def parse_slot_number(text: str) -> Optional[int]:
    """Plain ASCII digits only; signs, separators and other scripts are rejected."""
    text = text.strip()
    if not SLOT_NUMBER_PATTERN.fullmatch(text):
        return None
    return int(text)


def generate_reschedule_options(base_date: datetime) -> List[RescheduleOption]:
    """
    Build the delivery slots offered for a base date.

    One slot per day for the next three days. Offsets 1, 2, 3 get the
    Afternoon, Evening and Morning slots respectively. Pure: the same base
    date always yields the same options.
    """
    options = []
    for offset in range(1, RESCHEDULE_OPTION_COUNT + 1):
        _, hour = SLOT_CYCLE[offset % len(SLOT_CYCLE)]
        date = (base_date + timedelta(days=offset)).replace(
            hour=hour, minute=0, second=0, microsecond=0
        )
        options.append(RescheduleOption(date=date, display=slot_label(date)))
    return options


def offer_reschedule(session: Session, order: OrderSnapshot, now: datetime) -> Transition:
    """Generate and store slots for an eligible order."""
    options = generate_reschedule_options(order.estimated_delivery or now)
    updated = session.move_to(
        ConversationState.RESCHEDULE_OPTIONS,
        reschedule_options=tuple(options),
    )
    return reply(
        updated,
        "Sure, I can help with that! Here are some available slots:",
        requires_reschedule=True,
        reschedule_options=[o.display for o in options],
    )


def _option_labels(session: Session) -> List[str]:
    return [o.display for o in session.reschedule_options]


async def select_slot(
    session: Session,
    text: str,
    order_store,
    now: datetime,
) -> Transition:
    """
    Process input while RESCHEDULE_OPTIONS.

    Input must be a whole number within 1..N; anything else gets a
    correction and leaves the options in place.
    """
    count = len(session.reschedule_options)

    choice = parse_slot_number(text)
    if choice is None:
        return reply(
            session,
            f"Please enter a valid slot number (1-{count}).",
            reschedule_options=_option_labels(session),
        )

    if not 1 <= choice <= count:
        return reply(
            session,
            f"Please enter a number between 1 and {count}.",
            reschedule_options=_option_labels(session),
        )

    return await apply_selection(session, session.reschedule_options[choice - 1], order_store, now)


async def _refresh(order_store, awb: str) -> Optional[OrderSnapshot]:
    try:
        return await order_store.get(awb)
    except OrderStoreError as e:
        logger.warning(f"Could not refresh {awb} after reschedule attempt: {e}")
        return None


async def apply_selection(
    session: Session,
    option: RescheduleOption,
    order_store,
    now: datetime,
) -> Transition:
    """
    Move the session's order to the selected slot.

    On store failure the session stays in RESCHEDULE_OPTIONS with the same
    options so the caller can simply pick again, unless the order is no
    longer eligible. The confirmation quotes the slot actually stored.
    """
    order = session.current_order
    if order is None:
        return reply(
            session.move_to(ConversationState.INITIAL),
            "Order not found. Please restart the conversation.",
        )

    try:
        success = await order_store.reschedule(order.awb, option.date)
    except OrderStoreError as e:
        logger.error(f"Reschedule of {order.awb} failed: {e}")
        success = False

    refreshed = await _refresh(order_store, order.awb)

    if not success:
        # Another message may have rescheduled the order in the meantime
        if refreshed is not None and not order_store.is_reschedulable(refreshed):
            return reply(
                session.move_to(ConversationState.ORDER_FOUND, current_order=refreshed),
                "I'm sorry, but this order can't be rescheduled right now.",
            )
        return reply(
            session,
            "Failed to reschedule. Please try again.",
            requires_reschedule=True,
            reschedule_options=_option_labels(session),
        )

    if refreshed is None or refreshed.scheduled_delivery is None:
        refreshed = replace(
            order,
            scheduled_delivery=option.date,
            status=OrderStatus.RESCHEDULED,
            rescheduled=True,
            last_update=now,
        )

    updated = session.move_to(ConversationState.ORDER_FOUND, current_order=refreshed)
    transition = reply(
        updated,
        f"Your order has been rescheduled to {slot_label(refreshed.scheduled_delivery)}.",
        order_details=format_order_details(refreshed),
        whatsapp_sent=bool(refreshed.customer_phone),
        requires_reschedule=False,
        requires_awb=False,
        show_details=True,
        end_conversation=False,
    )

    if refreshed.customer_phone:
        transition.notifications.append(
            Notification(
                phone=refreshed.customer_phone,
                message=format_whatsapp_message(refreshed),
                kind="reschedule",
            )
        )

    log_audit_event(
        "order_rescheduled",
        session.id,
        {"awb": order.awb, "slot": slot_label(refreshed.scheduled_delivery)},
    )
    return transition
