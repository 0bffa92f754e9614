"""
Intent Dispatch Handler

Maps the Intent Resolver's outcome onto a reply and the next state.
"""
from datetime import datetime

from app.core.exceptions import IntentResolutionError
from app.core.logging import logger
from app.orchestration.delivery.state import ConversationState, Session, Transition
from app.orchestration.delivery.states.base import format_order_details, reply
from app.orchestration.delivery.states.reschedule import offer_reschedule
from app.services.llm.intent_service import IntentAction, IntentResolver


FALLBACK_MESSAGE = "How can I help with your delivery today?"
RESOLVER_FAILURE_MESSAGE = "I'm having some trouble right now. Could you try again in a moment?"


async def dispatch_intent(
    session: Session,
    text: str,
    resolver: IntentResolver,
    order_store,
    now: datetime,
) -> Transition:
    """Resolve the caller's intent and act on it."""
    order = session.current_order

    try:
        outcome = await resolver.resolve(text, session.state, order)
    except IntentResolutionError as e:
        logger.error(f"Intent resolution failed for session {session.id}: {e}")
        return reply(session.move_to(ConversationState.INITIAL), RESOLVER_FAILURE_MESSAGE)

    action = outcome.action
    logger.debug(f"Session {session.id}: resolved intent {outcome.to_dict()}")

    if action.is_order_action and order is None:
        return reply(
            session.move_to(ConversationState.AWAITING_AWB),
            "I'd be happy to help track your order! Could you share your tracking number with me?",
            requires_awb=True,
        )

    if action == IntentAction.ORDER_STATUS:
        return reply(
            session.move_to(ConversationState.ORDER_FOUND),
            f"Your order {order.awb} is currently: {order.status.value}.",
        )

    if action == IntentAction.ORDER_DETAILS:
        return reply(
            session.move_to(ConversationState.ORDER_FOUND),
            "Here are your order details:",
            show_details=True,
            order_details=format_order_details(order),
        )

    if action == IntentAction.ORDER_RESCHEDULE:
        if not order_store.is_reschedulable(order):
            return reply(
                session.move_to(ConversationState.ORDER_FOUND),
                "I'm sorry, but this order can't be rescheduled right now.",
            )
        return offer_reschedule(session, order, now)

    if action == IntentAction.GREETING:
        return reply(
            session.move_to(ConversationState.INITIAL),
            "Hello! How can I help with your delivery?",
        )

    if action == IntentAction.FAREWELL:
        return reply(
            session.move_to(ConversationState.COMPLETED),
            "Thank you! Have a great day!",
            end_conversation=True,
        )

    return reply(session.move_to(ConversationState.INITIAL), FALLBACK_MESSAGE)
