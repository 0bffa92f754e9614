"""
Delivery Conversation Engine

Implements the state machine behind the delivery assistant. Each message
is handled in a fixed priority order:

1. Session expiry
2. OTP gate (AWAITING_OTP)
3. Slot selection (RESCHEDULE_OPTIONS)
4. Tracking number lookup
5. Verification gate
6. Intent dispatch

Transitions are computed from an immutable session snapshot and only
committed to the session store once complete, so no lock is held while
the order store or intent resolver are being called.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.core import settings, utcnow
from app.core.exceptions import SessionConflictError
from app.core.logging import logger
from app.orchestration.delivery.state import (
    ChatReply,
    ConversationState,
    Session,
    Transition,
)
from app.orchestration.delivery.states import (
    dispatch_intent,
    generate_otp,
    handle_tracking_reference,
    require_verification,
    select_slot,
    verify_otp,
)
from app.orchestration.delivery.states.base import expired_reply
from app.services.llm.intent_service import IntentResolver
from app.services.notifier import NotificationDispatcher
from app.services.session_store import EXPIRED, SessionStore


class ConversationEngine:
    """
    Delivery conversation controller.

    Resolves the caller's session, computes the transition for one message
    and commits it, then hands queued notifications to the dispatcher.
    """

    def __init__(
        self,
        session_store: SessionStore,
        order_store,
        intent_resolver: IntentResolver,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utcnow,
        otp_generator: Callable[[], str] = generate_otp,
        otp_validity: timedelta = timedelta(seconds=settings.OTP_VALIDITY_SECONDS),
    ):
        self.session_store = session_store
        self.order_store = order_store
        self.intent_resolver = intent_resolver
        self.dispatcher = dispatcher
        self._clock = clock
        self._otp_generator = otp_generator
        self.otp_validity = otp_validity

    async def process_message(self, session_id: str, message: str) -> ChatReply:
        """
        Process one user message for a session.

        Args:
            session_id: Caller-supplied session identifier
            message: User's input message

        Returns:
            Structured reply for the caller
        """
        resolved = self.session_store.resolve(session_id)
        if resolved is EXPIRED:
            return expired_reply()

        session = resolved if resolved is not None else self.session_store.create(session_id)

        transition = await self.transition(session, message or "")

        try:
            self._commit(transition)
        except SessionConflictError as e:
            logger.warning(str(e))
            return self._stale_reply(session)

        for notification in transition.notifications:
            self.dispatcher.dispatch(notification)

        logger.info(
            f"Session {session_id}: {session.state.value} -> {transition.session.state.value}"
        )
        return transition.reply

    async def transition(self, session: Session, message: str) -> Transition:
        """Compute the next session record and reply for one message."""
        transition = await self._run_steps(session, message.strip())
        return self._redact(transition)

    async def _run_steps(self, session: Session, text: str) -> Transition:
        now = self._clock()

        if session.state == ConversationState.AWAITING_OTP and not session.otp_verified:
            return verify_otp(session, text, now, self.otp_validity)

        if session.state == ConversationState.RESCHEDULE_OPTIONS and session.reschedule_options:
            return await select_slot(session, text, self.order_store, now)

        handled = await handle_tracking_reference(
            session,
            text,
            self.order_store,
            now,
            self.otp_validity,
            self._otp_generator,
        )
        if isinstance(handled, Transition):
            return handled
        session = handled

        blocked = require_verification(session)
        if blocked is not None:
            return blocked

        return await dispatch_intent(
            session,
            text,
            self.intent_resolver,
            self.order_store,
            now,
        )

    def _commit(self, transition: Transition) -> None:
        if not self.session_store.commit(transition.session):
            raise SessionConflictError(transition.session.id)

    @staticmethod
    def _redact(transition: Transition) -> Transition:
        """Unverified sessions never receive order data."""
        if not transition.session.otp_verified:
            if transition.reply.order_details or transition.reply.reschedule_options:
                logger.warning(f"Redacted order data from reply for unverified session {transition.session.id}")
            transition.reply.order_details = None
            transition.reply.reschedule_options = None
        return transition

    def _stale_reply(self, session: Session) -> ChatReply:
        """The session changed while this message was in flight."""
        if self.session_store.is_expired(session.id):
            return expired_reply()

        return ChatReply(
            response="Sorry, I couldn't process that message. Please send it again.",
            conversation_state=session.state,
        )


# Singleton instance
_engine: Optional[ConversationEngine] = None


def get_conversation_engine() -> ConversationEngine:
    """Get or create the conversation engine singleton."""
    global _engine
    if _engine is None:
        from app.services.session_store import get_session_store
        from app.services.order_store import get_order_store
        from app.services.llm.intent_service import get_intent_service
        from app.services.notifier import get_notifier

        _engine = ConversationEngine(
            session_store=get_session_store(),
            order_store=get_order_store(),
            intent_resolver=get_intent_service(),
            dispatcher=NotificationDispatcher(get_notifier()),
        )
    return _engine
