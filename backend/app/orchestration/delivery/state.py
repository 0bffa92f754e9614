"""
Delivery Conversation State Definition

Defines the immutable records the conversation engine works with:
the per-session record, the order snapshot it holds, the reschedule
options it offers and the structured reply it produces.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, List, Dict, Any

from app.db.models.order import OrderStatus


class ConversationState(str, Enum):
    """States of a delivery conversation."""
    INITIAL = "INITIAL"
    AWAITING_AWB = "AWAITING_AWB"
    AWAITING_OTP = "AWAITING_OTP"
    ORDER_FOUND = "ORDER_FOUND"
    RESCHEDULE_OPTIONS = "RESCHEDULE_OPTIONS"
    COMPLETED = "COMPLETED"
    # Synthetic: only ever returned in replies, never stored on a session
    SESSION_EXPIRED = "SESSION_EXPIRED"


@dataclass(frozen=True)
class OrderSnapshot:
    """Read-only copy of an order as seen by one session."""
    awb: str
    status: OrderStatus
    last_update: datetime
    estimated_delivery: Optional[datetime] = None
    scheduled_delivery: Optional[datetime] = None
    delay_reason: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    rescheduled: bool = False

    @classmethod
    def from_model(cls, order) -> "OrderSnapshot":
        """Copy the fields of an ORM order row."""
        return cls(
            awb=order.awb,
            status=OrderStatus(order.status),
            last_update=order.last_update,
            estimated_delivery=order.estimated_delivery,
            scheduled_delivery=order.scheduled_delivery,
            delay_reason=order.delay_reason,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            rescheduled=bool(order.rescheduled),
        )


@dataclass(frozen=True)
class RescheduleOption:
    """A future delivery slot offered to the caller."""
    date: datetime
    display: str


@dataclass(frozen=True)
class Session:
    """
    A single caller's conversation record.

    Records are never mutated in place; transitions build a new record
    with `move_to` / `dataclasses.replace` and the session store commits it.
    """
    id: str
    state: ConversationState
    last_active_at: datetime
    created_at: datetime
    current_order: Optional[OrderSnapshot] = None
    reschedule_options: Tuple[RescheduleOption, ...] = ()
    otp: Optional[str] = None
    otp_issued_at: Optional[datetime] = None
    otp_verified: bool = False
    version: int = 0

    def move_to(self, state: ConversationState, **changes: Any) -> "Session":
        """Return a copy in `state`; pending options only survive in RESCHEDULE_OPTIONS."""
        if state != ConversationState.RESCHEDULE_OPTIONS:
            changes["reschedule_options"] = ()
        return replace(self, state=state, **changes)

    def is_verified_for(self, awb: str) -> bool:
        """Whether OTP verification covers the order with this tracking id."""
        return (
            self.otp_verified
            and self.current_order is not None
            and self.current_order.awb == awb
        )


def create_initial_session(session_id: str, now: datetime) -> Session:
    """Create a fresh session in the INITIAL state."""
    return Session(
        id=session_id,
        state=ConversationState.INITIAL,
        last_active_at=now,
        created_at=now,
    )


@dataclass
class ChatReply:
    """Structured reply returned for one processed message."""
    response: str
    conversation_state: ConversationState
    requires_awb: Optional[bool] = None
    requires_reschedule: Optional[bool] = None
    show_details: Optional[bool] = None
    end_conversation: Optional[bool] = None
    requires_otp: Optional[bool] = None
    session_expired: Optional[bool] = None
    order_details: Optional[str] = None
    reschedule_options: Optional[List[str]] = None
    whatsapp_sent: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys, unset flags omitted)."""
        data = {
            "response": self.response,
            "conversationState": self.conversation_state.value,
            "requiresAwb": self.requires_awb,
            "requiresReschedule": self.requires_reschedule,
            "showDetails": self.show_details,
            "endConversation": self.end_conversation,
            "requiresOtp": self.requires_otp,
            "sessionExpired": self.session_expired,
            "orderDetails": self.order_details,
            "rescheduleOptions": self.reschedule_options,
            "whatsappSent": self.whatsapp_sent,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class Notification:
    """An outbound message queued by a transition."""
    phone: str
    message: str
    kind: str = "update"


@dataclass
class Transition:
    """Outcome of processing one message against a session snapshot."""
    session: Session
    reply: ChatReply
    notifications: List[Notification] = field(default_factory=list)
