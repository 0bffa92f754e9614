"""
Intent Resolution Service

Classifies a user's message into one of a closed set of delivery actions.
This is a bounded AI task - the LLM only picks an action from a fixed list,
it never writes the reply shown to the user.

Valid actions:
- order_status: Where is my order / what is its status
- order_details: Show the full order details
- order_reschedule: Move the delivery to another slot
- greeting: Hello / hi
- farewell: Bye / thanks, that's all
- none: Nothing recognisable
"""
import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from app.core import settings
from app.core.exceptions import IntentResolutionError
from app.core.logging import logger
from app.orchestration.delivery.state import ConversationState, OrderSnapshot
from app.orchestration.utils import extract_json_from_llm_response


class IntentAction(str, Enum):
    """Closed set of actions the conversation engine understands."""
    ORDER_STATUS = "order_status"
    ORDER_DETAILS = "order_details"
    ORDER_RESCHEDULE = "order_reschedule"
    GREETING = "greeting"
    FAREWELL = "farewell"
    NONE = "none"

    @property
    def is_order_action(self) -> bool:
        return self in (
            IntentAction.ORDER_STATUS,
            IntentAction.ORDER_DETAILS,
            IntentAction.ORDER_RESCHEDULE,
        )


# Spellings an LLM tends to use for each action
ACTION_ALIASES = {
    "status": IntentAction.ORDER_STATUS,
    "order-status": IntentAction.ORDER_STATUS,
    "details": IntentAction.ORDER_DETAILS,
    "order-details": IntentAction.ORDER_DETAILS,
    "reschedule": IntentAction.ORDER_RESCHEDULE,
    "order-reschedule": IntentAction.ORDER_RESCHEDULE,
}


@dataclass(frozen=True)
class IntentOutcome:
    """Structured result of intent resolution."""
    action: IntentAction
    awb: Optional[str] = None
    source: str = "pattern"

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "awb": self.awb,
            "source": self.source,
        }


def parse_action(value: Optional[str]) -> IntentAction:
    """Map a free-form action name onto IntentAction (unknown -> NONE)."""
    if not value:
        return IntentAction.NONE
    key = value.strip().lower()
    if key in ACTION_ALIASES:
        return ACTION_ALIASES[key]
    try:
        return IntentAction(key)
    except ValueError:
        return IntentAction.NONE


class IntentResolver(ABC):
    """Turns raw text plus conversation context into an IntentOutcome."""

    @abstractmethod
    async def resolve(
        self,
        text: str,
        state: ConversationState,
        order: Optional[OrderSnapshot],
    ) -> IntentOutcome:
        """
        Resolve a message.

        Raises:
            IntentResolutionError: transport or parse failure
        """
        pass


class IntentService(IntentResolver):
    """
    Intent resolver for the delivery assistant.

    Uses pattern matching for the common phrasings and optionally falls
    back to an LLM for everything else.
    """

    REFERENCE_PATTERN = r"\bAWB[0-9]{6}\b"

    RESCHEDULE_PATTERNS = [
        r"\bre-?schedul",
        r"\bpostpone\b",
        r"\b(change|move)\b.*\b(delivery|date|day|slot|time)\b",
        r"\b(another|different|later|new)\b.*\b(day|date|slot|time)\b",
    ]

    DETAILS_PATTERNS = [
        r"\bdetails?\b",
        r"\bmore info(rmation)?\b",
        r"\bfull info(rmation)?\b",
        r"\bshow (me )?(the |my )?order\b",
    ]

    STATUS_PATTERNS = [
        r"\bstatus\b",
        r"\btrack(ing)?\b",
        r"\bwhere('?s| is)\b",
        r"\bwhen (will|is|does)\b",
        r"\b(arriv|deliver)",
        r"\b(my|an?|the) (order|package|parcel|shipment)\b",
    ]

    FAREWELL_PATTERNS = [
        r"\b(bye|goodbye|good bye|see (you|ya))\b",
        r"^(thanks|thank you|thx)( (so|very) much)?[.!]*$",
        r"\bthat'?s all\b",
        r"^(exit|quit|done)$",
    ]

    GREETING_PATTERNS = [
        r"^(hi|hello|hey|hiya|howdy|yo)\b",
        r"^good (morning|afternoon|evening)\b",
    ]

    SYSTEM_PROMPT = """You classify messages sent to a parcel delivery assistant.
Pick exactly one action:
- order_status: the user asks where their order is or what its status is
- order_details: the user wants the full details of their order
- order_reschedule: the user wants to change the delivery date or slot
- greeting: the user says hello
- farewell: the user says goodbye or is done
- none: none of the above

Respond with ONLY a JSON object: {"action": "<action>", "awb": "<tracking number or null>"}"""

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        use_llm_fallback: bool = False,
        timeout_seconds: float = settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
    ):
        """
        Initialize intent service.

        Args:
            llm: Chat model used for the fallback (created lazily if omitted)
            use_llm_fallback: Whether to ask the LLM when no pattern matches
            timeout_seconds: Upper bound on one LLM call
        """
        self.use_llm_fallback = use_llm_fallback
        self.timeout_seconds = timeout_seconds
        self._llm = llm

    async def resolve(
        self,
        text: str,
        state: ConversationState,
        order: Optional[OrderSnapshot],
    ) -> IntentOutcome:
        text_clean = text.strip()
        if not text_clean:
            return IntentOutcome(action=IntentAction.NONE)

        outcome = self.classify_with_patterns(text_clean)
        if outcome.action != IntentAction.NONE or not self.use_llm_fallback:
            return outcome

        return await self._classify_with_llm(text_clean, state, order)

    def classify_with_patterns(self, text: str) -> IntentOutcome:
        """Fast path: classify common phrasings without calling the LLM."""
        text_lower = text.lower().strip()
        awb = self._extract_reference(text)

        ordered = [
            (self.RESCHEDULE_PATTERNS, IntentAction.ORDER_RESCHEDULE),
            (self.DETAILS_PATTERNS, IntentAction.ORDER_DETAILS),
            (self.STATUS_PATTERNS, IntentAction.ORDER_STATUS),
            (self.FAREWELL_PATTERNS, IntentAction.FAREWELL),
            (self.GREETING_PATTERNS, IntentAction.GREETING),
        ]
        for patterns, action in ordered:
            if self._matches_patterns(text_lower, patterns):
                return IntentOutcome(action=action, awb=awb)

        # A bare tracking number is a status lookup
        if awb:
            return IntentOutcome(action=IntentAction.ORDER_STATUS, awb=awb)

        return IntentOutcome(action=IntentAction.NONE)

    def _matches_patterns(self, text: str, patterns: List[str]) -> bool:
        """Check if text matches any of the patterns."""
        for pattern in patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return True
        return False

    def _extract_reference(self, text: str) -> Optional[str]:
        match = re.search(self.REFERENCE_PATTERN, text, re.IGNORECASE)
        return match.group(0).upper() if match else None

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            from app.orchestration.routing import get_llm
            self._llm = get_llm()
        return self._llm

    async def _classify_with_llm(
        self,
        text: str,
        state: ConversationState,
        order: Optional[OrderSnapshot],
    ) -> IntentOutcome:
        """
        Use the LLM for intent classification (fallback).

        The answer is constrained to the action list; anything outside it
        maps to NONE. Transport errors and unparsable answers raise.
        """
        context = f"Current state: {state.value}."
        if order:
            context += f" Order: {order.awb}."

        messages = [
            SystemMessage(content=f"{self.SYSTEM_PROMPT}\n\n{context}"),
            HumanMessage(content=text),
        ]

        try:
            response = await asyncio.wait_for(
                self._get_llm().ainvoke(messages),
                self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise IntentResolutionError(f"LLM timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error(f"LLM intent request failed: {e}")
            raise IntentResolutionError("LLM intent request failed") from e

        content = response.content if isinstance(response.content, str) else str(response.content)
        data = extract_json_from_llm_response(content)
        if data is None:
            raise IntentResolutionError(f"Unparsable LLM intent response: {content[:200]!r}")

        awb = data.get("awb")
        if isinstance(awb, str) and re.fullmatch(self.REFERENCE_PATTERN, awb.strip(), re.IGNORECASE):
            awb = awb.strip().upper()
        else:
            awb = None

        return IntentOutcome(action=parse_action(data.get("action")), awb=awb, source="llm")


# Singleton instance
_intent_service: Optional[IntentService] = None


def get_intent_service(use_llm: bool = settings.INTENT_USE_LLM) -> IntentService:
    """Get or create intent service singleton."""
    global _intent_service
    if _intent_service is None:
        _intent_service = IntentService(use_llm_fallback=use_llm)
    return _intent_service
