"""
Bounded LLM Services

The LLM is used for one constrained task: mapping a free-text message onto
a closed set of delivery actions. Replies are never generated by the model.
"""
from app.services.llm.intent_service import (
    IntentService,
    IntentResolver,
    IntentAction,
    IntentOutcome,
    get_intent_service,
)

__all__ = [
    "IntentService",
    "IntentResolver",
    "IntentAction",
    "IntentOutcome",
    "get_intent_service",
]
