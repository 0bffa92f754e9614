"""
API dependencies
"""
from app.orchestration.delivery.machine import ConversationEngine, get_conversation_engine
from app.services.order_store import OrderStore, get_order_store
from app.services.session_store import SessionStore, get_session_store


def get_engine() -> ConversationEngine:
    return get_conversation_engine()


def get_sessions() -> SessionStore:
    return get_session_store()


def get_orders() -> OrderStore:
    return get_order_store()


__all__ = [
    "get_engine",
    "get_sessions",
    "get_orders",
]
