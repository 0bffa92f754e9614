"""
Exception types shared across services and the conversation engine.
"""


class DeliveryBotError(Exception):
    """Base class for recoverable application errors."""


class OrderStoreError(DeliveryBotError):
    """The order store could not be reached or failed to answer."""


class IntentResolutionError(DeliveryBotError):
    """The intent resolver failed to produce a usable outcome."""


class SessionConflictError(DeliveryBotError):
    """A session record changed underneath an in-flight transition."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} was modified concurrently")
        self.session_id = session_id
