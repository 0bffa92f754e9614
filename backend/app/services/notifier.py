"""
Notifier Service - Best-effort WhatsApp messages to customers.

Used for OTP delivery and reschedule confirmations. Sending never raises
into the caller: failures are logged and dropped.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Set

import httpx

from app.core import settings
from app.core.logging import get_logger
from app.orchestration.delivery.state import Notification, OrderSnapshot

logger = get_logger(__name__)


class Notifier(ABC):
    """Abstract outbound message channel."""

    @abstractmethod
    async def send(self, phone: str, message: str) -> None:
        """Send a text message to a phone number. Must not raise."""
        pass


class LoggingNotifier(Notifier):
    """Notifier used when no messaging provider is configured."""

    async def send(self, phone: str, message: str) -> None:
        logger.warning(
            "Twilio credentials not configured; WhatsApp message to "
            f"{phone} not sent: {message!r}"
        )


class TwilioWhatsAppNotifier(Notifier):
    """Sends WhatsApp messages through the Twilio Messages REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base_url: str = settings.TWILIO_API_BASE_URL,
        timeout_seconds: float = settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.api_base_url}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, phone: str, message: str) -> None:
        payload = {
            "From": f"whatsapp:{self.from_number}",
            "To": f"whatsapp:{phone}",
            "Body": message,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                auth=(self.account_sid, self.auth_token),
                transport=self._transport,
            ) as client:
                response = await client.post(self.messages_url, data=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"WhatsApp send to {phone} failed: {exc}")
            return

        logger.info(f"WhatsApp update sent to {phone}")


class NotificationDispatcher:
    """
    Fire-and-forget delivery of queued notifications.

    Each notification runs as its own task; `drain` waits for whatever is
    still in flight (used at shutdown and in tests).
    """

    def __init__(self, notifier: Notifier):
        self.notifier = notifier
        self._pending: Set[asyncio.Task] = set()

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self.notifier.send(notification.phone, notification.message)
        except Exception:
            logger.exception(f"Notifier failed delivering {notification.kind} message")

    def dispatch(self, notification: Notification) -> None:
        task = asyncio.create_task(self._deliver(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%m/%d/%Y, %I:%M:%S %p") if value else "N/A"


def format_whatsapp_message(order: OrderSnapshot) -> str:
    """Summarize an order's schedule for a WhatsApp update."""
    return (
        f"📦 Order Update: {order.awb}\n"
        f"🔄 Status: {order.status.value}\n"
        f"📅 Scheduled Delivery: {_fmt(order.scheduled_delivery)}\n"
        f"⏰ Last Updated: {_fmt(order.last_update)}\n"
        "\nThank you for using our service!"
    )


def format_otp_message(otp: str, validity_seconds: int = settings.OTP_VALIDITY_SECONDS) -> str:
    minutes = max(1, validity_seconds // 60)
    return f"Your verification code is: {otp}\nThis code is valid for {minutes} minutes."


# Singleton instance
_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get the configured notifier (Twilio when credentials are set)."""
    global _notifier
    if _notifier is None:
        if settings.whatsapp_enabled:
            logger.info("Using Twilio WhatsApp notifier")
            _notifier = TwilioWhatsAppNotifier(
                settings.TWILIO_ACCOUNT_SID,
                settings.TWILIO_AUTH_TOKEN,
                settings.TWILIO_WHATSAPP_NUMBER,
            )
        else:
            logger.info("WhatsApp notifications disabled (Twilio not configured)")
            _notifier = LoggingNotifier()
    return _notifier
