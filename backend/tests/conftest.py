"""
Test configuration and fixtures for DeliveryBot backend tests.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.orchestration.delivery.machine import ConversationEngine
from app.orchestration.delivery.state import ChatReply
from app.services.llm.intent_service import IntentService
from app.services.notifier import NotificationDispatcher, Notifier
from app.services.order_store import OrderStore
from app.services.session_store import InMemorySessionStore


# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday; AWB789012 is due two days later
BASE_TIME = datetime(2024, 6, 10, 12, 0, 0)
TEST_OTP = "482193"


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingNotifier(Notifier):
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send(self, phone: str, message: str) -> None:
        self.sent.append((phone, message))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE_TIME)


@pytest.fixture(scope="function")
def order_store(clock: FakeClock) -> Generator[OrderStore, None, None]:
    """Order store over a fresh, seeded database."""
    Base.metadata.create_all(bind=engine)
    store = OrderStore(TestingSessionLocal, timeout_seconds=5, clock=clock)
    store.reset_to_seed()
    try:
        yield store
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(
        idle_timeout=timedelta(seconds=120),
        expired_retention=timedelta(seconds=300),
        clock=clock,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def conversation_engine(session_store, order_store, notifier, clock) -> ConversationEngine:
    """Engine with pattern-only intent resolution and a fixed OTP."""
    return ConversationEngine(
        session_store=session_store,
        order_store=order_store,
        intent_resolver=IntentService(use_llm_fallback=False),
        dispatcher=NotificationDispatcher(notifier),
        clock=clock,
        otp_generator=lambda: TEST_OTP,
    )


@pytest.fixture
def send(conversation_engine: ConversationEngine):
    """Process one message and wait for its notifications."""

    def _send(session_id: str, message: str) -> ChatReply:
        async def _run() -> ChatReply:
            reply = await conversation_engine.process_message(session_id, message)
            await conversation_engine.dispatcher.drain()
            return reply

        return asyncio.run(_run())

    return _send


@pytest.fixture(scope="function")
def client(monkeypatch, conversation_engine, session_store, order_store) -> Generator[TestClient, None, None]:
    """Create a test client wired to the test engine and stores."""
    monkeypatch.setattr("app.services.order_store._order_store", order_store)
    monkeypatch.setattr("app.services.session_store._session_store", session_store)
    monkeypatch.setattr("app.orchestration.delivery.machine._engine", conversation_engine)

    from main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
