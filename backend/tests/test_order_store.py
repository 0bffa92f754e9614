"""
Tests for the order store adapter.
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import OrderStoreError
from app.db.models import Order, OrderStatus
from app.services.order_store import OrderStore
from tests.conftest import BASE_TIME, TestingSessionLocal


class TestOrderLookup:
    """Test reading orders."""

    def test_seeded_orders(self, order_store):
        assert order_store.count() == 4

    def test_get_existing_order(self, order_store):
        order = asyncio.run(order_store.get("AWB345678"))

        assert order.status == OrderStatus.DELAYED
        assert order.delay_reason == "Heavy rainfall affecting transportation routes"
        assert order.customer_phone == "+1122334455"
        assert order.estimated_delivery == datetime(2024, 6, 15, 12, 0)

    def test_get_missing_order(self, order_store):
        assert asyncio.run(order_store.get("AWB000000")) is None

    def test_lookup_failure_raises(self, clock):
        # No tables on this database
        broken = sessionmaker(bind=create_engine("sqlite:///:memory:"))
        store = OrderStore(broken, clock=clock)

        with pytest.raises(OrderStoreError):
            asyncio.run(store.get("AWB789012"))


class TestReschedule:
    """Test moving orders to a new slot."""

    def test_reschedule_updates_order(self, order_store, clock):
        clock.advance(60)
        new_date = datetime(2024, 6, 13, 13, 0)

        assert asyncio.run(order_store.reschedule("AWB789012", new_date)) is True

        order = order_store.get_sync("AWB789012")
        assert order.status == OrderStatus.RESCHEDULED
        assert order.scheduled_delivery == new_date
        assert order.rescheduled is True
        assert order.last_update == clock.now

    def test_reschedule_missing_order(self, order_store):
        assert asyncio.run(order_store.reschedule("AWB000000", datetime(2024, 6, 13))) is False

    def test_reschedule_leaves_other_orders(self, order_store):
        asyncio.run(order_store.reschedule("AWB789012", datetime(2024, 6, 13, 13, 0)))
        assert order_store.get_sync("AWB999999").rescheduled is False


class TestEligibility:
    """Test reschedule eligibility rules."""

    @pytest.mark.parametrize(
        "awb,expected",
        [
            ("AWB123456", False),  # Delivered
            ("AWB789012", True),   # In Transit
            ("AWB345678", True),   # Delayed
        ],
    )
    def test_seeded_orders(self, order_store, awb, expected):
        assert order_store.is_reschedulable(order_store.get_sync(awb)) is expected

    def test_out_for_delivery_not_eligible(self, order_store):
        db = TestingSessionLocal()
        db.query(Order).filter(Order.awb == "AWB999999").update({Order.status: OrderStatus.OUT_FOR_DELIVERY})
        db.commit()
        db.close()

        assert order_store.is_reschedulable(order_store.get_sync("AWB999999")) is False

    def test_already_rescheduled_not_eligible(self, order_store):
        asyncio.run(order_store.reschedule("AWB789012", datetime(2024, 6, 13, 13, 0)))
        assert order_store.is_reschedulable(order_store.get_sync("AWB789012")) is False


class TestReset:
    """Test restoring the sample data."""

    def test_reset_restores_seed(self, order_store):
        asyncio.run(order_store.reschedule("AWB789012", datetime(2024, 6, 13, 13, 0)))

        assert order_store.reset_to_seed() == 4

        order = order_store.get_sync("AWB789012")
        assert order.status == OrderStatus.IN_TRANSIT
        assert order.rescheduled is False
        assert order.scheduled_delivery is None
        assert order.last_update == BASE_TIME


class TestRescheduleGuard:
    """Test that the UPDATE itself enforces eligibility."""

    def test_second_reschedule_is_rejected(self, order_store):
        first = datetime(2024, 6, 13, 13, 0)
        assert asyncio.run(order_store.reschedule("AWB789012", first)) is True
        assert asyncio.run(order_store.reschedule("AWB789012", datetime(2024, 6, 14, 18, 0))) is False

        assert order_store.get_sync("AWB789012").scheduled_delivery == first

    def test_delivered_order_is_not_updated(self, order_store):
        assert asyncio.run(order_store.reschedule("AWB123456", datetime(2024, 6, 13, 13, 0))) is False

        order = order_store.get_sync("AWB123456")
        assert order.status == OrderStatus.DELIVERED
        assert order.scheduled_delivery is None


def test_last_update_defaults_to_now(order_store):
    db = TestingSessionLocal()
    db.add(Order(awb="AWB555555", status=OrderStatus.IN_TRANSIT, customer_phone="+1000000000"))
    db.commit()
    order = db.query(Order).filter(Order.awb == "AWB555555").one()
    db.close()

    assert isinstance(order.last_update, datetime)
    assert order.last_update.tzinfo is None
