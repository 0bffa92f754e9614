"""
Order Store Service - Looks up and reschedules orders by tracking number.

Database access is synchronous SQLAlchemy; the async methods run it in a
worker thread with a timeout so a slow database never stalls the event loop.
"""
import asyncio
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession, sessionmaker

from app.core import settings, utcnow
from app.core.exceptions import OrderStoreError
from app.core.logging import logger
from app.db.base import Base
from app.db.models import Order, OrderStatus
from app.db.seed import build_sample_orders
from app.orchestration.delivery.state import OrderSnapshot


NON_RESCHEDULABLE_STATUSES = {OrderStatus.DELIVERED, OrderStatus.OUT_FOR_DELIVERY}


class OrderStore:
    """Adapter over the orders table."""

    def __init__(
        self,
        session_factory: sessionmaker,
        timeout_seconds: float = settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def _run(self, fn, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise OrderStoreError(f"Order store timed out after {self.timeout_seconds}s") from e

    # Lookups

    def get_sync(self, awb: str) -> Optional[OrderSnapshot]:
        """Fetch an order snapshot, or None if no such order exists."""
        db: DBSession = self._session_factory()
        try:
            order = db.query(Order).filter(Order.awb == awb).first()
            return OrderSnapshot.from_model(order) if order else None
        except SQLAlchemyError as e:
            logger.error(f"Order lookup failed for {awb}: {e}")
            raise OrderStoreError(f"Order lookup failed for {awb}") from e
        finally:
            db.close()

    async def get(self, awb: str) -> Optional[OrderSnapshot]:
        return await self._run(self.get_sync, awb)

    # Rescheduling

    def reschedule_sync(self, awb: str, new_date: datetime) -> bool:
        """
        Move an order to a new delivery slot.

        Returns True only if exactly one order was updated. The eligibility
        rules are part of the UPDATE, so of two concurrent writers for the
        same order only the first succeeds.
        """
        db: DBSession = self._session_factory()
        try:
            updated = (
                db.query(Order)
                .filter(
                    Order.awb == awb,
                    Order.rescheduled.is_(False),
                    Order.status.notin_(list(NON_RESCHEDULABLE_STATUSES)),
                )
                .update(
                    {
                        Order.scheduled_delivery: new_date,
                        Order.status: OrderStatus.RESCHEDULED,
                        Order.rescheduled: True,
                        Order.last_update: self._clock(),
                    },
                    synchronize_session=False,
                )
            )
            db.commit()
            return updated == 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Rescheduling error for {awb}: {e}")
            return False
        finally:
            db.close()

    async def reschedule(self, awb: str, new_date: datetime) -> bool:
        return await self._run(self.reschedule_sync, awb, new_date)

    @staticmethod
    def is_reschedulable(order: OrderSnapshot) -> bool:
        """Orders can be moved once, and only before they are out for delivery."""
        return order.status not in NON_RESCHEDULABLE_STATUSES and not order.rescheduled

    # Administration

    def init_schema(self) -> None:
        """Create the orders table if it does not exist."""
        db: DBSession = self._session_factory()
        try:
            Base.metadata.create_all(bind=db.get_bind())
        finally:
            db.close()

    def reset_to_seed(self) -> int:
        """Replace every order with the sample data; returns the number inserted."""
        db: DBSession = self._session_factory()
        try:
            db.query(Order).delete()
            orders = build_sample_orders(self._clock())
            db.add_all(orders)
            db.commit()
            logger.info(f"Reset orders to seed data ({len(orders)} orders)")
            return len(orders)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error resetting orders to seed: {e}")
            raise OrderStoreError("Failed to reset orders") from e
        finally:
            db.close()

    def count(self) -> int:
        db: DBSession = self._session_factory()
        try:
            return db.query(Order).count()
        finally:
            db.close()


# Singleton instance
_order_store: Optional[OrderStore] = None


def get_order_store() -> OrderStore:
    """Get or create the order store singleton."""
    global _order_store
    if _order_store is None:
        from app.db.session import SessionLocal
        _order_store = OrderStore(SessionLocal)
    return _order_store
