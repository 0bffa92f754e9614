"""
Sample orders used to seed (and reset) the order table.

Delivery estimates are relative to the seeding time so the demo orders
always look current.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from app.core import utcnow
from app.db.models import Order, OrderStatus


def build_sample_orders(now: Optional[datetime] = None) -> List[Order]:
    """Build fresh (unsaved) sample order rows."""
    now = now or utcnow()

    return [
        Order(
            awb="AWB123456",
            status=OrderStatus.DELIVERED,
            last_update=datetime(2023, 5, 15),
            estimated_delivery=datetime(2023, 5, 15),
            customer_name="John Doe",
            customer_phone="+1234567890",
            rescheduled=False,
        ),
        Order(
            awb="AWB789012",
            status=OrderStatus.IN_TRANSIT,
            last_update=now,
            estimated_delivery=now + timedelta(days=2),
            customer_name="Jane Smith",
            customer_phone="+1987654321",
            rescheduled=False,
        ),
        Order(
            awb="AWB345678",
            status=OrderStatus.DELAYED,
            last_update=now,
            estimated_delivery=now + timedelta(days=5),
            delay_reason="Heavy rainfall affecting transportation routes",
            customer_name="Robert Johnson",
            customer_phone="+1122334455",
            rescheduled=False,
        ),
        Order(
            awb="AWB999999",
            status=OrderStatus.IN_TRANSIT,
            last_update=now,
            estimated_delivery=now + timedelta(days=3),
            customer_name="Sarah Williams",
            customer_phone="+917269063619",
            rescheduled=False,
        ),
    ]
