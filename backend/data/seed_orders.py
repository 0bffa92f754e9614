"""
Seed script for populating the database with sample orders.
Run with: python data/seed_orders.py
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.services.order_store import get_order_store


def seed_orders():
    """Replace all orders with the sample data."""
    orders = get_order_store()
    orders.init_schema()
    count = orders.reset_to_seed()
    print(f"Database seeded successfully! ({count} orders)")


if __name__ == "__main__":
    seed_orders()
