"""
Demo orders loaded into an empty store at startup
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
import logging

from pharmacy_app.schemas.order import (
    PRESCRIPTION_PRODUCT_ID,
    OrderItemSchema,
    OrderKind,
    OrderResponse,
    OrderStatus,
    PrescriptionDetails,
)
from pharmacy_app.services.order_repository import OrderRepository

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
PLACEHOLDER_PRESCRIPTION_IMAGE = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def demo_orders(now: Optional[datetime] = None) -> List[OrderResponse]:
    now = now or datetime.now(timezone.utc)
    return [
        OrderResponse(
            id="101",
            user_id="user123",
            order_date=now - timedelta(days=2),
            items=[
                OrderItemSchema(product_id="1", quantity=2, price=599),
                OrderItemSchema(product_id="2", quantity=1, price=349),
            ],
            total_amount=2 * 599 + 349,
            status=OrderStatus.DELIVERED,
            progress=100,
        ),
        OrderResponse(
            id="102",
            user_id="user123",
            order_date=now - timedelta(days=1),
            items=[OrderItemSchema(product_id="3", quantity=1, price=1299)],
            total_amount=1299,
            status=OrderStatus.SHIPPED,
            progress=50,
        ),
        OrderResponse(
            id="103",
            user_id="anotherUser",
            order_date=now - timedelta(days=3),
            items=[OrderItemSchema(product_id="5", quantity=1, price=650)],
            total_amount=650,
            status=OrderStatus.DELIVERED,
            progress=100,
        ),
        OrderResponse(
            id="ORD12345",
            user_id="user123",
            order_date=now - timedelta(hours=2),
            items=[
                OrderItemSchema(product_id="7", quantity=1, price=995),
                OrderItemSchema(product_id="8", quantity=2, price=450),
            ],
            total_amount=995 + 2 * 450,
            status=OrderStatus.OUT_FOR_DELIVERY,
            progress=75,
        ),
        OrderResponse(
            id="PRESCRIP_1",
            user_id="mockUserId_MVP",
            order_date=now - timedelta(minutes=10),
            items=[OrderItemSchema(product_id=PRESCRIPTION_PRODUCT_ID, quantity=1, price=0)],
            total_amount=150,
            status=OrderStatus.PROCESSING,
            kind=OrderKind.PRESCRIPTION,
            delivery_fee=150,
            pharmacy_id="pharma1",
            prescription_details=PrescriptionDetails(
                image=PLACEHOLDER_PRESCRIPTION_IMAGE,
                description="Urgent refill needed.",
            ),
            progress=30,
        ),
    ]


def seed_demo_orders(repository: OrderRepository) -> int:
    """Insert the demo orders if the store is empty; returns how many were added"""
    if repository.count() > 0:
        logger.info("Order store already populated, skipping demo data")
        return 0

    orders = demo_orders()
    for order in orders:
        repository.create(order)

    logger.info(f"Seeded {len(orders)} demo orders")
    return len(orders)
