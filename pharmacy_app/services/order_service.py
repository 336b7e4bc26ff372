"""
Order service
Order lifecycle on top of an OrderRepository: placing orders, prescription
checkout, status transitions and the tracking view
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
import asyncio
import functools
import logging
import math
import time
import uuid

from pharmacy_app.config import settings
from pharmacy_app.schemas.order import (
    PRESCRIPTION_PRODUCT_ID,
    OrderCreate,
    OrderItemSchema,
    OrderKind,
    OrderResponse,
    OrderStatus,
    PrescriptionCheckout,
    PrescriptionDetails,
    TrackingResponse,
)
from pharmacy_app.services.order_repository import OrderRepository
from pharmacy_app.services.pharmacy_directory import PharmacyDirectory, pharmacy_directory
from pharmacy_app.services.tracking import (
    DEFAULT_PHARMACY_NAME,
    STATUS_PROGRESS,
    advance_progress,
    can_transition,
    courier_for,
    display_progress,
    estimated_arrival,
)
from pharmacy_app.utils.error_handler import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    StoreTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.01
TRACKING_UPDATE_ATTEMPTS = 3


def generate_order_id() -> str:
    """Millisecond timestamp plus a random suffix, e.g. ORD_1718000000000_3f9a1c2b7d4e"""
    return f"ORD_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def validate_order(data: OrderCreate) -> None:
    """Reject orders that break the item, total or kind rules"""
    if not data.items:
        raise ValidationError("Order must contain at least one item")
    if data.total_amount < 0:
        raise ValidationError("total_amount cannot be negative")
    if data.delivery_fee < 0:
        raise ValidationError("delivery_fee cannot be negative")

    has_prescription_item = any(item.product_id == PRESCRIPTION_PRODUCT_ID for item in data.items)

    if data.kind is OrderKind.PRESCRIPTION:
        if len(data.items) != 1 or not has_prescription_item:
            raise ValidationError(
                f"Prescription orders carry exactly one {PRESCRIPTION_PRODUCT_ID} item"
            )
        if data.items[0].price != 0:
            raise ValidationError("Prescription items are priced by the pharmacy and must have price 0")
        if data.prescription_details is None:
            raise ValidationError("Prescription orders require prescription_details")
        if not data.pharmacy_id:
            raise ValidationError("Prescription orders require a pharmacy_id")
    elif has_prescription_item:
        raise ValidationError(f"{PRESCRIPTION_PRODUCT_ID} items are only allowed on prescription orders")

    expected = sum(item.price * item.quantity for item in data.items) + data.delivery_fee
    if not math.isclose(data.total_amount, expected, abs_tol=TOTAL_TOLERANCE):
        raise ValidationError(
            f"total_amount {data.total_amount:.2f} does not match items plus delivery fee ({expected:.2f})"
        )


class OrderService:
    """Service for order lifecycle operations"""

    def __init__(
        self,
        repository: OrderRepository,
        pharmacies: Optional[PharmacyDirectory] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.repository = repository
        self.pharmacies = pharmacies or pharmacy_directory
        self.timeout_seconds = settings.STORE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    async def _call(self, func, *args):
        """Run a blocking repository call in the default executor under the store timeout"""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(func, *args)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Store call {func.__name__} timed out after {self.timeout_seconds}s")
            raise StoreTimeoutError(f"{func.__name__} timed out after {self.timeout_seconds}s", e)

    async def create_order(self, data: OrderCreate, idempotency_key: Optional[str] = None) -> OrderResponse:
        """Create a Pending order; replaying an idempotency key returns the first order"""
        validate_order(data)

        if idempotency_key:
            existing = await self._call(self.repository.get_by_idempotency_key, data.user_id, idempotency_key)
            if existing is not None:
                logger.info(f"Idempotent replay for order {existing.id}")
                return existing

        order = OrderResponse(
            id=generate_order_id(),
            user_id=data.user_id,
            order_date=datetime.now(timezone.utc),
            items=[item.model_copy() for item in data.items],
            total_amount=data.total_amount,
            status=OrderStatus.PENDING,
            kind=data.kind,
            delivery_fee=data.delivery_fee,
            progress=STATUS_PROGRESS[OrderStatus.PENDING],
            pharmacy_id=data.pharmacy_id,
            prescription_details=data.prescription_details,
            idempotency_key=idempotency_key,
        )
        created = await self._call(self.repository.create, order)

        logger.info(f"Created {created.kind.value} order {created.id} for user {created.user_id}")
        return created

    async def place_prescription_order(
        self, checkout: PrescriptionCheckout, idempotency_key: Optional[str] = None
    ) -> OrderResponse:
        """Turn a completed prescription checkout into an order priced at the delivery fee"""
        pharmacy = self.pharmacies.get_pharmacy(checkout.pharmacy_id)
        if pharmacy is None:
            raise ValidationError(f"Unknown pharmacy '{checkout.pharmacy_id}'")

        data = OrderCreate(
            user_id=checkout.user_id,
            items=[OrderItemSchema(product_id=PRESCRIPTION_PRODUCT_ID, quantity=1, price=0)],
            total_amount=pharmacy.delivery_fee,
            kind=OrderKind.PRESCRIPTION,
            delivery_fee=pharmacy.delivery_fee,
            pharmacy_id=pharmacy.id,
            prescription_details=PrescriptionDetails(image=checkout.image, description=checkout.description),
        )
        return await self.create_order(data, idempotency_key)

    async def get_order(self, order_id: str) -> Optional[OrderResponse]:
        return await self._call(self.repository.get_by_id, order_id)

    async def get_orders_for_user(self, user_id: str) -> List[OrderResponse]:
        return await self._call(self.repository.list_by_user, user_id)

    async def _change_tracking(
        self,
        order_id: str,
        change: Callable[[OrderResponse], Tuple[OrderStatus, Optional[int]]],
    ) -> Optional[OrderResponse]:
        """Read the order, compute its new status and progress, and write them back
        only if nobody else changed the order in between; re-read on conflict"""
        for attempt in range(1, TRACKING_UPDATE_ATTEMPTS + 1):
            order = await self.get_order(order_id)
            if order is None:
                return None

            status, progress = change(order)
            try:
                return await self._call(
                    self.repository.update_tracking, order_id, order.status, order.progress, status, progress
                )
            except ConcurrentUpdateError:
                if attempt == TRACKING_UPDATE_ATTEMPTS:
                    raise
                logger.warning(
                    f"Order {order_id} changed during update, retrying ({attempt}/{TRACKING_UPDATE_ATTEMPTS})"
                )

    async def update_status(self, order_id: str, status: OrderStatus) -> Optional[OrderResponse]:
        """Move an order to a new status, or None if it does not exist"""

        def change(order: OrderResponse):
            if not can_transition(order.status, status):
                logger.warning(f"Rejected transition {order.status.value} -> {status.value} for order {order_id}")
                raise InvalidTransitionError(
                    f"Cannot move order {order_id} from {order.status.value} to {status.value}"
                )
            return status, STATUS_PROGRESS[status]

        updated = await self._change_tracking(order_id, change)
        if updated is not None:
            logger.info(f"Order {order_id} moved to {status.value}")
        return updated

    async def advance_delivery(self, order_id: str) -> Optional[OrderResponse]:
        """One courier progress tick for an order that is out for delivery"""

        def change(order: OrderResponse):
            if order.status is not OrderStatus.OUT_FOR_DELIVERY:
                raise InvalidTransitionError(
                    f"Delivery progress only advances while out for delivery; order {order_id} is {order.status.value}"
                )
            return order.status, advance_progress(order.progress)

        return await self._change_tracking(order_id, change)

    async def get_tracking(self, order_id: str) -> Optional[TrackingResponse]:
        order = await self.get_order(order_id)
        if order is None:
            return None

        pharmacy = self.pharmacies.get_pharmacy(order.pharmacy_id)
        return TrackingResponse(
            order_id=order.id,
            status=order.status,
            progress=display_progress(order.status, order.progress),
            estimated_arrival=estimated_arrival(order.status),
            pharmacy_name=pharmacy.name if pharmacy else DEFAULT_PHARMACY_NAME,
            courier=courier_for(order.status),
        )
