"""
Order repositories
The order store behind an explicit interface: a SQLAlchemy implementation
for the running service and an in-memory one for tests and demos
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, TypeVar
import logging
import threading
import time

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from pharmacy_app.config import settings
from pharmacy_app.models.order import Order, OrderItem
from pharmacy_app.schemas.order import (
    OrderItemSchema,
    OrderResponse,
    OrderStatus,
    PrescriptionDetails,
)
from pharmacy_app.utils.error_handler import (
    ConcurrentUpdateError,
    ConnectivityError,
    DatabaseError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OrderRepository(ABC):
    """Storage contract for orders"""

    @abstractmethod
    def create(self, order: OrderResponse) -> OrderResponse:
        """Persist a fully built order and return the stored copy.

        When the order carries an idempotency key that the same user already
        used, the earlier order is returned and nothing new is stored.
        """

    @abstractmethod
    def get_by_id(self, order_id: str) -> Optional[OrderResponse]:
        """Return the order or None when absent"""

    @abstractmethod
    def list_by_user(self, user_id: str) -> List[OrderResponse]:
        """Orders owned by user_id, newest order_date first"""

    @abstractmethod
    def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[OrderResponse]:
        """Order previously created by user_id with this key"""

    @abstractmethod
    def update_tracking(
        self,
        order_id: str,
        expected_status: OrderStatus,
        expected_progress: Optional[int],
        status: OrderStatus,
        progress: Optional[int],
    ) -> Optional[OrderResponse]:
        """Set status and progress if the order still has the expected ones.

        Returns None when the order does not exist and raises
        ConcurrentUpdateError when it changed in the meantime.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of stored orders"""


def _order_changed(order_id: str) -> ConcurrentUpdateError:
    return ConcurrentUpdateError(f"Order {order_id} changed while it was being updated; reload it and try again")


class SqlAlchemyOrderRepository(OrderRepository):
    """Order store backed by SQLAlchemy; every call runs in its own session"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        read_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.read_retries = settings.STORE_READ_RETRIES if read_retries is None else read_retries
        self.backoff_seconds = (
            settings.STORE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def _read(self, operation: Callable[[Session], T], description: str) -> T:
        """Run an idempotent read, retrying connection failures with backoff"""
        attempt = 0
        while True:
            try:
                with self._session() as db:
                    return operation(db)
            except OperationalError as e:
                if attempt >= self.read_retries:
                    logger.error(f"Giving up on {description} after {attempt + 1} attempts: {e}")
                    raise ConnectivityError(f"Could not {description}", e)
                delay = self.backoff_seconds * (2 ** attempt)
                logger.warning(f"Retrying {description} in {delay:.2f}s: {e}")
                time.sleep(delay)
                attempt += 1
            except SQLAlchemyError as e:
                logger.error(f"Failed to {description}: {e}")
                raise DatabaseError(f"Failed to {description}", e)

    def _write(self, operation: Callable[[Session], T], description: str) -> T:
        """Run a write once; writes are never retried here"""
        with self._session() as db:
            try:
                return operation(db)
            except IntegrityError as e:
                db.rollback()
                logger.error(f"Integrity error while trying to {description}: {e}")
                raise DatabaseError("An order with this information already exists", e)
            except OperationalError as e:
                db.rollback()
                logger.error(f"Store unreachable while trying to {description}: {e}")
                raise ConnectivityError(f"Could not {description}", e)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to {description}: {e}")
                raise DatabaseError(f"Failed to {description}", e)

    @staticmethod
    def _to_schema(record: Order) -> OrderResponse:
        details = None
        if record.prescription_image:
            details = PrescriptionDetails(
                image=record.prescription_image,
                description=record.prescription_description,
            )
        return OrderResponse(
            id=record.id,
            user_id=record.user_id,
            order_date=record.order_date,
            items=[OrderItemSchema.model_validate(item) for item in record.items],
            total_amount=record.total_amount,
            status=record.status,
            kind=record.kind,
            delivery_fee=record.delivery_fee,
            progress=record.progress,
            pharmacy_id=record.pharmacy_id,
            prescription_details=details,
            idempotency_key=record.idempotency_key,
        )

    def create(self, order: OrderResponse) -> OrderResponse:
        def operation(db: Session):
            details = order.prescription_details
            record = Order(
                id=order.id,
                user_id=order.user_id,
                order_date=order.order_date,
                kind=order.kind.value,
                status=order.status.value,
                progress=order.progress,
                total_amount=order.total_amount,
                delivery_fee=order.delivery_fee,
                pharmacy_id=order.pharmacy_id,
                prescription_image=details.image if details else None,
                prescription_description=details.description if details else None,
                idempotency_key=order.idempotency_key,
                items=[
                    OrderItem(
                        position=position,
                        product_id=item.product_id,
                        quantity=item.quantity,
                        price=item.price,
                    )
                    for position, item in enumerate(order.items)
                ],
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return self._to_schema(record)

        try:
            return self._write(operation, f"create order {order.id}")
        except DatabaseError as e:
            # A concurrent request with the same key won the unique constraint
            if order.idempotency_key and isinstance(e.original_error, IntegrityError):
                existing = self.get_by_idempotency_key(order.user_id, order.idempotency_key)
                if existing is not None:
                    logger.info(f"Idempotency key already used; returning order {existing.id}")
                    return existing
            raise

    def get_by_id(self, order_id: str) -> Optional[OrderResponse]:
        def operation(db: Session):
            record = db.query(Order).filter(Order.id == order_id).first()
            return self._to_schema(record) if record else None

        return self._read(operation, f"load order {order_id}")

    def list_by_user(self, user_id: str) -> List[OrderResponse]:
        def operation(db: Session):
            records = (
                db.query(Order)
                .filter(Order.user_id == user_id)
                .order_by(Order.order_date.desc())
                .all()
            )
            return [self._to_schema(record) for record in records]

        return self._read(operation, f"list orders for user {user_id}")

    def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[OrderResponse]:
        def operation(db: Session):
            record = (
                db.query(Order)
                .filter(Order.user_id == user_id, Order.idempotency_key == idempotency_key)
                .first()
            )
            return self._to_schema(record) if record else None

        return self._read(operation, f"look up idempotency key for user {user_id}")

    def update_tracking(
        self,
        order_id: str,
        expected_status: OrderStatus,
        expected_progress: Optional[int],
        status: OrderStatus,
        progress: Optional[int],
    ) -> Optional[OrderResponse]:
        if expected_progress is None:
            progress_matches = Order.progress.is_(None)
        else:
            progress_matches = Order.progress == expected_progress

        def operation(db: Session):
            result = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == expected_status.value, progress_matches)
                .values(status=status.value, progress=progress)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                return False
            db.commit()
            return True

        updated = self._write(operation, f"update order {order_id}")
        current = self.get_by_id(order_id)
        if not updated and current is not None:
            raise _order_changed(order_id)
        return current

    def count(self) -> int:
        return self._read(lambda db: db.query(func.count(Order.id)).scalar(), "count orders")


class InMemoryOrderRepository(OrderRepository):
    """Process-local order store; one lock serializes every operation"""

    def __init__(self):
        self._orders: List[OrderResponse] = []
        self._index: Dict[str, int] = {}
        self._lock = threading.RLock()

    def create(self, order: OrderResponse) -> OrderResponse:
        with self._lock:
            if order.idempotency_key:
                existing = self.get_by_idempotency_key(order.user_id, order.idempotency_key)
                if existing is not None:
                    logger.info(f"Idempotency key already used; returning order {existing.id}")
                    return existing
            if order.id in self._index:
                raise DatabaseError(f"Order {order.id} already exists")
            stored = order.model_copy(deep=True)
            self._index[stored.id] = len(self._orders)
            self._orders.append(stored)
            return stored.model_copy(deep=True)

    def get_by_id(self, order_id: str) -> Optional[OrderResponse]:
        with self._lock:
            position = self._index.get(order_id)
            if position is None:
                return None
            return self._orders[position].model_copy(deep=True)

    def list_by_user(self, user_id: str) -> List[OrderResponse]:
        with self._lock:
            owned = [order.model_copy(deep=True) for order in self._orders if order.user_id == user_id]
        # sorted() is stable, so equal dates keep insertion order
        return sorted(owned, key=lambda order: order.order_date, reverse=True)

    def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[OrderResponse]:
        with self._lock:
            for order in self._orders:
                if order.user_id == user_id and order.idempotency_key == idempotency_key:
                    return order.model_copy(deep=True)
        return None

    def update_tracking(
        self,
        order_id: str,
        expected_status: OrderStatus,
        expected_progress: Optional[int],
        status: OrderStatus,
        progress: Optional[int],
    ) -> Optional[OrderResponse]:
        with self._lock:
            position = self._index.get(order_id)
            if position is None:
                return None
            current = self._orders[position]
            if current.status != expected_status or current.progress != expected_progress:
                raise _order_changed(order_id)
            updated = current.model_copy(update={"status": status, "progress": progress})
            self._orders[position] = updated
            return updated.model_copy(deep=True)

    def count(self) -> int:
        with self._lock:
            return len(self._orders)
