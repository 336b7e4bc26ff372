"""
Order status rules: allowed transitions and tracking display values
"""

from typing import Dict, Optional, Union

from pharmacy_app.schemas.order import CourierInfo, OrderStatus

STATUS_PROGRESS: Dict[OrderStatus, int] = {
    OrderStatus.PENDING: 10,
    OrderStatus.PROCESSING: 30,
    OrderStatus.SHIPPED: 50,
    OrderStatus.OUT_FOR_DELIVERY: 75,
    OrderStatus.DELIVERED: 100,
    OrderStatus.CANCELLED: 0,
}
UNKNOWN_STATUS_PROGRESS = 5

# Simulated courier movement while out for delivery
DELIVERY_PROGRESS_STEP = 5
DELIVERY_PROGRESS_CAP = 90

FULFILMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

DEFAULT_PHARMACY_NAME = "Selected Pharmacy"
ASSIGNED_COURIER = CourierInfo(name="Tana Bravo", rating=4.8)
UNASSIGNED_COURIER = CourierInfo(name="Finding Courier", rating=None)


def _as_status(status: Union[OrderStatus, str, None]) -> Optional[OrderStatus]:
    try:
        return OrderStatus(status)
    except ValueError:
        return None


def display_progress(status: Union[OrderStatus, str, None], stored_progress: Optional[int] = None) -> int:
    """Progress bar value for a status.

    Out-for-delivery orders keep whatever progress the courier has reached,
    every other status maps to a fixed value.
    """
    known = _as_status(status)
    if known is None:
        return UNKNOWN_STATUS_PROGRESS
    if known is OrderStatus.OUT_FOR_DELIVERY and stored_progress is not None:
        return stored_progress
    return STATUS_PROGRESS[known]


def advance_progress(current: Optional[int]) -> int:
    """One delivery tick, never past the cap"""
    if current is None:
        current = STATUS_PROGRESS[OrderStatus.OUT_FOR_DELIVERY]
    return min(current + DELIVERY_PROGRESS_STEP, DELIVERY_PROGRESS_CAP)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Forward moves along the fulfilment sequence, or cancel while still open"""
    if is_terminal(current) or current == target:
        return False
    if target is OrderStatus.CANCELLED:
        return True
    return FULFILMENT_SEQUENCE.index(target) > FULFILMENT_SEQUENCE.index(current)


def estimated_arrival(status: OrderStatus) -> str:
    if status is OrderStatus.OUT_FOR_DELIVERY:
        return "25-40 min"
    if status is OrderStatus.DELIVERED:
        return "Delivered"
    return "Pending Confirmation"


def courier_for(status: OrderStatus) -> CourierInfo:
    if status in (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED):
        return ASSIGNED_COURIER
    return UNASSIGNED_COURIER
