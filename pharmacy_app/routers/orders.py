"""
Order management endpoints
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import Optional
import logging

from pharmacy_app.auth.operator import operator_required
from pharmacy_app.config import settings
from pharmacy_app.database import get_session_factory
from pharmacy_app.schemas.order import (
    OrderCreate,
    OrderHistoryResponse,
    OrderResponse,
    PrescriptionCheckout,
    StatusUpdate,
    TrackingResponse,
)
from pharmacy_app.services.order_repository import SqlAlchemyOrderRepository
from pharmacy_app.services.order_service import OrderService
from pharmacy_app.utils.error_handler import StoreError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter()

def get_order_service(session_factory=Depends(get_session_factory)) -> OrderService:
    return OrderService(SqlAlchemyOrderRepository(session_factory))

def _order_not_found(order_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Order '{order_id}' not found")

@router.post("/", response_model=OrderResponse, status_code=201)
@limiter.limit("10/minute")
async def create_order(
    request: Request,
    order: OrderCreate,
    idempotency_key: Optional[str] = Header(None, max_length=100),
    service: OrderService = Depends(get_order_service)
):
    """Place a new order; send an Idempotency-Key header to make retries safe"""
    try:
        return await service.create_order(order, idempotency_key)
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to create order: {e}")
        raise HTTPException(status_code=500, detail="Failed to create order")

@router.post("/prescriptions", response_model=OrderResponse, status_code=201)
@limiter.limit("10/minute")
async def create_prescription_order(
    request: Request,
    checkout: PrescriptionCheckout,
    idempotency_key: Optional[str] = Header(None, max_length=100),
    service: OrderService = Depends(get_order_service)
):
    """Confirm a prescription upload with the chosen pharmacy"""
    try:
        return await service.place_prescription_order(checkout, idempotency_key)
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to create prescription order: {e}")
        raise HTTPException(status_code=500, detail="Failed to create prescription order")

@router.get("/", response_model=OrderHistoryResponse)
@limiter.limit("30/minute")
async def get_order_history(
    request: Request,
    user_id: str = Query(..., min_length=1, max_length=100, description="Owner of the orders"),
    service: OrderService = Depends(get_order_service)
):
    """Order history for a user, newest first"""
    try:
        orders = await service.get_orders_for_user(user_id)
        return OrderHistoryResponse(orders=orders, count=len(orders))
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to get orders for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve orders")

@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("30/minute")
async def get_order(
    request: Request,
    order_id: str,
    service: OrderService = Depends(get_order_service)
):
    """Get a specific order by ID"""
    try:
        order = await service.get_order(order_id)
        if order is None:
            raise _order_not_found(order_id)
        return order
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to get order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve order")

@router.get("/{order_id}/tracking", response_model=TrackingResponse)
@limiter.limit("60/minute")
async def get_order_tracking(
    request: Request,
    order_id: str,
    service: OrderService = Depends(get_order_service)
):
    """Tracking screen data: progress, arrival estimate, pharmacy and courier"""
    try:
        tracking = await service.get_tracking(order_id)
        if tracking is None:
            raise _order_not_found(order_id)
        return tracking
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to get tracking for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve tracking information")

@router.patch("/{order_id}/status", response_model=OrderResponse)
@limiter.limit("30/minute")
async def update_order_status(
    request: Request,
    order_id: str,
    status_update: StatusUpdate,
    operator_key: str = Depends(operator_required),
    service: OrderService = Depends(get_order_service)
):
    """Move an order along its delivery lifecycle (operator only)"""
    try:
        order = await service.update_status(order_id, status_update.status)
        if order is None:
            raise _order_not_found(order_id)
        return order
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to update status of order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update order status")

@router.post("/{order_id}/progress", response_model=OrderResponse)
@limiter.limit("60/minute")
async def advance_delivery_progress(
    request: Request,
    order_id: str,
    operator_key: str = Depends(operator_required),
    service: OrderService = Depends(get_order_service)
):
    """Report courier progress for an order that is out for delivery (operator only)"""
    try:
        order = await service.advance_delivery(order_id)
        if order is None:
            raise _order_not_found(order_id)
        return order
    except (HTTPException, StoreError):
        raise
    except Exception as e:
        logger.error(f"Failed to advance delivery of order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update delivery progress")
