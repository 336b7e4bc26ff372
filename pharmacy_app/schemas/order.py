"""
Pydantic schemas for Order operations
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum

# Placeholder product id carried by prescription orders
PRESCRIPTION_PRODUCT_ID = "PRESCRIPTION_UPLOAD"


class OrderStatus(str, Enum):
    """Delivery lifecycle of an order"""
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class OrderKind(str, Enum):
    STANDARD = "standard"
    PRESCRIPTION = "prescription"


class OrderItemSchema(BaseModel):
    """Line entry of an order"""
    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(..., min_length=1, max_length=50, description="Product id or PRESCRIPTION_UPLOAD")
    quantity: int = Field(..., gt=0, description="Number of units")
    price: float = Field(..., ge=0, description="Unit price at order time")


class PrescriptionDetails(BaseModel):
    """Uploaded prescription attached to an order"""
    image: str = Field(..., min_length=1, description="Data URI or URL of the prescription image")
    description: Optional[str] = Field(None, max_length=1000, description="Note for the pharmacist")


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    user_id: str = Field(..., min_length=1, max_length=100, description="Owner of the order")
    items: List[OrderItemSchema] = Field(..., description="Ordered line items")
    total_amount: float = Field(..., ge=0, description="Items total plus delivery fee")
    kind: OrderKind = Field(OrderKind.STANDARD, description="standard or prescription")
    delivery_fee: float = Field(0.0, ge=0, description="Delivery fee included in the total")
    pharmacy_id: Optional[str] = Field(None, max_length=50, description="Fulfilling pharmacy")
    prescription_details: Optional[PrescriptionDetails] = None


class PrescriptionCheckout(BaseModel):
    """Everything the prescription upload flow collects before confirmation"""
    user_id: str = Field(..., min_length=1, max_length=100)
    pharmacy_id: str = Field(..., min_length=1, max_length=50)
    image: str = Field(..., min_length=1, description="Data URI or URL of the prescription image")
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator('description')
    @classmethod
    def blank_description_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class StatusUpdate(BaseModel):
    """Schema for moving an order to a new status"""
    status: OrderStatus


class OrderResponse(BaseModel):
    """Schema for order responses"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    order_date: datetime
    items: List[OrderItemSchema]
    total_amount: float
    status: OrderStatus
    kind: OrderKind = OrderKind.STANDARD
    delivery_fee: float = 0.0
    progress: Optional[int] = Field(None, ge=0, le=100)
    pharmacy_id: Optional[str] = None
    prescription_details: Optional[PrescriptionDetails] = None
    idempotency_key: Optional[str] = Field(None, exclude=True)

    @field_validator('order_date')
    @classmethod
    def order_date_in_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored in UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class OrderHistoryResponse(BaseModel):
    """Schema for a user's order history, newest first"""
    orders: List[OrderResponse]
    count: int


class CourierInfo(BaseModel):
    name: str
    rating: Optional[float] = None


class TrackingResponse(BaseModel):
    """Display data for the order tracking screen"""
    order_id: str
    status: OrderStatus
    progress: int = Field(..., ge=0, le=100)
    estimated_arrival: str
    pharmacy_name: str
    courier: CourierInfo
