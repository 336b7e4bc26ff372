"""
Pydantic schemas for catalog reference data
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional

ProductCategory = Literal["medicines", "essentials"]


class Product(BaseModel):
    """A medicine or health product"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0, description="Price in Ksh")
    image_url: str
    category: Optional[ProductCategory] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class Pharmacy(BaseModel):
    """A partner pharmacy that can fulfil prescription orders"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    delivery_fee: float = Field(..., ge=0, description="Flat delivery fee in Ksh")
    delivery_time: str
