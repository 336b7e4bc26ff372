"""
Product catalogue endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import List, Optional

from pharmacy_app.config import settings
from pharmacy_app.schemas.catalog import Product, ProductCategory
from pharmacy_app.services.catalog import TOP_RATED_LIMIT, CatalogProvider, get_catalog

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter()

@router.get("/", response_model=List[Product])
@limiter.limit("60/minute")
async def list_products(
    request: Request,
    category: Optional[ProductCategory] = Query(None, description="medicines or essentials"),
    min_rating: Optional[float] = Query(None, ge=0, le=5, description="Minimum rating"),
    catalog: CatalogProvider = Depends(get_catalog)
):
    """List the product catalogue"""
    return catalog.list_products(category=category, min_rating=min_rating)

@router.get("/top-rated", response_model=List[Product])
@limiter.limit("60/minute")
async def top_rated_products(
    request: Request,
    limit: int = Query(TOP_RATED_LIMIT, ge=1, le=20, description="Number of products"),
    catalog: CatalogProvider = Depends(get_catalog)
):
    """Best rated products for the home screen"""
    return catalog.top_rated(limit=limit)

@router.get("/{product_id}", response_model=Product)
@limiter.limit("60/minute")
async def get_product(
    request: Request,
    product_id: str,
    catalog: CatalogProvider = Depends(get_catalog)
):
    product = catalog.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")
    return product
