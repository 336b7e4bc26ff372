"""
Pharmacy selection endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import List

from pharmacy_app.config import settings
from pharmacy_app.schemas.catalog import Pharmacy
from pharmacy_app.services.pharmacy_directory import PharmacyDirectory, get_pharmacy_directory

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter()

@router.get("/", response_model=List[Pharmacy])
@limiter.limit("60/minute")
async def list_pharmacies(
    request: Request,
    directory: PharmacyDirectory = Depends(get_pharmacy_directory)
):
    """Pharmacies that can fulfil a prescription order"""
    return directory.list_pharmacies()

@router.get("/{pharmacy_id}", response_model=Pharmacy)
@limiter.limit("60/minute")
async def get_pharmacy(
    request: Request,
    pharmacy_id: str,
    directory: PharmacyDirectory = Depends(get_pharmacy_directory)
):
    pharmacy = directory.get_pharmacy(pharmacy_id)
    if pharmacy is None:
        raise HTTPException(status_code=404, detail=f"Pharmacy '{pharmacy_id}' not found")
    return pharmacy
