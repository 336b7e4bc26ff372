"""
Operator access for fulfilment-side endpoints
Customers place and read orders; only the pharmacy/courier side moves them
"""

from typing import Optional
import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from pharmacy_app.config import settings

operator_key_header = APIKeyHeader(name="X-Operator-Key", auto_error=False)


class OperatorKeyChecker:
    """Check the X-Operator-Key header against the configured key"""

    def __call__(self, api_key: Optional[str] = Security(operator_key_header)) -> str:
        if not api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Operator key required",
                headers={"WWW-Authenticate": "X-Operator-Key"},
            )
        if not secrets.compare_digest(api_key, settings.OPERATOR_API_KEY):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted"
            )
        return api_key


operator_required = OperatorKeyChecker()
