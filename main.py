"""
Pharmacy Ordering API
Product catalogue, prescription checkout and order tracking for the pharmacy front-end
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import uvicorn
from contextlib import asynccontextmanager
import logging
import uuid
from datetime import datetime, timezone

from pharmacy_app.config import settings
from pharmacy_app.database import SessionLocal, close_db, init_db
from pharmacy_app.routers import orders, pharmacies, products
from pharmacy_app.services.order_repository import SqlAlchemyOrderRepository
from pharmacy_app.services.seed import seed_demo_orders
from pharmacy_app.utils.error_handler import StoreError, store_error_handler

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Rate limiting
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    logger.info("Starting Pharmacy Ordering API...")
    init_db()

    if settings.using_default_operator_key:
        logger.warning("OPERATOR_API_KEY is not set; using the development operator key")

    if settings.SEED_DEMO_ORDERS:
        seed_demo_orders(SqlAlchemyOrderRepository(SessionLocal))

    yield

    # Shutdown
    logger.info("Shutting down Pharmacy Ordering API...")
    close_db()

# Create FastAPI app
app = FastAPI(
    title="Pharmacy Ordering API",
    description="Product browsing, prescription upload, pharmacy selection and order tracking",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StoreError, store_error_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(pharmacies.router, prefix="/api/v1/pharmacies", tags=["pharmacies"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])

@app.get("/")
@limiter.limit("10/minute")
async def root(request: Request):
    """Root endpoint with API information"""
    return {
        "message": "Pharmacy Ordering API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

@app.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled exceptions with a tracking id and return a generic 500"""
    error_id = str(uuid.uuid4())

    logger.error(
        f"Unhandled exception {error_id}: {type(exc).__name__} in {request.method} {request.url.path}",
        extra={
            "error_id": error_id,
            "endpoint": str(request.url.path),
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
