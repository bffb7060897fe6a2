from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from fulfillment_routing.config import settings
from fulfillment_routing.api.deps import DB
from fulfillment_routing.api.v1.router import api_router
from fulfillment_routing.core.exceptions import (
    CourierNotFoundError,
    NoCourierAvailableError,
    RateNotFoundError,
    ReassignmentNotAllowedError,
    RouteAlreadyFrozenError,
    RouteNotFoundError,
    RoutingError,
    RoutingFailedError,
    ZoneNotFoundError,
)
from fulfillment_routing.database import init_db
from fulfillment_routing.services.distance_service import get_distance_estimator
from fulfillment_routing.services.rate_service import get_rate_provider


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables
    - Resolve the configured rate provider and distance estimator
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    get_rate_provider()
    get_distance_estimator()

    yield

    logger.info("Shutting down...")


API_DESCRIPTION = """
## Fulfillment Routing API

Picks the stocking origin for every cart item, assigns a courier for the
origin -> destination leg and freezes the decision onto the order.

### Tenancy

Every request carries the store in the `X-Store-ID` header.

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Bad Request - Reassignment not allowed |
| 404 | Not Found - Zone, courier or frozen route missing |
| 409 | Conflict - Route already frozen for the order |
| 422 | Unprocessable Entity - No courier, no rate, routing failed |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


ERROR_STATUS_CODES = {
    ZoneNotFoundError: status.HTTP_404_NOT_FOUND,
    RouteNotFoundError: status.HTTP_404_NOT_FOUND,
    CourierNotFoundError: status.HTTP_404_NOT_FOUND,
    NoCourierAvailableError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RateNotFoundError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RoutingFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RouteAlreadyFrozenError: status.HTTP_409_CONFLICT,
    ReassignmentNotAllowedError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(RoutingError)
async def routing_exception_handler(request: Request, exc: RoutingError):
    """Map domain errors to HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)

    error_detail = {
        "detail": str(exc),
        "type": type(exc).__name__,
        "path": str(request.url.path),
    }
    if isinstance(exc, RoutingFailedError):
        error_detail["errors"] = exc.errors

    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content=error_detail)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(db: DB):
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fulfillment_routing.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
