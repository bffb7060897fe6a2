from fastapi import APIRouter

from fulfillment_routing.api.v1.endpoints import (
    fulfillment,
    couriers,
)

api_router = APIRouter(prefix="/api/v1")

# Fulfillment Routing
api_router.include_router(
    fulfillment.router,
    tags=["Fulfillment Routing"]
)

# Courier Assignment
api_router.include_router(
    couriers.router,
    tags=["Couriers"]
)
