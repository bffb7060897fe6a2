"""
Courier Assignment API Endpoints.

1. Courier-only decision for a zone and order profile
2. Available couriers for a zone (admin reassignment picker)
"""
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from fulfillment_routing.api.deps import DB, StoreID
from fulfillment_routing.schemas.courier import (
    AssignCourierRequest,
    AvailableCourierList,
    CourierResponse,
    CourierSnapshot,
)
from fulfillment_routing.services.courier_service import CourierAssignmentService

router = APIRouter(prefix="/couriers", tags=["Couriers"])


@router.post(
    "/assign",
    response_model=CourierSnapshot,
    summary="Resolve the courier for a zone and order profile",
)
async def assign_courier(
    request: AssignCourierRequest,
    db: DB,
    store_id: StoreID,
):
    """Pure decision: nothing is persisted."""
    if request.store_id != store_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="store_id does not match X-Store-ID header",
        )
    return await CourierAssignmentService(db).assign_courier(request)


@router.get(
    "/available",
    response_model=AvailableCourierList,
    summary="List couriers able to serve a zone",
)
async def list_available_couriers(
    db: DB,
    store_id: StoreID,
    zone_id: UUID = Query(...),
    payment_method: str = Query("prepaid"),
    weight: float = Query(0, ge=0),
):
    couriers = await CourierAssignmentService(db).get_available_couriers(
        store_id, zone_id, payment_method, weight
    )
    return AvailableCourierList(
        items=[CourierResponse.model_validate(c) for c in couriers],
        total=len(couriers),
    )
