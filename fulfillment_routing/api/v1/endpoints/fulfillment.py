"""
Fulfillment Routing API Endpoints.

Covers:
1. Route preview for a cart (no persistence)
2. Freezing a route onto an order
3. Reading a frozen route with its courier history
4. Manual courier reassignment and status updates
"""
from fastapi import APIRouter, HTTPException, status

from fulfillment_routing.api.deps import DB, StoreID
from fulfillment_routing.schemas.courier import CourierSnapshot, ReassignCourierRequest
from fulfillment_routing.schemas.routing import (
    FreezeRouteRequest,
    FreezeRouteResponse,
    FulfillmentRouteResponse,
    FulfillmentRouteResult,
    RouteFulfillmentRequest,
    UpdateRouteStatusRequest,
)
from fulfillment_routing.services.fulfillment_router import FulfillmentRouter
from fulfillment_routing.services.snapshot_service import FulfillmentSnapshotService

router = APIRouter(prefix="/fulfillment", tags=["Fulfillment Routing"])


def _check_store(body_store_id, store_id) -> None:
    if body_store_id != store_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="store_id does not match X-Store-ID header",
        )


@router.post(
    "/route",
    response_model=FulfillmentRouteResult,
    summary="Preview fulfillment routing for a cart",
    description="""
    Pick the best origin for every cart item and group items into shipments.

    Routing is all-or-nothing: when any item has no stocked origin the
    response has success=false and the joined per-item errors.
    No route is stored, and origin selections are audited only when
    the whole cart routes.
    """
)
async def route_cart(
    request: RouteFulfillmentRequest,
    db: DB,
    store_id: StoreID,
):
    _check_store(request.store_id, store_id)
    return await FulfillmentRouter(db).route_fulfillment(request)


@router.post(
    "/orders/{order_ref}/freeze",
    response_model=FreezeRouteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Route a cart and freeze the decision onto an order",
)
async def freeze_order_route(
    order_ref: str,
    request: FreezeRouteRequest,
    db: DB,
    store_id: StoreID,
):
    """Freeze once: a second call for the same order returns 409."""
    _check_store(request.store_id, store_id)
    service = FulfillmentSnapshotService(db)
    route, courier_snapshot = await service.route_and_freeze(order_ref, request)
    return FreezeRouteResponse(
        route=FulfillmentRouteResponse.model_validate(route),
        courier_snapshot=courier_snapshot,
    )


@router.get(
    "/orders/{order_ref}",
    response_model=FulfillmentRouteResponse,
    summary="Get the frozen route of an order",
)
async def get_order_route(
    order_ref: str,
    db: DB,
    store_id: StoreID,
):
    service = FulfillmentSnapshotService(db)
    route = await service.get_route(store_id, order_ref)
    return FulfillmentRouteResponse.model_validate(route)


@router.patch(
    "/orders/{order_ref}/courier",
    response_model=CourierSnapshot,
    summary="Manually reassign the courier of an order",
)
async def reassign_order_courier(
    order_ref: str,
    request: ReassignCourierRequest,
    db: DB,
    store_id: StoreID,
):
    """Appends a new courier snapshot; rejected once the order has shipped."""
    service = FulfillmentSnapshotService(db)
    return await service.reassign_courier(
        store_id,
        order_ref,
        request.courier_id,
        reason=request.reason,
    )


@router.patch(
    "/orders/{order_ref}/status",
    response_model=FulfillmentRouteResponse,
    summary="Update the fulfillment status of an order",
)
async def update_order_status(
    order_ref: str,
    request: UpdateRouteStatusRequest,
    db: DB,
    store_id: StoreID,
):
    service = FulfillmentSnapshotService(db)
    route = await service.update_status(store_id, order_ref, request.status)
    return FulfillmentRouteResponse.model_validate(route)
