"""
Fulfillment Snapshot Service.

Persists routing decisions against an order:
- freeze_route writes the FulfillmentRoute and first courier snapshot once
- reassign_courier appends a new snapshot, older ones are never edited
- current_courier is always the latest snapshot by sequence
"""
import uuid
import logging
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.core.exceptions import (
    CourierNotFoundError,
    ReassignmentNotAllowedError,
    RouteAlreadyFrozenError,
    RouteNotFoundError,
)
from fulfillment_routing.models.courier import Courier, PaymentMethod
from fulfillment_routing.models.fulfillment_route import (
    AssignmentSource,
    CourierAssignment,
    FulfillmentRoute,
    RouteStatus,
)
from fulfillment_routing.schemas.courier import AssignCourierRequest, CourierSnapshot
from fulfillment_routing.schemas.routing import FulfillmentRouteResult, RouteFulfillmentRequest
from fulfillment_routing.services.audit_service import AuditAction, AuditService
from fulfillment_routing.services.courier_service import (
    CourierAssignmentService,
    normalize_payment_method,
)
from fulfillment_routing.services.fulfillment_router import FulfillmentRouter
from fulfillment_routing.services.snapshot_builder import (
    MANUAL_ASSIGNMENT_REASON,
    build_courier_snapshot,
    snapshot_from_assignment,
)
from fulfillment_routing.services.zone_service import ZoneService

logger = logging.getLogger(__name__)

# Courier can no longer change once the parcel left the origin
LOCKED_STATUSES = (RouteStatus.SHIPPED.value, RouteStatus.DELIVERED.value, RouteStatus.CANCELLED.value)


def _assignment_from_snapshot(
    snapshot: CourierSnapshot,
    sequence: int,
    assigned_by: AssignmentSource,
) -> CourierAssignment:
    return CourierAssignment(
        sequence=sequence,
        courier_id=snapshot.courier_id,
        courier_name=snapshot.courier_name,
        courier_code=snapshot.courier_code,
        rule_id=snapshot.rule_id,
        reason=snapshot.reason,
        assigned_at=snapshot.assigned_at,
        assigned_by=assigned_by.value,
    )


class FulfillmentSnapshotService:
    """Service for freezing routing decisions onto orders."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def route_and_freeze(
        self,
        order_ref: str,
        request: RouteFulfillmentRequest,
    ) -> tuple[FulfillmentRoute, Optional[CourierSnapshot]]:
        """
        Route a cart, pick the order-level courier and freeze both.

        Raises RouteAlreadyFrozenError before any routing work when the
        order already has a record, RoutingFailedError when any item fails.
        """
        if await self._find_route(request.store_id, order_ref) is not None:
            raise RouteAlreadyFrozenError(order_ref)

        zone_service = ZoneService(self.db)
        courier_service = CourierAssignmentService(self.db, zone_service)
        router = FulfillmentRouter(self.db, courier_service=courier_service)

        result = await router.route_or_raise(request)

        courier_snapshot: Optional[CourierSnapshot] = None
        zone = await zone_service.find_zone(request.store_id, request.delivery_address)
        if zone is not None:
            total_weight = sum(g.weight_kg for g in result.shipment_groups or [])
            courier_snapshot = await courier_service.assign_courier(
                AssignCourierRequest(
                    store_id=request.store_id,
                    zone_id=zone.id,
                    weight=total_weight,
                    order_value=request.order_value,
                    payment_method=request.payment_method,
                    pincode=request.delivery_address.zip,
                )
            )

        route = await self.freeze_route(order_ref, request.store_id, request, result, courier_snapshot)
        return route, courier_snapshot

    async def freeze_route(
        self,
        order_ref: str,
        store_id: uuid.UUID,
        request: RouteFulfillmentRequest,
        result: FulfillmentRouteResult,
        courier_snapshot: Optional[CourierSnapshot] = None,
    ) -> FulfillmentRoute:
        """Persist a successful routing result exactly once per order."""
        if not result.success:
            raise ValueError("Only successful routing results can be frozen")

        if await self._find_route(store_id, order_ref) is not None:
            raise RouteAlreadyFrozenError(order_ref)

        items = result.items or []
        groups = result.shipment_groups or []
        zone_id = next((i.zone_id for i in items if i.zone_id is not None), None)

        assignments = []
        if courier_snapshot is not None:
            assignments.append(_assignment_from_snapshot(courier_snapshot, 1, AssignmentSource.AUTO))

        route = FulfillmentRoute(
            store_id=store_id,
            order_ref=order_ref,
            zone_id=zone_id,
            payment_method=normalize_payment_method(request.payment_method).value,
            delivery_address=request.delivery_address.model_dump(mode="json"),
            items=[i.model_dump(mode="json") for i in items],
            shipment_groups=[g.model_dump(mode="json") for g in groups],
            total_shipping_cost=result.total_shipping_cost,
            routing_score=round(sum(i.score for i in items), 4),
            status=RouteStatus.PENDING.value,
            courier_assignments=assignments,
        )

        try:
            async with self.db.begin_nested():
                self.db.add(route)
        except IntegrityError:
            # Lost a race with a concurrent freeze of the same order
            raise RouteAlreadyFrozenError(order_ref)

        await self.audit_service.log_event(
            action=AuditAction.ROUTE_FROZEN,
            entity_type="ORDER",
            entity_id=order_ref,
            description=f"Froze fulfillment route for order {order_ref}",
            payload={
                "route_id": str(route.id),
                "shipment_groups": len(groups),
                "total_shipping_cost": route.total_shipping_cost,
                "courier_id": str(courier_snapshot.courier_id) if courier_snapshot else None,
            },
            store_id=store_id,
        )
        logger.info(f"Fulfillment route frozen for order {order_ref} ({len(groups)} groups)")
        return route

    async def get_route(self, store_id: uuid.UUID, order_ref: str) -> FulfillmentRoute:
        route = await self._find_route(store_id, order_ref)
        if route is None:
            raise RouteNotFoundError(order_ref)
        return route

    async def current_courier(self, store_id: uuid.UUID, order_ref: str) -> Optional[CourierSnapshot]:
        """Latest courier snapshot for an order, or None if never assigned."""
        route = await self.get_route(store_id, order_ref)
        if not route.courier_assignments:
            return None
        return snapshot_from_assignment(route.courier_assignments[-1])

    async def update_status(
        self,
        store_id: uuid.UUID,
        order_ref: str,
        status: RouteStatus,
    ) -> FulfillmentRoute:
        """Record the order's fulfillment status (reported by the order system)."""
        route = await self.get_route(store_id, order_ref)
        route.status = status.value
        await self.db.flush()
        logger.info(f"Order {order_ref} fulfillment status -> {status.value}")
        return route

    async def reassign_courier(
        self,
        store_id: uuid.UUID,
        order_ref: str,
        courier_id: uuid.UUID,
        reason: Optional[str] = None,
        order_status: Optional[str] = None,
    ) -> CourierSnapshot:
        """
        Manually assign a different courier to a frozen order.

        Args:
            order_status: Current order status when the caller knows better
                than the stored record (e.g. shipped in another system)

        Raises:
            RouteNotFoundError, CourierNotFoundError, ReassignmentNotAllowedError
        """
        route = await self.get_route(store_id, order_ref)

        status = (order_status or route.status).upper()
        if status in LOCKED_STATUSES:
            raise ReassignmentNotAllowedError(
                f"Cannot reassign courier for order {order_ref} with status {status}"
            )

        result = await self.db.execute(
            select(Courier).where(
                and_(
                    Courier.id == courier_id,
                    Courier.store_id == store_id,
                )
            )
        )
        courier = result.scalar_one_or_none()
        if courier is None:
            raise CourierNotFoundError(f"Courier not found: {courier_id}")

        if not courier.is_active:
            raise ReassignmentNotAllowedError(f"Courier {courier.code} is inactive")

        if route.zone_id is not None and not courier.services_zone(route.zone_id):
            raise ReassignmentNotAllowedError(
                f"Courier {courier.code} does not service the order's shipping zone"
            )

        if route.payment_method == PaymentMethod.COD.value and not courier.supports_cod:
            raise ReassignmentNotAllowedError(
                f"Courier {courier.code} does not support COD"
            )

        previous = route.courier_assignments[-1] if route.courier_assignments else None
        sequence = max((a.sequence for a in route.courier_assignments), default=0) + 1

        snapshot = build_courier_snapshot(courier, reason or MANUAL_ASSIGNMENT_REASON)
        route.courier_assignments.append(
            _assignment_from_snapshot(snapshot, sequence, AssignmentSource.ADMIN)
        )
        await self.db.flush()

        await self.audit_service.log_event(
            action=AuditAction.COURIER_REASSIGNED,
            entity_type="ORDER",
            entity_id=order_ref,
            description=f"Courier reassigned to {courier.name} for order {order_ref}",
            payload={
                "previous_courier_id": str(previous.courier_id) if previous else None,
                "previous_courier_code": previous.courier_code if previous else None,
                "new_courier_id": str(courier.id),
                "new_courier_code": courier.code,
                "reason": snapshot.reason,
                "sequence": sequence,
            },
            store_id=store_id,
        )
        logger.info(
            f"Order {order_ref} courier reassigned "
            f"{previous.courier_code if previous else '-'} -> {courier.code}"
        )
        return snapshot

    async def _find_route(self, store_id: uuid.UUID, order_ref: str) -> Optional[FulfillmentRoute]:
        result = await self.db.execute(
            select(FulfillmentRoute).where(
                and_(
                    FulfillmentRoute.store_id == store_id,
                    FulfillmentRoute.order_ref == order_ref,
                )
            )
        )
        return result.scalar_one_or_none()
