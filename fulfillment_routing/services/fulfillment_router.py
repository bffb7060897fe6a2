"""
Fulfillment Router.

Routes a whole cart:
1. For every line item, load active store origins holding enough stock
2. Score each candidate origin and keep the best one
3. All-or-nothing: a single unroutable item fails the whole cart
4. Group routed items by origin into shipment groups
5. Give every group a courier (first item's courier, one retry on group weight)

Evaluation is sequential on the request's session; stock is read, not locked.
"""
import asyncio
import uuid
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.config import settings
from fulfillment_routing.core.exceptions import RoutingError, RoutingFailedError
from fulfillment_routing.models.origin import SupplierOrigin, OriginVariantInventory
from fulfillment_routing.schemas.courier import AssignCourierRequest
from fulfillment_routing.schemas.routing import (
    CartItem,
    FulfillmentRouteItem,
    FulfillmentRouteResult,
    OriginAddress,
    OriginScore,
    RouteFulfillmentRequest,
    ShipmentGroup,
    ShipmentGroupItem,
)
from fulfillment_routing.services.audit_service import AuditAction, AuditService
from fulfillment_routing.services.courier_service import CourierAssignmentService
from fulfillment_routing.services.origin_scorer import OriginScorer
from fulfillment_routing.services.zone_service import ZoneService

logger = logging.getLogger(__name__)


def insufficient_stock_message(variant_id: uuid.UUID, quantity: int) -> str:
    return f"No active origin with sufficient stock for variant {variant_id} (required: {quantity})"


class FulfillmentRouter:
    """Service for routing carts to origins and couriers."""

    def __init__(
        self,
        db: AsyncSession,
        scorer: Optional[OriginScorer] = None,
        courier_service: Optional[CourierAssignmentService] = None,
        audit_service: Optional[AuditService] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        zone_service = ZoneService(db)
        self.courier_service = courier_service or CourierAssignmentService(db, zone_service)
        self.scorer = scorer or OriginScorer(
            db,
            zone_service=zone_service,
            courier_service=self.courier_service,
        )
        self.audit_service = audit_service or AuditService(db)
        self.timeout = settings.ROUTING_TIMEOUT_SECONDS if timeout is None else timeout

    async def route_fulfillment(self, request: RouteFulfillmentRequest) -> FulfillmentRouteResult:
        """
        Route every cart item to its best origin.

        Never raises for routing failures: returns success=False with the
        per-item errors joined by "; ".
        """
        try:
            return await asyncio.wait_for(self._route(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            message = f"Fulfillment routing timed out after {self.timeout}s"
            logger.error(f"{message} (store={request.store_id}, items={len(request.cart_items)})")
            # The cancelled query leaves the session mid-transaction
            await self.db.rollback()
            return FulfillmentRouteResult(success=False, error=message, errors=[message])

    async def route_or_raise(self, request: RouteFulfillmentRequest) -> FulfillmentRouteResult:
        """Same as route_fulfillment but raises RoutingFailedError on failure."""
        result = await self.route_fulfillment(request)
        if not result.success:
            raise RoutingFailedError(result.errors or [result.error or "Fulfillment routing failed"])
        return result

    async def _route(self, request: RouteFulfillmentRequest) -> FulfillmentRouteResult:
        errors: List[str] = []
        routed: List[FulfillmentRouteItem] = []
        selections: List[Dict[str, Any]] = []

        for item in request.cart_items:
            outcome = await self._route_item(request, item)
            if outcome is None:
                errors.append(insufficient_stock_message(item.variant_id, item.quantity))
                continue
            routed_item, selection = outcome
            routed.append(routed_item)
            selections.append(selection)

        if errors:
            logger.warning(f"Routing failed for store {request.store_id}: {'; '.join(errors)}")
            return FulfillmentRouteResult(success=False, error="; ".join(errors), errors=errors)

        for selection in selections:
            await self.audit_service.log_event(**selection)

        groups = await self._build_shipment_groups(request, routed)

        await self.audit_service.log_event(
            action=AuditAction.FULFILLMENT_ROUTED,
            entity_type="CART",
            description=f"Routed {len(routed)} items into {len(groups)} shipment groups",
            payload={
                "items": len(routed),
                "shipment_groups": [
                    {
                        "origin_id": str(g.origin_id),
                        "courier_id": str(g.courier_id) if g.courier_id else None,
                        "shipping_cost": g.shipping_cost,
                    }
                    for g in groups
                ],
            },
            store_id=request.store_id,
        )
        logger.info(f"Routed {len(routed)} items into {len(groups)} groups for store {request.store_id}")

        return FulfillmentRouteResult(success=True, items=routed, shipment_groups=groups)

    async def _route_item(
        self,
        request: RouteFulfillmentRequest,
        item: CartItem,
    ) -> Optional[Tuple[FulfillmentRouteItem, Dict[str, Any]]]:
        """Best origin for one item plus its ORIGIN_SELECTED event, None when unstocked."""
        candidates = await self._get_candidate_origins(request.store_id, item)
        if not candidates:
            logger.info(f"No stocked origin for variant {item.variant_id} (required: {item.quantity})")
            return None

        scored: List[tuple[SupplierOrigin, OriginScore]] = []
        for origin in candidates:
            origin_score = await self.scorer.score(
                origin,
                request.delivery_address,
                item.variant_id,
                item.quantity,
                request.store_id,
                request.payment_method,
                unit_weight_kg=item.unit_weight_kg,
            )
            logger.debug(f"Origin {origin.name} scored {origin_score.score:.2f} for variant {item.variant_id}")
            scored.append((origin, origin_score))

        scored.sort(key=lambda pair: (
            pair[1].score,
            pair[0].priority if pair[0].priority is not None else settings.DEFAULT_ORIGIN_PRIORITY,
            str(pair[0].id),
        ))
        origin, best = scored[0]

        weight = item.quantity * (item.unit_weight_kg or settings.DEFAULT_ITEM_WEIGHT_KG)
        routed_item = FulfillmentRouteItem(
            variant_id=item.variant_id,
            quantity=item.quantity,
            supplier_id=origin.supplier_id,
            origin_id=origin.id,
            origin_address=OriginAddress(
                name=origin.name,
                street=origin.street,
                city=origin.city,
                state=origin.state,
                pincode=origin.pincode,
                country=origin.country,
            ),
            courier_id=best.courier_id,
            zone_id=best.zone_id,
            shipping_cost=best.shipping_cost or 0.0,
            weight_kg=weight,
            score=best.score,
        )

        selection = dict(
            action=AuditAction.ORIGIN_SELECTED,
            entity_type="VARIANT",
            entity_id=item.variant_id,
            description=f"Selected origin {origin.name} for variant {item.variant_id}",
            payload={
                "origin_id": str(origin.id),
                "score": best.score,
                "distance": best.distance,
                "shipping_cost": best.shipping_cost,
                "courier_id": str(best.courier_id) if best.courier_id else None,
                "candidates": len(scored),
            },
            store_id=request.store_id,
        )
        logger.info(f"Variant {item.variant_id} -> origin {origin.name} (score {best.score:.2f})")
        return routed_item, selection

    async def _get_candidate_origins(
        self,
        store_id: uuid.UUID,
        item: CartItem,
    ) -> List[SupplierOrigin]:
        """Active store origins with available_stock >= quantity."""
        conditions = [
            SupplierOrigin.store_id == store_id,
            SupplierOrigin.is_active == True,
            OriginVariantInventory.variant_id == item.variant_id,
            OriginVariantInventory.available_stock >= item.quantity,
        ]
        if item.supplier_id:
            conditions.append(OriginVariantInventory.supplier_id == item.supplier_id)

        result = await self.db.execute(
            select(SupplierOrigin)
            .join(OriginVariantInventory, OriginVariantInventory.origin_id == SupplierOrigin.id)
            .where(and_(*conditions))
            .order_by(SupplierOrigin.priority, SupplierOrigin.id)
        )
        return list(result.scalars().unique().all())

    async def _build_shipment_groups(
        self,
        request: RouteFulfillmentRequest,
        routed: List[FulfillmentRouteItem],
    ) -> List[ShipmentGroup]:
        by_origin: Dict[uuid.UUID, List[FulfillmentRouteItem]] = {}
        for item in routed:
            by_origin.setdefault(item.origin_id, []).append(item)

        groups = []
        for origin_id, items in by_origin.items():
            first = items[0]
            courier_id = first.courier_id
            weight = round(sum(i.weight_kg for i in items), 3)

            courier_ids = {i.courier_id for i in items if i.courier_id is not None}
            conflict = len(courier_ids) > 1
            if conflict:
                logger.warning(
                    f"Items shipping from origin {first.origin_address.name} resolved to "
                    f"{len(courier_ids)} different couriers; using {courier_id}"
                )

            if courier_id is None and first.zone_id is not None:
                courier_id = await self._retry_group_courier(request, first.zone_id, weight)

            groups.append(ShipmentGroup(
                origin_id=origin_id,
                origin_name=first.origin_address.name,
                items=[ShipmentGroupItem(variant_id=i.variant_id, quantity=i.quantity) for i in items],
                shipping_cost=round(sum(i.shipping_cost for i in items), 2),
                weight_kg=weight,
                courier_id=courier_id,
                zone_id=first.zone_id,
                courier_conflict=conflict,
            ))
        return groups

    async def _retry_group_courier(
        self,
        request: RouteFulfillmentRequest,
        zone_id: uuid.UUID,
        weight: float,
    ) -> Optional[uuid.UUID]:
        try:
            snapshot = await self.courier_service.assign_courier(
                AssignCourierRequest(
                    store_id=request.store_id,
                    zone_id=zone_id,
                    weight=weight,
                    order_value=request.order_value,
                    payment_method=request.payment_method,
                    pincode=request.delivery_address.zip,
                )
            )
            return snapshot.courier_id
        except RoutingError as e:
            logger.warning(f"Shipment group left without courier: {e}")
            return None
