"""
Origin Scorer.

Ranks a candidate origin for one line item. Lower score is better.

    score = distance * W_distance
          + shipping cost * W_shipping   (penalty when unpriceable)
          + origin priority * W_priority
          - supported courier count * W_courier_options

Scoring is deterministic for fixed inputs; the courier chosen here is
best-effort and never disqualifies an origin.
"""
import uuid
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.config import settings
from fulfillment_routing.core.exceptions import RoutingError
from fulfillment_routing.models.origin import SupplierOrigin
from fulfillment_routing.schemas.courier import AssignCourierRequest
from fulfillment_routing.schemas.routing import DeliveryAddress, OriginScore
from fulfillment_routing.services.courier_service import CourierAssignmentService
from fulfillment_routing.services.distance_service import DistanceEstimator, get_distance_estimator
from fulfillment_routing.services.rate_service import RateProvider, get_rate_provider
from fulfillment_routing.services.zone_service import ZoneService

logger = logging.getLogger(__name__)


class OriginScorer:
    """Scores origins for a delivery address."""

    def __init__(
        self,
        db: AsyncSession,
        zone_service: Optional[ZoneService] = None,
        courier_service: Optional[CourierAssignmentService] = None,
        rate_provider: Optional[RateProvider] = None,
        distance_estimator: Optional[DistanceEstimator] = None,
    ):
        self.db = db
        self.zone_service = zone_service or ZoneService(db)
        self.courier_service = courier_service or CourierAssignmentService(db, self.zone_service)
        self.rate_provider = rate_provider or get_rate_provider()
        self.distance_estimator = distance_estimator or get_distance_estimator()

    async def score(
        self,
        origin: SupplierOrigin,
        delivery_address: DeliveryAddress,
        variant_id: uuid.UUID,
        quantity: int,
        store_id: uuid.UUID,
        payment_method: Optional[str] = None,
        unit_weight_kg: Optional[float] = None,
    ) -> OriginScore:
        weight = quantity * (unit_weight_kg or settings.DEFAULT_ITEM_WEIGHT_KG)
        distance = self.distance_estimator.estimate(origin, delivery_address)

        score = distance * settings.SCORE_WEIGHT_DISTANCE

        shipping_cost: Optional[float] = None
        courier_id: Optional[uuid.UUID] = None

        zone = await self.zone_service.find_zone(store_id, delivery_address)
        if zone is None:
            logger.warning(
                f"No zone for {delivery_address.country}/{delivery_address.state}/"
                f"{delivery_address.zip}; penalising origin {origin.id}"
            )
            score += settings.NO_ZONE_PENALTY
        else:
            try:
                quote = await self.rate_provider.calculate_shipping(
                    self.db,
                    store_id,
                    delivery_address,
                    weight,
                    0,
                    payment_method,
                )
                shipping_cost = quote.total_shipping
                score += shipping_cost * settings.SCORE_WEIGHT_SHIPPING
            except RoutingError as e:
                logger.warning(f"Shipping rate unavailable for origin {origin.id}: {e}")
                score += settings.NO_ZONE_PENALTY

            try:
                snapshot = await self.courier_service.assign_courier(
                    AssignCourierRequest(
                        store_id=store_id,
                        zone_id=zone.id,
                        weight=weight,
                        order_value=0,
                        payment_method=payment_method or "prepaid",
                        pincode=delivery_address.zip,
                    )
                )
                courier_id = snapshot.courier_id
            except RoutingError as e:
                logger.debug(f"No courier for origin {origin.id} in zone {zone.name}: {e}")

        priority = origin.priority if origin.priority is not None else settings.DEFAULT_ORIGIN_PRIORITY
        score += priority * settings.SCORE_WEIGHT_PRIORITY

        score -= len(origin.supported_courier_ids or []) * settings.SCORE_WEIGHT_COURIER_OPTIONS

        return OriginScore(
            origin_id=origin.id,
            score=score,
            distance=distance,
            shipping_cost=shipping_cost,
            courier_id=courier_id,
            zone_id=zone.id if zone else None,
        )
