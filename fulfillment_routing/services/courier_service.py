"""
Courier Assignment Service.

Courier resolution engine that handles:
1. Payment method normalization (COD / partial COD -> COD, rest -> PREPAID)
2. Courier validation (active, COD, weight ceiling, zone, pincode allow-list)
3. Rule matching (payment profile, weight and order value ranges)
4. Deterministic selection by rule priority, then courier priority
5. Zone-default fallback courier when no rule survives

Priority-Based Flow:
1. Verify the zone is active for the store
2. Load active rules for (store, zone)
3. Keep rules that match the order profile and whose courier validates
4. Sort by (rule.priority, courier.priority), lowest first
5. Otherwise try the top-ranked zone courier as fallback
6. Otherwise raise NoCourierAvailableError

The service is a pure decision: it never writes.
"""
import uuid
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fulfillment_routing.core.exceptions import ZoneNotFoundError, NoCourierAvailableError
from fulfillment_routing.models.courier import Courier, CourierRule, PaymentMethod, RulePaymentMethod
from fulfillment_routing.schemas.courier import AssignCourierRequest, CourierSnapshot, CourierValidation
from fulfillment_routing.services.snapshot_builder import (
    DEFAULT_COURIER_REASON,
    build_courier_snapshot,
    describe_rule_match,
)
from fulfillment_routing.services.zone_service import ZoneService

logger = logging.getLogger(__name__)


def normalize_payment_method(payment_method: Optional[str]) -> PaymentMethod:
    """Collapse gateway-level payment methods into PREPAID / COD."""
    value = (payment_method or "").strip().upper()
    if value in ("COD", "COD_PARTIAL"):
        return PaymentMethod.COD
    return PaymentMethod.PREPAID


def validate_courier(
    courier: Courier,
    payment_method: PaymentMethod,
    weight: float,
    zone_id: uuid.UUID,
    pincode: Optional[str] = None,
) -> CourierValidation:
    """Check a courier against an order profile, stopping at the first failure."""
    if not courier.is_active:
        return CourierValidation(valid=False, reason="Courier is inactive")

    if payment_method == PaymentMethod.COD and not courier.supports_cod:
        return CourierValidation(valid=False, reason="Courier does not support COD")

    max_weight = courier.max_weight_kg or 0
    if max_weight > 0 and weight > max_weight:
        return CourierValidation(
            valid=False,
            reason=f"Order weight {weight} kg exceeds courier max weight {max_weight} kg",
        )

    if not courier.services_zone(zone_id):
        return CourierValidation(valid=False, reason="Courier does not service this zone")

    if pincode and courier.serviceable_pincodes and pincode not in courier.serviceable_pincodes:
        return CourierValidation(valid=False, reason="Courier does not service this pincode")

    return CourierValidation(valid=True)


def _in_range(value: float, lower: Optional[float], upper: Optional[float]) -> bool:
    # Lower bound inclusive, upper bound exclusive
    if lower is not None and value < lower:
        return False
    if upper is not None and value >= upper:
        return False
    return True


def rule_matches(
    rule: CourierRule,
    payment_method: PaymentMethod,
    weight: float,
    order_value: float,
) -> bool:
    """Check whether a rule applies to an order profile."""
    rule_payment = (rule.payment_method or RulePaymentMethod.BOTH.value).upper()
    if rule_payment not in (RulePaymentMethod.BOTH.value, payment_method.value):
        return False

    if not _in_range(weight, rule.min_weight, rule.max_weight):
        return False

    if not _in_range(order_value, rule.min_order_value, rule.max_order_value):
        return False

    return True


class CourierAssignmentService:
    """Service for assigning couriers to orders and shipments."""

    def __init__(self, db: AsyncSession, zone_service: Optional[ZoneService] = None):
        self.db = db
        self.zone_service = zone_service or ZoneService(db)

    async def assign_courier(self, request: AssignCourierRequest) -> CourierSnapshot:
        """
        Main courier assignment entry point.

        Returns a frozen CourierSnapshot; raises ZoneNotFoundError when the
        zone is missing or inactive and NoCourierAvailableError when neither
        a rule nor the fallback courier qualifies.
        """
        payment_method = normalize_payment_method(request.payment_method)

        zone = await self.zone_service.get_zone(request.store_id, request.zone_id)
        if zone is None:
            raise ZoneNotFoundError(
                f"Shipping zone not found or inactive: {request.zone_id}",
                zone_id=str(request.zone_id),
            )

        rules = await self._get_rules(request.store_id, zone.id)

        candidates: List[Tuple[CourierRule, Courier]] = []
        for rule in rules:
            if not rule_matches(rule, payment_method, request.weight, request.order_value):
                continue

            courier = rule.courier
            if courier is None or courier.store_id != request.store_id:
                continue

            validation = validate_courier(courier, payment_method, request.weight, zone.id, request.pincode)
            if not validation.valid:
                logger.debug(f"Rule {rule.id} skipped: courier {courier.code}: {validation.reason}")
                continue

            candidates.append((rule, courier))

        if candidates:
            # Stable sort keeps query order (created_at, id) for full ties
            candidates.sort(key=lambda rc: (rc[0].priority, rc[1].priority))
            rule, courier = candidates[0]
            logger.info(
                f"Courier assigned: zone={zone.name}, courier={courier.code}, "
                f"rule={rule.id}, payment={payment_method.value}, weight={request.weight}"
            )
            return build_courier_snapshot(courier, describe_rule_match(rule, courier), rule=rule)

        fallback = await self._get_fallback_courier(request.store_id, zone.id, payment_method)
        if fallback is not None:
            validation = validate_courier(fallback, payment_method, request.weight, zone.id, request.pincode)
            if validation.valid:
                logger.warning(
                    f"No courier rule matched for zone={zone.name}, "
                    f"payment={payment_method.value}; using default courier {fallback.code}"
                )
                return build_courier_snapshot(fallback, DEFAULT_COURIER_REASON)
            logger.debug(f"Fallback courier {fallback.code} rejected: {validation.reason}")

        raise NoCourierAvailableError(
            zone_name=zone.name,
            payment_method=payment_method.value,
            weight=request.weight,
            order_value=request.order_value,
        )

    async def get_available_couriers(
        self,
        store_id: uuid.UUID,
        zone_id: uuid.UUID,
        payment_method: Optional[str],
        weight: float,
    ) -> List[Courier]:
        """List active zone couriers able to carry the weight and payment profile."""
        normalized = normalize_payment_method(payment_method)
        couriers = await self._get_zone_couriers(store_id, zone_id, normalized)

        return [
            courier for courier in couriers
            if not (courier.max_weight_kg and courier.max_weight_kg > 0 and weight > courier.max_weight_kg)
        ]

    async def _get_rules(
        self,
        store_id: uuid.UUID,
        zone_id: uuid.UUID
    ) -> List[CourierRule]:
        """Get active rules for a zone, sorted by priority."""
        result = await self.db.execute(
            select(CourierRule)
            .where(
                and_(
                    CourierRule.store_id == store_id,
                    CourierRule.zone_id == zone_id,
                    CourierRule.is_active == True,
                )
            )
            .options(selectinload(CourierRule.courier))
            .order_by(CourierRule.priority, CourierRule.created_at, CourierRule.id)
        )
        return list(result.scalars().all())

    async def _get_zone_couriers(
        self,
        store_id: uuid.UUID,
        zone_id: uuid.UUID,
        payment_method: PaymentMethod
    ) -> List[Courier]:
        """Active store couriers servicing the zone, by courier priority."""
        conditions = [
            Courier.store_id == store_id,
            Courier.is_active == True,
        ]
        if payment_method == PaymentMethod.COD:
            conditions.append(Courier.supports_cod == True)

        result = await self.db.execute(
            select(Courier)
            .where(and_(*conditions))
            .order_by(Courier.priority, Courier.created_at, Courier.id)
        )
        return [c for c in result.scalars().all() if c.services_zone(zone_id)]

    async def _get_fallback_courier(
        self,
        store_id: uuid.UUID,
        zone_id: uuid.UUID,
        payment_method: PaymentMethod
    ) -> Optional[Courier]:
        couriers = await self._get_zone_couriers(store_id, zone_id, payment_method)
        return couriers[0] if couriers else None
