"""
Shipping rate providers.

The routing engine prices an origin -> destination leg through a pluggable
RateProvider. Providers are registered by RateProviderType and the
configured one is resolved once at startup via get_rate_provider().

ZONE_RATE_TABLE rules:
- Zone resolved from the delivery address
- Weight slab preferred, order value slab as fallback
- Inclusive min, exclusive max
- total = base + (value - slab min) * per unit [+ COD surcharge]
"""
import uuid
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.config import settings
from fulfillment_routing.core.exceptions import RateNotFoundError
from fulfillment_routing.models.courier import PaymentMethod
from fulfillment_routing.models.shipping_rate import ShippingRate, RateType
from fulfillment_routing.models.zone import ShippingZone
from fulfillment_routing.schemas.routing import DeliveryAddress, ShippingQuote
from fulfillment_routing.services.courier_service import normalize_payment_method
from fulfillment_routing.services.zone_service import ZoneService

logger = logging.getLogger(__name__)


class RateProviderType(str, Enum):
    ZONE_RATE_TABLE = "ZONE_RATE_TABLE"
    FLAT = "FLAT"


def round_price(value: float) -> float:
    return round(value + 0.0, 2)


class RateProvider(ABC):
    """Abstract interface for shipping rate calculation."""

    @abstractmethod
    async def calculate_shipping(
        self,
        db: AsyncSession,
        store_id: uuid.UUID,
        address: DeliveryAddress,
        weight: float,
        order_value: float,
        payment_method: Optional[str],
    ) -> ShippingQuote:
        """Price a shipment to the address.

        Raises ZoneNotFoundError or RateNotFoundError when no price exists.
        """
        ...


class ZoneRateTableProvider(RateProvider):
    """Slab-based pricing from the shipping_rates table."""

    async def calculate_shipping(
        self,
        db: AsyncSession,
        store_id: uuid.UUID,
        address: DeliveryAddress,
        weight: float,
        order_value: float,
        payment_method: Optional[str],
    ) -> ShippingQuote:
        zone = await ZoneService(db).resolve_zone(store_id, address)

        rate_type = RateType.WEIGHT
        rate_value = weight
        rate = await self._find_matching_rate(db, store_id, zone, RateType.WEIGHT, weight)
        if rate is None:
            rate_type = RateType.ORDER_VALUE
            rate_value = order_value
            rate = await self._find_matching_rate(db, store_id, zone, RateType.ORDER_VALUE, order_value)

        if rate is None:
            raise RateNotFoundError(
                f'No shipping rate slab found for zone "{zone.name}" with '
                f'weight = {weight} kg or order value = {order_value}'
            )

        variable_rate = round_price((rate_value - rate.min_value) * (rate.per_unit_rate or 0))
        base_rate = round_price(rate.base_rate or 0)
        cod_surcharge = (
            round_price(rate.cod_surcharge or 0)
            if normalize_payment_method(payment_method) == PaymentMethod.COD
            else 0.0
        )

        return ShippingQuote(
            zone_id=zone.id,
            zone_name=zone.name,
            rate_type=rate_type.value,
            slab_min=rate.min_value,
            slab_max=rate.max_value,
            base_rate=base_rate,
            variable_rate=variable_rate,
            cod_surcharge=cod_surcharge,
            total_shipping=round_price(base_rate + variable_rate + cod_surcharge),
            calculated_at=datetime.now(timezone.utc),
        )

    @staticmethod
    async def _find_matching_rate(
        db: AsyncSession,
        store_id: uuid.UUID,
        zone: ShippingZone,
        rate_type: RateType,
        value: float,
    ) -> Optional[ShippingRate]:
        result = await db.execute(
            select(ShippingRate)
            .where(
                and_(
                    ShippingRate.store_id == store_id,
                    ShippingRate.zone_id == zone.id,
                    ShippingRate.rate_type == rate_type.value,
                    ShippingRate.min_value <= value,
                    ShippingRate.max_value > value,
                    ShippingRate.is_active == True,
                )
            )
            .order_by(ShippingRate.min_value)
        )
        return result.scalars().first()


class FlatRateProvider(RateProvider):
    """Single flat rate per shipment, for stores without rate tables."""

    def __init__(
        self,
        flat_rate: Optional[float] = None,
        cod_surcharge: Optional[float] = None,
    ):
        self.flat_rate = settings.FLAT_SHIPPING_RATE if flat_rate is None else flat_rate
        self.cod_surcharge = settings.FLAT_COD_SURCHARGE if cod_surcharge is None else cod_surcharge

    async def calculate_shipping(
        self,
        db: AsyncSession,
        store_id: uuid.UUID,
        address: DeliveryAddress,
        weight: float,
        order_value: float,
        payment_method: Optional[str],
    ) -> ShippingQuote:
        zone = await ZoneService(db).find_zone(store_id, address)
        cod_surcharge = (
            round_price(self.cod_surcharge)
            if normalize_payment_method(payment_method) == PaymentMethod.COD
            else 0.0
        )
        base_rate = round_price(self.flat_rate)

        return ShippingQuote(
            zone_id=zone.id if zone else None,
            zone_name=zone.name if zone else None,
            rate_type="FLAT",
            base_rate=base_rate,
            cod_surcharge=cod_surcharge,
            total_shipping=round_price(base_rate + cod_surcharge),
            calculated_at=datetime.now(timezone.utc),
        )


RATE_PROVIDERS: Dict[RateProviderType, Callable[[], RateProvider]] = {
    RateProviderType.ZONE_RATE_TABLE: ZoneRateTableProvider,
    RateProviderType.FLAT: FlatRateProvider,
}

_provider_instance: Optional[RateProvider] = None


def create_rate_provider(provider_type: RateProviderType) -> RateProvider:
    return RATE_PROVIDERS[provider_type]()


def get_rate_provider() -> RateProvider:
    """Return the configured rate provider (singleton).

    Raises ValueError for an unknown RATE_PROVIDER setting.
    """
    global _provider_instance
    if _provider_instance is None:
        provider_type = RateProviderType(settings.RATE_PROVIDER)
        _provider_instance = create_rate_provider(provider_type)
        logger.info(f"Rate provider initialized: {provider_type.value}")
    return _provider_instance


def reset_rate_provider() -> None:
    """Reset the provider singleton (useful for testing)."""
    global _provider_instance
    _provider_instance = None
