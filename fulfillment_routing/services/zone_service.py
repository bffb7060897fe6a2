"""
Zone Resolver.

Maps a delivery address to the store's active shipping zone:
country must match AND (pincode listed OR state listed).

When several zones match, the most specific wins:
1. Zones listing the pincode
2. Zones listing only the state
Within a tier the oldest zone (created_at, then id) wins.
"""
import uuid
import logging
from typing import Optional, List

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.config import settings
from fulfillment_routing.core.exceptions import ZoneNotFoundError
from fulfillment_routing.models.zone import ShippingZone
from fulfillment_routing.schemas.routing import DeliveryAddress
from fulfillment_routing.services.cache_service import CacheService, get_cache

logger = logging.getLogger(__name__)


class ZoneService:
    """Resolves shipping zones for a store."""

    def __init__(self, db: AsyncSession, cache: Optional[CacheService] = None):
        self.db = db
        if cache is None and settings.CACHE_ENABLED:
            cache = get_cache()
        self.cache = cache

    async def resolve_zone(
        self,
        store_id: uuid.UUID,
        address: DeliveryAddress
    ) -> ShippingZone:
        """Resolve the zone for an address or raise ZoneNotFoundError."""
        zone = await self.find_zone(store_id, address)
        if zone is None:
            raise ZoneNotFoundError(
                f"No active shipping zone for address: {address.country}"
                f"{f', {address.state}' if address.state else ''}"
                f"{f', {address.zip}' if address.zip else ''}"
            )
        return zone

    async def find_zone(
        self,
        store_id: uuid.UUID,
        address: DeliveryAddress
    ) -> Optional[ShippingZone]:
        """Resolve the zone for an address, returning None when nothing matches."""
        country = address.country.upper()

        if self.cache:
            cached_id = await self.cache.get_zone_id(str(store_id), country, address.state, address.zip)
            if cached_id:
                zone = await self.get_zone(store_id, uuid.UUID(cached_id))
                # A cached state-level match may since have been beaten by a pincode zone
                if zone and zone.country_code == country and zone.covers_pincode(address.zip):
                    return zone

        candidates = await self._get_country_zones(store_id, country)
        zone = self._pick_most_specific(candidates, address)

        if zone is None:
            logger.info(
                f"Zone resolution: store={store_id}, address={country}/{address.state}/{address.zip}, no match"
            )
            return None

        logger.debug(f"Zone resolution: store={store_id}, pincode={address.zip} -> {zone.name}")
        if self.cache:
            await self.cache.set_zone_id(str(store_id), country, address.state, address.zip, str(zone.id))
        return zone

    async def get_zone(
        self,
        store_id: uuid.UUID,
        zone_id: uuid.UUID
    ) -> Optional[ShippingZone]:
        """Get an active zone of the store by id."""
        result = await self.db.execute(
            select(ShippingZone).where(
                and_(
                    ShippingZone.id == zone_id,
                    ShippingZone.store_id == store_id,
                    ShippingZone.is_active == True,
                )
            )
        )
        return result.scalar_one_or_none()

    async def _get_country_zones(
        self,
        store_id: uuid.UUID,
        country: str
    ) -> List[ShippingZone]:
        # Pincode/state membership lives in JSON lists, filtered in Python
        # to stay portable across SQLite and PostgreSQL.
        result = await self.db.execute(
            select(ShippingZone)
            .where(
                and_(
                    ShippingZone.store_id == store_id,
                    ShippingZone.country_code == country,
                    ShippingZone.is_active == True,
                )
            )
            .order_by(ShippingZone.created_at, ShippingZone.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _pick_most_specific(
        zones: List[ShippingZone],
        address: DeliveryAddress
    ) -> Optional[ShippingZone]:
        for zone in zones:
            if zone.covers_pincode(address.zip):
                return zone
        for zone in zones:
            if zone.covers_state(address.state):
                return zone
        return None
