"""Delivery address -> shipping zone resolution."""
import uuid

import pytest

from fulfillment_routing.core.exceptions import ZoneNotFoundError
from fulfillment_routing.schemas.routing import DeliveryAddress
from fulfillment_routing.services.cache_service import CacheService, InMemoryCache
from fulfillment_routing.services.zone_service import ZoneService


def addr(state="KA", zip="560001", country="IN") -> DeliveryAddress:
    return DeliveryAddress(state=state, zip=zip, country=country, city="Bengaluru")


class TestResolveZone:
    async def test_matches_by_state(self, db, factory, store_id):
        zone = await factory.zone(name="IN-South", state_codes=["KA", "TN"])

        resolved = await ZoneService(db, cache=None).resolve_zone(store_id, addr())

        assert resolved.id == zone.id

    async def test_matches_by_pincode(self, db, factory, store_id):
        zone = await factory.zone(name="Metro", state_codes=[], pincodes=["560001"])

        resolved = await ZoneService(db).resolve_zone(store_id, addr(state="XX"))

        assert resolved.id == zone.id

    async def test_country_is_case_insensitive(self, db, factory, store_id):
        zone = await factory.zone()

        resolved = await ZoneService(db).resolve_zone(store_id, addr(country="in"))

        assert resolved.id == zone.id

    async def test_country_must_match(self, db, factory, store_id):
        await factory.zone(country_code="US", state_codes=["KA"])

        with pytest.raises(ZoneNotFoundError):
            await ZoneService(db).resolve_zone(store_id, addr())

    async def test_inactive_zone_ignored(self, db, factory, store_id):
        await factory.zone(is_active=False)

        assert await ZoneService(db).find_zone(store_id, addr()) is None

    async def test_other_store_zone_ignored(self, db, factory):
        await factory.zone()

        with pytest.raises(ZoneNotFoundError) as exc_info:
            await ZoneService(db).resolve_zone(uuid.uuid4(), addr())

        assert "560001" in str(exc_info.value)

    async def test_pincode_match_beats_state_match(self, db, factory, store_id):
        await factory.zone(name="IN-South", state_codes=["KA"])
        metro = await factory.zone(name="Bangalore Metro", state_codes=[], pincodes=["560001"])

        resolved = await ZoneService(db).resolve_zone(store_id, addr())

        assert resolved.id == metro.id

    async def test_oldest_zone_wins_within_tier(self, db, factory, store_id):
        older = await factory.zone(name="South A", state_codes=["KA"])
        await factory.zone(name="South B", state_codes=["KA"])

        resolved = await ZoneService(db).resolve_zone(store_id, addr())

        assert resolved.id == older.id


class TestZoneCache:
    async def test_resolution_is_cached(self, db, factory, store_id):
        zone = await factory.zone()
        cache = CacheService(InMemoryCache())
        service = ZoneService(db, cache=cache)

        await service.resolve_zone(store_id, addr())

        cached = await cache.get_zone_id(str(store_id), "IN", "KA", "560001")
        assert cached == str(zone.id)

    async def test_deactivated_cached_zone_is_re_resolved(self, db, factory, store_id):
        first = await factory.zone(name="South A", state_codes=["KA"])
        second = await factory.zone(name="South B", state_codes=["KA"])
        cache = CacheService(InMemoryCache())
        service = ZoneService(db, cache=cache)

        assert (await service.resolve_zone(store_id, addr())).id == first.id

        first.is_active = False
        await db.flush()

        assert (await service.resolve_zone(store_id, addr())).id == second.id
        assert await cache.get_zone_id(str(store_id), "IN", "KA", "560001") == str(second.id)

    async def test_invalidate_zones(self, db, factory, store_id):
        await factory.zone()
        cache = CacheService(InMemoryCache())
        await ZoneService(db, cache=cache).resolve_zone(store_id, addr())

        cleared = await cache.invalidate_zones(str(store_id))

        assert cleared == 1
        assert await cache.get_zone_id(str(store_id), "IN", "KA", "560001") is None

    async def test_newer_pincode_zone_beats_cached_state_zone(self, db, factory, store_id):
        await factory.zone(name="KA-State", state_codes=["KA"])
        cache = CacheService(InMemoryCache())
        service = ZoneService(db, cache=cache)
        assert (await service.resolve_zone(store_id, addr())).name == "KA-State"

        metro = await factory.zone(name="BLR-Metro", state_codes=[], pincodes=["560001"])

        assert (await service.resolve_zone(store_id, addr())).id == metro.id
        assert await cache.get_zone_id(str(store_id), "IN", "KA", "560001") == str(metro.id)

