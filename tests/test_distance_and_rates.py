"""Distance estimators and shipping rate providers."""
import uuid

import pytest

from fulfillment_routing.config import settings
from fulfillment_routing.core.exceptions import RateNotFoundError, ZoneNotFoundError
from fulfillment_routing.models import RateType, SupplierOrigin
from fulfillment_routing.schemas.routing import DeliveryAddress
from fulfillment_routing.services.distance_service import (
    DistanceEstimatorType,
    HaversineEstimator,
    PincodePrefixEstimator,
    create_distance_estimator,
    estimate_pincode_distance,
    get_distance_estimator,
    haversine_distance,
)
from fulfillment_routing.services.rate_service import (
    FlatRateProvider,
    RateProviderType,
    ZoneRateTableProvider,
    create_rate_provider,
    get_rate_provider,
)


def origin_at(pincode: str, latitude=None, longitude=None) -> SupplierOrigin:
    return SupplierOrigin(
        id=uuid.uuid4(),
        name="Hub",
        city="Bengaluru",
        state="KA",
        pincode=pincode,
        country="IN",
        latitude=latitude,
        longitude=longitude,
    )


class TestPincodeDistance:
    def test_same_pincode(self):
        assert estimate_pincode_distance("560001", "560001") == 0

    def test_same_prefix(self):
        assert estimate_pincode_distance("560001", "560095") == 10

    def test_different_region(self):
        assert estimate_pincode_distance("560001", "110001") == 100

    def test_estimator_uses_zip(self):
        address = DeliveryAddress(zip="560034", country="IN")
        assert PincodePrefixEstimator().estimate(origin_at("560066"), address) == 10


class TestHaversine:
    def test_known_distance(self):
        # Bengaluru -> Chennai is roughly 290 km as the crow flies
        distance = haversine_distance(12.9716, 77.5946, 13.0827, 80.2707)
        assert 280 < distance < 300

    def test_uses_coordinates_when_both_known(self):
        address = DeliveryAddress(zip="600001", country="IN", latitude=13.0827, longitude=80.2707)
        distance = HaversineEstimator().estimate(origin_at("560001", 12.9716, 77.5946), address)
        assert distance == pytest.approx(haversine_distance(12.9716, 77.5946, 13.0827, 80.2707))

    def test_falls_back_to_pincode_without_coordinates(self):
        address = DeliveryAddress(zip="560001", country="IN")
        assert HaversineEstimator().estimate(origin_at("560001", 12.9716, 77.5946), address) == 0


class TestEstimatorRegistry:
    def test_create_by_type(self):
        assert isinstance(create_distance_estimator(DistanceEstimatorType.HAVERSINE), HaversineEstimator)

    def test_configured_estimator_is_singleton(self):
        assert get_distance_estimator() is get_distance_estimator()

    def test_unknown_estimator_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "DISTANCE_ESTIMATOR", "TELEPORT")
        with pytest.raises(ValueError):
            get_distance_estimator()


class TestZoneRateTable:
    async def test_weight_slab(self, db, factory, store_id, address):
        zone = await factory.zone()
        await factory.rate(zone, 0, 5, base_rate=40, per_unit_rate=10)
        await factory.rate(zone, 5, 50, base_rate=90, per_unit_rate=8)

        quote = await ZoneRateTableProvider().calculate_shipping(db, store_id, address, 7.5, 0, "prepaid")

        assert quote.zone_id == zone.id
        assert quote.rate_type == RateType.WEIGHT.value
        assert quote.slab_min == 5
        assert quote.variable_rate == 20.0
        assert quote.total_shipping == 110.0

    async def test_cod_surcharge_only_for_cod(self, db, factory, store_id, address):
        zone = await factory.zone()
        await factory.rate(zone, 0, 5, base_rate=40, per_unit_rate=10, cod_surcharge=25)
        provider = ZoneRateTableProvider()

        prepaid = await provider.calculate_shipping(db, store_id, address, 1.25, 0, "stripe")
        cod = await provider.calculate_shipping(db, store_id, address, 1.25, 0, "cod_partial")

        assert prepaid.total_shipping == 52.5
        assert prepaid.cod_surcharge == 0
        assert cod.total_shipping == 77.5
        assert cod.cod_surcharge == 25

    async def test_order_value_slab_when_no_weight_slab(self, db, factory, store_id, address):
        zone = await factory.zone()
        await factory.rate(zone, 0, 5, base_rate=40)
        await factory.rate(zone, 1000, 5000, base_rate=0, per_unit_rate=0.01, rate_type=RateType.ORDER_VALUE)

        quote = await ZoneRateTableProvider().calculate_shipping(db, store_id, address, 12.0, 2500, "prepaid")

        assert quote.rate_type == RateType.ORDER_VALUE.value
        assert quote.total_shipping == 15.0

    async def test_upper_bound_is_exclusive(self, db, factory, store_id, address):
        zone = await factory.zone(name="IN-South")
        await factory.rate(zone, 0, 5, base_rate=40)

        with pytest.raises(RateNotFoundError) as exc_info:
            await ZoneRateTableProvider().calculate_shipping(db, store_id, address, 5.0, 0, "prepaid")

        assert '"IN-South"' in str(exc_info.value)

    async def test_no_zone(self, db, store_id, address):
        with pytest.raises(ZoneNotFoundError):
            await ZoneRateTableProvider().calculate_shipping(db, store_id, address, 1.0, 0, "prepaid")


class TestFlatRate:
    async def test_flat_rate_with_cod(self, db, store_id, address):
        provider = FlatRateProvider(flat_rate=60, cod_surcharge=20)

        prepaid = await provider.calculate_shipping(db, store_id, address, 3.0, 0, "prepaid")
        cod = await provider.calculate_shipping(db, store_id, address, 3.0, 0, "cod")

        assert prepaid.total_shipping == 60
        assert cod.total_shipping == 80
        assert prepaid.zone_id is None

    def test_registry(self, monkeypatch):
        assert isinstance(create_rate_provider(RateProviderType.FLAT), FlatRateProvider)
        monkeypatch.setattr(settings, "RATE_PROVIDER", "FLAT")
        assert isinstance(get_rate_provider(), FlatRateProvider)
