"""Shared fixtures: in-memory database per test, factories, singleton resets."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fulfillment_routing import models  # noqa: F401
from fulfillment_routing.database import Base, build_engine, get_db
from fulfillment_routing.models import (
    Courier,
    CourierRule,
    OriginVariantInventory,
    RateType,
    ShippingRate,
    ShippingZone,
    SupplierOrigin,
)
from fulfillment_routing.schemas.routing import DeliveryAddress
from fulfillment_routing.services.cache_service import reset_cache
from fulfillment_routing.services.distance_service import reset_distance_estimator
from fulfillment_routing.services.rate_service import reset_rate_provider


@pytest.fixture(autouse=True)
def reset_singletons():
    reset_cache()
    reset_rate_provider()
    reset_distance_estimator()
    yield
    reset_cache()
    reset_rate_provider()
    reset_distance_estimator()


@pytest.fixture
async def engine():
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def address():
    """Bangalore address inside IN-South (state KA)."""
    return DeliveryAddress(
        street="12 MG Road",
        city="Bengaluru",
        state="KA",
        zip="560001",
        country="IN",
    )


class Factory:
    """Persists fixture rows for one store."""

    def __init__(self, db: AsyncSession, store_id: uuid.UUID):
        self.db = db
        self.store_id = store_id
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _next_timestamp(self) -> datetime:
        # Strictly increasing created_at keeps tie-break ordering explicit
        self._clock += timedelta(seconds=1)
        return self._clock

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def zone(
        self,
        name: str = "IN-South",
        country_code: str = "IN",
        state_codes: Optional[list] = None,
        pincodes: Optional[list] = None,
        is_active: bool = True,
        store_id: Optional[uuid.UUID] = None,
    ) -> ShippingZone:
        return await self._save(ShippingZone(
            store_id=store_id or self.store_id,
            name=name,
            country_code=country_code,
            state_codes=["KA", "TN", "KL"] if state_codes is None else state_codes,
            pincodes=pincodes or [],
            is_active=is_active,
            created_at=self._next_timestamp(),
        ))

    async def courier(
        self,
        code: str,
        zones: Optional[list] = None,
        supports_cod: bool = True,
        max_weight_kg: float = 0,
        priority: int = 100,
        is_active: bool = True,
        serviceable_pincodes: Optional[list] = None,
        name: Optional[str] = None,
    ) -> Courier:
        return await self._save(Courier(
            store_id=self.store_id,
            code=code,
            name=name or code.title(),
            supports_cod=supports_cod,
            max_weight_kg=max_weight_kg,
            serviceable_zone_ids=[str(z.id) for z in zones or []],
            serviceable_pincodes=serviceable_pincodes or [],
            priority=priority,
            is_active=is_active,
            created_at=self._next_timestamp(),
        ))

    async def rule(
        self,
        zone: ShippingZone,
        courier: Courier,
        payment_method: str = "BOTH",
        min_weight: Optional[float] = None,
        max_weight: Optional[float] = None,
        min_order_value: Optional[float] = None,
        max_order_value: Optional[float] = None,
        priority: int = 100,
        is_active: bool = True,
    ) -> CourierRule:
        return await self._save(CourierRule(
            store_id=self.store_id,
            zone_id=zone.id,
            courier_id=courier.id,
            payment_method=payment_method,
            min_weight=min_weight,
            max_weight=max_weight,
            min_order_value=min_order_value,
            max_order_value=max_order_value,
            priority=priority,
            is_active=is_active,
            created_at=self._next_timestamp(),
        ))

    async def origin(
        self,
        name: str,
        pincode: str,
        state: str = "KA",
        priority: Optional[int] = None,
        supplier_id: Optional[uuid.UUID] = None,
        supported_couriers: Optional[list] = None,
        is_active: bool = True,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> SupplierOrigin:
        return await self._save(SupplierOrigin(
            store_id=self.store_id,
            supplier_id=supplier_id or uuid.uuid4(),
            name=name,
            street="Industrial Area",
            city="Bengaluru",
            state=state,
            pincode=pincode,
            country="IN",
            latitude=latitude,
            longitude=longitude,
            priority=priority,
            supported_courier_ids=[str(c.id) for c in supported_couriers or []],
            is_active=is_active,
            created_at=self._next_timestamp(),
        ))

    async def stock(
        self,
        origin: SupplierOrigin,
        variant_id: uuid.UUID,
        available_stock: int,
    ) -> OriginVariantInventory:
        return await self._save(OriginVariantInventory(
            origin_id=origin.id,
            variant_id=variant_id,
            supplier_id=origin.supplier_id,
            available_stock=available_stock,
        ))

    async def rate(
        self,
        zone: ShippingZone,
        min_value: float,
        max_value: float,
        base_rate: float,
        per_unit_rate: float = 0.0,
        cod_surcharge: float = 0.0,
        rate_type: RateType = RateType.WEIGHT,
    ) -> ShippingRate:
        return await self._save(ShippingRate(
            store_id=self.store_id,
            zone_id=zone.id,
            rate_type=rate_type.value,
            min_value=min_value,
            max_value=max_value,
            base_rate=base_rate,
            per_unit_rate=per_unit_rate,
            cod_surcharge=cod_surcharge,
        ))


@pytest.fixture
def factory(db, store_id) -> Factory:
    return Factory(db, store_id)


@pytest.fixture
def factory_for(db):
    """Builds a Factory bound to another store."""
    return lambda other_store_id: Factory(db, other_store_id)


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app with get_db bound to the test database."""
    from fulfillment_routing.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
