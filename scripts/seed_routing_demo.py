"""Seed routing demo data - zones, couriers, rules, origins, stock and rates."""
import asyncio
import uuid

from sqlalchemy import select

from fulfillment_routing.database import get_db_session, init_db
from fulfillment_routing.models import (
    Courier,
    CourierRule,
    OriginVariantInventory,
    RateType,
    RulePaymentMethod,
    ShippingRate,
    ShippingZone,
    SupplierOrigin,
)
from fulfillment_routing.services.cache_service import get_cache

DEMO_STORE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEMO_SUPPLIER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
DEMO_VARIANT_IDS = [
    uuid.UUID("00000000-0000-0000-0000-0000000000b1"),
    uuid.UUID("00000000-0000-0000-0000-0000000000b2"),
]


async def seed_zones(db):
    """Seed shipping zones."""
    print("\n=== Seeding Shipping Zones ===")

    zones = [
        {"name": "IN-South", "country_code": "IN", "state_codes": ["KA", "TN", "KL", "AP", "TS"], "pincodes": []},
        {"name": "IN-North", "country_code": "IN", "state_codes": ["DL", "HR", "PB", "UP"], "pincodes": []},
        {"name": "Bangalore Metro", "country_code": "IN", "state_codes": [], "pincodes": ["560001", "560034", "560095"]},
    ]

    created = {}
    for z_data in zones:
        existing = await db.execute(
            select(ShippingZone).where(
                ShippingZone.store_id == DEMO_STORE_ID,
                ShippingZone.name == z_data["name"],
            )
        )
        zone = existing.scalar_one_or_none()
        if zone:
            print(f"  - {z_data['name']}: Already exists")
        else:
            zone = ShippingZone(store_id=DEMO_STORE_ID, **z_data)
            db.add(zone)
            await db.flush()
            print(f"  + {z_data['name']}: Created")
        created[zone.name] = zone

    return created


async def seed_couriers(db, zones):
    """Seed couriers servicing every demo zone."""
    print("\n=== Seeding Couriers ===")

    zone_ids = [str(z.id) for z in zones.values()]
    couriers = [
        {"code": "BLUEDART", "name": "BlueDart Express", "supports_cod": True, "max_weight_kg": 30.0, "priority": 1},
        {"code": "DELHIVERY", "name": "Delhivery Logistics", "supports_cod": True, "max_weight_kg": 0, "priority": 2},
        {"code": "DTDC", "name": "DTDC Courier", "supports_cod": False, "max_weight_kg": 20.0, "priority": 3},
        {"code": "INDIAPOST", "name": "India Post (Speed Post)", "supports_cod": False, "max_weight_kg": 35.0, "priority": 10},
    ]

    created = {}
    for c_data in couriers:
        existing = await db.execute(
            select(Courier).where(
                Courier.store_id == DEMO_STORE_ID,
                Courier.code == c_data["code"],
            )
        )
        courier = existing.scalar_one_or_none()
        if courier:
            print(f"  - {c_data['name']}: Already exists")
        else:
            courier = Courier(store_id=DEMO_STORE_ID, serviceable_zone_ids=zone_ids, **c_data)
            db.add(courier)
            await db.flush()
            print(f"  + {c_data['name']}: Created")
        created[courier.code] = courier

    return created


async def seed_rules(db, zones, couriers):
    """Seed courier rules for IN-South."""
    print("\n=== Seeding Courier Rules ===")

    south = zones["IN-South"]
    existing = await db.execute(
        select(CourierRule).where(CourierRule.zone_id == south.id)
    )
    if existing.scalars().first():
        print("  - IN-South rules: Already exist")
        return 0

    rules = [
        {"courier": "BLUEDART", "payment_method": RulePaymentMethod.COD, "min_weight": 0, "max_weight": 5, "priority": 1},
        {"courier": "DELHIVERY", "payment_method": RulePaymentMethod.BOTH, "min_weight": 5, "max_weight": 30, "priority": 2},
        {"courier": "DTDC", "payment_method": RulePaymentMethod.PREPAID, "min_weight": None, "max_weight": None, "priority": 3},
    ]
    for r_data in rules:
        db.add(CourierRule(
            store_id=DEMO_STORE_ID,
            zone_id=south.id,
            courier_id=couriers[r_data["courier"]].id,
            payment_method=r_data["payment_method"].value,
            min_weight=r_data["min_weight"],
            max_weight=r_data["max_weight"],
            priority=r_data["priority"],
        ))
        print(f"  + {r_data['courier']} ({r_data['payment_method'].value}): Created")

    return len(rules)


async def seed_rates(db, zones):
    """Seed weight slabs for every zone."""
    print("\n=== Seeding Shipping Rates ===")

    count = 0
    for zone in zones.values():
        existing = await db.execute(
            select(ShippingRate).where(ShippingRate.zone_id == zone.id)
        )
        if existing.scalars().first():
            continue
        db.add(ShippingRate(
            store_id=DEMO_STORE_ID, zone_id=zone.id, rate_type=RateType.WEIGHT.value,
            min_value=0, max_value=5, base_rate=40.0, per_unit_rate=10.0, cod_surcharge=25.0,
        ))
        db.add(ShippingRate(
            store_id=DEMO_STORE_ID, zone_id=zone.id, rate_type=RateType.WEIGHT.value,
            min_value=5, max_value=50, base_rate=90.0, per_unit_rate=8.0, cod_surcharge=40.0,
        ))
        count += 2

    print(f"  + {count} rate slabs created")
    return count


async def seed_origins(db, couriers):
    """Seed two supplier origins with stock for the demo variants."""
    print("\n=== Seeding Supplier Origins ===")

    origins = [
        {"name": "Bangalore Hub", "street": "Whitefield Main Rd", "city": "Bengaluru", "state": "KA",
         "pincode": "560066", "latitude": 12.9698, "longitude": 77.7500, "priority": 1},
        {"name": "Chennai Hub", "street": "Guindy Industrial Estate", "city": "Chennai", "state": "TN",
         "pincode": "600032", "latitude": 13.0108, "longitude": 80.2206, "priority": 2},
    ]

    courier_ids = [str(c.id) for c in couriers.values()]
    for o_data in origins:
        existing = await db.execute(
            select(SupplierOrigin).where(
                SupplierOrigin.store_id == DEMO_STORE_ID,
                SupplierOrigin.name == o_data["name"],
            )
        )
        if existing.scalar_one_or_none():
            print(f"  - {o_data['name']}: Already exists")
            continue

        origin = SupplierOrigin(
            store_id=DEMO_STORE_ID,
            supplier_id=DEMO_SUPPLIER_ID,
            country="IN",
            supported_courier_ids=courier_ids,
            **o_data,
        )
        db.add(origin)
        await db.flush()
        for variant_id in DEMO_VARIANT_IDS:
            db.add(OriginVariantInventory(
                origin_id=origin.id,
                variant_id=variant_id,
                supplier_id=DEMO_SUPPLIER_ID,
                available_stock=25,
            ))
        print(f"  + {o_data['name']}: Created with stock for {len(DEMO_VARIANT_IDS)} variants")


async def main():
    """Run seed."""
    print("=" * 50)
    print("  Fulfillment Routing Demo Seeding")
    print("=" * 50)

    await init_db()

    async with get_db_session() as db:
        zones = await seed_zones(db)
        couriers = await seed_couriers(db, zones)
        await seed_rules(db, zones, couriers)
        await seed_rates(db, zones)
        await seed_origins(db, couriers)

    # Zone edits make cached address lookups stale
    cleared = await get_cache().invalidate_zones(str(DEMO_STORE_ID))
    print(f"\n  Invalidated {cleared} cached zone lookups")

    print("\n" + "=" * 50)
    print("  Seeding Complete!")
    print(f"  Store: {DEMO_STORE_ID}")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(main())
