"""HTTP surface: tenancy header, status mapping and the freeze/reassign workflow."""
import uuid

import pytest
from sqlalchemy import select

from fulfillment_routing.models import AuditLog


@pytest.fixture
async def seeded(db, factory):
    zone = await factory.zone(name="IN-South", state_codes=["KA"])
    await factory.rate(zone, 0, 50, base_rate=40)
    bluedart = await factory.courier("BLUEDART", zones=[zone], priority=1)
    delhivery = await factory.courier("DELHIVERY", zones=[zone], priority=2)
    await factory.rule(zone, bluedart, payment_method="COD", max_weight=5, priority=1)
    origin = await factory.origin("Bangalore Hub", "560001", priority=1)
    variant_id = uuid.uuid4()
    await factory.stock(origin, variant_id, 10)
    await db.commit()
    return {
        "zone_id": str(zone.id),
        "bluedart_id": str(bluedart.id),
        "delhivery_id": str(delhivery.id),
        "origin_id": str(origin.id),
        "variant_id": str(variant_id),
    }


@pytest.fixture
def headers(store_id):
    return {"X-Store-ID": str(store_id)}


def cart_body(store_id, variant_id, quantity=2, payment_method="cod"):
    return {
        "store_id": str(store_id),
        "payment_method": payment_method,
        "order_value": 1499,
        "delivery_address": {
            "street": "12 MG Road",
            "city": "Bengaluru",
            "state": "KA",
            "zip": "560001",
            "country": "in",
        },
        "cart_items": [{"variant_id": variant_id, "quantity": quantity}],
    }


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"


class TestCourierEndpoints:
    async def test_assign_courier(self, client, seeded, store_id, headers):
        response = await client.post(
            "/api/v1/couriers/assign",
            headers=headers,
            json={
                "store_id": str(store_id),
                "zone_id": seeded["zone_id"],
                "weight": 2,
                "payment_method": "cod",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["courier_code"] == "BLUEDART"
        assert data["reason"].startswith("Rule priority 1")

    async def test_no_courier_maps_to_422(self, client, db, factory, seeded, store_id, headers):
        north = await factory.zone(name="IN-North", state_codes=["DL"])
        await db.commit()

        response = await client.post(
            "/api/v1/couriers/assign",
            headers=headers,
            json={"store_id": str(store_id), "zone_id": str(north.id), "weight": 2},
        )

        assert response.status_code == 422
        assert 'zone "IN-North"' in response.json()["detail"]

    async def test_unknown_zone_maps_to_404(self, client, seeded, store_id, headers):
        response = await client.post(
            "/api/v1/couriers/assign",
            headers=headers,
            json={"store_id": str(store_id), "zone_id": str(uuid.uuid4()), "weight": 2},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "ZoneNotFoundError"

    async def test_missing_store_header(self, client, seeded, store_id):
        response = await client.post(
            "/api/v1/couriers/assign",
            json={"store_id": str(store_id), "zone_id": seeded["zone_id"], "weight": 2},
        )

        assert response.status_code == 422

    async def test_invalid_store_header(self, client, seeded, store_id):
        response = await client.post(
            "/api/v1/couriers/assign",
            headers={"X-Store-ID": "not-a-uuid"},
            json={"store_id": str(store_id), "zone_id": seeded["zone_id"], "weight": 2},
        )

        assert response.status_code == 400

    async def test_store_mismatch(self, client, seeded, headers):
        response = await client.post(
            "/api/v1/couriers/assign",
            headers=headers,
            json={"store_id": str(uuid.uuid4()), "zone_id": seeded["zone_id"], "weight": 2},
        )

        assert response.status_code == 403

    async def test_available_couriers(self, client, seeded, headers):
        response = await client.get(
            "/api/v1/couriers/available",
            headers=headers,
            params={"zone_id": seeded["zone_id"], "payment_method": "prepaid", "weight": 1},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [c["code"] for c in data["items"]] == ["BLUEDART", "DELHIVERY"]


class TestRoutePreview:
    async def test_route_preview(self, client, seeded, store_id, headers):
        response = await client.post(
            "/api/v1/fulfillment/route",
            headers=headers,
            json=cart_body(store_id, seeded["variant_id"]),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["items"][0]["origin_id"] == seeded["origin_id"]
        assert data["shipment_groups"][0]["courier_id"] == seeded["bluedart_id"]
        assert data["total_shipping_cost"] == 40

    async def test_failed_preview_is_not_an_http_error(self, client, session_factory, seeded, store_id, headers):
        body = cart_body(store_id, seeded["variant_id"])
        body["cart_items"].append({"variant_id": str(uuid.uuid4()), "quantity": 1})

        response = await client.post("/api/v1/fulfillment/route", headers=headers, json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert "No active origin with sufficient stock" in data["error"]
        assert data["items"] is None

        async with session_factory() as session:
            audited = (await session.execute(select(AuditLog))).scalars().all()
        assert audited == []


class TestFreezeWorkflow:
    async def test_freeze_then_conflict(self, client, seeded, store_id, headers):
        body = cart_body(store_id, seeded["variant_id"])

        first = await client.post("/api/v1/fulfillment/orders/ORD-9001/freeze", headers=headers, json=body)
        second = await client.post("/api/v1/fulfillment/orders/ORD-9001/freeze", headers=headers, json=body)

        assert first.status_code == 201
        data = first.json()
        assert data["route"]["order_ref"] == "ORD-9001"
        assert data["route"]["payment_method"] == "COD"
        assert data["courier_snapshot"]["courier_code"] == "BLUEDART"
        assert second.status_code == 409

    async def test_freeze_routing_failure(self, client, seeded, store_id, headers):
        response = await client.post(
            "/api/v1/fulfillment/orders/ORD-9002/freeze",
            headers=headers,
            json=cart_body(store_id, seeded["variant_id"], quantity=50),
        )

        assert response.status_code == 422
        assert len(response.json()["errors"]) == 1

        missing = await client.get("/api/v1/fulfillment/orders/ORD-9002", headers=headers)
        assert missing.status_code == 404

    async def test_reassign_and_history(self, client, seeded, store_id, headers):
        await client.post(
            "/api/v1/fulfillment/orders/ORD-9003/freeze",
            headers=headers,
            json=cart_body(store_id, seeded["variant_id"]),
        )

        reassign = await client.patch(
            "/api/v1/fulfillment/orders/ORD-9003/courier",
            headers=headers,
            json={"courier_id": seeded["delhivery_id"], "reason": "Faster pickup"},
        )
        assert reassign.status_code == 200
        assert reassign.json()["courier_code"] == "DELHIVERY"
        assert reassign.json()["rule_id"] is None

        route = await client.get("/api/v1/fulfillment/orders/ORD-9003", headers=headers)
        assert route.status_code == 200
        history = route.json()["courier_assignments"]
        assert [a["courier_code"] for a in history] == ["BLUEDART", "DELHIVERY"]
        assert [a["assigned_by"] for a in history] == ["AUTO", "ADMIN"]
        assert history[1]["reason"] == "Faster pickup"

    async def test_reassign_after_shipping_is_rejected(self, client, seeded, store_id, headers):
        await client.post(
            "/api/v1/fulfillment/orders/ORD-9004/freeze",
            headers=headers,
            json=cart_body(store_id, seeded["variant_id"]),
        )
        shipped = await client.patch(
            "/api/v1/fulfillment/orders/ORD-9004/status",
            headers=headers,
            json={"status": "shipped"},
        )
        assert shipped.status_code == 200
        assert shipped.json()["status"] == "SHIPPED"

        response = await client.patch(
            "/api/v1/fulfillment/orders/ORD-9004/courier",
            headers=headers,
            json={"courier_id": seeded["delhivery_id"]},
        )

        assert response.status_code == 400
        assert response.json()["type"] == "ReassignmentNotAllowedError"
