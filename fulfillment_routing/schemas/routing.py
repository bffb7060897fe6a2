"""
Fulfillment Routing Schemas.

Covers:
1. Routing input - cart items, delivery address, payment profile
2. Scoring output - per-origin score breakdown
3. Routing output - routed items, shipment groups, aggregate result
4. Shipping quotes from rate providers
5. Frozen route responses
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from uuid import UUID

from pydantic import Field, computed_field, field_validator

from fulfillment_routing.models.fulfillment_route import RouteStatus
from fulfillment_routing.schemas.base import BaseCreateSchema, BaseResponseSchema, FrozenSchema
from fulfillment_routing.schemas.courier import CourierAssignmentResponse, CourierSnapshot


class ShipmentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ==================== Input ====================

class DeliveryAddress(BaseCreateSchema):
    """Customer delivery address."""
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = Field(..., min_length=1, description="Pincode / postal code")
    country: str = Field(..., min_length=2, max_length=2)
    # Optional caller-supplied coordinates; no geocoding happens here
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator('country', mode='before')
    @classmethod
    def uppercase_country(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class CartItem(BaseCreateSchema):
    variant_id: UUID
    quantity: int = Field(..., ge=1)
    supplier_id: Optional[UUID] = None  # Restricts candidate origins when known
    unit_weight_kg: Optional[float] = Field(None, gt=0)


class RouteFulfillmentRequest(BaseCreateSchema):
    """Input for routing a whole cart."""
    cart_items: List[CartItem] = Field(..., min_length=1)
    delivery_address: DeliveryAddress
    store_id: UUID
    payment_method: str = "prepaid"
    order_value: float = Field(default=0, ge=0)


class FreezeRouteRequest(RouteFulfillmentRequest):
    """Route a cart and freeze the decision onto an order."""
    pass


# ==================== Scoring ====================

class OriginScore(FrozenSchema):
    """Score breakdown for one candidate origin (lower is better)."""
    origin_id: UUID
    score: float
    distance: float
    shipping_cost: Optional[float] = None
    courier_id: Optional[UUID] = None
    zone_id: Optional[UUID] = None


class ShippingQuote(FrozenSchema):
    """Result of a rate provider calculation."""
    zone_id: Optional[UUID] = None
    zone_name: Optional[str] = None
    rate_type: str
    slab_min: Optional[float] = None
    slab_max: Optional[float] = None
    base_rate: float = 0.0
    variable_rate: float = 0.0
    cod_surcharge: float = 0.0
    total_shipping: float
    calculated_at: datetime


# ==================== Routing Output ====================

class OriginAddress(FrozenSchema):
    name: str
    street: Optional[str] = None
    city: str
    state: str
    pincode: str
    country: str


class FulfillmentRouteItem(FrozenSchema):
    """Frozen origin + courier decision for one line item."""
    variant_id: UUID
    quantity: int
    supplier_id: UUID
    origin_id: UUID
    origin_address: OriginAddress
    courier_id: Optional[UUID] = None
    zone_id: Optional[UUID] = None
    shipping_cost: float = 0.0
    weight_kg: float = 0.0
    score: float


class ShipmentGroupItem(FrozenSchema):
    variant_id: UUID
    quantity: int


class ShipmentGroup(FrozenSchema):
    """Items routed to the same origin, shipped together under one courier."""
    origin_id: UUID
    origin_name: str
    items: List[ShipmentGroupItem]
    shipping_cost: float
    weight_kg: float = 0.0
    courier_id: Optional[UUID] = None
    zone_id: Optional[UUID] = None
    courier_conflict: bool = False  # Items in the group resolved to different couriers
    status: ShipmentStatus = ShipmentStatus.PENDING


class FulfillmentRouteResult(BaseCreateSchema):
    """All-or-nothing routing outcome."""
    success: bool
    items: Optional[List[FulfillmentRouteItem]] = None
    shipment_groups: Optional[List[ShipmentGroup]] = None
    error: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def total_shipping_cost(self) -> float:
        return round(sum(g.shipping_cost for g in self.shipment_groups or []), 2)


# ==================== Frozen Route ====================

class FulfillmentRouteResponse(BaseResponseSchema):
    id: UUID
    store_id: UUID
    order_ref: str
    zone_id: Optional[UUID] = None
    payment_method: str
    delivery_address: dict
    items: List[FulfillmentRouteItem]
    shipment_groups: List[ShipmentGroup]
    total_shipping_cost: float
    routing_score: float
    status: str
    routed_at: datetime
    courier_assignments: List[CourierAssignmentResponse] = []


class FreezeRouteResponse(BaseCreateSchema):
    route: FulfillmentRouteResponse
    courier_snapshot: Optional[CourierSnapshot] = None


class UpdateRouteStatusRequest(BaseCreateSchema):
    status: RouteStatus

    @field_validator('status', mode='before')
    @classmethod
    def uppercase_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v
