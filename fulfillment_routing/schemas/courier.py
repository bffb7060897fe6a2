"""
Courier Assignment Schemas.

Covers:
1. CourierSnapshot - frozen courier decision
2. Courier validation outcome
3. Assign / reassign request payloads
4. Courier listing responses
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import Field

from fulfillment_routing.schemas.base import BaseCreateSchema, BaseResponseSchema, FrozenSchema


class CourierSnapshot(FrozenSchema):
    """Courier decision frozen at order time."""
    courier_id: UUID
    courier_name: str
    courier_code: str
    rule_id: Optional[UUID] = None  # None for fallback and manual assignments
    assigned_at: datetime
    reason: str


class CourierValidation(FrozenSchema):
    """Outcome of validating one courier against an order profile."""
    valid: bool
    reason: Optional[str] = None


class AssignCourierRequest(BaseCreateSchema):
    """Input for a courier-only decision."""
    store_id: UUID
    zone_id: UUID
    weight: float = Field(..., ge=0, description="Total weight in kg")
    order_value: float = Field(default=0, ge=0)
    payment_method: str = Field(
        default="prepaid",
        description="stripe, paypal, prepaid, cod or cod_partial"
    )
    pincode: Optional[str] = None


class ReassignCourierRequest(BaseCreateSchema):
    """Manual courier reassignment for a frozen order."""
    courier_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class CourierResponse(BaseResponseSchema):
    id: UUID
    code: str
    name: str
    supports_cod: bool
    max_weight_kg: float
    priority: int
    is_active: bool


class CourierAssignmentResponse(BaseResponseSchema):
    """One entry of an order's courier history."""
    sequence: int
    courier_id: UUID
    courier_name: str
    courier_code: str
    rule_id: Optional[UUID] = None
    reason: str
    assigned_at: datetime
    assigned_by: str


class AvailableCourierList(BaseCreateSchema):
    items: List[CourierResponse]
    total: int
