"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
Decision records (snapshots, routed items, shipment groups) inherit from
FrozenSchema so they cannot be edited after construction.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class CourierResponse(BaseResponseSchema):
            id: UUID
            code: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for input schemas.

    These schemas accept string UUIDs from the caller and convert to UUID objects.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class FrozenSchema(BaseModel):
    """Immutable value object; build a new instance instead of editing one."""
    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )
