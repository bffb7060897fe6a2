"""Shipping rate slab model used by the zone rate-table provider."""
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Float, Index
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_routing.database import Base
from fulfillment_routing.db_types import UUIDType


class RateType(str, Enum):
    """Dimension a rate slab is keyed on."""
    WEIGHT = "WEIGHT"
    ORDER_VALUE = "ORDER_VALUE"


class ShippingRate(Base):
    """
    Rate slab for a shipping zone.

    Slabs are non-overlapping per zone and rate type; min_value is
    inclusive, max_value exclusive.

    total = base_rate + (value - min_value) * per_unit_rate [+ cod_surcharge]
    """
    __tablename__ = "shipping_rates"
    __table_args__ = (
        Index("ix_shipping_rates_zone_type_active", "zone_id", "rate_type", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    store_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    zone_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("shipping_zones.id", ondelete="CASCADE"),
        nullable=False
    )

    rate_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="WEIGHT or ORDER_VALUE"
    )

    min_value: Mapped[float] = mapped_column(Float, nullable=False)
    max_value: Mapped[float] = mapped_column(Float, nullable=False)

    base_rate: Mapped[float] = mapped_column(Float, default=0.0)
    per_unit_rate: Mapped[float] = mapped_column(Float, default=0.0)
    cod_surcharge: Mapped[float] = mapped_column(Float, default=0.0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShippingRate(zone={self.zone_id}, {self.rate_type} {self.min_value}-{self.max_value})>"
