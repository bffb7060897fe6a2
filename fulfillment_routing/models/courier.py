"""Courier and courier rule models."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Float, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_routing.database import Base
from fulfillment_routing.db_types import JSONType, UUIDType


class PaymentMethod(str, Enum):
    """Normalized payment profile used for courier matching."""
    PREPAID = "PREPAID"
    COD = "COD"


class RulePaymentMethod(str, Enum):
    """Payment profile a courier rule applies to."""
    PREPAID = "PREPAID"
    COD = "COD"
    BOTH = "BOTH"


class Courier(Base):
    """
    Courier (carrier) usable by a store.

    Capabilities checked during assignment: active flag, COD support,
    max weight (0 = unlimited), serviceable zones and optional pincode
    allow-list.
    """
    __tablename__ = "couriers"
    __table_args__ = (
        Index("ix_couriers_store_active", "store_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    store_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        index=True
    )

    # Identification
    code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Unique courier code e.g., BLUEDART, DELHIVERY"
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Capabilities
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    supports_cod: Mapped[bool] = mapped_column(Boolean, default=True)
    max_weight_kg: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        comment="0 means unlimited"
    )

    serviceable_zone_ids: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        comment="Shipping zone ids this courier services"
    )
    serviceable_pincodes: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        comment="Optional pincode allow-list; empty means no restriction"
    )

    # Priority (lower = higher priority)
    priority: Mapped[int] = mapped_column(Integer, default=100)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def services_zone(self, zone_id) -> bool:
        return str(zone_id) in {str(z) for z in (self.serviceable_zone_ids or [])}

    def __repr__(self) -> str:
        return f"<Courier(code={self.code}, priority={self.priority})>"


class CourierRule(Base):
    """
    Priority-ordered rule binding a zone and payment profile to a courier.

    Weight and order value bounds are optional; when set, the lower bound
    is inclusive and the upper bound exclusive.
    """
    __tablename__ = "courier_rules"
    __table_args__ = (
        Index("ix_courier_rules_store_zone_active", "store_id", "zone_id", "is_active"),
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
    courier_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("couriers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    payment_method: Mapped[str] = mapped_column(
        String(20),
        default="BOTH",
        nullable=False,
        comment="PREPAID, COD, BOTH"
    )

    # Weight range in kg: [min, max)
    min_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Order value range: [min, max)
    min_order_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_order_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Priority (lower = higher priority)
    priority: Mapped[int] = mapped_column(Integer, default=100)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    courier: Mapped["Courier"] = relationship("Courier")

    def __repr__(self) -> str:
        return f"<CourierRule(zone={self.zone_id}, courier={self.courier_id}, priority={self.priority})>"
