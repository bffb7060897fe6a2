"""Supplier origin (warehouse) and per-origin variant inventory models."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Float, Text
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_routing.database import Base
from fulfillment_routing.db_types import JSONType, UUIDType


class SupplierOrigin(Base):
    """
    Physical stocking location owned by a supplier.

    A supplier may run several origins; each carries its own address,
    optional coordinates, admin priority and the couriers it can hand to.
    """
    __tablename__ = "supplier_origins"
    __table_args__ = (
        Index("ix_supplier_origins_store_active", "store_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    store_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Address
    street: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="IN")

    # Geo (optional, used by the Haversine estimator)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Priority (lower = higher priority); NULL falls back to DEFAULT_ORIGIN_PRIORITY
    priority: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    supported_courier_ids: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        comment="Couriers that pick up from this origin"
    )

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

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self) -> str:
        return f"<SupplierOrigin(name={self.name}, pincode={self.pincode})>"


class OriginVariantInventory(Base):
    """
    Point-in-time stock of one variant at one origin.

    The routing engine reads this table and never writes it; reservation
    happens downstream.
    """
    __tablename__ = "origin_variant_inventory"
    __table_args__ = (
        UniqueConstraint(
            "origin_id", "variant_id",
            name="uq_origin_variant_inventory"
        ),
        Index("ix_origin_variant_inventory_variant_stock", "variant_id", "available_stock"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    origin_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("supplier_origins.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    supplier_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    available_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    origin: Mapped["SupplierOrigin"] = relationship("SupplierOrigin")

    def __repr__(self) -> str:
        return f"<OriginVariantInventory(origin={self.origin_id}, variant={self.variant_id}, stock={self.available_stock})>"
