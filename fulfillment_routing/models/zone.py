"""Shipping zone model: a store's named delivery coverage area."""
import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import String, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_routing.database import Base
from fulfillment_routing.db_types import JSONType, UUIDType


class ShippingZone(Base):
    """
    Shipping zone for a store.

    An address belongs to a zone when the country matches AND either its
    pincode is listed or its state code is listed.

    Example:
    - IN-South: country IN, states [TN, KA], pincodes [600001, 560001]
    """
    __tablename__ = "shipping_zones"
    __table_args__ = (
        Index("ix_shipping_zones_store_country_active", "store_id", "country_code", "is_active"),
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

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # ISO country code, stored uppercase
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)

    state_codes: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        comment="State codes covered by this zone"
    )
    pincodes: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        comment="Pincodes covered by this zone"
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

    def covers_pincode(self, pincode: str) -> bool:
        return bool(pincode) and pincode in (self.pincodes or [])

    def covers_state(self, state: str) -> bool:
        return bool(state) and state in (self.state_codes or [])

    def __repr__(self) -> str:
        return f"<ShippingZone(name={self.name}, country={self.country_code})>"
