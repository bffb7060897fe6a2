"""
Frozen fulfillment routing records.

A FulfillmentRoute is written once per order when routing succeeds and is
never recomputed. Courier decisions are kept as an append-only list of
CourierAssignment rows: the latest row is the current courier, older rows
are the audit trail of reassignments.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Float, Text
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_routing.database import Base
from fulfillment_routing.db_types import JSONType, UUIDType


class RouteStatus(str, Enum):
    """Order-level fulfillment status as seen by the routing record."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class AssignmentSource(str, Enum):
    """Who produced a courier snapshot."""
    AUTO = "AUTO"
    ADMIN = "ADMIN"


class FulfillmentRoute(Base):
    """Immutable routing decision for one order."""
    __tablename__ = "fulfillment_routes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    store_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    order_ref: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Caller's order identifier"
    )

    zone_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Normalized payment profile: PREPAID or COD"
    )

    delivery_address: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    items: Mapped[List[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    shipment_groups: Mapped[List[dict[str, Any]]] = mapped_column(JSONType, nullable=False)

    total_shipping_cost: Mapped[float] = mapped_column(Float, default=0.0)
    routing_score: Mapped[float] = mapped_column(Float, default=0.0)

    status: Mapped[str] = mapped_column(
        String(20),
        default=RouteStatus.PENDING.value,
        nullable=False,
        comment="PENDING, CONFIRMED, SHIPPED, DELIVERED, CANCELLED"
    )

    routed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    courier_assignments: Mapped[List["CourierAssignment"]] = relationship(
        "CourierAssignment",
        back_populates="route",
        order_by="CourierAssignment.sequence",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("store_id", "order_ref", name="uq_fulfillment_route_store_order"),
    )

    def __repr__(self) -> str:
        return f"<FulfillmentRoute(order_ref={self.order_ref}, status={self.status})>"


class CourierAssignment(Base):
    """One frozen courier snapshot; rows are appended, never updated."""
    __tablename__ = "courier_assignments"
    __table_args__ = (
        UniqueConstraint(
            "fulfillment_route_id", "sequence",
            name="uq_courier_assignment_sequence"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    fulfillment_route_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("fulfillment_routes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    courier_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    courier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    courier_code: Mapped[str] = mapped_column(String(20), nullable=False)
    rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_by: Mapped[str] = mapped_column(
        String(20),
        default=AssignmentSource.AUTO.value,
        nullable=False
    )

    route: Mapped["FulfillmentRoute"] = relationship(
        "FulfillmentRoute",
        back_populates="courier_assignments"
    )

    def __repr__(self) -> str:
        return f"<CourierAssignment(route={self.fulfillment_route_id}, seq={self.sequence}, courier={self.courier_code})>"
