"""
Snapshot Builder.

Turns a resolver decision into a frozen CourierSnapshot. Snapshots are
value objects: a reassignment builds a new one, nothing edits an old one.
"""
from datetime import datetime, timezone
from typing import Optional

from fulfillment_routing.models.courier import Courier, CourierRule
from fulfillment_routing.models.fulfillment_route import CourierAssignment
from fulfillment_routing.schemas.courier import CourierSnapshot

DEFAULT_COURIER_REASON = "Default courier (no matching rules found)"
MANUAL_ASSIGNMENT_REASON = "Manually assigned by admin"


def _fmt(value: Optional[float], default: str) -> str:
    if value is None:
        return default
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def describe_rule_match(rule: CourierRule, courier: Courier) -> str:
    """Human-readable explanation of why a rule selected a courier."""
    parts = [f"Rule priority {rule.priority}"]
    if rule.min_weight is not None or rule.max_weight is not None:
        parts.append(f"weight {_fmt(rule.min_weight, '0')}-{_fmt(rule.max_weight, '∞')} kg")
    if rule.min_order_value is not None or rule.max_order_value is not None:
        parts.append(f"value {_fmt(rule.min_order_value, '0')}-{_fmt(rule.max_order_value, '∞')}")
    parts.append(f"courier priority {courier.priority}")
    return ", ".join(parts)


def build_courier_snapshot(
    courier: Courier,
    reason: str,
    rule: Optional[CourierRule] = None,
    assigned_at: Optional[datetime] = None,
) -> CourierSnapshot:
    return CourierSnapshot(
        courier_id=courier.id,
        courier_name=courier.name,
        courier_code=courier.code,
        rule_id=rule.id if rule is not None else None,
        assigned_at=assigned_at or datetime.now(timezone.utc),
        reason=reason,
    )


def snapshot_from_assignment(assignment: CourierAssignment) -> CourierSnapshot:
    """Rebuild the value object from a persisted assignment row."""
    return CourierSnapshot(
        courier_id=assignment.courier_id,
        courier_name=assignment.courier_name,
        courier_code=assignment.courier_code,
        rule_id=assignment.rule_id,
        assigned_at=assignment.assigned_at,
        reason=assignment.reason,
    )
