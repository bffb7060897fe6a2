import logging
import uuid
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    ORIGIN_SELECTED = "ORIGIN_SELECTED"
    FULFILLMENT_ROUTED = "FULFILLMENT_ROUTED"
    ROUTE_FROZEN = "ROUTE_FROZEN"
    COURIER_REASSIGNED = "COURIER_REASSIGNED"


class AuditService:
    """
    Audit sink for routing decisions.

    Writes happen inside a SAVEPOINT so a failing insert never poisons the
    caller's transaction; failures are logged and the decision proceeds.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        action: str,
        entity_type: str,
        description: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        store_id: Optional[uuid.UUID] = None,
        entity_id: Optional[Any] = None,
    ) -> Optional[AuditLog]:
        """
        Record an audit event.

        Args:
            action: ORIGIN_SELECTED, FULFILLMENT_ROUTED, COURIER_REASSIGNED, ...
            entity_type: VARIANT, ORDER, FULFILLMENT_ROUTE, ...
            description: Human-readable description
            payload: JSON-serialisable event details
            store_id: Tenant the event belongs to
            entity_id: Identifier of the affected entity

        Returns:
            The created AuditLog entry, or None when the write failed
        """
        audit_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            store_id=store_id,
            description=description,
            payload=payload,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(audit_log)
            return audit_log
        except SQLAlchemyError as e:
            logger.warning(f"Failed to write audit event {action} for {entity_type}:{entity_id}: {e}")
            return None
