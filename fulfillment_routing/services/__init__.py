# Services module
from fulfillment_routing.services.zone_service import ZoneService
from fulfillment_routing.services.courier_service import CourierAssignmentService
from fulfillment_routing.services.origin_scorer import OriginScorer
from fulfillment_routing.services.fulfillment_router import FulfillmentRouter
from fulfillment_routing.services.snapshot_service import FulfillmentSnapshotService
from fulfillment_routing.services.audit_service import AuditService

__all__ = [
    "ZoneService",
    "CourierAssignmentService",
    "OriginScorer",
    "FulfillmentRouter",
    "FulfillmentSnapshotService",
    "AuditService",
]
