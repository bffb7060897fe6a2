from fulfillment_routing.models.zone import ShippingZone
from fulfillment_routing.models.courier import Courier, CourierRule, PaymentMethod, RulePaymentMethod
from fulfillment_routing.models.origin import SupplierOrigin, OriginVariantInventory
from fulfillment_routing.models.shipping_rate import ShippingRate, RateType
from fulfillment_routing.models.fulfillment_route import (
    FulfillmentRoute,
    CourierAssignment,
    RouteStatus,
    AssignmentSource,
)
from fulfillment_routing.models.audit_log import AuditLog

__all__ = [
    "ShippingZone",
    "Courier",
    "CourierRule",
    "PaymentMethod",
    "RulePaymentMethod",
    "SupplierOrigin",
    "OriginVariantInventory",
    "ShippingRate",
    "RateType",
    "FulfillmentRoute",
    "CourierAssignment",
    "RouteStatus",
    "AssignmentSource",
    "AuditLog",
]
