"""
Routing error taxonomy.

Rule and validation failures are recovered inside the resolvers; these
exceptions are raised only once every option is exhausted. Messages are
written for operators fixing zone/courier configuration.
"""
from typing import List, Optional


class RoutingError(Exception):
    """Base class for fulfillment routing errors."""
    pass


class ZoneNotFoundError(RoutingError):
    """No active shipping zone matches an address or zone id."""

    def __init__(self, message: str, zone_id: Optional[str] = None):
        super().__init__(message)
        self.zone_id = zone_id


class NoCourierAvailableError(RoutingError):
    """Neither a matching rule nor a fallback courier qualifies."""

    def __init__(
        self,
        zone_name: str,
        payment_method: str,
        weight: float,
        order_value: float,
    ):
        self.zone_name = zone_name
        self.payment_method = payment_method
        self.weight = weight
        self.order_value = order_value
        super().__init__(
            f'No courier found for zone "{zone_name}" with payment method '
            f'"{payment_method}", weight {weight} kg, order value {order_value}'
        )


class RateNotFoundError(RoutingError):
    """No shipping rate slab covers the requested weight or order value."""
    pass


class CourierNotFoundError(RoutingError):
    """A courier id does not resolve to an active courier of the store."""
    pass


class RoutingFailedError(RoutingError):
    """One or more cart items could not be routed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class RouteAlreadyFrozenError(RoutingError):
    """An order already carries a frozen routing record."""

    def __init__(self, order_ref: str):
        self.order_ref = order_ref
        super().__init__(f"Fulfillment route already frozen for order {order_ref}")


class RouteNotFoundError(RoutingError):
    """No frozen routing record exists for an order."""

    def __init__(self, order_ref: str):
        self.order_ref = order_ref
        super().__init__(f"No fulfillment route found for order {order_ref}")


class ReassignmentNotAllowedError(RoutingError):
    """A manual courier reassignment was rejected."""
    pass
