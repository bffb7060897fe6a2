"""
Distance estimators for origin scoring.

The scorer only sees the DistanceEstimator interface, so the pincode
heuristic can be replaced by real geocoding without touching weights.
Estimators are registered by DistanceEstimatorType and resolved once.
"""
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional

from fulfillment_routing.config import settings
from fulfillment_routing.models.origin import SupplierOrigin
from fulfillment_routing.schemas.routing import DeliveryAddress

EARTH_RADIUS_KM = 6371

SAME_PINCODE_DISTANCE = 0.0
SAME_PREFIX_DISTANCE = 10.0  # ~10km, same city/region
DIFFERENT_REGION_DISTANCE = 100.0  # ~100km+


class DistanceEstimatorType(str, Enum):
    PINCODE_PREFIX = "PINCODE_PREFIX"
    HAVERSINE = "HAVERSINE"


class DistanceEstimator(ABC):
    """Abstract distance estimator between an origin and a delivery address."""

    @abstractmethod
    def estimate(self, origin: SupplierOrigin, address: DeliveryAddress) -> float:
        """Return an approximate distance (km-like units, lower is closer)."""
        ...


class PincodePrefixEstimator(DistanceEstimator):
    """Placeholder heuristic based on pincode regions."""

    def estimate(self, origin: SupplierOrigin, address: DeliveryAddress) -> float:
        return estimate_pincode_distance(origin.pincode, address.zip)


class HaversineEstimator(DistanceEstimator):
    """Great-circle distance when both ends have coordinates, pincode heuristic otherwise."""

    def __init__(self, fallback: Optional[DistanceEstimator] = None):
        self.fallback = fallback or PincodePrefixEstimator()

    def estimate(self, origin: SupplierOrigin, address: DeliveryAddress) -> float:
        if origin.has_coordinates and address.has_coordinates:
            return haversine_distance(
                origin.latitude, origin.longitude,
                address.latitude, address.longitude,
            )
        return self.fallback.estimate(origin, address)


def estimate_pincode_distance(pincode1: str, pincode2: str) -> float:
    """Equal pincode -> 0, same 3-digit prefix -> 10, else 100."""
    if pincode1 == pincode2:
        return SAME_PINCODE_DISTANCE
    if pincode1[:3] == pincode2[:3]:
        return SAME_PREFIX_DISTANCE
    return DIFFERENT_REGION_DISTANCE


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """Calculate distance between two points in km."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


DISTANCE_ESTIMATORS: Dict[DistanceEstimatorType, Callable[[], DistanceEstimator]] = {
    DistanceEstimatorType.PINCODE_PREFIX: PincodePrefixEstimator,
    DistanceEstimatorType.HAVERSINE: HaversineEstimator,
}

_estimator_instance: Optional[DistanceEstimator] = None


def create_distance_estimator(estimator_type: DistanceEstimatorType) -> DistanceEstimator:
    return DISTANCE_ESTIMATORS[estimator_type]()


def get_distance_estimator() -> DistanceEstimator:
    """Return the configured estimator (singleton).

    Raises ValueError for an unknown DISTANCE_ESTIMATOR setting.
    """
    global _estimator_instance
    if _estimator_instance is None:
        _estimator_instance = create_distance_estimator(DistanceEstimatorType(settings.DISTANCE_ESTIMATOR))
    return _estimator_instance


def reset_distance_estimator() -> None:
    """Reset the estimator singleton (useful for testing)."""
    global _estimator_instance
    _estimator_instance = None
