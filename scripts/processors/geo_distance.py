"""
Geodesic distance utilities.

All distances are computed in meters (the canonical unit for this project).
Callers that think in other units convert at their boundary with the helpers
below: park linking scores location similarity in kilometers, the nearby-parks
endpoint accepts a radius in kilometers, and BLM results are also reported in
miles.
"""

import math
from numbers import Real

from scripts.processors.matching_schemas import METERS_PER_MILE, EntityValidationError

EARTH_RADIUS_M = 6_371_000.0  # Mean Earth radius

Coordinate = tuple[float, float]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points.

    Coordinates are not range-checked here; see validate_coordinates().

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        Distance in meters (exactly 0.0 for identical points)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def km_to_meters(km: float) -> float:
    return km * 1000


def meters_to_km(meters: float) -> float:
    return meters / 1000


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def bounding_box(
    latitude: float, longitude: float, radius_m: float
) -> tuple[float, float, float, float]:
    """
    Compute a latitude/longitude box that contains every point within a radius.

    Used to narrow database candidate queries before exact haversine
    filtering. The box may include points outside the radius but never
    excludes one inside it. Near the poles or across the antimeridian the
    longitude range widens to [-180, 180].

    Args:
        latitude: Center latitude in degrees
        longitude: Center longitude in degrees
        radius_m: Radius in meters

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    delta_lat = math.degrees(radius_m / EARTH_RADIUS_M)
    min_lat = max(-90.0, latitude - delta_lat)
    max_lat = min(90.0, latitude + delta_lat)

    if min_lat <= -90.0 or max_lat >= 90.0:
        return min_lat, max_lat, -180.0, 180.0

    # Longitude degrees shrink toward the poles; size the box for the worst edge
    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    delta_lon = math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
    min_lon = longitude - delta_lon
    max_lon = longitude + delta_lon

    if min_lon < -180.0 or max_lon > 180.0:
        return min_lat, max_lat, -180.0, 180.0

    return min_lat, max_lat, min_lon, max_lon


def validate_coordinates(latitude: float, longitude: float) -> None:
    """
    Check that a coordinate pair is numeric and within geographic ranges.

    Args:
        latitude: Latitude in degrees, must be in [-90, 90]
        longitude: Longitude in degrees, must be in [-180, 180]

    Raises:
        EntityValidationError: If either value is not a number or out of range
    """
    for label, value in (("Latitude", latitude), ("Longitude", longitude)):
        if isinstance(value, bool) or not isinstance(value, Real) or value != value:
            raise EntityValidationError(f"{label} '{value}' is not a number")

    if not (-90 <= latitude <= 90):
        raise EntityValidationError(f"Latitude {latitude} out of valid range [-90, 90]")
    if not (-180 <= longitude <= 180):
        raise EntityValidationError(
            f"Longitude {longitude} out of valid range [-180, 180]"
        )


def calculate_location_similarity(
    coord1: Coordinate | None,
    coord2: Coordinate | None,
    max_distance_km: float = 100.0,
) -> float:
    """
    Convert the distance between two positions into a similarity score.

    Linear falloff from 1.0 at 0 km to 0.0 at max_distance_km. Positions that
    are unknown cannot be location-matched and score 0.

    Args:
        coord1: (latitude, longitude) of the first entity, or None
        coord2: (latitude, longitude) of the second entity, or None
        max_distance_km: Distance at and beyond which similarity is 0

    Returns:
        Similarity score between 0 and 1
    """
    if coord1 is None or coord2 is None:
        return 0.0
    if any(value is None for value in (*coord1, *coord2)):
        return 0.0

    distance_km = meters_to_km(haversine_distance(*coord1, *coord2))

    if distance_km == 0:
        return 1.0
    if distance_km >= max_distance_km:
        return 0.0

    return 1 - distance_km / max_distance_km
