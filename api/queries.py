"""
Database query functions for the API.

These functions fetch candidate rows with SQL, run them through the proximity
matcher, and return formatted results ready for API responses. The SQL only
narrows candidates with a bounding box; radius admission, distance sorting,
attribute filters and limits all happen in the matcher.
"""

import logging
from typing import Any

from sqlalchemy import text

from api.database import get_db_engine
from config.settings import config
from scripts.processors.geo_distance import bounding_box, km_to_meters
from scripts.processors.proximity import (
    AttributeFilter,
    ProximityMatcher,
    RangeFilter,
    find_nearby,
    summarize_by,
)

logger = logging.getLogger("parks_api")

DIFFICULTY_LEVELS = ["easy", "moderate", "hard"]


class ParkNotFoundError(LookupError):
    """Raised when a park code or id does not match any park."""

    def __init__(self, park_code: str):
        self.park_code = park_code
        super().__init__(f"Park '{park_code}' not found")


def _execute(query: str, params: dict[str, Any] | None = None) -> list:
    engine = get_db_engine()
    with engine.connect() as conn:
        result = conn.execute(text(query), params or {})
        return result.fetchall()


def _float_or_none(value: Any) -> float | None:
    return float(value) if value is not None else None


def _bbox_params(latitude: float, longitude: float, radius_m: float) -> dict[str, float]:
    min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, radius_m)
    return {
        "min_lat": min_lat,
        "max_lat": max_lat,
        "min_lon": min_lon,
        "max_lon": max_lon,
    }


BBOX_CLAUSE = """
    latitude IS NOT NULL
    AND longitude IS NOT NULL
    AND latitude BETWEEN :min_lat AND :max_lat
    AND longitude BETWEEN :min_lon AND :max_lon
"""


def fetch_park(park_code: str) -> dict[str, Any]:
    """
    Look up a park by park code or id in the all_parks view.

    Args:
        park_code: 4-character NPS park code, or a park id for non-NPS parks

    Returns:
        Dictionary with id, park_code, full_name, latitude, longitude, source.
        Latitude and longitude are both None when either is missing.

    Raises:
        ParkNotFoundError: If no park matches
    """
    query = """
    SELECT id, park_code, full_name, latitude, longitude, source
    FROM all_parks
    WHERE park_code = :park_code OR CAST(id AS TEXT) = :park_code
    LIMIT 1
    """
    rows = _execute(query, {"park_code": park_code})
    if not rows:
        raise ParkNotFoundError(park_code)

    row = rows[0]
    latitude = _float_or_none(row.latitude)
    longitude = _float_or_none(row.longitude)
    if latitude is None or longitude is None:
        latitude = longitude = None

    return {
        "id": str(row.id),
        "park_code": row.park_code,
        "full_name": row.full_name,
        "latitude": latitude,
        "longitude": longitude,
        "source": row.source,
    }


def fetch_nearby_parks(
    lat: float,
    lng: float,
    radius_km: float | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Find parks near a point.

    Args:
        lat: Latitude of the search point
        lng: Longitude of the search point
        radius_km: Search radius in kilometers (default from config)
        limit: Maximum parks to return, capped at the configured maximum

    Returns:
        Dictionary containing:
            - park_count: int
            - location: {"lat", "lng"}
            - radius_km: float
            - parks: list of park dictionaries with distance_km, nearest first

    Example:
        >>> fetch_nearby_parks(44.6, -110.5, radius_km=50)
        {
            'park_count': 1,
            'location': {'lat': 44.6, 'lng': -110.5},
            'radius_km': 50,
            'parks': [{'park_code': 'yell', 'distance_km': 0.12, ...}]
        }
    """
    if radius_km is None:
        radius_km = config.NEARBY_PARKS_DEFAULT_RADIUS_KM
    if limit is None:
        limit = config.NEARBY_PARKS_DEFAULT_LIMIT
    limit = min(limit, config.NEARBY_PARKS_MAX_LIMIT)
    radius_m = km_to_meters(radius_km)

    query = f"""
    SELECT id, park_code, full_name, states, designation, url, source,
           latitude, longitude
    FROM all_parks
    WHERE {BBOX_CLAUSE}
    """
    rows = _execute(query, _bbox_params(lat, lng, radius_m))

    candidates = [
        {
            "id": row.id,
            "name": row.full_name,
            "latitude": row.latitude,
            "longitude": row.longitude,
            "metadata": {
                "park_code": row.park_code,
                "states": row.states,
                "designation": row.designation,
                "url": row.url,
                "source": row.source,
            },
        }
        for row in rows
    ]

    results = find_nearby((lat, lng), candidates, radius_m, limit=limit)

    parks = [
        {
            "id": result.entity.id,
            "full_name": result.entity.name,
            "latitude": result.entity.latitude,
            "longitude": result.entity.longitude,
            **result.entity.metadata,
            "distance_km": round(result.distance_km, 2),
        }
        for result in results
    ]

    logger.info(
        f"Nearby parks: {len(parks)} within {radius_km}km of ({lat}, {lng})"
    )

    return {
        "park_count": len(parks),
        "location": {"lat": lat, "lng": lng},
        "radius_km": radius_km,
        "parks": parks,
    }


def fetch_park_trails(
    park_code: str,
    difficulty: str | None = None,
    min_length: float | None = None,
    max_length: float | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Find trails near a park with optional filters.

    Trails are matched on their start point within PARK_TRAILS_RADIUS_M of the
    park's coordinates. Difficulty and length filters run after the distance
    sort, and the limit is applied last.

    Args:
        park_code: Park code or id
        difficulty: 'easy', 'moderate' or 'hard' (optional)
        min_length: Minimum trail length in meters (optional)
        max_length: Maximum trail length in meters (optional)
        limit: Maximum trails to return, capped at the configured maximum

    Returns:
        Dictionary containing:
            - park_code, park_id, park_source
            - search_radius_meters: float
            - trails: list of trail dictionaries with distance_meters
            - summary: total, by_difficulty, total_length_meters

    Raises:
        ParkNotFoundError: If the park does not exist
    """
    if limit is None:
        limit = config.PARK_TRAILS_DEFAULT_LIMIT
    limit = min(limit, config.PARK_TRAILS_MAX_LIMIT)
    radius_m = config.PARK_TRAILS_RADIUS_M

    park = fetch_park(park_code)

    results = []
    if park["latitude"] is not None:
        query = f"""
        SELECT id, name, slug, difficulty, length_meters, elevation_gain_m,
               surface, trail_type, sac_scale, latitude, longitude
        FROM trails
        WHERE {BBOX_CLAUSE}
        """
        rows = _execute(
            query, _bbox_params(park["latitude"], park["longitude"], radius_m)
        )

        candidates = [
            {
                "id": row.id,
                "name": row.name,
                "latitude": row.latitude,
                "longitude": row.longitude,
                "metadata": {
                    "slug": row.slug,
                    "difficulty": row.difficulty,
                    "length_meters": _float_or_none(row.length_meters),
                    "elevation_gain_m": _float_or_none(row.elevation_gain_m),
                    "surface": row.surface,
                    "trail_type": row.trail_type,
                    "sac_scale": row.sac_scale,
                },
            }
            for row in rows
        ]

        filters = []
        if difficulty:
            filters.append(AttributeFilter(field="difficulty", value=difficulty))
        if min_length is not None or max_length is not None:
            filters.append(
                RangeFilter(
                    field="length_meters", min_value=min_length, max_value=max_length
                )
            )

        matcher = ProximityMatcher(default_radius_m=radius_m, max_radius_m=radius_m)
        results = matcher.search(
            (park["latitude"], park["longitude"]),
            candidates,
            filters=filters,
            limit=limit,
        )

    trails = [
        {
            "id": result.entity.id,
            "name": result.entity.name or None,
            **result.entity.metadata,
            "distance_meters": round(result.distance_m, 1),
        }
        for result in results
    ]

    summary = {
        "total": len(trails),
        "by_difficulty": summarize_by(results, "difficulty", DIFFICULTY_LEVELS),
        "total_length_meters": sum(t["length_meters"] or 0 for t in trails),
    }

    return {
        "park_code": park_code,
        "park_id": park["id"],
        "park_source": park["source"],
        "search_radius_meters": radius_m,
        "trails": trails,
        "summary": summary,
    }


def fetch_park_blm(
    park_code: str,
    radius: float | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Find BLM lands near a park.

    Args:
        park_code: Park code or id
        radius: Search radius in meters (default 50000, clamped to 100000)
        limit: Maximum results, capped at the configured maximum

    Returns:
        Dictionary containing:
            - park: id, park_code, name
            - search_radius_meters: float
            - blm_lands: list with distance_meters and distance_miles
            - total: int
            - message: set when the park has no coordinates

    Raises:
        ParkNotFoundError: If the park does not exist
    """
    if limit is None:
        limit = config.BLM_DEFAULT_LIMIT
    limit = min(limit, config.BLM_MAX_LIMIT)

    matcher = ProximityMatcher()
    radius_m = matcher.effective_radius(radius)

    park = fetch_park(park_code)
    park_summary = {
        "id": park["id"],
        "park_code": park["park_code"],
        "name": park["full_name"],
    }

    if park["latitude"] is None:
        return {
            "park": park_summary,
            "search_radius_meters": radius_m,
            "blm_lands": [],
            "total": 0,
            "message": "Park does not have coordinates for BLM land search",
        }

    query = f"""
    SELECT id, unit_name, state, area_acres, latitude, longitude
    FROM blm_lands
    WHERE {BBOX_CLAUSE}
    """
    rows = _execute(query, _bbox_params(park["latitude"], park["longitude"], radius_m))

    candidates = [
        {
            "id": row.id,
            "name": row.unit_name,
            "latitude": row.latitude,
            "longitude": row.longitude,
            "metadata": {
                "state": row.state,
                "area_acres": _float_or_none(row.area_acres),
            },
        }
        for row in rows
    ]

    results = matcher.search(
        (park["latitude"], park["longitude"]), candidates, radius_m, limit=limit
    )

    blm_lands = [
        {
            "id": result.entity.id,
            "unit_name": result.entity.name or None,
            **result.entity.metadata,
            "distance_meters": round(result.distance_m, 1),
            "distance_miles": round(result.distance_miles, 1),
        }
        for result in results
    ]

    return {
        "park": park_summary,
        "search_radius_meters": radius_m,
        "blm_lands": blm_lands,
        "total": len(blm_lands),
        "message": None,
    }


def fetch_park_nearby_places(
    park_code: str,
    category: str | None = None,
    radius: float | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Find places (restaurants, lodging, ...) near a park, grouped by category.

    Args:
        park_code: Park code or id
        category: Only return places in this category (optional)
        radius: Search radius in meters (default 50000, clamped to 100000)
        limit: Maximum places, capped at the configured maximum

    Returns:
        Dictionary containing:
            - park_code: str
            - search_radius_meters: float
            - places: list with distance_miles, nearest first
            - by_category: places grouped by category
            - total: int

    Raises:
        ParkNotFoundError: If the park does not exist
    """
    if limit is None:
        limit = config.NEARBY_PLACES_DEFAULT_LIMIT
    limit = min(limit, config.NEARBY_PLACES_MAX_LIMIT)

    matcher = ProximityMatcher()
    radius_m = matcher.effective_radius(radius)

    park = fetch_park(park_code)

    results = []
    if park["latitude"] is not None:
        query = f"""
        SELECT id, data_cid, title, category, address, rating, reviews_count,
               latitude, longitude
        FROM nearby_places
        WHERE {BBOX_CLAUSE}
        """
        rows = _execute(
            query, _bbox_params(park["latitude"], park["longitude"], radius_m)
        )

        candidates = [
            {
                "id": row.id,
                "name": row.title,
                "latitude": row.latitude,
                "longitude": row.longitude,
                "metadata": {
                    "data_cid": str(row.data_cid) if row.data_cid is not None else None,
                    "category": row.category,
                    "address": row.address,
                    "rating": _float_or_none(row.rating),
                    "reviews_count": row.reviews_count,
                },
            }
            for row in rows
        ]

        filters = [AttributeFilter(field="category", value=category)] if category else []
        results = matcher.search(
            (park["latitude"], park["longitude"]),
            candidates,
            radius_m,
            filters=filters,
            limit=limit,
        )

    places = [
        {
            "id": result.entity.id,
            "title": result.entity.name or None,
            **result.entity.metadata,
            "distance_miles": round(result.distance_miles, 2),
        }
        for result in results
    ]

    by_category: dict[str, list[dict[str, Any]]] = {}
    for place in places:
        by_category.setdefault(place["category"] or "uncategorized", []).append(place)

    return {
        "park_code": park_code,
        "search_radius_meters": radius_m,
        "places": places,
        "by_category": by_category,
        "total": len(places),
    }
