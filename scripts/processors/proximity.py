"""
Proximity matching for nearby trails, BLM lands, places and parks.

Given a reference point and candidates already fetched from the database,
returns the candidates within a radius, nearest first. Attribute filters
(difficulty, length bounds, category, ...) run as a separate pass after the
distance filter and sort, and the result limit is applied last so it never
truncates before sorting.

Distances and radii are in meters.
"""

import logging
from numbers import Real
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, model_validator

from config.settings import config
from scripts.processors.geo_distance import haversine_distance, validate_coordinates
from scripts.processors.matching_schemas import (
    EntityValidationError,
    NamedGeoEntity,
    ProximityResult,
    to_entities,
)


class AttributeFilter(BaseModel):
    """Keep results whose metadata field equals a value."""

    model_config = ConfigDict(frozen=True)

    field: str
    value: Any

    def matches(self, result: ProximityResult) -> bool:
        metadata = result.entity.metadata
        return self.field in metadata and metadata[self.field] == self.value


class RangeFilter(BaseModel):
    """Keep results whose numeric metadata field lies in an inclusive range."""

    model_config = ConfigDict(frozen=True)

    field: str
    min_value: float | None = None
    max_value: float | None = None

    @model_validator(mode="after")
    def validate_bounds(self):
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(
                f"min_value {self.min_value} is greater than max_value {self.max_value}"
            )
        return self

    def matches(self, result: ProximityResult) -> bool:
        value = result.entity.metadata.get(self.field)
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True


ProximityFilter = AttributeFilter | RangeFilter


def _reference_coordinates(
    reference: NamedGeoEntity | tuple[float, float],
) -> tuple[float, float]:
    if isinstance(reference, NamedGeoEntity):
        if not reference.has_coordinates:
            raise EntityValidationError(
                f"Reference entity '{reference.id}' has no coordinates"
            )
        return reference.coordinates

    try:
        latitude, longitude = reference
    except (TypeError, ValueError):
        raise EntityValidationError(
            "Reference must be a (latitude, longitude) pair or a NamedGeoEntity"
        )
    validate_coordinates(latitude, longitude)
    return latitude, longitude


def _validate_radius_and_limit(radius_m: float, limit: int | None) -> None:
    if isinstance(radius_m, bool) or not isinstance(radius_m, Real) or radius_m != radius_m:
        raise EntityValidationError(f"Radius '{radius_m}' is not a number")
    if radius_m < 0:
        raise EntityValidationError(f"Radius must be non-negative, got {radius_m}")
    if limit is not None and (
        isinstance(limit, bool) or not isinstance(limit, int) or limit < 0
    ):
        raise EntityValidationError(
            f"Limit must be a non-negative integer, got {limit}"
        )


def apply_filters(
    results: Iterable[ProximityResult],
    filters: Iterable[ProximityFilter] | None = None,
) -> list[ProximityResult]:
    """
    Keep only results that pass every filter, preserving order.

    Args:
        results: Proximity results (already distance-sorted)
        filters: AttributeFilter / RangeFilter instances

    Returns:
        Filtered results in their original order
    """
    filters = list(filters or [])
    if not filters:
        return list(results)
    return [r for r in results if all(f.matches(r) for f in filters)]


def find_nearby(
    reference: NamedGeoEntity | tuple[float, float],
    candidates: Iterable[Any],
    radius_m: float,
    filters: Iterable[ProximityFilter] | None = None,
    limit: int | None = None,
) -> list[ProximityResult]:
    """
    Find candidates within a radius of a reference point.

    Args:
        reference: (latitude, longitude) or an entity with coordinates
        candidates: Entities (or mappings of entity fields) to search
        radius_m: Admission radius in meters; the boundary is inclusive
        filters: Optional post-filters applied after the distance sort
        limit: Optional maximum number of results, applied last

    Returns:
        Results sorted by ascending distance, ties kept in input order.
        Candidates without coordinates are never included.

    Raises:
        EntityValidationError: If the reference, radius, limit or any candidate is malformed
    """
    latitude, longitude = _reference_coordinates(reference)
    _validate_radius_and_limit(radius_m, limit)

    results = []
    for entity in to_entities(candidates):
        if not entity.has_coordinates:
            continue
        distance = haversine_distance(
            latitude, longitude, entity.latitude, entity.longitude
        )
        if distance <= radius_m:
            results.append(
                ProximityResult(entity=entity, distance_m=distance, radius_m=radius_m)
            )

    # sorted() is stable, so equal distances keep input order
    results = sorted(results, key=lambda r: r.distance_m)
    results = apply_filters(results, filters)

    if limit is not None:
        results = results[:limit]

    return results


def summarize_by(
    results: Iterable[ProximityResult], field: str, levels: Iterable[str]
) -> dict[str, int]:
    """
    Count results per metadata value for a fixed set of levels.

    Example:
        >>> summarize_by(trails, "difficulty", ["easy", "moderate", "hard"])
        {'easy': 3, 'moderate': 1, 'hard': 0}
    """
    counts = {level: 0 for level in levels}
    for result in results:
        value = result.entity.metadata.get(field)
        if value in counts:
            counts[value] += 1
    return counts


class ProximityMatcher:
    """Run proximity searches with configured radius defaults and caps."""

    def __init__(
        self,
        default_radius_m: float | None = None,
        max_radius_m: float | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the matcher.

        Args:
            default_radius_m: Radius used when a search does not give one
            max_radius_m: Upper bound requested radii are clamped to
            logger: Logger instance for operation tracking
        """
        self.default_radius_m = (
            config.PROXIMITY_DEFAULT_RADIUS_M
            if default_radius_m is None
            else default_radius_m
        )
        self.max_radius_m = (
            config.PROXIMITY_MAX_RADIUS_M if max_radius_m is None else max_radius_m
        )
        self.logger = logger or logging.getLogger(__name__)

    def effective_radius(self, radius_m: float | None) -> float:
        """Return the requested radius clamped to the maximum, or the default."""
        if radius_m is None:
            return self.default_radius_m
        return min(radius_m, self.max_radius_m)

    def search(
        self,
        reference: NamedGeoEntity | tuple[float, float],
        candidates: Iterable[Any],
        radius_m: float | None = None,
        filters: Iterable[ProximityFilter] | None = None,
        limit: int | None = None,
    ) -> list[ProximityResult]:
        """
        Search candidates around a reference point.

        See find_nearby() for argument semantics. The radius defaults to
        default_radius_m and is clamped to max_radius_m.
        """
        candidates = list(candidates)
        radius = self.effective_radius(radius_m)
        results = find_nearby(reference, candidates, radius, filters=filters, limit=limit)
        self.logger.debug(
            f"Proximity search: {len(results)}/{len(candidates)} candidates within {radius:.0f}m"
        )
        return results