"""Pydantic schemas for the park matching core.

Defines the records that flow through the entity linker and the proximity
matcher: the geolocated entities they consume and the links/results they
produce. Entities are validated on the way in so malformed records are
rejected before any scoring happens.
"""

from numbers import Integral
from typing import Any, Callable, Iterable, NamedTuple
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

METERS_PER_MILE = 1609.344
DEFAULT_MATCH_METHOD = "name_location_similarity"


class EntityValidationError(ValueError):
    """Raised when an entity or a matching parameter is malformed.

    A linking or proximity run that hits this error is aborted as a whole;
    partially scored output is never returned.
    """

    def __init__(self, message: str, index: int | None = None):
        self.index = index
        if index is not None:
            message = f"Record {index}: {message}"
        super().__init__(message)


class NamedGeoEntity(BaseModel):
    """A named entity with an optional geographic position.

    Used for both sides of park linking (NPS parks and Wikidata parks) and for
    proximity candidates (trails, BLM lands, places, parks). Anything specific
    to the source lives in ``metadata`` and is passed through untouched.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Source-specific identifier")
    name: str = Field(default="", description="Display name or label")
    latitude: float | None = Field(default=None, description="Latitude in degrees")
    longitude: float | None = Field(default=None, description="Longitude in degrees")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Source-specific fields"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Accept integer and UUID identifiers (database primary keys) as strings."""
        if isinstance(v, bool):
            raise ValueError("Identifier must be a string or integer")
        if isinstance(v, (Integral, UUID)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> Any:
        """Treat a missing name as empty; it then scores 0 against everything."""
        if v is None:
            return ""
        return v

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def reject_non_numeric(cls, v: Any) -> Any:
        """Ensure coordinate values are numeric when present.

        Strings from upstream APIs are accepted if they parse as floats. Empty
        strings and NaN are treated as missing.

        Raises:
            ValueError: If the coordinate cannot be converted to float
        """
        if v is None or v == "":
            return None
        if isinstance(v, bool):
            raise ValueError(f"Coordinate value '{v}' is not numeric")
        try:
            value = float(v)
        except (TypeError, ValueError):
            raise ValueError(f"Coordinate value '{v}' cannot be converted to float")
        if value != value:
            return None
        return value

    @model_validator(mode="after")
    def validate_coordinate_pair(self):
        """Require latitude and longitude together and within geographic ranges.

        Raises:
            ValueError: If only one coordinate is present or a value is out of range
        """
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError(
                "Latitude and longitude must both be present or both be absent"
            )

        if self.latitude is not None and not (-90 <= self.latitude <= 90):
            raise ValueError(f"Latitude {self.latitude} out of valid range [-90, 90]")

        if self.longitude is not None and not (-180 <= self.longitude <= 180):
            raise ValueError(
                f"Longitude {self.longitude} out of valid range [-180, 180]"
            )

        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """Return ``(latitude, longitude)`` or None when the position is unknown."""
        if not self.has_coordinates:
            return None
        return (self.latitude, self.longitude)


class EntityLink(BaseModel):
    """A link between a source-A entity and a source-B entity."""

    model_config = ConfigDict(frozen=True)

    source_a_id: str
    source_b_id: str
    confidence_score: float = Field(..., ge=0, le=1)
    name_similarity: float = Field(..., ge=0, le=1)
    location_similarity: float = Field(..., ge=0, le=1)
    match_method: str = DEFAULT_MATCH_METHOD


class ProximityResult(BaseModel):
    """A candidate admitted by a proximity search, with its distance."""

    model_config = ConfigDict(frozen=True)

    entity: NamedGeoEntity
    distance_m: float = Field(..., ge=0, description="Distance from reference in meters")
    radius_m: float = Field(..., ge=0, description="Radius used to admit the entity")

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000

    @property
    def distance_miles(self) -> float:
        return self.distance_m / METERS_PER_MILE


class LinkingProgress(NamedTuple):
    """Progress snapshot passed to ``on_progress`` callbacks during linking."""

    current: int
    total: int
    matched: int
    current_name: str


ProgressCallback = Callable[[LinkingProgress], None]


def to_entity(record: Any, index: int | None = None) -> NamedGeoEntity:
    """Coerce a record into a NamedGeoEntity.

    Args:
        record: A NamedGeoEntity (returned as-is) or a mapping of its fields
        index: Position of the record in its collection, used in error messages

    Returns:
        The validated entity

    Raises:
        EntityValidationError: If the record is malformed
    """
    if isinstance(record, NamedGeoEntity):
        return record
    if not isinstance(record, dict):
        raise EntityValidationError(
            f"Expected a mapping or NamedGeoEntity, got {type(record).__name__}",
            index,
        )
    try:
        return NamedGeoEntity(**record)
    except ValidationError as e:
        raise EntityValidationError(_format_errors(e), index) from e


def to_entities(records: Iterable[Any]) -> list[NamedGeoEntity]:
    """Validate a whole collection, failing on the first malformed record."""
    return [to_entity(record, i) for i, record in enumerate(records)]


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "entity"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
