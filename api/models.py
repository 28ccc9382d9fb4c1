"""
Pydantic models for API request/response validation.

These models define the structure of API responses and automatically
generate OpenAPI schema definitions.
"""

from pydantic import BaseModel, Field


class Location(BaseModel):
    """Search point echoed back in nearby-park responses."""

    lat: float = Field(..., ge=-90, le=90, examples=[44.428])
    lng: float = Field(..., ge=-180, le=180, examples=[-110.5885])


class NearbyPark(BaseModel):
    """
    A park found near a search point.

    Parks come from the all_parks view, which combines NPS, Wikidata and
    local parks.
    """

    id: str = Field(..., description="Park identifier", examples=["1"])
    park_code: str | None = Field(
        None,
        description="4-character NPS park code (null for non-NPS parks)",
        examples=["yell"],
    )
    full_name: str = Field(
        ..., description="Full park name", examples=["Yellowstone National Park"]
    )
    states: str | None = Field(None, description="State codes", examples=["ID,MT,WY"])
    designation: str | None = Field(
        None, description="Park designation", examples=["National Park"]
    )
    url: str | None = Field(
        None,
        description="Park website",
        examples=["https://www.nps.gov/yell/index.htm"],
    )
    source: str | None = Field(
        None, description="Which dataset the park came from", examples=["nps"]
    )
    latitude: float = Field(..., description="Park latitude", examples=[44.59824417])
    longitude: float = Field(
        ..., description="Park longitude", examples=[-110.5471695]
    )
    distance_km: float = Field(
        ...,
        description="Great-circle distance from the search point in kilometers",
        ge=0,
        examples=[19.4],
    )


class NearbyParksResponse(BaseModel):
    """
    Response model for the nearby parks endpoint.

    Parks are sorted nearest first.
    """

    park_count: int = Field(..., description="Number of parks returned", ge=0)
    location: Location = Field(..., description="The search point")
    radius_km: float = Field(..., description="Search radius in kilometers", ge=0)
    parks: list[NearbyPark] = Field(..., description="Parks within the radius")


class Trail(BaseModel):
    """
    Individual trail near a park.

    Distance is measured from the park's coordinates to the trail's start point.
    """

    id: str = Field(..., description="Trail identifier", examples=["4521"])
    name: str | None = Field(None, description="Trail name", examples=["Mist Trail"])
    slug: str | None = Field(None, description="URL slug", examples=["mist-trail"])
    difficulty: str | None = Field(
        None, description="easy, moderate or hard", examples=["moderate"]
    )
    length_meters: float | None = Field(
        None, description="Trail length in meters", examples=[4828.0]
    )
    elevation_gain_m: float | None = Field(
        None, description="Elevation gain in meters", examples=[305.0]
    )
    surface: str | None = Field(None, description="Trail surface", examples=["rock"])
    trail_type: str | None = Field(
        None, description="Trail type (path, footway, ...)", examples=["path"]
    )
    sac_scale: str | None = Field(
        None, description="SAC hiking scale", examples=["mountain_hiking"]
    )
    distance_meters: float = Field(
        ..., description="Distance from the park in meters", ge=0, examples=[2150.3]
    )


class TrailSummary(BaseModel):
    """Summary statistics over the returned trails."""

    total: int = Field(..., description="Number of trails returned", ge=0)
    by_difficulty: dict[str, int] = Field(
        ...,
        description="Trail counts for easy, moderate and hard",
        examples=[{"easy": 3, "moderate": 2, "hard": 1}],
    )
    total_length_meters: float = Field(
        ..., description="Sum of returned trail lengths in meters"
    )


class ParkTrailsResponse(BaseModel):
    """
    Response model for the trails-near-a-park endpoint.
    """

    park_code: str = Field(..., description="Park code or id from the request")
    park_id: str = Field(..., description="Resolved park identifier")
    park_source: str | None = Field(None, description="Dataset the park came from")
    search_radius_meters: float = Field(..., description="Search radius in meters")
    trails: list[Trail] = Field(..., description="Trails, nearest first")
    summary: TrailSummary

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "park_code": "yose",
                    "park_id": "12",
                    "park_source": "nps",
                    "search_radius_meters": 10000.0,
                    "trails": [
                        {
                            "id": "4521",
                            "name": "Mist Trail",
                            "slug": "mist-trail",
                            "difficulty": "moderate",
                            "length_meters": 4828.0,
                            "elevation_gain_m": 305.0,
                            "surface": "rock",
                            "trail_type": "path",
                            "sac_scale": "mountain_hiking",
                            "distance_meters": 2150.3,
                        }
                    ],
                    "summary": {
                        "total": 1,
                        "by_difficulty": {"easy": 0, "moderate": 1, "hard": 0},
                        "total_length_meters": 4828.0,
                    },
                }
            ]
        }
    }


class ParkSummary(BaseModel):
    """Minimal park identity included in BLM responses."""

    id: str
    park_code: str | None = None
    name: str | None = None


class BlmLand(BaseModel):
    """A Bureau of Land Management unit near a park."""

    id: str = Field(..., description="BLM land identifier")
    unit_name: str | None = Field(
        None, description="BLM unit name", examples=["Red Rock Canyon NCA"]
    )
    state: str | None = Field(None, description="State code", examples=["NV"])
    area_acres: float | None = Field(None, description="Area in acres")
    distance_meters: float = Field(
        ..., description="Distance from the park in meters", ge=0
    )
    distance_miles: float = Field(
        ..., description="Distance from the park in miles (1 decimal)", ge=0
    )


class ParkBlmResponse(BaseModel):
    """
    Response model for the BLM-lands-near-a-park endpoint.

    When the park has no coordinates, blm_lands is empty and message explains why.
    """

    park: ParkSummary
    search_radius_meters: float = Field(..., description="Search radius in meters")
    blm_lands: list[BlmLand] = Field(..., description="BLM lands, nearest first")
    total: int = Field(..., description="Number of BLM lands returned", ge=0)
    message: str | None = Field(None, description="Why no search was performed")


class NearbyPlace(BaseModel):
    """A place (restaurant, lodging, store, ...) near a park."""

    id: str = Field(..., description="Place identifier")
    data_cid: str | None = Field(None, description="Google Maps place CID")
    title: str | None = Field(None, description="Place name", examples=["Old Faithful Inn"])
    category: str | None = Field(None, description="Place category", examples=["lodging"])
    address: str | None = Field(None, description="Street address")
    rating: float | None = Field(None, description="Average rating")
    reviews_count: int | None = Field(None, description="Number of reviews")
    distance_miles: float = Field(
        ..., description="Distance from the park in miles", ge=0
    )


class NearbyPlacesResponse(BaseModel):
    """
    Response model for the nearby-places endpoint.

    Places are returned both as a flat nearest-first list and grouped by category.
    """

    park_code: str
    search_radius_meters: float = Field(..., description="Search radius in meters")
    places: list[NearbyPlace]
    by_category: dict[str, list[NearbyPlace]]
    total: int = Field(..., description="Number of places returned", ge=0)
