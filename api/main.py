"""
Parks Matching API

A FastAPI application that exposes proximity lookups over the parks database:
parks near a point, and trails, BLM lands and places near a park.

Candidate rows are read from PostgreSQL and matched in Python with the shared
proximity matcher, so every endpoint uses the same radius, sorting, filter and
limit rules.

Usage:
    Start the development server:
        $ uvicorn api.main:app --reload

    The API will be available at:
        - Interactive docs (Swagger UI): http://localhost:8000/docs
        - Alternative docs (ReDoc): http://localhost:8000/redoc
        - OpenAPI schema: http://localhost:8000/openapi.json
"""

import os
import sys

from fastapi import FastAPI, HTTPException, Path, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

# Add parent directory to path to import project modules
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from api.database import get_db_engine
from api.models import (
    NearbyParksResponse,
    NearbyPlacesResponse,
    ParkBlmResponse,
    ParkTrailsResponse,
)
from api.queries import (
    ParkNotFoundError,
    fetch_nearby_parks,
    fetch_park_blm,
    fetch_park_nearby_places,
    fetch_park_trails,
)
from config.settings import config
from scripts.processors.matching_schemas import EntityValidationError
from utils.logging import setup_api_logging

logger = setup_api_logging()

# Create FastAPI app with metadata for OpenAPI documentation
app = FastAPI(
    title="Parks Matching API",
    description="""
    Proximity lookups for national, state and local parks: nearby parks,
    trails near a park, BLM lands near a park, and nearby places.
    """,
    version=config.APP_VERSION,
    contact={
        "name": "Parks Matching Project",
    },
)


@app.exception_handler(EntityValidationError)
async def entity_validation_error_handler(request: Request, exc: EntityValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ParkNotFoundError)
async def park_not_found_handler(request: Request, exc: ParkNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Park not found"})


def _internal_error(message: str) -> HTTPException:
    # Details go to the log, never to the client
    logger.exception(message)
    return HTTPException(status_code=500, detail="Internal server error")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint returning API information and available endpoints.

    Returns basic metadata about the API and links to documentation.
    """
    return {
        "name": "Parks Matching API",
        "version": config.APP_VERSION,
        "description": "Find parks, trails, BLM lands and places by proximity",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
        "endpoints": {
            "nearby_parks": "/parks/nearby",
            "park_trails": "/parks/{park_code}/trails",
            "park_blm": "/parks/{park_code}/blm",
            "park_nearby_places": "/parks/{park_code}/nearby-places",
            "health_check": "/health",
        },
    }


@app.get(
    "/parks/nearby",
    response_model=NearbyParksResponse,
    tags=["Parks"],
    summary="Find parks near a point",
    description="""
    Returns parks within a radius (in kilometers) of a latitude/longitude,
    nearest first. Includes NPS, Wikidata and local parks.
    """,
)
async def get_nearby_parks(
    lat: float = Query(..., description="Latitude of the search point", ge=-90, le=90),
    lng: float = Query(
        ..., description="Longitude of the search point", ge=-180, le=180
    ),
    radius: float = Query(
        default=config.NEARBY_PARKS_DEFAULT_RADIUS_KM,
        description="Search radius in kilometers",
        ge=0,
    ),
    limit: int = Query(
        default=config.NEARBY_PARKS_DEFAULT_LIMIT,
        description=f"Maximum parks to return (capped at {config.NEARBY_PARKS_MAX_LIMIT})",
        ge=1,
    ),
):
    """
    Find parks near a point.

    **Example queries:**
    - Parks within 100 km of Old Faithful: `/parks/nearby?lat=44.4605&lng=-110.8281`
    - Closest 5 parks within 50 km: `/parks/nearby?lat=37.74&lng=-119.59&radius=50&limit=5`
    """
    try:
        return fetch_nearby_parks(lat=lat, lng=lng, radius_km=radius, limit=limit)
    except EntityValidationError:
        raise
    except Exception:
        raise _internal_error(f"Error finding parks near ({lat}, {lng})")


@app.get(
    "/parks/{park_code}/trails",
    response_model=ParkTrailsResponse,
    tags=["Trails"],
    summary="Get trails near a park",
    description=f"""
    Returns trails starting within {config.PARK_TRAILS_RADIUS_M / 1000:.0f} km of
    the park, with optional difficulty and length filters and a summary.
    """,
)
async def get_park_trails(
    park_code: str = Path(
        ...,
        description="4-character park code (e.g., 'yose') or park id",
        min_length=1,
    ),
    difficulty: str | None = Query(
        default=None,
        description="Filter by difficulty",
        pattern="^(easy|moderate|hard)$",
    ),
    min_length: float | None = Query(
        default=None, description="Minimum trail length in meters", ge=0
    ),
    max_length: float | None = Query(
        default=None, description="Maximum trail length in meters", ge=0
    ),
    limit: int = Query(
        default=config.PARK_TRAILS_DEFAULT_LIMIT,
        description=f"Maximum trails to return (capped at {config.PARK_TRAILS_MAX_LIMIT})",
        ge=1,
    ),
):
    """
    Get trails near a park.

    Filters are applied to the distance-sorted trail list, and the limit is
    applied after filtering.

    **Example queries:**
    - All trails near Yosemite: `/parks/yose/trails`
    - Hard trails: `/parks/yose/trails?difficulty=hard`
    - Trails between 5 and 10 km: `/parks/yose/trails?min_length=5000&max_length=10000`
    """
    if min_length is not None and max_length is not None and min_length > max_length:
        raise HTTPException(
            status_code=400,
            detail="min_length cannot be greater than max_length",
        )

    try:
        return fetch_park_trails(
            park_code=park_code,
            difficulty=difficulty,
            min_length=min_length,
            max_length=max_length,
            limit=limit,
        )
    except (EntityValidationError, ParkNotFoundError):
        raise
    except Exception:
        raise _internal_error(f"Error retrieving trails for park {park_code}")


@app.get(
    "/parks/{park_code}/blm",
    response_model=ParkBlmResponse,
    tags=["BLM"],
    summary="Get BLM lands near a park",
    description="""
    Returns Bureau of Land Management units near the park with distances in
    meters and miles.
    """,
)
async def get_park_blm(
    park_code: str = Path(..., description="Park code or id", min_length=1),
    radius: float = Query(
        default=config.PROXIMITY_DEFAULT_RADIUS_M,
        description=f"Search radius in meters (capped at {config.PROXIMITY_MAX_RADIUS_M:.0f})",
        ge=0,
    ),
    limit: int = Query(
        default=config.BLM_DEFAULT_LIMIT,
        description=f"Maximum results (capped at {config.BLM_MAX_LIMIT})",
        ge=1,
    ),
):
    """
    Get BLM lands near a park.

    Parks without coordinates return an empty list with an explanatory message.

    **Example queries:**
    - `/parks/zion/blm`
    - Within 25 km: `/parks/zion/blm?radius=25000&limit=10`
    """
    try:
        return fetch_park_blm(park_code=park_code, radius=radius, limit=limit)
    except (EntityValidationError, ParkNotFoundError):
        raise
    except Exception:
        raise _internal_error(f"Error retrieving BLM lands for park {park_code}")


@app.get(
    "/parks/{park_code}/nearby-places",
    response_model=NearbyPlacesResponse,
    tags=["Places"],
    summary="Get places near a park",
    description="""
    Returns places (lodging, restaurants, stores, ...) near the park, nearest
    first and grouped by category.
    """,
)
async def get_park_nearby_places(
    park_code: str = Path(..., description="Park code or id", min_length=1),
    category: str | None = Query(
        default=None, description="Only return places in this category"
    ),
    radius: float = Query(
        default=config.PROXIMITY_DEFAULT_RADIUS_M,
        description=f"Search radius in meters (capped at {config.PROXIMITY_MAX_RADIUS_M:.0f})",
        ge=0,
    ),
    limit: int = Query(
        default=config.NEARBY_PLACES_DEFAULT_LIMIT,
        description=f"Maximum places (capped at {config.NEARBY_PLACES_MAX_LIMIT})",
        ge=1,
    ),
):
    """
    Get places near a park.

    **Example queries:**
    - `/parks/yell/nearby-places`
    - Lodging only: `/parks/yell/nearby-places?category=lodging`
    """
    try:
        return fetch_park_nearby_places(
            park_code=park_code, category=category, radius=radius, limit=limit
        )
    except (EntityValidationError, ParkNotFoundError):
        raise
    except Exception:
        raise _internal_error(f"Error retrieving nearby places for park {park_code}")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint to verify API and database connectivity.

    Returns the status of the API server and database connection.
    Useful for monitoring and load balancer health checks.
    """
    try:
        # Test database connection
        engine = get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "database": "connected",
        }
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
        }
