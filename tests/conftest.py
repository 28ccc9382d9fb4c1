"""
Shared test fixtures and configuration for the Parks Matching test suite.

This file contains pytest fixtures that can be used across all test modules.
Fixtures defined here are automatically available to all test files.
"""

import os
from collections import namedtuple
from unittest.mock import MagicMock

import pandas as pd
import pytest
from dotenv import load_dotenv

# Load test environment variables (if any)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


@pytest.fixture(autouse=True)
def setup_test_environment():
    """
    Set up test environment variables.

    This fixture automatically runs before each test to ensure the test
    environment is properly configured.
    """
    if not os.getenv("POSTGRES_PASSWORD"):
        os.environ["POSTGRES_PASSWORD"] = "test_password"

    yield

    if os.getenv("POSTGRES_PASSWORD") == "test_password":
        del os.environ["POSTGRES_PASSWORD"]


@pytest.fixture
def yellowstone_nps():
    """NPS record for Yellowstone."""
    return {
        "id": "nps-yell",
        "name": "Yellowstone National Park",
        "latitude": 44.6,
        "longitude": -110.5,
        "metadata": {"park_code": "yell"},
    }


@pytest.fixture
def yellowstone_wikidata():
    """Wikidata record for Yellowstone, about 0.2 km from the NPS point."""
    return {
        "id": "Q351",
        "name": "Yellowstone National Park",
        "latitude": 44.601,
        "longitude": -110.502,
    }


@pytest.fixture
def sample_nps_parks_df():
    """
    Provide a sample NPS parks DataFrame as returned by pd.read_sql.

    Includes one park with no Wikidata counterpart.
    """
    return pd.DataFrame(
        {
            "id": [1, 2, 3],
            "park_code": ["yell", "jotr", "zzzz"],
            "full_name": [
                "Yellowstone National Park",
                "Joshua Tree N.P.",
                "Nowhere Special Site",
            ],
            "latitude": [44.6, 33.873415, 10.0],
            "longitude": [-110.5, -115.900992, 10.0],
        }
    )


@pytest.fixture
def sample_wikidata_parks_df():
    """Provide a sample Wikidata parks DataFrame as returned by pd.read_sql."""
    return pd.DataFrame(
        {
            "id": [101, 102],
            "wikidata_id": ["Q351", "Q1129"],
            "label": ["Yellowstone National Park", "Joshua Tree NP"],
            "latitude": [44.601, 33.8734],
            "longitude": [-110.502, -115.901],
        }
    )


# API Test Fixtures


@pytest.fixture
def mock_db_engine():
    """
    Provide a mock SQLAlchemy engine for API tests.

    Returns a Mock engine with connection context manager configured.
    Use this to avoid real database connections during API testing.
    """
    mock_engine = MagicMock()
    mock_connection = MagicMock()
    mock_result = MagicMock()

    # Configure connection context manager
    mock_engine.connect.return_value.__enter__.return_value = mock_connection
    mock_engine.connect.return_value.__exit__.return_value = None

    # Configure execute to return mock result
    mock_connection.execute.return_value = mock_result
    mock_result.fetchall.return_value = []

    return mock_engine


@pytest.fixture
def set_query_results(mock_db_engine):
    """
    Make consecutive conn.execute() calls on mock_db_engine return the given rows.

    Park endpoints run one query for the park and one for candidates, so most
    tests pass two row lists.
    """

    def _set(*row_sets):
        results = []
        for rows in row_sets:
            result = MagicMock()
            result.fetchall.return_value = rows
            results.append(result)
        connection = mock_db_engine.connect.return_value.__enter__.return_value
        connection.execute.side_effect = results

    return _set


ParkRow = namedtuple(
    "ParkRow", ["id", "park_code", "full_name", "latitude", "longitude", "source"]
)

NearbyParkRow = namedtuple(
    "NearbyParkRow",
    [
        "id",
        "park_code",
        "full_name",
        "states",
        "designation",
        "url",
        "source",
        "latitude",
        "longitude",
    ],
)

TrailRow = namedtuple(
    "TrailRow",
    [
        "id",
        "name",
        "slug",
        "difficulty",
        "length_meters",
        "elevation_gain_m",
        "surface",
        "trail_type",
        "sac_scale",
        "latitude",
        "longitude",
    ],
)

BlmRow = namedtuple(
    "BlmRow", ["id", "unit_name", "state", "area_acres", "latitude", "longitude"]
)

PlaceRow = namedtuple(
    "PlaceRow",
    [
        "id",
        "data_cid",
        "title",
        "category",
        "address",
        "rating",
        "reviews_count",
        "latitude",
        "longitude",
    ],
)


@pytest.fixture
def yosemite_park_row():
    """all_parks row for Yosemite."""
    return ParkRow(
        id=12,
        park_code="yose",
        full_name="Yosemite National Park",
        latitude=37.8651,
        longitude=-119.5383,
        source="nps",
    )


@pytest.fixture
def sample_trail_rows():
    """
    Trails around Yosemite's coordinates.

    Offsets are along a meridian, so 0.01 degrees of latitude is about 1112 m.
    The last trail is about 22 km away and outside the 10 km trail radius.
    """
    return [
        TrailRow(
            id=3,
            name="Half Dome Trail",
            slug="half-dome-trail",
            difficulty="hard",
            length_meters=22852.0,
            elevation_gain_m=1463.0,
            surface="rock",
            trail_type="path",
            sac_scale="demanding_mountain_hiking",
            latitude=37.8851,
            longitude=-119.5383,
        ),
        TrailRow(
            id=1,
            name="Mist Trail",
            slug="mist-trail",
            difficulty="moderate",
            length_meters=4828.0,
            elevation_gain_m=305.0,
            surface="rock",
            trail_type="path",
            sac_scale="mountain_hiking",
            latitude=37.8751,
            longitude=-119.5383,
        ),
        TrailRow(
            id=2,
            name="Lower Yosemite Fall Trail",
            slug="lower-yosemite-fall-trail",
            difficulty="easy",
            length_meters=1609.0,
            elevation_gain_m=15.0,
            surface="paved",
            trail_type="footway",
            sac_scale="hiking",
            latitude=37.8661,
            longitude=-119.5383,
        ),
        TrailRow(
            id=4,
            name="Far Away Trail",
            slug="far-away-trail",
            difficulty="easy",
            length_meters=3000.0,
            elevation_gain_m=10.0,
            surface="dirt",
            trail_type="path",
            sac_scale="hiking",
            latitude=38.0651,
            longitude=-119.5383,
        ),
    ]


@pytest.fixture
def park_row_without_coordinates():
    """all_parks row for a local park with no known position."""
    return ParkRow(
        id=9001,
        park_code=None,
        full_name="Unmapped Community Park",
        latitude=None,
        longitude=None,
        source="local",
    )


@pytest.fixture
def sample_nearby_park_rows():
    """
    Parks near Yellowstone's coordinates (44.6, -110.5).

    Grand Teton is about 100 km south and falls outside a 50 km search.
    """
    return [
        NearbyParkRow(
            id=2,
            park_code="grte",
            full_name="Grand Teton National Park",
            states="WY",
            designation="National Park",
            url="https://www.nps.gov/grte/index.htm",
            source="nps",
            latitude=43.818,
            longitude=-110.705,
        ),
        NearbyParkRow(
            id=1,
            park_code="yell",
            full_name="Yellowstone National Park",
            states="ID,MT,WY",
            designation="National Park",
            url="https://www.nps.gov/yell/index.htm",
            source="nps",
            latitude=44.601,
            longitude=-110.502,
        ),
    ]


@pytest.fixture
def sample_blm_rows():
    """BLM units around Yosemite's coordinates, nearest listed last."""
    return [
        BlmRow(
            id=77,
            unit_name="Bishop Field Office",
            state="CA",
            area_acres=750000.0,
            latitude=38.1651,
            longitude=-119.5383,
        ),
        BlmRow(
            id=55,
            unit_name="Mother Lode Field Office",
            state="CA",
            area_acres=230000.0,
            latitude=37.9651,
            longitude=-119.5383,
        ),
    ]


@pytest.fixture
def sample_place_rows():
    """Places around Yosemite's coordinates."""
    return [
        PlaceRow(
            id=501,
            data_cid=1234567890123,
            title="Yosemite Valley Lodge",
            category="lodging",
            address="9006 Yosemite Lodge Dr, Yosemite Valley, CA",
            rating=4.2,
            reviews_count=3100,
            latitude=37.8751,
            longitude=-119.5383,
        ),
        PlaceRow(
            id=502,
            data_cid="998877",
            title="Degnan's Kitchen",
            category="restaurant",
            address="Yosemite Village, CA",
            rating=4.0,
            reviews_count=850,
            latitude=37.8701,
            longitude=-119.5383,
        ),
        PlaceRow(
            id=503,
            data_cid=None,
            title="Curry Village",
            category="lodging",
            address=None,
            rating=None,
            reviews_count=None,
            latitude=37.8851,
            longitude=-119.5383,
        ),
    ]
