"""
Configuration settings for the Parks Matching project.

This module centralizes all configuration values and provides a single source of truth for all
configurable parameters: park linking thresholds, proximity search radii, database connections
and logging.
"""

import os
from typing import Optional


class Config:
    """
    Central configuration class for the Parks Matching project.

    This class consolidates all configuration values including matching thresholds,
    proximity search settings, database connections and logging parameters.
    """

    # API Configuration
    APP_NAME: str = "Parks-Matching-API"
    APP_VERSION: str = "0.1.0"

    # Park Linking Settings (NPS <-> Wikidata)
    LINK_MATCH_THRESHOLD: float = 0.6
    LINK_MAX_LOCATION_DISTANCE_KM: float = 100.0
    LINK_NAME_WEIGHT: float = 0.7
    LINK_LOCATION_WEIGHT: float = 0.3
    LINK_MATCH_METHOD: str = "name_location_similarity"
    LINK_SAMPLE_SIZE: int = 5

    # Proximity Search Settings (all radii in meters)
    PROXIMITY_DEFAULT_RADIUS_M: float = 50000.0
    PROXIMITY_MAX_RADIUS_M: float = 100000.0
    PARK_TRAILS_RADIUS_M: float = 10000.0
    NEARBY_PARKS_DEFAULT_RADIUS_KM: float = 100.0

    # Result limits (default, maximum)
    PARK_TRAILS_DEFAULT_LIMIT: int = 50
    PARK_TRAILS_MAX_LIMIT: int = 100
    BLM_DEFAULT_LIMIT: int = 20
    BLM_MAX_LIMIT: int = 50
    NEARBY_PLACES_DEFAULT_LIMIT: int = 20
    NEARBY_PLACES_MAX_LIMIT: int = 50
    NEARBY_PARKS_DEFAULT_LIMIT: int = 20
    NEARBY_PARKS_MAX_LIMIT: int = 100

    # Database Configuration
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "parks_data"
    DB_USER: str = "postgres"
    DB_PASSWORD: Optional[str] = None
    DB_SSLMODE: Optional[str] = None

    # Table names
    NPS_PARKS_TABLE: str = "nps_parks"
    WIKIDATA_PARKS_TABLE: str = "wikidata_parks"
    PARK_LINKS_TABLE: str = "park_links"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 3
    PARK_LINKER_LOG_FILE: str = "logs/park_linker.log"
    API_LOG_FILE: str = "logs/api.log"

    def __init__(self):
        """Initialize configuration by loading from environment variables."""
        self._load_from_env()
        self._validate()

    def _load_from_env(self):
        """Load configuration values from environment variables."""
        # Matching settings
        match_threshold = os.getenv("LINK_MATCH_THRESHOLD")
        if match_threshold:
            self.LINK_MATCH_THRESHOLD = float(match_threshold)

        max_distance = os.getenv("LINK_MAX_LOCATION_DISTANCE_KM")
        if max_distance:
            self.LINK_MAX_LOCATION_DISTANCE_KM = float(max_distance)

        name_weight = os.getenv("LINK_NAME_WEIGHT")
        if name_weight:
            self.LINK_NAME_WEIGHT = float(name_weight)

        location_weight = os.getenv("LINK_LOCATION_WEIGHT")
        if location_weight:
            self.LINK_LOCATION_WEIGHT = float(location_weight)

        default_radius = os.getenv("PROXIMITY_DEFAULT_RADIUS_M")
        if default_radius:
            self.PROXIMITY_DEFAULT_RADIUS_M = float(default_radius)

        max_radius = os.getenv("PROXIMITY_MAX_RADIUS_M")
        if max_radius:
            self.PROXIMITY_MAX_RADIUS_M = float(max_radius)

        # Database settings
        db_host = os.getenv("POSTGRES_HOST")
        if db_host:
            self.DB_HOST = db_host

        db_port = os.getenv("POSTGRES_PORT")
        if db_port:
            self.DB_PORT = int(db_port)

        db_name = os.getenv("POSTGRES_DB")
        if db_name:
            self.DB_NAME = db_name

        db_user = os.getenv("POSTGRES_USER")
        if db_user:
            self.DB_USER = db_user

        db_password = os.getenv("POSTGRES_PASSWORD")
        if db_password:
            self.DB_PASSWORD = db_password

        db_sslmode = os.getenv("POSTGRES_SSLMODE")
        if db_sslmode:
            self.DB_SSLMODE = db_sslmode

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            self.LOG_LEVEL = log_level

    def _validate(self):
        """
        Validate matching and proximity configuration values.

        Raises:
            ValueError: If a threshold or weight is outside [0, 1] or a radius is not positive.
        """
        for name in (
            "LINK_MATCH_THRESHOLD",
            "LINK_NAME_WEIGHT",
            "LINK_LOCATION_WEIGHT",
        ):
            value = getattr(self, name)
            if not (0 <= value <= 1):
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        for name in (
            "LINK_MAX_LOCATION_DISTANCE_KM",
            "PROXIMITY_DEFAULT_RADIUS_M",
            "PROXIMITY_MAX_RADIUS_M",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.PROXIMITY_DEFAULT_RADIUS_M > self.PROXIMITY_MAX_RADIUS_M:
            raise ValueError(
                "PROXIMITY_DEFAULT_RADIUS_M cannot exceed PROXIMITY_MAX_RADIUS_M"
            )

    def validate_for_database_operations(self):
        """
        Validate configuration required for database access.

        Raises:
            ValueError: If the database password is missing.
        """
        if not self.DB_PASSWORD:
            raise ValueError(
                "POSTGRES_PASSWORD environment variable is required. "
                "Please set it in your .env file or environment."
            )

    def get_database_url(self) -> str:
        """
        Generate database connection URL.

        Returns:
            str: PostgreSQL connection URL
        """
        url = f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        if self.DB_SSLMODE:
            url += f"?sslmode={self.DB_SSLMODE}"
        return url


# Global configuration instance
config = Config()
