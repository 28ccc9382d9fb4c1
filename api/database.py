"""
Database connection utilities for the API.

Reuses the existing project configuration for database access.
"""

import os
import sys

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

# Add parent directory to path to import project modules
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from config.settings import config

# Global engine instance (created once, reused)
_engine = None


def get_db_engine() -> Engine:
    """
    Get or create a SQLAlchemy engine for database connections.

    Uses the existing config instance from the project for database credentials.
    The engine is created once and reused across requests.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        ValueError: If the database password is not configured
    """
    global _engine

    if _engine is None:
        config.validate_for_database_operations()

        # pool_pre_ping=True checks if connections are alive before using them
        _engine = create_engine(config.get_database_url(), pool_pre_ping=True)

    return _engine
