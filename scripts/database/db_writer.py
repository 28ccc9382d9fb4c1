"""
Database Writer for the Parks Matching Project

This module persists the output of the park linking job. Links are written to
the park_links table with upserts keyed on (nps_park_id, wikidata_park_id), so
re-running the job refreshes scores instead of duplicating rows. Links that a
re-run reassigns (a park or Wikidata item now paired differently) are removed
in the same transaction before the new rows go in.

Example Usage:
    # Initialize writer
    engine = get_postgres_engine()
    writer = DatabaseWriter(engine, logger)

    # Write park links (with upserts)
    writer.write_park_links(links_df, mode='upsert')

    # Inspect the table
    info = writer.get_table_info()
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional, TYPE_CHECKING

import pandas as pd
from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Float,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    inspect,
    or_,
    text,
    tuple_,
)
from sqlalchemy.dialects.postgresql import insert

if TYPE_CHECKING:
    from config.settings import Config

# Type annotation allows config to be Config or None
config: Config | None = None
CONFIG_AVAILABLE = False

# A bad environment makes Config() raise; the writer can still be built from an engine
try:
    sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))
    from config.settings import config as imported_config

    config = imported_config
    CONFIG_AVAILABLE = True
except (ImportError, ValueError):
    pass  # config remains None


def get_postgres_engine() -> Engine:
    """
    Create a SQLAlchemy engine for PostgreSQL using configuration.

    Returns:
        Engine: SQLAlchemy engine instance configured for PostgreSQL

    Raises:
        ValueError: If any required configuration is missing
        SQLAlchemyError: If database connection cannot be established
    """
    if not CONFIG_AVAILABLE or config is None:
        raise ValueError("Configuration not available. Cannot create database engine.")

    # Validate database requirements
    config.validate_for_database_operations()

    conn_str = config.get_database_url()
    return create_engine(conn_str)


class DatabaseWriter:
    """
    Database writer for park linking output.

    Defines the park_links table, creates it on demand, and writes link
    DataFrames with either upserts or plain appends.
    """

    LINK_KEY_COLUMNS = ["nps_park_id", "wikidata_park_id"]

    def __init__(self, engine: Engine, logger: Optional[logging.Logger] = None):
        """
        Initialize the database writer.

        Args:
            engine (Engine): SQLAlchemy engine for database connections
            logger (Optional[logging.Logger]): Logger instance for operation tracking.
                                             If None, creates a default logger.
        """
        self.engine = engine
        self.logger = logger or logging.getLogger(__name__)
        self.metadata = MetaData()
        self.table_name = config.PARK_LINKS_TABLE if config else "park_links"

        self._define_table_schemas()

    def _define_table_schemas(self) -> None:
        """Define the SQLAlchemy schema for the park_links table."""
        self.park_links_table = Table(
            self.table_name,
            self.metadata,
            Column("nps_park_id", String, primary_key=True),
            Column("wikidata_park_id", String, primary_key=True),
            Column("nps_park_code", String),
            Column("wikidata_id", String, nullable=False, unique=True),
            Column("confidence_score", Float, nullable=False),
            Column("name_similarity", Float),
            Column("location_similarity", Float),
            Column("match_method", String, nullable=False),
            Column(
                "linked_at",
                DateTime(timezone=True),
                nullable=False,
                server_default=text("NOW()"),
            ),
            extend_existing=True,
        )

    def ensure_table_exists(self) -> None:
        """
        Create the park_links table if it doesn't exist.

        Raises:
            SQLAlchemyError: If table creation fails
        """
        self.metadata.create_all(
            self.engine, tables=[self.park_links_table], checkfirst=True
        )
        self.logger.info(f"Ensured {self.table_name} table exists in database")

    def _check_primary_key(self, table_name: str, pk_columns: list[str]) -> None:
        """
        Check that an existing table has the expected primary key columns.

        Args:
            table_name (str): Name of the table to check
            pk_columns (list[str]): Columns that must be part of the primary key

        Raises:
            ValueError: If the table exists but is missing a primary key column
        """
        inspector = inspect(self.engine)
        if table_name in inspector.get_table_names():
            pk = inspector.get_pk_constraint(table_name)
            existing = pk.get("constrained_columns", [])
            missing = [col for col in pk_columns if col not in existing]
            if missing:
                raise ValueError(
                    f"Table '{table_name}' exists but does not have {missing} in its primary key. "
                    "Please fix the schema before proceeding."
                )

    def write_park_links(self, df: pd.DataFrame, mode: str = "upsert") -> None:
        """
        Write park links to the park_links table.

        Args:
            df (pd.DataFrame): Validated link rows (see ParkLinksSchema)
            mode (str): Write mode - 'upsert' (default) or 'append'

        Raises:
            ValueError: If mode is not supported or primary key issues exist
            SQLAlchemyError: If database operations fail
        """
        if df.empty:
            self.logger.warning("No park links to save")
            return

        if mode not in ["upsert", "append"]:
            raise ValueError(f"Unsupported mode '{mode}'. Use 'upsert' or 'append'")

        self.ensure_table_exists()
        if mode == "upsert":
            self._check_primary_key(self.table_name, self.LINK_KEY_COLUMNS)
            self._upsert_park_links(df)
        else:
            self._append_dataframe(df)

    def _upsert_park_links(self, df: pd.DataFrame) -> None:
        """
        Perform upsert operation for park links.

        Args:
            df (pd.DataFrame): Link rows to upsert
        """
        with self.engine.begin() as conn:
            result = conn.execute(self._stale_links_delete(df))
            if result.rowcount:
                self.logger.info(f"Removed {result.rowcount} reassigned park links")

            for row_dict in df.to_dict("records"):
                stmt = insert(self.park_links_table).values(**row_dict)
                update_cols = {
                    col: stmt.excluded[col]
                    for col in row_dict
                    if col not in self.LINK_KEY_COLUMNS
                }
                stmt = stmt.on_conflict_do_update(
                    index_elements=self.LINK_KEY_COLUMNS, set_=update_cols
                )
                conn.execute(stmt)

        self.logger.info(f"Upserted {len(df)} park links to {self.table_name}")

    def _stale_links_delete(self, df: pd.DataFrame):
        """
        Build a DELETE for stored links that conflict with this batch.

        A stored row is stale when its NPS park or its Wikidata item appears in
        the batch under a different (nps_park_id, wikidata_park_id) pair. Without
        this, reassigning a Wikidata item would violate the unique wikidata_id.
        """
        table = self.park_links_table
        pairs = list(zip(df["nps_park_id"], df["wikidata_park_id"]))
        return delete(table).where(
            or_(
                table.c.nps_park_id.in_(df["nps_park_id"].tolist()),
                table.c.wikidata_id.in_(df["wikidata_id"].tolist()),
            ),
            tuple_(table.c.nps_park_id, table.c.wikidata_park_id).not_in(pairs),
        )

    def _append_dataframe(self, df: pd.DataFrame) -> None:
        """
        Append rows to the park_links table.

        Args:
            df (pd.DataFrame): Link rows to append
        """
        try:
            df.to_sql(self.table_name, self.engine, if_exists="append", index=False)
            self.logger.info(f"Appended {len(df)} records to {self.table_name}")
        except Exception as e:
            self.logger.error(f"Failed to append data to {self.table_name}: {e}")
            raise

    def get_table_info(self) -> Dict[str, Any]:
        """
        Get information about the park_links table including row count and schema.

        Returns:
            Dict[str, Any]: Dictionary containing table information including
                           exists, row_count, columns, and primary_keys
        """
        inspector = inspect(self.engine)

        info: Dict[str, Any] = {
            "exists": self.table_name in inspector.get_table_names(),
            "row_count": 0,
            "columns": [],
            "primary_keys": [],
        }

        if info["exists"]:
            with self.engine.connect() as conn:
                result = conn.execute(text(f"SELECT COUNT(*) FROM {self.table_name}"))
                info["row_count"] = result.scalar()

            info["columns"] = [
                col["name"] for col in inspector.get_columns(self.table_name)
            ]
            pk_constraint = inspector.get_pk_constraint(self.table_name)
            info["primary_keys"] = pk_constraint.get("constrained_columns", [])

        return info
