#!/usr/bin/env python3
"""
Park Linking System

This module links NPS parks to their Wikidata counterparts. It combines fuzzy
name matching with geographic distance scoring and assigns each Wikidata park to
at most one NPS park.

Assignment is greedy: NPS parks are processed in input order and each claims its
best-scoring Wikidata park that is still available. The result depends on input
order and is not a globally optimal bipartite matching. Every NPS park is scored
against every available Wikidata park, O(|A| x |B|); this is fine for a few
thousand parks but would need a spatial pre-filter (bounding box or grid) for
much larger collections.

The output is one row per link:
- NPS park id and park code, Wikidata row id and Wikidata item id
- Combined confidence score plus the name and location sub-scores
- The match method tag

Usage:
    python scripts/processors/park_linker.py --dry-run
    python scripts/processors/park_linker.py --write-db
"""

import argparse
import logging
import os
import sys
import time
from typing import Any, Iterable, TypedDict

import pandas as pd
from dotenv import load_dotenv
from pandera.errors import SchemaError, SchemaErrors

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

# Load .env before local imports that need env vars
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

from config.settings import config
from scripts.processors.geo_distance import calculate_location_similarity
from scripts.processors.link_schemas import PARK_LINK_COLUMNS, ParkLinksSchema
from scripts.processors.matching_schemas import (
    EntityLink,
    EntityValidationError,
    LinkingProgress,
    NamedGeoEntity,
    ProgressCallback,
    to_entities,
)
from scripts.processors.name_similarity import calculate_name_similarity
from utils.logging import setup_park_linker_logging


class LinkingStatsDict(TypedDict):
    """Statistics for a park linking run."""

    total_source_a: int
    total_source_b: int
    matched: int
    unmatched: int
    avg_confidence_score: float
    processing_time: float


class EntityLinker:
    """Link entities from two sources by name and location similarity."""

    def __init__(
        self,
        match_threshold: float | None = None,
        max_location_distance_km: float | None = None,
        name_weight: float | None = None,
        location_weight: float | None = None,
        match_method: str | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the entity linker.

        Args:
            match_threshold: Minimum combined score to accept a link
            max_location_distance_km: Distance at which location similarity drops to 0
            name_weight: Weight of name similarity in the combined score
            location_weight: Weight of location similarity in the combined score
            match_method: Tag recorded on every link
            logger: Logger instance for operation tracking

        Raises:
            EntityValidationError: If the threshold or a weight is outside [0, 1]
                or the maximum distance is not positive
        """
        self.logger = logger or logging.getLogger("park_linker")

        self.match_threshold = (
            config.LINK_MATCH_THRESHOLD if match_threshold is None else match_threshold
        )
        self.max_location_distance_km = (
            config.LINK_MAX_LOCATION_DISTANCE_KM
            if max_location_distance_km is None
            else max_location_distance_km
        )
        self.name_weight = config.LINK_NAME_WEIGHT if name_weight is None else name_weight
        self.location_weight = (
            config.LINK_LOCATION_WEIGHT if location_weight is None else location_weight
        )
        self.match_method = match_method or config.LINK_MATCH_METHOD

        for label, value in (
            ("match_threshold", self.match_threshold),
            ("name_weight", self.name_weight),
            ("location_weight", self.location_weight),
        ):
            if not (0 <= value <= 1):
                raise EntityValidationError(
                    f"{label} must be between 0 and 1, got {value}"
                )
        if self.max_location_distance_km <= 0:
            raise EntityValidationError(
                f"max_location_distance_km must be positive, got {self.max_location_distance_km}"
            )

        self.stats: LinkingStatsDict = self._empty_stats()

    @staticmethod
    def _empty_stats() -> LinkingStatsDict:
        return {
            "total_source_a": 0,
            "total_source_b": 0,
            "matched": 0,
            "unmatched": 0,
            "avg_confidence_score": 0.0,
            "processing_time": 0.0,
        }

    def calculate_combined_score(
        self, name_similarity: float, location_similarity: float
    ) -> float:
        """
        Combine name and location similarity into one confidence score.

        Args:
            name_similarity: Name similarity score (0-1)
            location_similarity: Location similarity score (0-1)

        Returns:
            Weighted sum of the two scores
        """
        return (
            name_similarity * self.name_weight
            + location_similarity * self.location_weight
        )

    def score_pair(
        self, entity_a: NamedGeoEntity, entity_b: NamedGeoEntity
    ) -> tuple[float, float, float]:
        """
        Score a candidate pair.

        Returns:
            (combined score, name similarity, location similarity)
        """
        name_similarity = calculate_name_similarity(entity_a.name, entity_b.name)
        location_similarity = calculate_location_similarity(
            entity_a.coordinates,
            entity_b.coordinates,
            max_distance_km=self.max_location_distance_km,
        )
        combined = self.calculate_combined_score(name_similarity, location_similarity)
        return combined, name_similarity, location_similarity

    def find_best_match(
        self, entity: NamedGeoEntity, candidates: Iterable[NamedGeoEntity]
    ) -> EntityLink | None:
        """
        Find the best-scoring candidate for an entity.

        Only a strictly higher score replaces the current best, so ties go to
        the earlier candidate.

        Args:
            entity: Source-A entity
            candidates: Available source-B entities, in order

        Returns:
            A link to the best candidate, or None if no candidate reaches the threshold
        """
        best_link = None
        best_score = 0.0

        for candidate in candidates:
            score, name_similarity, location_similarity = self.score_pair(
                entity, candidate
            )
            if score > best_score:
                best_score = score
                best_link = EntityLink(
                    source_a_id=entity.id,
                    source_b_id=candidate.id,
                    confidence_score=min(1.0, score),
                    name_similarity=name_similarity,
                    location_similarity=location_similarity,
                    match_method=self.match_method,
                )

        if best_link is None or best_score < self.match_threshold:
            return None

        return best_link

    def link_entities(
        self,
        source_a: Iterable[Any],
        source_b: Iterable[Any],
        on_progress: ProgressCallback | None = None,
    ) -> list[EntityLink]:
        """
        Link source-A entities to source-B entities.

        Each source-B id is used by at most one link. Inputs are validated up
        front and never mutated; a single malformed record aborts the run.

        Args:
            source_a: Entities (or mappings of entity fields) to find links for
            source_b: Entities (or mappings) that may be linked to
            on_progress: Optional callback invoked after each source-A entity

        Returns:
            Links in source-A input order. Unmatched source-A entities are omitted.

        Raises:
            EntityValidationError: If any input record is malformed
        """
        start_time = time.perf_counter()
        self.stats = self._empty_stats()

        entities_a = to_entities(source_a)
        entities_b = to_entities(source_b)

        self.stats["total_source_a"] = len(entities_a)
        self.stats["total_source_b"] = len(entities_b)

        if not entities_a or not entities_b:
            self.logger.info(
                f"Nothing to link ({len(entities_a)} source-A, {len(entities_b)} source-B entities)"
            )
            self.stats["unmatched"] = len(entities_a)
            return []

        self.logger.info(
            f"Linking {len(entities_a)} source-A entities against {len(entities_b)} source-B entities"
        )

        links: list[EntityLink] = []
        used_ids: set[str] = set()

        for i, entity in enumerate(entities_a):
            available = (b for b in entities_b if b.id not in used_ids)
            link = self.find_best_match(entity, available)

            if link is not None:
                used_ids.add(link.source_b_id)
                links.append(link)
                self.logger.debug(
                    f"Linked '{entity.name}' ({entity.id}) -> {link.source_b_id} "
                    f"score={link.confidence_score:.3f}"
                )
            else:
                self.logger.debug(f"No match for '{entity.name}' ({entity.id})")

            if on_progress is not None:
                on_progress(
                    LinkingProgress(
                        current=i + 1,
                        total=len(entities_a),
                        matched=len(links),
                        current_name=entity.name,
                    )
                )

        self.stats["matched"] = len(links)
        self.stats["unmatched"] = len(entities_a) - len(links)
        self.stats["avg_confidence_score"] = (
            sum(link.confidence_score for link in links) / len(links) if links else 0.0
        )
        self.stats["processing_time"] = time.perf_counter() - start_time

        self.logger.info(
            f"Linked {len(links)}/{len(entities_a)} entities "
            f"(avg confidence {self.stats['avg_confidence_score']:.3f})"
        )
        return links


def link_entities(
    source_a: Iterable[Any],
    source_b: Iterable[Any],
    **options: Any,
) -> list[EntityLink]:
    """
    Link two entity collections with a one-off EntityLinker.

    Args:
        source_a: Entities to find links for
        source_b: Entities that may be linked to
        **options: EntityLinker keyword arguments, plus ``on_progress``

    Returns:
        List of EntityLink objects
    """
    on_progress = options.pop("on_progress", None)
    return EntityLinker(**options).link_entities(
        source_a, source_b, on_progress=on_progress
    )


class ParkLinkingJob:
    """Load NPS and Wikidata parks, link them and persist the links."""

    def __init__(
        self,
        write_db: bool = False,
        match_threshold: float | None = None,
        test_limit: int | None = None,
        engine=None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the linking job.

        Args:
            write_db (bool): Whether to write links to the database
            match_threshold (float | None): Override for the configured threshold
            test_limit (int | None): Limit processing to the first N NPS parks
            engine: SQLAlchemy engine (created from config if None)
            logger (logging.Logger): Logger instance for operation tracking
        """
        # Deferred so the pure linking code above has no database dependency
        from scripts.database.db_writer import DatabaseWriter, get_postgres_engine

        self.logger = logger or logging.getLogger("park_linker")
        self.engine = engine if engine is not None else get_postgres_engine()
        self.db_writer = DatabaseWriter(self.engine, self.logger) if write_db else None
        self.test_limit = test_limit
        self.linker = EntityLinker(match_threshold=match_threshold, logger=self.logger)

    def load_nps_parks(self) -> pd.DataFrame:
        """Fetch source-A parks (NPS)."""
        query = f"""
        SELECT id, park_code, full_name, latitude, longitude
        FROM {config.NPS_PARKS_TABLE}
        ORDER BY full_name
        """
        return pd.read_sql(query, self.engine)

    def load_wikidata_parks(self) -> pd.DataFrame:
        """Fetch source-B parks (Wikidata)."""
        query = f"""
        SELECT id, wikidata_id, label, latitude, longitude
        FROM {config.WIKIDATA_PARKS_TABLE}
        ORDER BY label
        """
        return pd.read_sql(query, self.engine)

    @staticmethod
    def nps_entities(parks: pd.DataFrame) -> list[dict]:
        """Map NPS rows to entity fields."""
        return [
            {
                "id": row["id"],
                "name": row["full_name"],
                "latitude": row["latitude"],
                "longitude": row["longitude"],
                "metadata": {"park_code": row["park_code"]},
            }
            for row in parks.to_dict("records")
        ]

    @staticmethod
    def wikidata_entities(parks: pd.DataFrame) -> list[dict]:
        """Map Wikidata rows to entity fields, keyed by Wikidata item id."""
        return [
            {
                "id": row["wikidata_id"],
                "name": row["label"],
                "latitude": row["latitude"],
                "longitude": row["longitude"],
                "metadata": {"row_id": row["id"]},
            }
            for row in parks.to_dict("records")
        ]

    def build_links_dataframe(
        self,
        links: list[EntityLink],
        nps_entities: list[dict],
        wikidata_entities: list[dict],
    ) -> pd.DataFrame:
        """
        Convert links into rows for the park_links table and validate them.

        Raises:
            SchemaError, SchemaErrors: If the rows fail ParkLinksSchema validation
        """
        # Key by the validated id so it matches the ids carried on each link
        nps_by_id = {e.id: e for e in to_entities(nps_entities)}
        wikidata_by_id = {e.id: e for e in to_entities(wikidata_entities)}

        rows = [
            {
                "nps_park_id": link.source_a_id,
                "wikidata_park_id": str(wikidata_by_id[link.source_b_id].metadata["row_id"]),
                "nps_park_code": nps_by_id[link.source_a_id].metadata["park_code"],
                "wikidata_id": link.source_b_id,
                "confidence_score": link.confidence_score,
                "name_similarity": link.name_similarity,
                "location_similarity": link.location_similarity,
                "match_method": link.match_method,
            }
            for link in links
        ]
        df = pd.DataFrame(rows, columns=PARK_LINK_COLUMNS)

        try:
            return ParkLinksSchema.validate(df, lazy=True)
        except (SchemaError, SchemaErrors) as e:
            self.logger.error(f"Park link validation failed: {e}")
            raise

    def _log_progress(self, progress: LinkingProgress) -> None:
        if progress.current % 50 == 0 or progress.current == progress.total:
            self.logger.info(
                f"Progress: {progress.current}/{progress.total} "
                f"({progress.matched} matched) - {progress.current_name[:30]}"
            )

    def run(self) -> pd.DataFrame:
        """
        Run the complete park linking process.

        Returns:
            DataFrame of validated links (empty if there was nothing to link)
        """
        self.logger.info("Starting park linking process...")

        try:
            nps_parks = self.load_nps_parks()
            wikidata_parks = self.load_wikidata_parks()

            self.logger.info(f"NPS parks: {len(nps_parks)}")
            self.logger.info(f"Wikidata parks: {len(wikidata_parks)}")

            if nps_parks.empty or wikidata_parks.empty:
                self.logger.warning("No parks to link. Run the import scripts first.")
                return pd.DataFrame(columns=PARK_LINK_COLUMNS)

            if self.test_limit is not None:
                nps_parks = nps_parks.head(self.test_limit)
                self.logger.info(
                    f"TESTING MODE: Limited to first {self.test_limit} NPS parks"
                )

            nps_entities = self.nps_entities(nps_parks)
            wikidata_entities = self.wikidata_entities(wikidata_parks)

            links = self.linker.link_entities(
                nps_entities, wikidata_entities, on_progress=self._log_progress
            )
            links_df = self.build_links_dataframe(
                links, nps_entities, wikidata_entities
            )

            if self.db_writer:
                self.db_writer.write_park_links(links_df, mode="upsert")

            self._print_summary(links_df, nps_entities)
            return links_df

        except Exception as e:
            self.logger.error(f"Park linking process failed: {e}")
            raise

    def _print_summary(self, links_df: pd.DataFrame, nps_entities: list[dict]) -> None:
        """Print linking summary and a few sample matches."""
        stats = self.linker.stats
        total = stats["total_source_a"]
        match_rate = stats["matched"] / total * 100 if total else 0.0
        names = {e.id: e.name for e in to_entities(nps_entities)}

        self.logger.info("=" * 60)
        self.logger.info("PARK LINKING SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"NPS parks processed: {total}")
        self.logger.info(f"Wikidata parks available: {stats['total_source_b']}")
        self.logger.info(f"Links created: {stats['matched']}")
        self.logger.info(f"No match found: {stats['unmatched']}")
        self.logger.info(f"Match rate: {match_rate:.1f}%")
        self.logger.info(
            f"Average confidence score: {stats['avg_confidence_score']:.3f}"
        )
        self.logger.info(f"Processing time: {stats['processing_time']:.2f} seconds")

        for row in links_df.head(config.LINK_SAMPLE_SIZE).to_dict("records"):
            self.logger.info(
                f"  {names.get(row['nps_park_id'], row['nps_park_id'])} -> "
                f"{row['wikidata_id']} ({row['confidence_score']:.3f})"
            )
        self.logger.info("=" * 60)


def main() -> None:
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Link NPS parks to Wikidata parks by name and location similarity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --dry-run                    # Link parks and log results only
  %(prog)s --write-db                   # Upsert links into the park_links table
  %(prog)s --threshold 0.75 --dry-run   # Require stronger matches
  %(prog)s --test-limit 10 --dry-run    # Test with first 10 NPS parks only
  %(prog)s --log-level DEBUG            # Enable debug logging
        """,
    )
    parser.add_argument(
        "--write-db",
        action="store_true",
        help="Write links to the database",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute links without writing them (overrides --write-db)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help=f"Minimum confidence score (default: {config.LINK_MATCH_THRESHOLD})",
    )
    parser.add_argument(
        "--test-limit",
        type=int,
        help="Limit to first N NPS parks (for testing)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level",
    )

    args = parser.parse_args()

    logger = setup_park_linker_logging(args.log_level)

    try:
        job = ParkLinkingJob(
            write_db=args.write_db and not args.dry_run,
            match_threshold=args.threshold,
            test_limit=args.test_limit,
            logger=logger,
        )
        job.run()
        logger.info("Park linking completed successfully")

    except Exception as e:
        logger.error(f"Park linking failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
