"""Pandera schemas for validating park link output.

Links are produced as Pydantic models by the entity linker and converted to a
DataFrame for persistence. This schema validates that tabular form before it is
written to the park_links table, including the one-link-per-Wikidata-park rule.
"""

import pandera.pandas as pa
from pandera.pandas import Check, Column, DataFrameSchema

PARK_LINK_COLUMNS = [
    "nps_park_id",
    "wikidata_park_id",
    "nps_park_code",
    "wikidata_id",
    "confidence_score",
    "name_similarity",
    "location_similarity",
    "match_method",
]


def _score_column(description: str) -> Column:
    return Column(
        pa.Float64,
        checks=[
            Check.in_range(0, 1, error=f"{description} must be between 0 and 1"),
        ],
        nullable=False,
        description=description,
    )


ParkLinksSchema = DataFrameSchema(
    columns={
        "nps_park_id": Column(
            pa.String,
            nullable=False,
            unique=True,
            description="NPS park primary key",
        ),
        "wikidata_park_id": Column(
            pa.String,
            nullable=False,
            description="Wikidata park primary key",
        ),
        "nps_park_code": Column(
            pa.String,
            nullable=True,
            description="4-character NPS park code",
        ),
        "wikidata_id": Column(
            pa.String,
            checks=[
                Check.str_matches(
                    r"^Q\d+$", error="wikidata_id must look like a Wikidata item id"
                )
            ],
            nullable=False,
            unique=True,
            description="Wikidata item id (each may be linked at most once)",
        ),
        "confidence_score": _score_column("Combined confidence score"),
        "name_similarity": _score_column("Name similarity score"),
        "location_similarity": _score_column("Location similarity score"),
        "match_method": Column(
            pa.String,
            checks=[
                Check(
                    lambda s: s.str.strip().str.len() > 0,
                    error="match_method cannot be empty",
                )
            ],
            nullable=False,
            description="How the link was produced",
        ),
    },
    strict=True,
    coerce=True,
    description="Schema for park links before they are written to the database",
)
