"""
Unit tests for park_linker.py module.

Tests cover scoring, greedy one-to-one linking, thresholds, progress reporting
and the ParkLinkingJob pipeline with database access mocked.
"""

import logging
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
from pandera.errors import SchemaErrors

from scripts.processors.matching_schemas import (
    EntityLink,
    EntityValidationError,
    LinkingProgress,
    NamedGeoEntity,
)
from scripts.processors.park_linker import (
    EntityLinker,
    ParkLinkingJob,
    link_entities,
    main,
)


@pytest.fixture
def linker():
    """EntityLinker with the default weights and threshold."""
    return EntityLinker(
        match_threshold=0.6,
        max_location_distance_km=100,
        name_weight=0.7,
        location_weight=0.3,
        logger=logging.getLogger("test_park_linker"),
    )


class TestEntityLinkerInit:
    """Test cases for EntityLinker parameter validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"match_threshold": 1.5},
            {"match_threshold": -0.1},
            {"name_weight": 2},
            {"location_weight": -1},
            {"max_location_distance_km": 0},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(EntityValidationError):
            EntityLinker(**kwargs)

    def test_defaults_from_config(self):
        linker = EntityLinker()
        assert linker.match_threshold == 0.6
        assert linker.name_weight == 0.7
        assert linker.location_weight == 0.3
        assert linker.max_location_distance_km == 100
        assert linker.match_method == "name_location_similarity"


class TestScoring:
    """Test cases for score_pair and calculate_combined_score."""

    def test_combined_score_weights(self, linker):
        assert linker.calculate_combined_score(1.0, 0.5) == pytest.approx(0.85)

    def test_score_pair_without_coordinates(self, linker):
        a = NamedGeoEntity(id="a", name="Zion National Park")
        b = NamedGeoEntity(id="b", name="Zion National Park", latitude=37.3, longitude=-113)
        combined, name_sim, location_sim = linker.score_pair(a, b)
        assert name_sim == 1.0
        assert location_sim == 0.0
        assert combined == pytest.approx(0.7)


class TestFindBestMatch:
    """Test cases for find_best_match."""

    def test_ties_go_to_earlier_candidate(self, linker):
        entity = NamedGeoEntity(id="a", name="Arches", latitude=38.7, longitude=-109.6)
        first = NamedGeoEntity(id="Q1", name="Arches", latitude=38.7, longitude=-109.6)
        second = NamedGeoEntity(id="Q2", name="Arches", latitude=38.7, longitude=-109.6)

        link = linker.find_best_match(entity, [first, second])
        assert link.source_b_id == "Q1"

    def test_zero_score_never_matches(self):
        linker = EntityLinker(match_threshold=0.0)
        entity = NamedGeoEntity(id="a", name="")
        candidate = NamedGeoEntity(id="Q1", name="")
        assert linker.find_best_match(entity, [candidate]) is None

    def test_below_threshold(self, linker):
        entity = NamedGeoEntity(id="a", name="Zion", latitude=37.3, longitude=-113.0)
        candidate = NamedGeoEntity(id="Q1", name="Bryce", latitude=37.3, longitude=-113.0)
        # Location alone contributes at most 0.3
        assert linker.find_best_match(entity, [candidate]) is None

    def test_exactly_at_threshold_matches(self):
        linker = EntityLinker(match_threshold=0.7)
        entity = NamedGeoEntity(id="a", name="Zion")
        candidate = NamedGeoEntity(id="Q1", name="Zion")
        link = linker.find_best_match(entity, [candidate])
        assert link is not None
        assert link.confidence_score == pytest.approx(0.7)


class TestLinkEntities:
    """Test cases for EntityLinker.link_entities."""

    def test_yellowstone_links(self, linker, yellowstone_nps, yellowstone_wikidata):
        links = linker.link_entities([yellowstone_nps], [yellowstone_wikidata])

        assert len(links) == 1
        link = links[0]
        assert link.source_a_id == "nps-yell"
        assert link.source_b_id == "Q351"
        assert link.name_similarity == 1.0
        assert link.location_similarity > 0.99
        assert link.confidence_score > 0.99
        assert link.match_method == "name_location_similarity"

    def test_normalized_names_link_without_coordinates(self, linker):
        links = linker.link_entities(
            [{"id": "jotr", "name": "Joshua Tree N.P."}],
            [{"id": "Q1129", "name": "Joshua Tree NP"}],
        )
        assert len(links) == 1
        assert links[0].name_similarity == 1.0
        assert links[0].confidence_score == pytest.approx(0.7)

    def test_empty_source_b(self, linker, yellowstone_nps):
        assert linker.link_entities([yellowstone_nps], []) == []
        assert linker.stats["unmatched"] == 1

    def test_empty_source_a(self, linker, yellowstone_wikidata):
        assert linker.link_entities([], [yellowstone_wikidata]) == []

    def test_each_source_b_entity_used_once(self, linker):
        source_a = [
            {"id": "1", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0},
            {"id": "2", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0},
        ]
        source_b = [
            {"id": "Q10", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0}
        ]

        links = linker.link_entities(source_a, source_b)

        assert len(links) == 1
        assert links[0].source_a_id == "1"

    def test_second_entity_takes_next_best(self, linker):
        source_a = [
            {"id": "1", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0},
            {"id": "2", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0},
        ]
        source_b = [
            {"id": "Q10", "name": "Twin Lakes Park", "latitude": 40.0, "longitude": -105.0},
            {"id": "Q11", "name": "Twin Lake Park", "latitude": 40.01, "longitude": -105.0},
        ]

        links = linker.link_entities(source_a, source_b)

        assert [(l.source_a_id, l.source_b_id) for l in links] == [
            ("1", "Q10"),
            ("2", "Q11"),
        ]

    def test_output_in_source_a_order(self, linker):
        source_a = [
            {"id": "b", "name": "Bryce Canyon"},
            {"id": "nomatch", "name": "Completely Different"},
            {"id": "a", "name": "Arches"},
        ]
        source_b = [{"id": "Q2", "name": "Arches"}, {"id": "Q1", "name": "Bryce Canyon"}]

        links = linker.link_entities(source_a, source_b)

        assert [link.source_a_id for link in links] == ["b", "a"]

    def test_inputs_not_mutated(self, linker, yellowstone_nps, yellowstone_wikidata):
        source_a = [yellowstone_nps]
        source_b = [yellowstone_wikidata]
        snapshot = (list(source_a), list(source_b), dict(yellowstone_nps))

        linker.link_entities(source_a, source_b)

        assert (source_a, source_b, yellowstone_nps) == snapshot

    def test_malformed_record_aborts(self, linker, yellowstone_nps):
        with pytest.raises(EntityValidationError, match="Record 0"):
            linker.link_entities(
                [yellowstone_nps], [{"id": "Q1", "name": "Bad", "latitude": 44.6}]
            )

    def test_progress_callback(self, linker, yellowstone_nps, yellowstone_wikidata):
        progress = []
        other = {"id": "nps-other", "name": "Other Site"}

        linker.link_entities(
            [yellowstone_nps, other],
            [yellowstone_wikidata],
            on_progress=progress.append,
        )

        assert progress == [
            LinkingProgress(1, 2, 1, "Yellowstone National Park"),
            LinkingProgress(2, 2, 1, "Other Site"),
        ]

    def test_stats(self, linker, yellowstone_nps, yellowstone_wikidata):
        linker.link_entities(
            [yellowstone_nps, {"id": "x", "name": "Elsewhere"}], [yellowstone_wikidata]
        )

        assert linker.stats["total_source_a"] == 2
        assert linker.stats["total_source_b"] == 1
        assert linker.stats["matched"] == 1
        assert linker.stats["unmatched"] == 1
        assert linker.stats["avg_confidence_score"] > 0.99

    def test_module_level_helper(self, yellowstone_nps, yellowstone_wikidata):
        progress = []
        links = link_entities(
            [yellowstone_nps],
            [yellowstone_wikidata],
            match_threshold=0.99,
            on_progress=progress.append,
        )
        assert len(links) == 1
        assert len(progress) == 1

    def test_high_threshold_rejects(self, yellowstone_wikidata):
        links = link_entities(
            [{"id": "1", "name": "Yellowstone NP"}],
            [yellowstone_wikidata],
            match_threshold=0.9,
        )
        assert links == []


class TestParkLinkingJob:
    """Test cases for ParkLinkingJob with database access mocked."""

    @patch("scripts.processors.park_linker.pd.read_sql")
    def test_run_dry(self, mock_read_sql, sample_nps_parks_df, sample_wikidata_parks_df):
        mock_read_sql.side_effect = [sample_nps_parks_df, sample_wikidata_parks_df]
        job = ParkLinkingJob(write_db=False, engine=MagicMock())

        links_df = job.run()

        assert mock_read_sql.call_count == 2
        assert job.db_writer is None
        assert list(links_df["nps_park_id"]) == ["1", "2"]
        assert list(links_df["wikidata_id"]) == ["Q351", "Q1129"]
        assert list(links_df["wikidata_park_id"]) == ["101", "102"]
        assert list(links_df["nps_park_code"]) == ["yell", "jotr"]
        assert (links_df["match_method"] == "name_location_similarity").all()
        assert (links_df["confidence_score"] >= 0.6).all()

    @patch("scripts.database.db_writer.DatabaseWriter")
    @patch("scripts.processors.park_linker.pd.read_sql")
    def test_run_writes_links(
        self,
        mock_read_sql,
        mock_writer_cls,
        sample_nps_parks_df,
        sample_wikidata_parks_df,
    ):
        mock_read_sql.side_effect = [sample_nps_parks_df, sample_wikidata_parks_df]
        job = ParkLinkingJob(write_db=True, engine=MagicMock())

        links_df = job.run()

        mock_writer_cls.return_value.write_park_links.assert_called_once()
        written_df = mock_writer_cls.return_value.write_park_links.call_args[0][0]
        assert written_df.equals(links_df)
        assert (
            mock_writer_cls.return_value.write_park_links.call_args[1]["mode"]
            == "upsert"
        )

    @patch("scripts.processors.park_linker.pd.read_sql")
    def test_run_with_empty_wikidata(self, mock_read_sql, sample_nps_parks_df):
        mock_read_sql.side_effect = [
            sample_nps_parks_df,
            pd.DataFrame(columns=["id", "wikidata_id", "label", "latitude", "longitude"]),
        ]
        job = ParkLinkingJob(engine=MagicMock())

        links_df = job.run()

        assert links_df.empty

    @patch("scripts.processors.park_linker.pd.read_sql")
    def test_test_limit(self, mock_read_sql, sample_nps_parks_df, sample_wikidata_parks_df):
        mock_read_sql.side_effect = [sample_nps_parks_df, sample_wikidata_parks_df]
        job = ParkLinkingJob(engine=MagicMock(), test_limit=1)

        links_df = job.run()

        assert list(links_df["nps_park_id"]) == ["1"]
        assert job.linker.stats["total_source_a"] == 1

    @patch("scripts.processors.park_linker.pd.read_sql")
    def test_run_propagates_errors(self, mock_read_sql):
        mock_read_sql.side_effect = Exception("relation does not exist")
        job = ParkLinkingJob(engine=MagicMock())

        with pytest.raises(Exception, match="relation does not exist"):
            job.run()

    def test_build_links_dataframe_rejects_bad_wikidata_id(self):
        job = ParkLinkingJob(engine=MagicMock())
        link = EntityLink(
            source_a_id="1",
            source_b_id="not-a-qid",
            confidence_score=0.9,
            name_similarity=1.0,
            location_similarity=0.7,
        )
        nps = [{"id": 1, "name": "A", "metadata": {"park_code": "aaaa"}}]
        wikidata = [{"id": "not-a-qid", "name": "A", "metadata": {"row_id": 5}}]

        with pytest.raises(SchemaErrors):
            job.build_links_dataframe([link], nps, wikidata)

    def test_run_with_padded_ids(self):
        """Test that ids with surrounding whitespace still resolve to their rows."""
        nps_df = pd.DataFrame(
            {
                "id": ["abc "],
                "park_code": ["yell"],
                "full_name": ["Yellowstone National Park"],
                "latitude": [44.6],
                "longitude": [-110.5],
            }
        )
        wikidata_df = pd.DataFrame(
            {
                "id": [101],
                "wikidata_id": [" Q351"],
                "label": ["Yellowstone National Park"],
                "latitude": [44.59],
                "longitude": [-110.49],
            }
        )
        job = ParkLinkingJob(engine=MagicMock())

        with patch(
            "scripts.processors.park_linker.pd.read_sql",
            side_effect=[nps_df, wikidata_df],
        ):
            links_df = job.run()

        assert list(links_df["nps_park_id"]) == ["abc"]
        assert list(links_df["wikidata_id"]) == ["Q351"]
        assert list(links_df["wikidata_park_id"]) == ["101"]
        assert list(links_df["nps_park_code"]) == ["yell"]

    def test_entity_mapping(self, sample_nps_parks_df, sample_wikidata_parks_df):
        nps = ParkLinkingJob.nps_entities(sample_nps_parks_df)
        wikidata = ParkLinkingJob.wikidata_entities(sample_wikidata_parks_df)

        assert nps[0]["name"] == "Yellowstone National Park"
        assert nps[0]["metadata"] == {"park_code": "yell"}
        assert wikidata[1]["id"] == "Q1129"
        assert wikidata[1]["metadata"] == {"row_id": 102}


class TestMain:
    """Test cases for the command-line entry point."""

    @patch("scripts.processors.park_linker.setup_park_linker_logging")
    @patch("scripts.processors.park_linker.ParkLinkingJob")
    def test_dry_run_overrides_write_db(self, mock_job_cls, mock_logging):
        argv = ["park_linker.py", "--write-db", "--dry-run", "--threshold", "0.8"]
        with patch("sys.argv", argv):
            main()

        kwargs = mock_job_cls.call_args[1]
        assert kwargs["write_db"] is False
        assert kwargs["match_threshold"] == 0.8
        assert kwargs["test_limit"] is None
        mock_job_cls.return_value.run.assert_called_once()

    @patch("scripts.processors.park_linker.setup_park_linker_logging")
    @patch("scripts.processors.park_linker.ParkLinkingJob")
    def test_failure_exits_nonzero(self, mock_job_cls, mock_logging):
        mock_job_cls.return_value.run.side_effect = Exception("boom")
        with patch("sys.argv", ["park_linker.py"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
