"""Tests for the configured pipeline and its step functions."""

from pathlib import Path

import polars as pl
import pytest
import yaml
from pydantic import ValidationError

from memory_canon import MemoryData
from pipeline.pipeline import Pipeline
from processing import (
    detect_runs,
    load_media,
    score_runs,
    select_members,
    summarize_days,
)
from processing.steps.load import media_from_frame, read_media_table
from tests.fixtures import create_trip_scenario, day_key

ALL_STEPS = [
    load_media,
    summarize_days,
    detect_runs,
    score_runs,
    select_members,
]

SHIPPED_CONFIG = (
    Path(__file__).parents[1] / "projects" / "memories" / "config.yaml"
)

HOME_LOCATION = {
    "lat": 52.52,
    "lon": 13.405,
    "radius_km": 12.0,
    "country": "de",
}


@pytest.fixture
def media_table(tmp_path):
    """Trip scenario written as a parquet media table."""
    media, _ = create_trip_scenario()
    frame = pl.DataFrame(
        {
            "id": [m.id for m in media],
            "taken_at": [m.taken_at for m in media],
            "gps_lat": [m.gps_lat for m in media],
            "gps_lon": [m.gps_lon for m in media],
            "quality_score": [m.quality_score for m in media],
        }
    )
    path = tmp_path / "media.parquet"
    frame.write_parquet(path)
    return path


def write_config(tmp_path, steps, **variables):
    """Write a pipeline configuration and return its path."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({**variables, "steps": steps}))
    return path


def full_steps(selector: str = "greedy"):
    """Step configuration running every step."""
    return [
        {
            "name": "load_media",
            "params": {
                "media_path": "{{ data_dir }}/media.parquet",
                "home_location": HOME_LOCATION,
            },
        },
        {"name": "summarize_days"},
        {"name": "detect_runs"},
        {"name": "score_runs", "params": {"holidays": "de"}},
        {
            "name": "select_members",
            "validate_output": True,
            "params": {"selector": selector},
        },
    ]


class TestLoadMedia:
    """Tests for reading the media table."""

    def test_round_trip(self, media_table):
        """Should build one media item per row with aware times."""
        media = media_from_frame(read_media_table(media_table))

        assert len(media) == 24
        assert media[0].id == 1
        assert media[0].captured_at.utcoffset().total_seconds() == 0

    def test_null_cells_ignored(self):
        """Should leave null cells at their defaults."""
        frame = pl.DataFrame({"id": [1, 2], "gps_lat": [None, 52.5]})
        media = media_from_frame(frame)

        assert media[0].gps_lat is None
        assert media[1].gps_lat == 52.5

    def test_unsupported_format(self, tmp_path):
        """Should reject unknown file types."""
        with pytest.raises(ValueError, match="Unsupported file format"):
            read_media_table(tmp_path / "media.csv")


class TestPipeline:
    """Tests for running the configured steps."""

    def test_greedy_run(self, tmp_path, media_table):
        """Should carry the trip through every step."""
        config = write_config(
            tmp_path, full_steps(), data_dir=str(media_table.parent)
        )
        data = Pipeline(config, steps=ALL_STEPS).run()

        assert len(data.media) == 24
        assert len(data.days) == 8
        assert data.runs == [[day_key(day) for day in range(2, 6)]]
        [draft] = data.drafts
        [selection] = data.selections
        assert draft.params["classification"] == "vacation"
        assert selection.members
        assert set(selection.member_ids) <= set(draft.members)

    def test_policy_run_is_deterministic(self, tmp_path, media_table):
        """Should select the same members on every run."""
        config = write_config(
            tmp_path, full_steps("policy"), data_dir=str(media_table.parent)
        )
        first = Pipeline(config, steps=ALL_STEPS).run()
        second = Pipeline(config, steps=ALL_STEPS).run()

        [selection] = first.selections
        assert selection.members
        assert selection.member_ids == second.selections[0].member_ids
        assert "rejections" in selection.telemetry

    def test_unknown_step(self, tmp_path):
        """Should refuse a step that was not registered."""
        config = write_config(tmp_path, [{"name": "cluster_faces"}])
        with pytest.raises(ValueError, match="not found"):
            Pipeline(config, steps=ALL_STEPS).run()

    def test_missing_steps(self, tmp_path):
        """Should refuse a configuration without steps."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"data_dir": "data"}))
        with pytest.raises(ValueError, match="steps"):
            Pipeline(path)

    def test_missing_parameter(self, tmp_path):
        """Should name the missing parameter of a step."""
        config = write_config(tmp_path, [{"name": "load_media"}])
        with pytest.raises(ValueError, match="media_path"):
            Pipeline(config, steps=ALL_STEPS).run()

    def test_template_variables(self, tmp_path):
        """Should substitute top-level variables into step parameters."""
        config = write_config(
            tmp_path,
            [{"name": "load_media", "params": {"media_path": "{{ root }}/a"}}],
            root="/photos",
        )
        pipeline = Pipeline(config)
        params = pipeline.config["steps"][0]["params"]
        assert params["media_path"] == "/photos/a"

    def test_chained_variables(self, tmp_path):
        """Should resolve variables that reference other variables."""
        config = write_config(
            tmp_path,
            [{"name": "load_media", "params": {"media_path": "{{ table }}"}}],
            root="/photos",
            year="{{ root }}/2024",
            table="{{ year }}/media.parquet",
        )
        pipeline = Pipeline(config)
        params = pipeline.config["steps"][0]["params"]

        assert params["media_path"] == "/photos/2024/media.parquet"
        assert pipeline.config["table"] == "/photos/2024/media.parquet"

    def test_circular_variables(self, tmp_path):
        """Should refuse variables that reference each other in a cycle."""
        config = write_config(
            tmp_path, [{"name": "load_media"}], a="{{ b }}", b="{{ a }}/x"
        )
        with pytest.raises(ValueError, match="circular"):
            Pipeline(config)

    def test_shipped_config(self):
        """Should resolve the media path of the example project."""
        pipeline = Pipeline(SHIPPED_CONFIG)
        [load, *_] = pipeline.config["steps"]

        assert load["name"] == "load_media"
        assert load["params"]["media_path"] == "data/media.parquet"
        assert "{{" not in yaml.safe_dump(pipeline.config)


class TestStepDecorator:
    """Tests for validation and write-back of decorated steps."""

    def test_invalid_input(self):
        """Should reject containers that do not match their type."""
        _, home = create_trip_scenario()
        with pytest.raises(ValidationError):
            summarize_days(media=[{"id": 0}], home=home)

    def test_skip_input_validation(self):
        """Should skip validation when asked to."""
        _, home = create_trip_scenario()
        result = detect_runs(days={}, home=home, validate_input=False)
        assert result == {"runs": []}

    def test_write_back(self):
        """Should store returned containers on the memory data."""
        media, home = create_trip_scenario()
        data = MemoryData()

        summarize_days(media=media, home=home, memory_data=data)

        assert len(data.days) == 8
        assert data.runs == []

    def test_unknown_selector(self):
        """Should refuse an unknown selector name."""
        _, home = create_trip_scenario()
        with pytest.raises(ValueError, match="Unknown selector"):
            select_members(days={}, drafts=[], home=home, selector="random")

    def test_unknown_holiday_calendar(self):
        """Should refuse an unknown holiday calendar."""
        _, home = create_trip_scenario()
        with pytest.raises(ValueError, match="holiday calendar"):
            score_runs(days={}, runs=[], home=home, holidays="fr")
