"""Loads the media table and the home descriptor."""

import logging
from pathlib import Path
from typing import Any

import polars as pl

from memory_canon.models import HomeDescriptor, MediaAsset
from processing.decoration import step

logger = logging.getLogger(__name__)

READERS = {
    ".parquet": pl.read_parquet,
    ".ndjson": pl.read_ndjson,
    ".jsonl": pl.read_ndjson,
    ".json": pl.read_json,
}


def read_media_table(path: str | Path) -> pl.DataFrame:
    """Read a media table from parquet, NDJSON or JSON."""
    suffix = Path(path).suffix.lower()
    reader = READERS.get(suffix)
    if reader is None:
        msg = f"Unsupported file format for media table: {path}"
        raise ValueError(msg)
    return reader(path)


def media_from_frame(frame: pl.DataFrame) -> list[MediaAsset]:
    """Build media records from table rows, ignoring null cells."""
    return [
        MediaAsset.model_validate(
            {key: value for key, value in row.items() if value is not None}
        )
        for row in frame.iter_rows(named=True)
    ]


@step(validate_input=False, validate_output=True)
def load_media(
    media_path: str, home_location: dict[str, Any]
) -> dict[str, Any]:
    """Load the media items and the home descriptor.

    Args:
        media_path: Path of the media table.
        home_location: Home descriptor fields (lat, lon, radius_km, ...).

    Returns:
        The ``media`` and ``home`` containers.
    """
    logger.info("Loading media from %s...", media_path)
    media = media_from_frame(read_media_table(media_path))
    home = HomeDescriptor.model_validate(home_location)
    logger.info("Loaded %d media items.", len(media))
    return {"media": media, "home": home}
