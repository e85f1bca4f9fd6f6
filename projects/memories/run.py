"""Runner script for the photo memories pipeline."""

import logging
from pathlib import Path

from pipeline.pipeline import Pipeline
from processing import (
    detect_runs,
    load_media,
    score_runs,
    select_members,
    summarize_days,
)

# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------
CONFIG_PATH = Path(__file__).parent / "config.yaml"

# ---------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger(__name__)

# Steps the configuration may reference, in any order
processing_steps = [
    load_media,
    summarize_days,
    detect_runs,
    score_runs,
    select_members,
]


# ---------------------------------------------------------------------
if __name__ == "__main__":
    logger.info("Starting photo memories pipeline")

    pipeline = Pipeline(config_path=CONFIG_PATH, steps=processing_steps)
    result = pipeline.run()

    for draft, selection in zip(
        result.drafts, result.selections, strict=True
    ):
        logger.info(
            "%s %s: %d of %d members",
            draft.params["classification_label"],
            draft.params.get("place") or "unknown place",
            len(selection.members),
            len(draft.members),
        )
