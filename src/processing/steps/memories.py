"""Pipeline steps from media items to curated vacation memories.

Each step reads the containers it names from the pipeline state and its
configuration from the step's ``params``.
"""

import logging
from typing import Any

import polars as pl

from memory_canon.models import (
    ClusterDraft,
    DaySummary,
    HomeDescriptor,
    MediaAsset,
    SelectionResult,
)
from processing.decoration import step
from processing.resolvers.holidays import (
    GermanFederalHolidayResolver,
    HolidayResolver,
    NoHolidayResolver,
)

from .day_summary import DaySummaryConfig, DaySummaryPipeline, summaries_frame
from .runs import RunDetector, RunDetectorConfig
from .scoring import VacationScoreCalculator, VacationScoreConfig
from .selection import (
    SelectionPolicy,
    VacationMemberSelector,
    VacationSelectionOptions,
    build_day_contexts,
    default_policy_selector,
)

logger = logging.getLogger(__name__)

HOLIDAY_CALENDARS: dict[str, type[HolidayResolver]] = {
    "none": NoHolidayResolver,
    "de": GermanFederalHolidayResolver,
}


@step()
def summarize_days(
    media: list[MediaAsset],
    home: HomeDescriptor,
    config: dict[str, Any] | None = None,
) -> dict[str, dict[str, DaySummary]]:
    """Build the enriched day summaries."""
    pipeline = DaySummaryPipeline(DaySummaryConfig.model_validate(config or {}))
    days = pipeline.run(media, home)

    frame = summaries_frame(days)
    away = frame.filter(pl.col("base_away")).height
    logger.info("Summarized %d days (%d away).", frame.height, away)
    return {"days": days}


@step()
def detect_runs(
    days: dict[str, DaySummary],
    home: HomeDescriptor,
    config: dict[str, Any] | None = None,
) -> dict[str, list[list[str]]]:
    """Detect away runs over the day summaries."""
    detector = RunDetector(RunDetectorConfig.model_validate(config or {}))
    runs = detector.detect(days, home)
    logger.info("Detected %d away runs.", len(runs))
    return {"runs": runs}


@step()
def score_runs(
    days: dict[str, DaySummary],
    runs: list[list[str]],
    home: HomeDescriptor,
    config: dict[str, Any] | None = None,
    holidays: str = "none",
) -> dict[str, list[ClusterDraft]]:
    """Score every run and keep the qualifying drafts.

    Args:
        days: Day summaries.
        runs: Away runs.
        home: Home descriptor.
        config: Score weights and thresholds.
        holidays: Holiday calendar for the weekend bonus, ``none`` or
            ``de``.
    """
    if holidays not in HOLIDAY_CALENDARS:
        msg = (
            f"Unknown holiday calendar '{holidays}'. "
            f"Expected one of {sorted(HOLIDAY_CALENDARS)}."
        )
        raise ValueError(msg)

    calculator = VacationScoreCalculator(
        VacationScoreConfig.model_validate(config or {}),
        HOLIDAY_CALENDARS[holidays](),
    )
    drafts = [
        draft
        for run in runs
        if (draft := calculator.build_draft(run, days, home)) is not None
    ]
    logger.info("Scored %d of %d runs as drafts.", len(drafts), len(runs))
    return {"drafts": drafts}


@step()
def select_members(
    days: dict[str, DaySummary],
    drafts: list[ClusterDraft],
    home: HomeDescriptor,
    selector: str = "greedy",
    options: dict[str, Any] | None = None,
) -> dict[str, list[SelectionResult]]:
    """Curate the members of every draft.

    Args:
        days: Day summaries.
        drafts: Scored drafts; ``params["day_keys"]`` names their days.
        home: Home descriptor.
        selector: ``greedy`` for the vacation selector or ``policy`` for
            the staged selection pipeline.
        options: Options of the chosen selector.
    """
    selections: list[SelectionResult] = []
    if selector == "greedy":
        greedy = VacationMemberSelector(
            default_options=VacationSelectionOptions.model_validate(
                options or {}
            )
        )
        for draft in drafts:
            day_keys = draft.params["day_keys"]
            run_days = {key: days[key] for key in day_keys}
            contexts = build_day_contexts(day_keys, days)
            selections.append(
                greedy.select(run_days, home, day_contexts=contexts)
            )
    elif selector == "policy":
        policy = SelectionPolicy.model_validate(options or {})
        staged = default_policy_selector()
        for draft in drafts:
            day_keys = draft.params["day_keys"]
            media = [m for key in day_keys for m in days[key].members]
            draft_policy = policy.with_day_context(
                build_day_contexts(day_keys, days)
            )
            selections.append(staged.select(media, draft_policy, draft))
    else:
        msg = f"Unknown selector '{selector}'. Expected 'greedy' or 'policy'."
        raise ValueError(msg)

    logger.info(
        "Selected %d members over %d drafts.",
        sum(len(s.members) for s in selections),
        len(selections),
    )
    return {"selections": selections}
