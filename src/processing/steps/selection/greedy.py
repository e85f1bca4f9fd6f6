"""Greedy vacation member selection.

Algorithm Overview:
-------------------
1. Prefilter
    - Drop no-show, low quality and below-floor media
    - Collapse bursts (explicit burst ids, or consecutive shots at most
      30 s apart) to one representative; the rest go to a fallback pool
    - Keep the best scoring candidate per time slot and day; slot losers
      go to the fallback pool
2. Thresholds
    - Per-day caps from the target spread over the run days, adjusted by
      the day category
    - Per-day spacing that grows with the day's duration
    - Staypoint cap of at most half the base day cap
    - Perceptual hash threshold raised to a percentile of the distances
      between nearby candidates
3. Greedy pass
    - Primary candidates round-robin over the days, then the fallback
      pool, each checked against the caps, near duplicates, spacing and
      people balance
4. Relaxation
    - Below the minimum total the spacing and then the hash threshold are
      dropped to zero; optionally the caps are raised to the target
"""

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from memory_canon.codebook import CandidateOrigin, DayCategory
from memory_canon.models import (
    DayContext,
    DaySummary,
    HomeDescriptor,
    MediaAsset,
    SelectionResult,
)
from processing.resolvers.quality import MediaQualityAggregator
from processing.resolvers.timezone import zone_from_identifier
from processing.steps.day_summary.base import DaySummaries
from processing.steps.day_summary.staypoint_stage import staypoint_key

from .candidates import SelectionCandidate
from .options import VacationSelectionOptions
from .similarity import SimilarityMetrics

logger = logging.getLogger(__name__)

SYNTHETIC_BURST_SECONDS = 30
DEFAULT_QUALITY = 0.5
PHASH_SAMPLE_NEIGHBOURS = 5
PHASH_SAMPLE_WINDOW_SECONDS = 600
DUPLICATE_WINDOW_SECONDS = 300
TELEMETRY_PHASH_SAMPLES = 50


def score_media(
    media: MediaAsset,
    options: VacationSelectionOptions,
    quality: float,
    adjustment: float = 0.0,
) -> float:
    """Quality plus video and face bonuses, minus the selfie penalty."""
    score = quality
    if media.is_video:
        score += options.video_bonus
    if media.has_faces:
        score += options.face_bonus
    if media.faces_count == 1:
        score -= options.selfie_penalty
    score += adjustment
    return max(0.0, score)


def resolve_phash_percentile(samples: list[int], ratio: float) -> int:
    """Value at ``ratio`` of the sorted samples, 0 without samples."""
    if not samples:
        return 0
    ordered = sorted(samples)
    clamped = max(0.0, min(1.0, ratio))
    index = math.floor(clamped * (len(ordered) - 1))
    return math.ceil(ordered[index])


def round_robin(
    by_day: Mapping[str, list[SelectionCandidate]], day_order: list[str]
) -> list[SelectionCandidate]:
    """Interleave the per-day lists by position."""
    ordered: list[SelectionCandidate] = []
    index = 0
    while True:
        progress = False
        for day in day_order:
            candidates = by_day.get(day, [])
            if index < len(candidates):
                ordered.append(candidates[index])
                progress = True
        if not progress:
            return ordered
        index += 1


@dataclass
class _Selection:
    """Mutable state of one selection attempt."""

    selected: list[SelectionCandidate] = field(default_factory=list)
    day_counts: dict[str, int] = field(default_factory=dict)
    staypoint_counts: dict[str, int] = field(default_factory=dict)
    person_counts: dict[int, int] = field(default_factory=dict)

    def add(self, candidate: SelectionCandidate) -> None:
        self.selected.append(candidate)
        self._count(candidate, 1)

    def replace(self, index: int, candidate: SelectionCandidate) -> None:
        self._count(self.selected[index], -1)
        self.selected[index] = candidate
        self._count(candidate, 1)

    def _count(self, candidate: SelectionCandidate, delta: int) -> None:
        day = candidate.day
        self.day_counts[day] = max(0, self.day_counts.get(day, 0) + delta)
        if candidate.staypoint_key is not None:
            key = candidate.staypoint_key
            self.staypoint_counts[key] = max(
                0, self.staypoint_counts.get(key, 0) + delta
            )
        for person in candidate.persons:
            count = self.person_counts.get(person, 0) + delta
            if count <= 0:
                self.person_counts.pop(person, None)
            else:
                self.person_counts[person] = count


class _Attempt:
    """One greedy pass over the day summaries with fixed options."""

    def __init__(
        self,
        days: DaySummaries,
        options: VacationSelectionOptions,
        day_contexts: Mapping[str, DayContext],
        quality_aggregator: MediaQualityAggregator,
        metrics: SimilarityMetrics,
    ) -> None:
        self.days = days
        self.options = options
        self.day_contexts = day_contexts
        self.quality_aggregator = quality_aggregator
        self.metrics = metrics

        self.day_caps: dict[str, int] = {}
        self.day_spacing: dict[str, int] = {}
        self.base_per_day_cap = options.max_per_day
        self.max_per_staypoint = options.max_per_staypoint
        self.phash_min = options.phash_min_hamming
        self.telemetry = self._initial_telemetry()

    def _initial_telemetry(self) -> dict[str, Any]:
        options = self.options
        return {
            "prefilter_total": 0,
            "prefilter_no_show": 0,
            "prefilter_low_quality": 0,
            "prefilter_quality_floor": 0,
            "prefilter_no_timestamp": 0,
            "burst_collapsed": 0,
            "day_limit_rejections": 0,
            "staypoint_rejections": 0,
            "spacing_rejections": 0,
            "near_duplicate_blocked": 0,
            "near_duplicate_replacements": 0,
            "fallback_used": 0,
            "face_detection_available": options.face_detection_available,
            "face_detection_people_weight_adjusted": (
                not options.face_detection_available
            ),
            "face_bonus": options.face_bonus,
            "video_bonus": options.video_bonus,
            "people_balance_enabled": options.enable_people_balance,
            "people_balance_weight": options.people_balance_weight,
            "people_balance_repeat_penalty": options.repeat_penalty,
            "people_balance_considered": 0,
            "people_balance_penalized": 0,
            "people_balance_bonuses": 0,
            "people_balance_rejected": 0,
            "people_balance_accepted": 0,
            "people_balance_counts": {},
            "people_balance_target_cap": (
                max(
                    1,
                    math.ceil(
                        options.target_total * options.people_balance_weight
                    ),
                )
                if options.enable_people_balance
                else None
            ),
            "relaxations": [],
            "thresholds": {
                "run_day_count": len(self.days),
                "raw_per_day_cap": None,
                "base_per_day_cap": None,
                "day_caps": {},
                "day_categories": {},
                "day_spacing_seconds": {},
                "max_per_staypoint": options.max_per_staypoint,
                "phash_min_effective": options.phash_min_hamming,
                "phash_percentile_ratio": options.phash_percentile,
                "phash_percentile_threshold": None,
                "phash_sample_count": 0,
                "spacing_relaxed_to_zero": False,
                "phash_relaxed_to_zero": False,
            },
            "metrics": {"phash_samples": []},
            "selected_total": 0,
        }

    def run(self) -> list[MediaAsset]:
        if not self.days:
            return []

        primary_by_day, fallback_by_day = self._prefilter()
        if not any(primary_by_day.values()) and not any(
            fallback_by_day.values()
        ):
            return []

        day_order = sorted(self.days)
        self._resolve_thresholds(day_order, primary_by_day, fallback_by_day)

        primary = round_robin(
            {
                day: sorted(
                    candidates,
                    key=lambda c: (c.slot or 0, -c.score, c.timestamp),
                )
                for day, candidates in primary_by_day.items()
            },
            day_order,
        )
        fallback = round_robin(
            {
                day: sorted(candidates, key=lambda c: (-c.score, c.timestamp))
                for day, candidates in fallback_by_day.items()
            },
            day_order,
        )

        state = _Selection()
        target = self.options.target_total
        for candidate in primary:
            accepted = self._consider(candidate, state)
            if accepted and len(state.selected) >= target:
                break
        if len(state.selected) < target:
            for candidate in fallback:
                if (
                    self._consider(candidate, state, from_fallback=True)
                    and len(state.selected) >= target
                ):
                    break

        ordered = sorted(
            state.selected, key=lambda c: (c.timestamp, -c.quality, c.id)
        )
        self.telemetry["selected_total"] = len(ordered)
        self.telemetry["people_balance_counts"] = dict(
            sorted(state.person_counts.items())
        )
        return [candidate.media for candidate in ordered]

    # Prefilter -----------------------------------------------------------
    def _prefilter(
        self,
    ) -> tuple[
        dict[str, list[SelectionCandidate]], dict[str, list[SelectionCandidate]]
    ]:
        primary: dict[str, list[SelectionCandidate]] = {}
        fallback: dict[str, list[SelectionCandidate]] = {}

        for day, summary in self.days.items():
            primary[day] = []
            fallback[day] = []
            accepted = self._accepted_media(summary)
            if not accepted:
                continue

            for burst_id, members in self._group_bursts(day, accepted):
                if len(members) == 1:
                    primary[day].append(self._candidate(members[0], summary))
                    continue
                representative = self._burst_representative(members)
                primary[day].append(
                    self._candidate(representative, summary, burst_id=burst_id)
                )
                for member in members:
                    if member is representative:
                        continue
                    fallback[day].append(
                        self._candidate(
                            member,
                            summary,
                            burst_id=burst_id,
                            origin=CandidateOrigin.BURST,
                        )
                    )
                    self.telemetry["burst_collapsed"] += 1

            primary[day], slot_losers = self._consolidate_slots(primary[day])
            fallback[day].extend(slot_losers)

        return primary, fallback

    def _accepted_media(self, summary: DaySummary) -> list[MediaAsset]:
        accepted: list[tuple[int, int, MediaAsset]] = []
        for order, media in enumerate(summary.members):
            self.telemetry["prefilter_total"] += 1
            if media.no_show:
                self.telemetry["prefilter_no_show"] += 1
                continue
            if media.low_quality:
                self.telemetry["prefilter_low_quality"] += 1
                continue
            quality = self.quality_aggregator.aggregate(media)
            if quality is not None and quality < self.options.quality_floor:
                self.telemetry["prefilter_quality_floor"] += 1
                continue
            timestamp = media.timestamp
            if timestamp is None:
                self.telemetry["prefilter_no_timestamp"] += 1
                continue
            accepted.append((timestamp, order, media))

        accepted.sort(key=lambda entry: (entry[0], entry[1]))
        return [media for _, _, media in accepted]

    @staticmethod
    def _group_bursts(
        day: str, accepted: list[MediaAsset]
    ) -> list[tuple[str | None, list[MediaAsset]]]:
        """Group explicit bursts and runs of shots at most 30 s apart.

        Returns (burst id, members) pairs ordered by their first capture.
        Synthetic groups of one item carry no burst id.
        """
        # (first timestamp, sequence, burst id, members)
        groups: list[tuple[int, int, str | None, list[MediaAsset]]] = []
        bursts: dict[str, int] = {}
        synthetic: list[MediaAsset] = []
        synthetic_index = 0

        def finalize() -> None:
            nonlocal synthetic_index
            if not synthetic:
                return
            burst_id = (
                f"synthetic:{day}:{synthetic_index}"
                if len(synthetic) > 1
                else None
            )
            groups.append(
                (
                    synthetic[0].timestamp or 0,
                    len(groups),
                    burst_id,
                    list(synthetic),
                )
            )
            synthetic_index += 1
            synthetic.clear()

        for media in accepted:
            timestamp = media.timestamp or 0
            if media.burst_uuid:
                finalize()
                if media.burst_uuid not in bursts:
                    bursts[media.burst_uuid] = len(groups)
                    groups.append((timestamp, len(groups), media.burst_uuid, []))
                groups[bursts[media.burst_uuid]][3].append(media)
                continue

            if synthetic and timestamp - (
                synthetic[-1].timestamp or 0
            ) > SYNTHETIC_BURST_SECONDS:
                finalize()
            synthetic.append(media)
        finalize()

        groups.sort(key=lambda group: (group[0], group[1]))
        return [(burst_id, members) for _, _, burst_id, members in groups]

    @staticmethod
    def _burst_representative(members: list[MediaAsset]) -> MediaAsset:
        best = next(
            (m for m in members if m.burst_representative is True), members[0]
        )
        for member in members:
            if (
                member.quality_score is not None
                and best.quality_score is not None
                and member.quality_score > best.quality_score
            ):
                best = member
        return best

    @staticmethod
    def _consolidate_slots(
        candidates: list[SelectionCandidate],
    ) -> tuple[list[SelectionCandidate], list[SelectionCandidate]]:
        slots: dict[int | None, SelectionCandidate] = {}
        losers: list[SelectionCandidate] = []
        for candidate in candidates:
            existing = slots.get(candidate.slot)
            if existing is None:
                slots[candidate.slot] = candidate
            elif candidate.score > existing.score:
                losers.append(existing)
                slots[candidate.slot] = candidate
            else:
                losers.append(candidate)
        return list(slots.values()), losers

    def _candidate(
        self,
        media: MediaAsset,
        summary: DaySummary,
        burst_id: str | None = None,
        origin: CandidateOrigin = CandidateOrigin.SLOT,
    ) -> SelectionCandidate:
        timestamp = media.timestamp or 0
        quality = self.quality_aggregator.aggregate(media)
        if quality is None:
            quality = DEFAULT_QUALITY
        return SelectionCandidate(
            media=media,
            day=summary.date,
            timestamp=timestamp,
            slot=self._slot(media, summary, timestamp),
            score=score_media(media, self.options, quality),
            quality=quality,
            staypoint_key=self._staypoint_key(media, summary, timestamp),
            burst_id=burst_id,
            origin=origin,
            persons=tuple(dict.fromkeys(media.person_ids)),
            has_faces=media.has_faces,
        )

    def _slot(
        self, media: MediaAsset, summary: DaySummary, timestamp: int
    ) -> int:
        zone = zone_from_identifier(summary.local_timezone_identifier) or UTC
        moment = media.captured_at or datetime.fromtimestamp(timestamp, UTC)
        hours = max(1, self.options.time_slot_hours)
        return moment.astimezone(zone).hour // hours

    @staticmethod
    def _staypoint_key(
        media: MediaAsset, summary: DaySummary, timestamp: int
    ) -> str | None:
        if media.id in summary.staypoint_index:
            return summary.staypoint_index[media.id]
        for staypoint in summary.staypoints:
            if staypoint.start <= timestamp <= staypoint.end:
                return staypoint_key(summary.date, staypoint)
        return None

    # Thresholds ----------------------------------------------------------
    def _category(self, day: str) -> DayCategory:
        context = self.day_contexts.get(day)
        if context is None:
            context = self.days[day].selection_context
        return context.category if context is not None else DayCategory.PERIPHERAL

    def _duration(self, day: str) -> int | None:
        context = self.day_contexts.get(day)
        if context is None:
            context = self.days[day].selection_context
        return context.duration if context is not None else None

    def _resolve_thresholds(
        self,
        day_order: list[str],
        primary_by_day: dict[str, list[SelectionCandidate]],
        fallback_by_day: dict[str, list[SelectionCandidate]],
    ) -> None:
        options = self.options
        raw_cap = max(1, math.ceil(options.target_total / len(day_order)))
        base_cap = max(1, min(options.max_per_day, raw_cap))
        self.base_per_day_cap = base_cap

        baseline = max(0, options.min_spacing_seconds)
        for day in day_order:
            if self._category(day) == DayCategory.CORE:
                cap = base_cap + options.core_day_bonus
            else:
                cap = base_cap - options.peripheral_day_penalty
            cap = max(1, min(options.max_per_day, cap))
            self.day_caps[day] = cap

            spacing = baseline
            duration = self._duration(day)
            if duration is not None and duration > 0:
                spacing = max(baseline, math.ceil(duration / max(3, cap + 1)))
            self.day_spacing[day] = spacing

        self.max_per_staypoint = max(
            1, min(options.max_per_staypoint, max(1, base_cap // 2))
        )

        samples = self._sample_phash_distances(primary_by_day, fallback_by_day)
        percentile = resolve_phash_percentile(samples, options.phash_percentile)
        self.phash_min = max(options.phash_min_hamming, percentile)

        self.telemetry["metrics"]["phash_samples"] = sorted(samples)[
            :TELEMETRY_PHASH_SAMPLES
        ]
        self.telemetry["thresholds"].update(
            {
                "run_day_count": len(day_order),
                "raw_per_day_cap": raw_cap,
                "base_per_day_cap": base_cap,
                "day_caps": dict(self.day_caps),
                "day_categories": {
                    day: self._category(day).value for day in day_order
                },
                "day_spacing_seconds": dict(self.day_spacing),
                "max_per_staypoint": self.max_per_staypoint,
                "phash_min_effective": self.phash_min,
                "phash_percentile_threshold": percentile,
                "phash_sample_count": len(samples),
            }
        )

    def _sample_phash_distances(
        self,
        primary_by_day: dict[str, list[SelectionCandidate]],
        fallback_by_day: dict[str, list[SelectionCandidate]],
    ) -> list[int]:
        pool = [c for candidates in primary_by_day.values() for c in candidates]
        pool += [c for candidates in fallback_by_day.values() for c in candidates]
        pool.sort(key=lambda c: c.timestamp)

        window = max(
            PHASH_SAMPLE_WINDOW_SECONDS, self.options.min_spacing_seconds
        )
        samples: list[int] = []
        for i, left in enumerate(pool[:-1]):
            for right in pool[i + 1 : i + 1 + PHASH_SAMPLE_NEIGHBOURS]:
                if self.metrics.seconds_between(left.media, right.media) > window:
                    continue
                distance = self.metrics.phash_distance(left.media, right.media)
                if distance is not None:
                    samples.append(distance)
        return samples

    # Greedy pass ---------------------------------------------------------
    def _consider(
        self,
        candidate: SelectionCandidate,
        state: _Selection,
        from_fallback: bool = False,
    ) -> bool:
        day = candidate.day
        if state.day_counts.get(day, 0) >= self.day_caps.get(
            day, self.base_per_day_cap
        ):
            self.telemetry["day_limit_rejections"] += 1
            return False

        duplicate = self._find_duplicate(candidate, state.selected)
        if duplicate is not None:
            return self._resolve_duplicate(
                duplicate, candidate, state, from_fallback
            )

        key = candidate.staypoint_key
        if (
            key is not None
            and state.staypoint_counts.get(key, 0) >= self.max_per_staypoint
        ):
            self.telemetry["staypoint_rejections"] += 1
            return False

        spacing = self.day_spacing.get(day, self.options.min_spacing_seconds)
        for existing in state.selected:
            pair_spacing = max(
                self.options.min_spacing_seconds,
                spacing,
                self.day_spacing.get(
                    existing.day, self.options.min_spacing_seconds
                ),
            )
            if (
                self.metrics.seconds_between(candidate.media, existing.media)
                < pair_spacing
            ):
                self.telemetry["spacing_rejections"] += 1
                return False

        balanced = self._balance_people(candidate, state)
        if balanced is None:
            return False

        state.add(balanced)
        if from_fallback:
            self.telemetry["fallback_used"] += 1
        return True

    def _resolve_duplicate(
        self,
        index: int,
        candidate: SelectionCandidate,
        state: _Selection,
        from_fallback: bool,
    ) -> bool:
        existing = state.selected[index]
        if candidate.quality <= existing.quality:
            self.telemetry["near_duplicate_blocked"] += 1
            return False

        key = candidate.staypoint_key
        if (
            key is not None
            and key != existing.staypoint_key
            and state.staypoint_counts.get(key, 0) >= self.max_per_staypoint
        ):
            self.telemetry["staypoint_rejections"] += 1
            return False

        state.replace(index, candidate)
        self.telemetry["near_duplicate_replacements"] += 1
        if from_fallback:
            self.telemetry["fallback_used"] += 1
        return True

    def _find_duplicate(
        self, candidate: SelectionCandidate, selected: list[SelectionCandidate]
    ) -> int | None:
        window = max(DUPLICATE_WINDOW_SECONDS, self.options.min_spacing_seconds)
        for index, existing in enumerate(selected):
            if (
                candidate.burst_id is not None
                and candidate.burst_id == existing.burst_id
            ):
                return index
            media, other = candidate.media, existing.media
            if not self.metrics.share_same_device(media, other):
                continue
            distance = self.metrics.phash_distance(media, other)
            if distance is not None and distance <= self.phash_min:
                return index
            seconds = self.metrics.seconds_between(media, other)
            if seconds <= window:
                return index
        return None

    def _balance_people(
        self, candidate: SelectionCandidate, state: _Selection
    ) -> SelectionCandidate | None:
        options = self.options
        if not options.enable_people_balance or not candidate.persons:
            return candidate

        self.telemetry["people_balance_considered"] += 1
        weight = options.people_balance_weight
        next_index = len(state.selected) + 1
        limit = 1 if weight <= 0.0 else max(1, math.ceil(next_index * weight))

        dominant = max(
            (state.person_counts.get(person, 0) for person in candidate.persons),
            default=0,
        )
        if dominant + 1 > limit:
            self.telemetry["people_balance_rejected"] += 1
            return None

        max_overlap = max(
            (
                self.metrics.person_overlap(candidate.media, existing.media)
                for existing in state.selected
            ),
            default=0.0,
        )
        share = min(1.0, dominant / limit)
        overlap = max(max_overlap, share)

        if options.repeat_penalty != 0.0 and overlap > 0.0:
            adjustment = -options.repeat_penalty * overlap
            if adjustment < 0.0:
                self.telemetry["people_balance_penalized"] += 1
            elif adjustment > 0.0:
                self.telemetry["people_balance_bonuses"] += 1
            candidate.score = score_media(
                candidate.media, options, candidate.quality, adjustment
            )
            if candidate.score <= 0.0:
                self.telemetry["people_balance_rejected"] += 1
                return None

        self.telemetry["people_balance_accepted"] += 1
        return candidate


# A relaxation step returns relaxed options and the recorded changes, or
# None when it has nothing left to relax.
Relaxed = tuple[VacationSelectionOptions, list[dict[str, Any]]]
Relaxation = Callable[[VacationSelectionOptions], Relaxed | None]


def _relax_spacing(
    options: VacationSelectionOptions,
) -> Relaxed | None:
    if options.min_spacing_seconds == 0:
        return None
    change = {
        "rule": "min_spacing_seconds",
        "from": options.min_spacing_seconds,
        "to": 0,
    }
    return options.model_copy(update={"min_spacing_seconds": 0}), [change]


def _relax_phash(
    options: VacationSelectionOptions,
) -> Relaxed | None:
    if options.phash_min_hamming == 0:
        return None
    change = {
        "rule": "phash_min_hamming",
        "from": options.phash_min_hamming,
        "to": 0,
    }
    return options.model_copy(update={"phash_min_hamming": 0}), [change]


def _relax_caps(
    options: VacationSelectionOptions,
) -> Relaxed | None:
    if not options.relax_caps:
        return None
    target = options.target_total
    updates: dict[str, int] = {}
    changes: list[dict[str, Any]] = []
    for rule, value in (
        ("max_per_day", options.max_per_day),
        ("max_per_staypoint", options.max_per_staypoint),
    ):
        if value < target:
            updates[rule] = target
            changes.append({"rule": rule, "from": value, "to": target})
    if not updates:
        return None
    return options.model_copy(update=updates), changes


RELAXATION_PLAN: tuple[Relaxation, ...] = (
    _relax_spacing,
    _relax_phash,
    _relax_caps,
)


class VacationMemberSelector:
    """Greedy selector balancing quality, diversity and coverage."""

    def __init__(
        self,
        quality_aggregator: MediaQualityAggregator | None = None,
        default_options: VacationSelectionOptions | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            quality_aggregator: Scores media without a stored quality.
            default_options: Options used when ``select`` gets none.
        """
        self.quality_aggregator = quality_aggregator or MediaQualityAggregator()
        self.default_options = default_options or VacationSelectionOptions()

    def select(
        self,
        days: DaySummaries,
        home: HomeDescriptor,  # noqa: ARG002
        options: VacationSelectionOptions | None = None,
        day_contexts: Mapping[str, DayContext] | None = None,
    ) -> SelectionResult:
        """Select the curated members of a run.

        Args:
            days: Day summaries of the run.
            home: Home descriptor of the library.
            options: Selection options; defaults to the selector's own.
            day_contexts: Per-day hints; falls back to each summary's
                ``selection_context``.

        Returns:
            The members in capture order and the telemetry of the final
            attempt, including every relaxation applied.
        """
        options = options or self.default_options
        contexts = dict(day_contexts or {})
        minimum_total = max(1, min(options.target_total, options.minimum_total))

        # One similarity memo per call
        metrics = SimilarityMetrics()
        members, telemetry = self._attempt(days, options, contexts, metrics)

        relaxations: list[dict[str, Any]] = []
        current = options
        for relax in RELAXATION_PLAN:
            if len(members) >= minimum_total:
                break
            relaxed = relax(current)
            if relaxed is None:
                continue
            current, changes = relaxed
            relaxations.extend(changes)
            logger.debug("Relaxing selection: %s", changes)
            members, telemetry = self._attempt(days, current, contexts, metrics)

        rules = {change["rule"] for change in relaxations}
        telemetry["relaxations"] = relaxations
        telemetry["minimum_total"] = minimum_total
        telemetry["minimum_total_met"] = len(members) >= minimum_total
        telemetry["thresholds"]["spacing_relaxed_to_zero"] = (
            "min_spacing_seconds" in rules
        )
        telemetry["thresholds"]["phash_relaxed_to_zero"] = (
            "phash_min_hamming" in rules
        )

        logger.info(
            "Selected %d of %d media over %d days (%d relaxations)",
            len(members),
            telemetry["prefilter_total"],
            len(days),
            len(relaxations),
        )
        return SelectionResult(members=members, telemetry=telemetry)

    def _attempt(
        self,
        days: DaySummaries,
        options: VacationSelectionOptions,
        contexts: Mapping[str, DayContext],
        metrics: SimilarityMetrics,
    ) -> tuple[list[MediaAsset], dict[str, Any]]:
        attempt = _Attempt(
            days, options, contexts, self.quality_aggregator, metrics
        )
        members = attempt.run()
        return members, attempt.telemetry


def select(
    days: DaySummaries,
    home: HomeDescriptor,
    options: VacationSelectionOptions | None = None,
    day_contexts: Mapping[str, DayContext] | None = None,
) -> SelectionResult:
    """Select run members with a default :class:`VacationMemberSelector`."""
    return VacationMemberSelector().select(days, home, options, day_contexts)
