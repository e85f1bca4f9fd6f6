"""Policy driven member selection through hard and soft filter stages.

Candidates are scored and ordered best first, then passed through the hard
stages (quotas and duplicates) and the soft stages (diversity). When the
result falls short of the policy minimum the policy is relaxed step by
step: spacing, hash threshold, staypoint cap and finally all caps. A
result still short of the minimum is padded with the best remaining
eligible candidates, within the day and staypoint caps of the original
policy.
"""

import logging
import math
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from memory_canon.codebook import DayCategory
from memory_canon.models import ClusterDraft, MediaAsset, SelectionResult
from processing.resolvers.quality import MediaQualityAggregator
from processing.utils.geo import haversine_distance_m

from .candidates import SelectionCandidate
from .options import SelectionPolicy
from .scenes import derive_scene_bucket, orientation_type
from .similarity import bits_distance, hash_bits
from .stages import (
    DayQuotaStage,
    OrientationBalanceStage,
    PeopleBalanceStage,
    PhashDiversityStage,
    SceneDiversityStage,
    SelectionStage,
    StaypointQuotaStage,
    TimeGapStage,
    TimeSlotStage,
)
from .telemetry import SelectionTelemetry

logger = logging.getLogger(__name__)

STAYPOINT_MERGE_METERS = 120.0

PolicyMutator = Callable[[SelectionPolicy], SelectionPolicy]


def relaxation_attempts(policy: SelectionPolicy) -> list[PolicyMutator]:
    """Policy mutators applied one after another until enough are kept."""
    attempts: list[PolicyMutator] = [
        lambda p: p,
        lambda p: p.with_relaxed_spacing(
            max(25, math.floor(p.min_spacing_seconds * 0.6))
        ),
        lambda p: p.with_relaxed_hamming(
            max(8, math.floor(p.phash_min_hamming * 0.75))
        ),
    ]
    relaxed = policy.relaxed_max_per_staypoint
    if (
        relaxed is not None
        and policy.max_per_staypoint is not None
        and relaxed > policy.max_per_staypoint
    ):
        attempts.append(lambda p: p.with_max_per_staypoint(relaxed))
    attempts.append(lambda p: p.without_caps())
    return attempts


class _StaypointAssigner:
    """Numbers GPS positions by the first center within merge distance."""

    def __init__(self, merge_meters: float = STAYPOINT_MERGE_METERS) -> None:
        self.merge_meters = merge_meters
        self.centers: list[tuple[float, float]] = []

    def assign(self, media: MediaAsset) -> str | None:
        if not media.has_gps:
            return None
        for index, (lat, lon) in enumerate(self.centers, start=1):
            distance = haversine_distance_m(
                media.gps_lat, media.gps_lon, lat, lon
            )
            if distance <= self.merge_meters:
                return str(index)
        self.centers.append((media.gps_lat, media.gps_lon))
        return str(len(self.centers))


class PolicyDrivenMemberSelector:
    """Selects members by running candidates through ordered stages."""

    def __init__(
        self,
        hard_stages: Sequence[SelectionStage],
        soft_stages: Sequence[SelectionStage] = (),
        quality_aggregator: MediaQualityAggregator | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            hard_stages: Stages enforcing quotas and duplicates; at least
                one is required.
            soft_stages: Stages shaping diversity, run after the hard ones.
            quality_aggregator: Scores media without a stored quality.

        Raises:
            ValueError: If no hard stage is given.
        """
        if not hard_stages:
            msg = "At least one hard selection stage must be configured."
            raise ValueError(msg)
        self.hard_stages = list(hard_stages)
        self.soft_stages = list(soft_stages)
        self.quality_aggregator = quality_aggregator or MediaQualityAggregator()

    def select(
        self,
        media: Sequence[MediaAsset],
        policy: SelectionPolicy,
        draft: ClusterDraft | None = None,
    ) -> SelectionResult:
        """Select the members of ``media`` under ``policy``.

        Args:
            media: Members of the draft in any order.
            policy: Selection policy; per-day hints come from its
                ``day_context``.
            draft: Draft whose parameters refine the scene buckets.

        Returns:
            The members ordered by capture time and the telemetry with
            counts, rejections, relaxations and distribution.
        """
        params = draft.params if draft is not None else {}
        eligible, drops = self.build_candidates(media, policy, params)

        telemetry: dict[str, Any] = {
            "counts": {
                "considered": len(media),
                "eligible": len(eligible),
                "selected": 0,
            },
            "rejections": {
                **drops,
                **SelectionTelemetry().reason_counts(),
            },
            "policy": policy.snapshot(),
            "stages": {
                "hard": [stage.name for stage in self.hard_stages],
                "soft": [stage.name for stage in self.soft_stages],
            },
        }
        if not eligible:
            return SelectionResult(members=[], telemetry=telemetry)

        selected: list[SelectionCandidate] = []
        applied = policy
        collector = SelectionTelemetry()
        relaxations: list[dict[str, Any]] = []
        attempts = relaxation_attempts(policy)
        current = policy
        for step, mutate in enumerate(attempts):
            current = mutate(current)
            attempt_telemetry = SelectionTelemetry()
            result = self.run_pipeline(eligible, current, attempt_telemetry)
            if (
                len(result) >= policy.minimum_total
                or step == len(attempts) - 1
            ):
                selected, applied, collector = result, current, attempt_telemetry
                break
            relaxations.append(
                {
                    "step": step,
                    "members": len(result),
                    "policy": current.snapshot(),
                }
            )

        if relaxations:
            telemetry["relaxations"] = relaxations
            telemetry["policy"] = applied.snapshot()
        telemetry["rejections"].update(collector.reason_counts())

        padded = self._pad(selected, eligible, policy)
        if padded:
            telemetry["padding"] = {
                "added": padded,
                "eligible_pool": len(eligible),
            }
            telemetry["counts"]["padded"] = padded

        telemetry["counts"]["selected"] = len(selected)
        telemetry["metrics"] = {
            "time_gaps": [
                abs(b.timestamp - a.timestamp)
                for a, b in zip(selected, selected[1:], strict=False)
            ],
            "phash_distances": [
                bits_distance(a.hash_bits, b.hash_bits)
                for a, b in zip(selected, selected[1:], strict=False)
                if a.hash_bits is not None and b.hash_bits is not None
            ],
        }
        telemetry["distribution"] = {
            "per_day": dict(Counter(c.day for c in selected)),
            "per_bucket": dict(
                Counter(c.bucket for c in selected if c.bucket is not None)
            ),
        }

        logger.info(
            "Policy %s selected %d of %d eligible media (%d relaxations)",
            policy.profile_key,
            len(selected),
            len(eligible),
            len(relaxations),
        )
        return SelectionResult(
            members=[c.media for c in selected], telemetry=telemetry
        )

    def build_candidates(
        self,
        media: Sequence[MediaAsset],
        policy: SelectionPolicy,
        params: dict[str, Any] | None = None,
    ) -> tuple[list[SelectionCandidate], dict[str, int]]:
        """Score eligible media and collapse bursts.

        Returns:
            Candidates ordered by descending score, then capture time, and
            the drop counts keyed ``no_show``, ``quality``, ``no_timestamp``
            and ``burst``.
        """
        params = params or {}
        drops = {"no_show": 0, "quality": 0, "no_timestamp": 0, "burst": 0}
        staypoints = _StaypointAssigner()
        person_frequency: Counter[int] = Counter()
        candidates: list[SelectionCandidate] = []

        for item in media:
            if item.no_show or item.low_quality:
                drops["no_show"] += 1
                continue
            quality = self.quality_aggregator.aggregate(item) or 0.0
            if quality < policy.quality_floor:
                drops["quality"] += 1
                continue
            moment = item.captured_at
            if moment is None:
                drops["no_timestamp"] += 1
                continue

            persons = tuple(dict.fromkeys(item.person_ids))
            score = quality
            if item.is_video:
                score += policy.video_bonus
            if item.has_faces:
                score += policy.face_bonus
            if len(persons) == 1 and item.has_faces:
                score -= policy.selfie_penalty
            repeats = sum(person_frequency[p] for p in persons)
            cohort_penalty = policy.cohort_penalty * repeats
            score -= cohort_penalty

            day = moment.date().isoformat()
            context = policy.day_context.get(day)
            slot = (
                math.floor(moment.hour / policy.time_slot_hours)
                if policy.time_slot_hours
                else None
            )
            candidates.append(
                SelectionCandidate(
                    media=item,
                    day=day,
                    timestamp=item.timestamp,
                    score=max(0.0, score),
                    quality=quality,
                    slot=slot,
                    staypoint_key=staypoints.assign(item),
                    burst_id=item.burst_uuid or None,
                    persons=persons,
                    has_faces=item.has_faces,
                    hash_bits=hash_bits(item.phash),
                    bucket=derive_scene_bucket(item, params).value,
                    orientation=orientation_type(item).value,
                    day_category=(
                        context.category
                        if context is not None
                        else DayCategory.PERIPHERAL
                    ),
                    day_duration=(
                        context.duration if context is not None else None
                    ),
                    extras={"cohort_penalty": cohort_penalty},
                )
            )
            person_frequency.update(persons)

        collapsed = self._collapse_bursts(candidates, drops)
        return collapsed, drops

    @staticmethod
    def _collapse_bursts(
        candidates: list[SelectionCandidate], drops: dict[str, int]
    ) -> list[SelectionCandidate]:
        singles: list[SelectionCandidate] = []
        bursts: dict[str, list[SelectionCandidate]] = {}
        for candidate in candidates:
            if candidate.burst_id is None:
                singles.append(candidate)
            else:
                bursts.setdefault(candidate.burst_id, []).append(candidate)

        for members in bursts.values():
            best = max(members, key=lambda c: c.score)
            singles.append(best)
            drops["burst"] += len(members) - 1

        singles.sort(key=lambda c: (-c.score, c.timestamp))
        return singles

    def run_pipeline(
        self,
        candidates: list[SelectionCandidate],
        policy: SelectionPolicy,
        telemetry: SelectionTelemetry,
    ) -> list[SelectionCandidate]:
        """Run hard then soft stages and cut the result to the target."""
        current = list(candidates)
        for stage in [*self.hard_stages, *self.soft_stages]:
            current = stage.apply(current, policy, telemetry)
            if not current:
                return []

        limit = min(policy.target_total, max(policy.minimum_total, len(current)))
        current = current[:limit]
        current.sort(key=lambda c: (c.timestamp, c.id))
        return current

    @staticmethod
    def _pad(
        selected: list[SelectionCandidate],
        eligible: list[SelectionCandidate],
        policy: SelectionPolicy,
    ) -> int:
        """Top up ``selected`` in place from ``eligible``; return the count.

        Padding stops at the minimum of ``policy`` and never pushes a day
        or a staypoint past the caps of ``policy``.
        """
        minimum = policy.minimum_total
        if len(selected) >= minimum:
            return 0
        chosen = {c.id for c in selected}
        per_day = Counter(c.day for c in selected)
        per_staypoint = Counter(
            c.staypoint_key for c in selected if c.staypoint_key is not None
        )
        staypoint_cap = policy.max_per_staypoint
        added = 0
        for candidate in eligible:
            if len(selected) >= minimum:
                break
            if candidate.id in chosen:
                continue
            day_cap = policy.day_quotas.get(candidate.day, policy.max_per_day)
            if day_cap is not None and per_day[candidate.day] >= day_cap:
                continue
            key = candidate.staypoint_key
            if (
                key is not None
                and staypoint_cap is not None
                and per_staypoint[key] >= staypoint_cap
            ):
                continue
            per_day[candidate.day] += 1
            if key is not None:
                per_staypoint[key] += 1
            selected.append(candidate)
            chosen.add(candidate.id)
            added += 1
        if added:
            selected.sort(key=lambda c: (c.timestamp, c.id))
        return added


def default_policy_selector(
    important_person_ids: Iterable[int] = (),
    fallback_person_ids: Iterable[int] = (),
) -> PolicyDrivenMemberSelector:
    """Selector with the standard hard and soft stage order."""
    return PolicyDrivenMemberSelector(
        hard_stages=[
            DayQuotaStage(),
            TimeGapStage(),
            StaypointQuotaStage(),
            PhashDiversityStage(),
        ],
        soft_stages=[
            TimeSlotStage(),
            SceneDiversityStage(),
            OrientationBalanceStage(),
            PeopleBalanceStage(important_person_ids, fallback_person_ids),
        ],
    )
