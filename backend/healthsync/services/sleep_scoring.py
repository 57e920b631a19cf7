"""
Sleep Scoring
=============
Turns sleep-stage durations into a 0–100 quality score and a rating.

Two input shapes:
    - ``SleepMetrics``: pre-aggregated totals, as sent in the daily
      health export (time in bed in hours, stage durations in minutes).
    - ``SleepSession``: built from raw stage samples (sleep webhook) by
      summing each stage label; ``to_metrics()`` reduces it to the
      first shape.

Two strategies, kept distinct because the two webhooks have always
scored differently:
    - TIERED: five weighted sub-scores (duration 30, deep 25, REM 25,
      awake 10, efficiency 10) with step thresholds.
    - BASELINE: start at 80 and subtract linear penalties for drifting
      outside the same target ranges, clamped to [0, 100].

Zero or missing sleep never raises: it yields ``score=None`` and the
无数据 rating. Every ratio is guarded against a zero denominator.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from healthsync.models.scoring import ScoreResult, SleepRating, SleepScoringStrategy
from healthsync.models.sleep import SleepStageSample
from healthsync.services.timestamps import utc_day

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# (low, high, points), both ends inclusive, first match wins
DURATION_BANDS = ((7, 9, 30), (6, 10, 20), (5, 11, 10))
DEEP_RATIO_BANDS = ((15, 25, 25), (10, 30, 15), (5, 35, 5))
REM_RATIO_BANDS = ((20, 25, 25), (15, 30, 15), (10, 35, 5))

BASELINE_SCORE = 80

STAGE_LABELS = ("Awake", "Asleep", "Core", "Deep", "REM")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass
class SleepMetrics:
    """Pre-aggregated night: time in bed in hours, stages in minutes."""

    time_in_bed_hours: Optional[float]
    awake_minutes: float = 0
    deep_minutes: float = 0
    rem_minutes: float = 0
    core_minutes: float = 0

    @property
    def actual_sleep_minutes(self) -> float:
        return (self.time_in_bed_hours or 0) * 60 - self.awake_minutes


@dataclass
class SleepSession:
    """One day's worth of raw stage samples, summed by stage (hours)."""

    day: date
    start: datetime
    end: datetime
    source: Optional[str] = None
    stage_hours: dict[str, float] = field(
        default_factory=lambda: {label: 0.0 for label in STAGE_LABELS}
    )

    def add(self, sample: SleepStageSample) -> bool:
        """Accumulate one sample. Returns False for an unknown stage label."""
        if sample.value not in self.stage_hours:
            return False
        self.stage_hours[sample.value] += sample.qty
        self.start = min(self.start, sample.start_date)
        self.end = max(self.end, sample.end_date)
        return True

    @property
    def awake_hours(self) -> float:
        return self.stage_hours["Awake"]

    @property
    def deep_hours(self) -> float:
        return self.stage_hours["Deep"]

    @property
    def core_hours(self) -> float:
        return self.stage_hours["Core"]

    @property
    def rem_hours(self) -> float:
        return self.stage_hours["REM"]

    @property
    def total_sleep_hours(self) -> float:
        # "Asleep" is what the watch reports when it could not stage the night
        return self.stage_hours["Asleep"] + self.core_hours + self.deep_hours + self.rem_hours

    def to_metrics(self) -> SleepMetrics:
        return SleepMetrics(
            time_in_bed_hours=self.total_sleep_hours + self.awake_hours,
            awake_minutes=self.awake_hours * 60,
            deep_minutes=self.deep_hours * 60,
            rem_minutes=self.rem_hours * 60,
            core_minutes=self.core_hours * 60,
        )


def build_sleep_sessions(samples: Iterable[SleepStageSample]) -> dict[date, SleepSession]:
    """Group stage samples by the UTC day they start on."""
    sessions: dict[date, SleepSession] = {}
    for sample in samples:
        day = utc_day(sample.start_date)
        session = sessions.get(day)
        if session is None:
            session = sessions[day] = SleepSession(
                day=day,
                start=sample.start_date,
                end=sample.end_date,
                source=sample.source,
            )
        if not session.add(sample):
            logger.info("Ignoring unknown sleep stage %r on %s", sample.value, day)
    return sessions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def _banded(value: float, bands: tuple[tuple[float, float, int], ...]) -> int:
    for low, high, points in bands:
        if low <= value <= high:
            return points
    return 0


def _awake_points(awake_ratio: float) -> int:
    if awake_ratio < 5:
        return 10
    if awake_ratio <= 10:
        return 5
    return 0


def _efficiency_points(efficiency: float) -> int:
    if efficiency > 90:
        return 10
    if efficiency >= 85:
        return 5
    return 0


def _no_data(strategy: SleepScoringStrategy) -> ScoreResult:
    return ScoreResult(score=None, rating=SleepRating.NO_DATA, strategy=strategy)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def score_tiered(metrics: Optional[SleepMetrics]) -> ScoreResult:
    if metrics is None or not metrics.time_in_bed_hours:
        return _no_data(SleepScoringStrategy.TIERED)

    in_bed_minutes = metrics.time_in_bed_hours * 60
    actual_minutes = metrics.actual_sleep_minutes
    actual_hours = actual_minutes / 60

    deep_ratio = _percent(metrics.deep_minutes, actual_minutes)
    rem_ratio = _percent(metrics.rem_minutes, actual_minutes)
    awake_ratio = _percent(metrics.awake_minutes, in_bed_minutes)
    efficiency = _percent(actual_minutes, in_bed_minutes)

    breakdown = {
        "duration": _banded(actual_hours, DURATION_BANDS),
        "deep_sleep": _banded(deep_ratio, DEEP_RATIO_BANDS),
        "rem_sleep": _banded(rem_ratio, REM_RATIO_BANDS),
        "awake_time": _awake_points(awake_ratio),
        "efficiency": _efficiency_points(efficiency),
    }
    score = sum(breakdown.values())

    return ScoreResult(
        score=score,
        rating=SleepRating.for_score(score),
        strategy=SleepScoringStrategy.TIERED,
        breakdown=breakdown,
        ratios={
            "deep_sleep": round(deep_ratio, 1),
            "rem_sleep": round(rem_ratio, 1),
            "awake_time": round(awake_ratio, 1),
            "efficiency": round(efficiency, 1),
        },
        actual_sleep_hours=round(actual_hours, 1),
    )


def score_baseline(metrics: Optional[SleepMetrics]) -> ScoreResult:
    """Linear-penalty score. Stage ratios are relative to actual sleep time."""
    if metrics is None or not metrics.time_in_bed_hours:
        return _no_data(SleepScoringStrategy.BASELINE)

    sleep_hours = metrics.actual_sleep_minutes / 60
    if sleep_hours <= 0:
        return _no_data(SleepScoringStrategy.BASELINE)

    sleep_minutes = sleep_hours * 60
    deep_pct = _percent(metrics.deep_minutes, sleep_minutes)
    rem_pct = _percent(metrics.rem_minutes, sleep_minutes)
    awake_pct = _percent(metrics.awake_minutes, sleep_minutes)
    efficiency = _percent(sleep_minutes, metrics.time_in_bed_hours * 60)

    penalties = {"duration": 0.0, "deep_sleep": 0.0, "rem_sleep": 0.0, "awake_time": 0.0}

    if sleep_hours < 7:
        penalties["duration"] = (7 - sleep_hours) * 5
    elif sleep_hours > 9:
        penalties["duration"] = (sleep_hours - 9) * 3

    if deep_pct < 15:
        penalties["deep_sleep"] = (15 - deep_pct) * 2
    elif deep_pct > 25:
        penalties["deep_sleep"] = deep_pct - 25

    if rem_pct < 20:
        penalties["rem_sleep"] = (20 - rem_pct) * 2
    elif rem_pct > 25:
        penalties["rem_sleep"] = rem_pct - 25

    if awake_pct > 5:
        penalties["awake_time"] = (awake_pct - 5) * 3

    raw = BASELINE_SCORE - sum(penalties.values())
    score = max(0, min(100, _round_half_up(raw)))

    return ScoreResult(
        score=score,
        rating=SleepRating.for_score(score),
        strategy=SleepScoringStrategy.BASELINE,
        breakdown={name: -round(p, 1) if p else 0.0 for name, p in penalties.items()},
        ratios={
            "deep_sleep": round(deep_pct, 1),
            "rem_sleep": round(rem_pct, 1),
            "awake_time": round(awake_pct, 1),
            "efficiency": round(efficiency, 1),
        },
        actual_sleep_hours=round(sleep_hours, 1),
    )


_STRATEGIES = {
    SleepScoringStrategy.TIERED: score_tiered,
    SleepScoringStrategy.BASELINE: score_baseline,
}


def score_sleep(
    metrics: Optional[SleepMetrics],
    strategy: SleepScoringStrategy = SleepScoringStrategy.TIERED,
) -> ScoreResult:
    """Score a night with the named strategy."""
    return _STRATEGIES[SleepScoringStrategy(strategy)](metrics)
