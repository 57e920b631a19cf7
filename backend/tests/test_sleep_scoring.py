"""
Tests for Sleep Scoring
=======================
Covers:
- Tiered sub-score bands at every breakpoint
- Tiered end-to-end score, rating and ratios
- Baseline penalties, clamping and ratio denominators
- Rating map shared by both strategies
- No-data handling (None, zero time in bed)
- Stage-sample aggregation into per-day sessions

Run: pytest tests/test_sleep_scoring.py -v
"""

from __future__ import annotations

from datetime import date

import pytest

from healthsync.models.scoring import SleepRating, SleepScoringStrategy
from healthsync.models.sleep import SleepStageSample
from healthsync.services.sleep_scoring import (
    DEEP_RATIO_BANDS,
    DURATION_BANDS,
    REM_RATIO_BANDS,
    SleepMetrics,
    _awake_points,
    _banded,
    _efficiency_points,
    build_sleep_sessions,
    score_baseline,
    score_sleep,
    score_tiered,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sample(start: str, end: str, qty: float, value: str, source: str = "Apple Watch") -> SleepStageSample:
    return SleepStageSample.model_validate(
        {"startDate": start, "endDate": end, "qty": qty, "value": value, "source": source}
    )


# A textbook night: 8h asleep, 20% deep, 22.5% REM, 30 min awake
_GOOD_NIGHT = SleepMetrics(
    time_in_bed_hours=8.5,
    awake_minutes=30,
    deep_minutes=96,
    rem_minutes=108,
    core_minutes=246,
)


# ---------------------------------------------------------------------------
# Tiered bands
# ---------------------------------------------------------------------------

class TestTieredBands:

    @pytest.mark.parametrize("hours,points", [
        (7, 30), (8, 30), (9, 30),
        (6, 20), (6.99, 20), (9.01, 20), (10, 20),
        (5, 10), (5.99, 10), (10.01, 10), (11, 10),
        (4.99, 0), (11.01, 0), (0, 0),
    ])
    def test_duration(self, hours, points):
        assert _banded(hours, DURATION_BANDS) == points

    @pytest.mark.parametrize("ratio,points", [
        (15, 25), (25, 25),
        (10, 15), (14.9, 15), (25.1, 15), (30, 15),
        (5, 5), (9.9, 5), (30.1, 5), (35, 5),
        (4.9, 0), (35.1, 0),
    ])
    def test_deep_ratio(self, ratio, points):
        assert _banded(ratio, DEEP_RATIO_BANDS) == points

    @pytest.mark.parametrize("ratio,points", [
        (20, 25), (25, 25),
        (15, 15), (19.9, 15), (25.1, 15), (30, 15),
        (10, 5), (14.9, 5), (30.1, 5), (35, 5),
        (9.9, 0), (35.1, 0),
    ])
    def test_rem_ratio(self, ratio, points):
        assert _banded(ratio, REM_RATIO_BANDS) == points

    @pytest.mark.parametrize("ratio,points", [(0, 10), (4.9, 10), (5, 5), (10, 5), (10.1, 0)])
    def test_awake_ratio(self, ratio, points):
        assert _awake_points(ratio) == points

    @pytest.mark.parametrize("efficiency,points", [(100, 10), (90.1, 10), (90, 5), (85, 5), (84.9, 0)])
    def test_efficiency(self, efficiency, points):
        assert _efficiency_points(efficiency) == points


# ---------------------------------------------------------------------------
# Tiered end-to-end
# ---------------------------------------------------------------------------

class TestTieredScore:

    def test_good_night(self):
        result = score_tiered(_GOOD_NIGHT)

        # awake is 30/510 = 5.9% of time in bed → 5 points
        assert result.breakdown == {
            "duration": 30,
            "deep_sleep": 25,
            "rem_sleep": 25,
            "awake_time": 5,
            "efficiency": 10,
        }
        assert result.score == 95
        assert result.rating == SleepRating.EXCELLENT
        assert result.strategy == SleepScoringStrategy.TIERED
        assert result.actual_sleep_hours == 8.0
        assert result.ratios["deep_sleep"] == 20.0
        assert result.ratios["rem_sleep"] == 22.5
        assert result.ratios["efficiency"] == 94.1

    def test_core_minutes_do_not_affect_score(self):
        without_core = SleepMetrics(
            time_in_bed_hours=8.5, awake_minutes=30, deep_minutes=96, rem_minutes=108
        )
        assert score_tiered(without_core).score == score_tiered(_GOOD_NIGHT).score

    def test_short_night_scores_low(self):
        result = score_tiered(SleepMetrics(time_in_bed_hours=4, awake_minutes=60))

        # 3h asleep, no deep/REM, 25% awake, 75% efficiency
        assert result.score == 0
        assert result.rating == SleepRating.POOR

    def test_default_strategy_is_tiered(self):
        assert score_sleep(_GOOD_NIGHT).strategy == SleepScoringStrategy.TIERED


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------

class TestBaselineScore:

    def test_ideal_night_keeps_baseline(self):
        # 8h asleep plus 12 min awake: every ratio inside its target range
        result = score_baseline(SleepMetrics(
            time_in_bed_hours=8.2, awake_minutes=12, deep_minutes=96, rem_minutes=108
        ))

        assert result.score == 80
        assert result.rating == SleepRating.GOOD
        assert all(penalty == 0 for penalty in result.breakdown.values())
        assert result.ratios["awake_time"] == 2.5

    def test_short_night_penalised_per_hour_and_point(self):
        # 6h asleep (−5), deep 10% (−10), REM 20% (0)
        result = score_baseline(SleepMetrics(
            time_in_bed_hours=6, awake_minutes=0, deep_minutes=36, rem_minutes=72
        ))

        assert result.score == 65
        assert result.rating == SleepRating.FAIR
        assert result.breakdown["duration"] == -5.0
        assert result.breakdown["deep_sleep"] == -10.0

    def test_awake_ratio_relative_to_actual_sleep(self):
        # 60 awake / 480 asleep = 12.5% → (12.5 − 5) × 3 = 22.5
        result = score_baseline(SleepMetrics(
            time_in_bed_hours=9, awake_minutes=60, deep_minutes=96, rem_minutes=108
        ))

        assert result.ratios["awake_time"] == 12.5
        assert result.breakdown["awake_time"] == -22.5
        assert result.score == 58  # 57.5 rounds half up
        assert result.rating == SleepRating.POOR

    def test_clamped_at_zero(self):
        result = score_baseline(SleepMetrics(time_in_bed_hours=3, awake_minutes=60))
        assert result.score == 0

    def test_selected_by_name(self):
        result = score_sleep(_GOOD_NIGHT, SleepScoringStrategy.BASELINE)
        assert result.strategy == SleepScoringStrategy.BASELINE
        assert 0 <= result.score <= 100


# ---------------------------------------------------------------------------
# Rating map and no data
# ---------------------------------------------------------------------------

class TestRatingAndNoData:

    @pytest.mark.parametrize("score,rating", [
        (100, SleepRating.EXCELLENT),
        (90, SleepRating.EXCELLENT),
        (89, SleepRating.GOOD),
        (80, SleepRating.GOOD),
        (79, SleepRating.FAIR),
        (60, SleepRating.FAIR),
        (59, SleepRating.POOR),
        (0, SleepRating.POOR),
        (None, SleepRating.NO_DATA),
    ])
    def test_rating_thresholds(self, score, rating):
        assert SleepRating.for_score(score) == rating

    @pytest.mark.parametrize("strategy", list(SleepScoringStrategy))
    @pytest.mark.parametrize("metrics", [None, SleepMetrics(time_in_bed_hours=0), SleepMetrics(time_in_bed_hours=None)])
    def test_no_data_never_raises(self, strategy, metrics):
        result = score_sleep(metrics, strategy)

        assert result.score is None
        assert result.rating == SleepRating.NO_DATA
        assert not result.has_data

    def test_baseline_all_awake_is_no_data(self):
        result = score_baseline(SleepMetrics(time_in_bed_hours=1, awake_minutes=60))
        assert result.score is None

    def test_tiered_all_awake_has_zero_ratios(self):
        result = score_tiered(SleepMetrics(time_in_bed_hours=1, awake_minutes=60, deep_minutes=10))
        assert result.ratios["deep_sleep"] == 0.0
        assert result.score is not None


# ---------------------------------------------------------------------------
# Sessions from raw stage samples
# ---------------------------------------------------------------------------

class TestSleepSessions:

    def test_groups_by_utc_start_day(self):
        sessions = build_sleep_sessions([
            # 07:30 +08:00 is 23:30 UTC the previous day
            _sample("2025-12-24 07:30:00 +0800", "2025-12-24 09:00:00 +0800", 1.5, "Deep"),
            _sample("2025-12-23 23:00:00 +0000", "2025-12-24 01:00:00 +0000", 2.0, "Core"),
            _sample("2025-12-24 22:00:00 +0000", "2025-12-24 23:00:00 +0000", 1.0, "REM"),
        ])

        assert sorted(sessions) == [date(2025, 12, 23), date(2025, 12, 24)]
        night = sessions[date(2025, 12, 23)]
        assert night.deep_hours == 1.5
        assert night.core_hours == 2.0
        assert night.total_sleep_hours == 3.5

    def test_tracks_earliest_start_and_latest_end(self):
        sessions = build_sleep_sessions([
            _sample("2025-12-23 02:00:00 +0000", "2025-12-23 03:00:00 +0000", 1.0, "Core"),
            _sample("2025-12-23 01:00:00 +0000", "2025-12-23 02:00:00 +0000", 1.0, "Deep"),
            _sample("2025-12-23 06:00:00 +0000", "2025-12-23 06:30:00 +0000", 0.5, "Awake"),
        ])

        night = sessions[date(2025, 12, 23)]
        assert night.start.hour == 1
        assert night.end.hour == 6 and night.end.minute == 30
        assert night.source == "Apple Watch"

    def test_unknown_stage_ignored(self):
        sessions = build_sleep_sessions([
            _sample("2025-12-23 01:00:00 +0000", "2025-12-23 02:00:00 +0000", 1.0, "InBed"),
            _sample("2025-12-23 02:00:00 +0000", "2025-12-23 03:00:00 +0000", 1.0, "Asleep"),
        ])

        assert sessions[date(2025, 12, 23)].total_sleep_hours == 1.0

    def test_to_metrics_time_in_bed_includes_awake(self):
        sessions = build_sleep_sessions([
            _sample("2025-12-23 01:00:00 +0000", "2025-12-23 07:00:00 +0000", 6.0, "Core"),
            _sample("2025-12-23 07:00:00 +0000", "2025-12-23 07:30:00 +0000", 0.5, "Awake"),
        ])

        metrics = sessions[date(2025, 12, 23)].to_metrics()
        assert metrics.time_in_bed_hours == 6.5
        assert metrics.awake_minutes == 30
        assert metrics.actual_sleep_minutes == 360
