"""
Scoring Schemas
===============
Derived values produced by the sleep scorer and the goal evaluator.
They have no identity of their own: each is computed per request and
written into Notion as plain properties.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------

class SleepRating(str, Enum):
    EXCELLENT = "优秀"
    GOOD = "良好"
    FAIR = "一般"
    POOR = "不佳"
    UNKNOWN = "未知"
    NO_DATA = "无数据"

    @classmethod
    def for_score(cls, score: Optional[float]) -> "SleepRating":
        if score is None:
            return cls.NO_DATA
        if score >= 90:
            return cls.EXCELLENT
        if score >= 80:
            return cls.GOOD
        if score >= 60:
            return cls.FAIR
        return cls.POOR

    @classmethod
    def from_text(cls, text: Optional[str]) -> "SleepRating":
        """Parse a rating read back from Notion; unrecognised text is UNKNOWN."""
        if not text:
            return cls.NO_DATA
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


class SleepScoringStrategy(str, Enum):
    # Five weighted sub-scores with step thresholds
    TIERED = "tiered"
    # Start at 80 and subtract linear penalties
    BASELINE = "baseline"


class ScoreResult(BaseModel):
    score: Optional[int] = Field(default=None, ge=0, le=100)
    rating: SleepRating = SleepRating.NO_DATA
    strategy: SleepScoringStrategy = SleepScoringStrategy.TIERED
    breakdown: dict[str, float] = Field(default_factory=dict)
    # Percentages rounded to one decimal
    ratios: dict[str, float] = Field(default_factory=dict)
    actual_sleep_hours: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.score is not None


# ---------------------------------------------------------------------------
# Activity goals
# ---------------------------------------------------------------------------

class GoalMode(str, Enum):
    # A metric passes at 80% of target; two of three passing is a pass
    PARTIAL = "partial"
    # Every metric, workout count included, must reach 100%
    FULL = "full"


class GoalTargets(BaseModel):
    steps: int = 10000
    exercise_minutes: int = 30
    active_energy_kcal: float = 500
    workout_count: int = 1


class DailyTotals(BaseModel):
    """Activity totals for one calendar day."""

    steps: float = 0
    exercise_minutes: float = 0
    active_energy_kcal: float = 0
    workout_count: int = 0

    def add(self, *, steps: Optional[float], exercise_minutes: Optional[float],
            active_energy_kcal: Optional[float]) -> None:
        """Fold one workout into the totals; missing values count as zero."""
        self.steps += steps or 0
        self.exercise_minutes += exercise_minutes or 0
        self.active_energy_kcal += active_energy_kcal or 0
        self.workout_count += 1


class MetricResult(BaseModel):
    actual: float = 0
    target: float
    achieved: bool


class GoalEvaluation(BaseModel):
    mode: GoalMode
    # None only when there were no totals to evaluate
    is_achieved: Optional[bool] = None
    status: str
    breakdown: dict[str, MetricResult] = Field(default_factory=dict)

    def achieved(self, metric: str) -> Optional[bool]:
        result = self.breakdown.get(metric)
        return result.achieved if result else None
