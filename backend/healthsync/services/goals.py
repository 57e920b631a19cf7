"""
Exercise Goal Evaluation
========================
Compares a day's activity totals against targets. Two policies:

    PARTIAL: steps, exercise minutes and active energy each pass at
             80% of target; the day passes when two of three do. Used
             for the daily health summary.
    FULL:    steps, exercise minutes, active energy and workout count
             must each reach their target; the day passes only when
             all four do. Used after a workout batch.

The caller picks the mode; it is never inferred from the data.
"""

from __future__ import annotations

from typing import Optional

from healthsync.models.scoring import (
    DailyTotals,
    GoalEvaluation,
    GoalMode,
    GoalTargets,
    MetricResult,
)

PARTIAL_THRESHOLD = 0.8
PARTIAL_REQUIRED = 2

STATUS_ACHIEVED = "达标"
STATUS_MISSED = "未达标"
STATUS_NO_DATA = "无数据"
STATUS_ALL_MET = "✅ 今日运动全部达标！"
STATUS_NOT_ALL_MET = "❌ 今日运动未全部达标"


def _evaluate_partial(totals: DailyTotals, targets: GoalTargets) -> GoalEvaluation:
    actuals = {
        # Whole units, as the exporter reports them
        "steps": float(int(totals.steps)),
        "exercise_minutes": float(int(totals.exercise_minutes)),
        "active_energy": totals.active_energy_kcal,
    }
    goal = {
        "steps": targets.steps,
        "exercise_minutes": targets.exercise_minutes,
        "active_energy": targets.active_energy_kcal,
    }
    breakdown = {
        name: MetricResult(
            actual=actual,
            target=goal[name],
            achieved=actual > 0 and actual >= goal[name] * PARTIAL_THRESHOLD,
        )
        for name, actual in actuals.items()
    }
    achieved = sum(r.achieved for r in breakdown.values()) >= PARTIAL_REQUIRED
    return GoalEvaluation(
        mode=GoalMode.PARTIAL,
        is_achieved=achieved,
        status=STATUS_ACHIEVED if achieved else STATUS_MISSED,
        breakdown=breakdown,
    )


def _evaluate_full(totals: DailyTotals, targets: GoalTargets) -> GoalEvaluation:
    pairs = {
        "steps": (totals.steps, targets.steps),
        "exercise_minutes": (totals.exercise_minutes, targets.exercise_minutes),
        "active_energy": (totals.active_energy_kcal, targets.active_energy_kcal),
        "workout_count": (totals.workout_count, targets.workout_count),
    }
    breakdown = {
        name: MetricResult(actual=actual, target=target, achieved=actual >= target)
        for name, (actual, target) in pairs.items()
    }
    achieved = all(r.achieved for r in breakdown.values())
    return GoalEvaluation(
        mode=GoalMode.FULL,
        is_achieved=achieved,
        status=STATUS_ALL_MET if achieved else STATUS_NOT_ALL_MET,
        breakdown=breakdown,
    )


def evaluate_goals(
    totals: Optional[DailyTotals],
    targets: GoalTargets,
    mode: GoalMode,
) -> GoalEvaluation:
    """Evaluate ``totals`` against ``targets`` under ``mode``.

    ``totals=None`` means the payload carried no activity section at
    all; the result then has ``is_achieved=None`` and status 无数据.
    """
    mode = GoalMode(mode)
    if totals is None:
        return GoalEvaluation(mode=mode, is_achieved=None, status=STATUS_NO_DATA)
    if mode is GoalMode.PARTIAL:
        return _evaluate_partial(totals, targets)
    return _evaluate_full(totals, targets)
