"""
Cross-Collection Summary Propagation
====================================
Keeps the Health row, the HabitTrace row and the workout pages of one
day consistent with each other.

After a workout batch, for each day touched:
    1. Evaluate the day's totals in FULL goal mode.
    2. Upsert the Health row with the training summary and goal flags.
    3. Upsert the HabitTrace row with the same numbers plus a one-line
       summary and advice (sleep half read from the row itself).
    4. Point every workout page created for that day at the Health row
       (one-directional relation).

The sleep and health webhooks reuse the HabitTrace half of this so the
summary text always reflects both sleep and activity, whichever arrived
last.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from healthsync.db.notion import NotionCollections, NotionRecord, NotionStore
from healthsync.db.properties import (
    GOAL_PROPS,
    HABIT_PROPS,
    HEALTH_PROPS,
    WORKOUT_PROPS,
    FieldPatch,
    checkbox,
    number,
    read_number,
    read_text,
    relation,
    rich_text,
    sparse_patch,
)
from healthsync.errors import NotionStoreError
from healthsync.models.scoring import (
    DailyTotals,
    GoalEvaluation,
    GoalMode,
    GoalTargets,
    ScoreResult,
    SleepRating,
)
from healthsync.models.workout import DateSyncStatus
from healthsync.services.digest import daily_advice, daily_summary
from healthsync.services.goals import evaluate_goals
from healthsync.services.reconciler import DateKeyedReconciler, RecordHandle

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reading back what a HabitTrace row already holds
# ---------------------------------------------------------------------------

def stored_sleep(record: Optional[NotionRecord]) -> tuple[Optional[int], SleepRating]:
    if record is None:
        return None, SleepRating.NO_DATA
    score = read_number(record.properties, HABIT_PROPS["sleep_score"])
    if score is None:
        return None, SleepRating.NO_DATA
    rating = SleepRating.from_text(read_text(record.properties, HABIT_PROPS["sleep_rating"]))
    return int(score), rating


def stored_totals(record: Optional[NotionRecord]) -> Optional[DailyTotals]:
    if record is None:
        return None
    values = {
        field: read_number(record.properties, HABIT_PROPS[field])
        for field in ("steps", "exercise_minutes", "active_energy_kcal")
    }
    if all(v is None for v in values.values()):
        return None
    return DailyTotals(**{k: v or 0 for k, v in values.items()})


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------

def goal_flags(goals: GoalEvaluation) -> FieldPatch:
    return sparse_patch({
        GOAL_PROPS["steps"]: checkbox(goals.achieved("steps")),
        GOAL_PROPS["exercise_minutes"]: checkbox(goals.achieved("exercise_minutes")),
        GOAL_PROPS["active_energy"]: checkbox(goals.achieved("active_energy")),
        GOAL_PROPS["workout_count"]: checkbox(goals.achieved("workout_count")),
        GOAL_PROPS["all"]: checkbox(goals.is_achieved),
    })


def health_training_patch(totals: DailyTotals, goals: GoalEvaluation) -> FieldPatch:
    patch = sparse_patch({
        HEALTH_PROPS["workout_count"]: number(totals.workout_count),
        HEALTH_PROPS["workout_minutes"]: number(round(totals.exercise_minutes, 2)),
        HEALTH_PROPS["workout_steps"]: number(totals.steps),
        HEALTH_PROPS["workout_energy"]: number(round(totals.active_energy_kcal, 2)),
        HEALTH_PROPS["goal_status"]: rich_text(goals.status),
    })
    patch.update(goal_flags(goals))
    return patch


def habit_activity_patch(
    existing: Optional[NotionRecord], totals: DailyTotals, goals: GoalEvaluation
) -> FieldPatch:
    sleep_score, sleep_rating = stored_sleep(existing)
    patch = sparse_patch({
        HABIT_PROPS["steps"]: number(totals.steps),
        HABIT_PROPS["exercise_minutes"]: number(round(totals.exercise_minutes, 2)),
        HABIT_PROPS["active_energy_kcal"]: number(round(totals.active_energy_kcal, 2)),
        HABIT_PROPS["summary"]: rich_text(daily_summary(sleep_score, sleep_rating, totals)),
        HABIT_PROPS["advice"]: rich_text(daily_advice(sleep_score, totals)),
    })
    patch.update(goal_flags(goals))
    return patch


def habit_sleep_patch(
    existing: Optional[NotionRecord],
    score: ScoreResult,
    totals: Optional[DailyTotals],
    exercise_status: Optional[str] = None,
) -> FieldPatch:
    """Sleep half of a HabitTrace row, digest rebuilt from the merged row.

    A night without data leaves the stored score and rating alone; missing
    totals fall back to the activity numbers already on the row.
    """
    if score.has_data:
        sleep_score, sleep_rating = score.score, score.rating
    else:
        sleep_score, sleep_rating = stored_sleep(existing)
    if totals is None:
        totals = stored_totals(existing)

    return sparse_patch({
        HABIT_PROPS["sleep_score"]: number(score.score),
        HABIT_PROPS["sleep_rating"]: rich_text(score.rating.value) if score.has_data else None,
        HABIT_PROPS["exercise_status"]: rich_text(exercise_status),
        HABIT_PROPS["summary"]: rich_text(daily_summary(sleep_score, sleep_rating, totals)),
        HABIT_PROPS["advice"]: rich_text(daily_advice(sleep_score, totals)),
    })


# ---------------------------------------------------------------------------
# Propagator
# ---------------------------------------------------------------------------

class SummaryPropagator:
    """Fans a day's results out to the Health, HabitTrace and workout databases."""

    def __init__(
        self,
        store: NotionStore,
        collections: NotionCollections,
        workout_targets: GoalTargets,
        client_ip: str = "-",
    ) -> None:
        self._store = store
        self._collections = collections
        self._targets = workout_targets
        self._client_ip = client_ip
        self._reconciler = DateKeyedReconciler(store, client_ip)

    @property
    def reconciler(self) -> DateKeyedReconciler:
        return self._reconciler

    async def propagate(
        self, day: date, totals: DailyTotals, workout_page_ids: Sequence[str]
    ) -> DateSyncStatus:
        """Push one day's workout totals to Health and HabitTrace and link the workouts.

        Raises NotionStoreError if either upsert fails. A failed link is
        logged and reported in the returned status; the other links are
        still attempted.
        """
        goals = evaluate_goals(totals, self._targets, GoalMode.FULL)

        health = await self._reconciler.upsert_by_date(
            self._collections.health, day, health_training_patch(totals, goals)
        )
        habit = await self._reconciler.upsert_by_date(
            self._collections.habit_trace,
            day,
            lambda existing: habit_activity_patch(existing, totals, goals),
        )

        status = DateSyncStatus(
            health_record_id=health.id,
            habit_record_id=habit.id,
            goals=goals,
        )

        link_errors = []
        for page_id in workout_page_ids:
            try:
                await self._store.update(
                    page_id, {WORKOUT_PROPS["health_record"]: relation([health.id])}
                )
            except NotionStoreError as exc:
                logger.warning(
                    "[%s] Could not link workout %s to health record %s: %s",
                    self._client_ip, page_id, health.id, exc,
                )
                link_errors.append(f"{page_id}: {exc.message}")
                continue
            status.linked_workouts += 1

        if link_errors:
            status.error = "; ".join(link_errors)

        logger.info(
            "[%s] Propagated %s: %d workouts, goals %s, %d/%d linked",
            self._client_ip, day.isoformat(), totals.workout_count, goals.status,
            status.linked_workouts, len(workout_page_ids),
        )
        return status

    async def sync_sleep_to_habits(self, day: date, score: ScoreResult) -> RecordHandle:
        """Write a night's score into HabitTrace, keeping the activity half of the digest."""
        return await self._reconciler.upsert_by_date(
            self._collections.habit_trace,
            day,
            lambda existing: habit_sleep_patch(existing, score, None),
        )

    async def sync_daily_status(
        self,
        day: date,
        score: ScoreResult,
        evaluation: GoalEvaluation,
        totals: Optional[DailyTotals],
    ) -> RecordHandle:
        """Write the health export's sleep score and activity verdict into HabitTrace."""
        # No activity section means no verdict to record
        exercise_status = evaluation.status if totals is not None else None
        return await self._reconciler.upsert_by_date(
            self._collections.habit_trace,
            day,
            lambda existing: habit_sleep_patch(existing, score, totals, exercise_status),
        )
