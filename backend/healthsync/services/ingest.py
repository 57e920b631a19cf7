"""
Webhook Ingest Services
=======================
One handler per export payload. Each takes the raw JSON body and the
caller's IP, validates the body before touching Notion, and returns the
response model the router serialises.

    ingest_sleep     raw stage samples → one Sleep row per day, then the
                     HabitTrace sleep half
    ingest_workouts  one Workout page per item → per-day totals → Health,
                     HabitTrace and workout links
    ingest_health    combined daily export → Health row, then the
                     HabitTrace sleep/activity verdict

Failure policy:
    - Invalid body → PayloadValidationError, no Notion call made.
    - A failed write for one workout skips that workout only.
    - A failed propagation for one day is reported for that day only.
    - Anything else from Notion propagates as NotionStoreError.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from healthsync.config import Settings
from healthsync.db.notion import NotionCollections, NotionStore
from healthsync.db.properties import (
    HEALTH_PROPS,
    SLEEP_PROPS,
    TITLE_PROPERTY,
    WORKOUT_PROPS,
    FieldPatch,
    date_value,
    number,
    rich_text,
    select,
    sparse_patch,
    title,
)
from healthsync.errors import NotionStoreError, PayloadValidationError
from healthsync.models.health import HealthIngestResponse, HealthPayload
from healthsync.models.scoring import (
    DailyTotals,
    GoalMode,
    GoalTargets,
    ScoreResult,
    SleepScoringStrategy,
)
from healthsync.models.sleep import SleepIngestResponse, SleepPayload, SleepRecordResult
from healthsync.models.workout import (
    DateSyncStatus,
    WorkoutIngestResponse,
    WorkoutItem,
    WorkoutPayload,
    WorkoutResult,
)
from healthsync.services.goals import evaluate_goals
from healthsync.services.propagation import SummaryPropagator
from healthsync.services.sleep_scoring import (
    SleepMetrics,
    SleepSession,
    build_sleep_sessions,
    score_sleep,
)
from healthsync.services.workout_metrics import WorkoutMetrics, derive_workout_metrics

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def workout_targets(settings: Settings) -> GoalTargets:
    return GoalTargets(
        steps=settings.workout_goal_steps,
        exercise_minutes=settings.workout_goal_exercise_minutes,
        active_energy_kcal=settings.workout_goal_active_energy_kcal,
        workout_count=settings.workout_goal_workout_count,
    )


def activity_targets(settings: Settings) -> GoalTargets:
    return GoalTargets(
        steps=settings.activity_goal_steps,
        exercise_minutes=settings.activity_goal_exercise_minutes,
        active_energy_kcal=settings.activity_goal_active_energy_kcal,
    )


def validate_payload(model: type[PayloadT], body: Any, label: str, client_ip: str) -> PayloadT:
    """Parse ``body`` into ``model`` or raise PayloadValidationError."""
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        first = errors[0]
        location = ".".join(str(part) for part in first["loc"]) or "body"
        message = f"Invalid {label} payload: {location}: {first['msg']}"
        logger.info("[%s] %s", client_ip, message)
        raise PayloadValidationError(message, errors=errors) from exc


def _round(value: Optional[float], digits: int = 2) -> Optional[float]:
    return round(value, digits) if value is not None else None


def _whole(value: Optional[float]) -> Optional[int]:
    return int(value) if value is not None else None


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------

def sleep_record_patch(session: SleepSession, score: ScoreResult) -> FieldPatch:
    """Sleep row fields for one night.

    A night with no actual sleep (only Awake samples) writes just the awake
    time and source; the stored night, its score and its rating stay as
    they are.
    """
    fields = {
        SLEEP_PROPS["awake_hours"]: number(round(session.awake_hours, 1)),
        SLEEP_PROPS["source"]: select(session.source or "Unknown"),
    }
    if score.has_data:
        fields.update({
            SLEEP_PROPS["start"]: date_value(session.start),
            SLEEP_PROPS["end"]: date_value(session.end),
            SLEEP_PROPS["total_hours"]: number(round(session.total_sleep_hours, 1)),
            SLEEP_PROPS["deep_hours"]: number(round(session.deep_hours, 1)),
            SLEEP_PROPS["core_hours"]: number(round(session.core_hours, 1)),
            SLEEP_PROPS["rem_hours"]: number(round(session.rem_hours, 1)),
            SLEEP_PROPS["score"]: number(score.score),
            SLEEP_PROPS["rating"]: rich_text(score.rating.value),
        })
    return sparse_patch(fields)


async def ingest_sleep(
    body: Any,
    *,
    store: NotionStore,
    collections: NotionCollections,
    settings: Settings,
    client_ip: str = "-",
) -> SleepIngestResponse:
    payload = validate_payload(SleepPayload, body, "sleep", client_ip)
    strategy = SleepScoringStrategy(settings.sleep_scoring_strategy)

    samples = [sample for metric in payload.data.metrics for sample in metric.data]
    sessions = build_sleep_sessions(samples)
    logger.info(
        "[%s] Sleep export: %d samples across %d days", client_ip, len(samples), len(sessions)
    )

    propagator = SummaryPropagator(store, collections, workout_targets(settings), client_ip)
    results = []
    for day in sorted(sessions):
        session = sessions[day]
        score = score_sleep(session.to_metrics(), strategy)
        handle = await propagator.reconciler.upsert_by_date(
            collections.sleep, day, sleep_record_patch(session, score)
        )
        result = SleepRecordResult(
            status="created" if handle.created else "updated",
            date=day,
            record_id=handle.id,
            title=collections.sleep.title_for(day),
            score=score.score,
            rating=score.rating,
            total_sleep_hours=round(session.total_sleep_hours, 1),
        )

        try:
            habit = await propagator.sync_sleep_to_habits(day, score)
            result.habit_record_id = habit.id
        except NotionStoreError as exc:
            logger.warning(
                "[%s] Habit sync failed for sleep on %s: %s", client_ip, day.isoformat(), exc
            )
            result.habit_error = exc.message

        results.append(result)

    return SleepIngestResponse(
        message=f"Synced sleep for {len(results)} day(s)",
        strategy=strategy,
        results=results,
    )


# ---------------------------------------------------------------------------
# Workouts
# ---------------------------------------------------------------------------

def workout_page_properties(workout: WorkoutItem, metrics: WorkoutMetrics) -> FieldPatch:
    hr = metrics.heart_rate
    return sparse_patch({
        TITLE_PROPERTY: title(metrics.title),
        WORKOUT_PROPS["date"]: date_value(metrics.day),
        WORKOUT_PROPS["type"]: rich_text(workout.name),
        WORKOUT_PROPS["location"]: rich_text(workout.location or ""),
        WORKOUT_PROPS["duration_min"]: number(_round(metrics.duration_minutes)),
        WORKOUT_PROPS["steps"]: number(metrics.steps),
        WORKOUT_PROPS["active_energy_kcal"]: number(metrics.active_energy_kcal),
        WORKOUT_PROPS["temperature_c"]: number(metrics.temperature_c),
        WORKOUT_PROPS["humidity_pct"]: number(metrics.humidity_pct),
        WORKOUT_PROPS["avg_hr"]: number(hr.avg if hr else None),
        WORKOUT_PROPS["max_hr"]: number(hr.max if hr else None),
        WORKOUT_PROPS["min_hr"]: number(hr.min if hr else None),
        WORKOUT_PROPS["intensity"]: number(metrics.intensity),
        WORKOUT_PROPS["workout_id"]: rich_text(workout.id),
        WORKOUT_PROPS["distance_km"]: number(
            round(metrics.distance_km, 2) if metrics.distance_km > 0 else None
        ),
        WORKOUT_PROPS["pace"]: rich_text(metrics.pace),
    })


async def ingest_workouts(
    body: Any,
    *,
    store: NotionStore,
    collections: NotionCollections,
    settings: Settings,
    client_ip: str = "-",
) -> WorkoutIngestResponse:
    payload = validate_payload(WorkoutPayload, body, "workout", client_ip)

    results: list[WorkoutResult] = []
    totals: dict[date, DailyTotals] = {}
    created_pages: dict[date, list[str]] = {}
    skipped = failed = 0

    for workout in payload.data.workouts:
        if not workout.id or workout.start is None:
            logger.info("[%s] Skipping workout: missing id or start time", client_ip)
            skipped += 1
            continue

        metrics = derive_workout_metrics(workout)
        try:
            record = await store.create(
                collections.workout, workout_page_properties(workout, metrics)
            )
        except NotionStoreError as exc:
            logger.warning("[%s] Could not create workout %s: %s", client_ip, workout.id, exc)
            failed += 1
            continue

        totals.setdefault(metrics.day, DailyTotals()).add(
            steps=metrics.steps,
            # Rounded as stored on the workout page
            exercise_minutes=_round(metrics.duration_minutes),
            active_energy_kcal=metrics.active_energy_kcal,
        )
        created_pages.setdefault(metrics.day, []).append(record.id)
        results.append(WorkoutResult(
            id=record.id,
            title=metrics.title,
            workout_id=workout.id,
            date=metrics.day,
        ))
        logger.info("[%s] Created workout page %s (%s)", client_ip, record.id, metrics.title)

    propagator = SummaryPropagator(store, collections, workout_targets(settings), client_ip)
    sync: dict[str, DateSyncStatus] = {}
    for day in sorted(totals):
        try:
            status = await propagator.propagate(day, totals[day], created_pages[day])
        except NotionStoreError as exc:
            logger.warning(
                "[%s] Daily summary sync failed for %s: %s", client_ip, day.isoformat(), exc
            )
            status = DateSyncStatus(error=exc.message)
        sync[day.isoformat()] = status

        for result in results:
            if result.date == day:
                result.health_record_id = status.health_record_id

    return WorkoutIngestResponse(
        count=len(results),
        skipped=skipped,
        failed=failed,
        results=results,
        workout_summary={day.isoformat(): t for day, t in sorted(totals.items())},
        sync=sync,
    )


# ---------------------------------------------------------------------------
# Daily health export
# ---------------------------------------------------------------------------

def health_record_patch(payload: HealthPayload, score: ScoreResult) -> FieldPatch:
    body = payload.body
    fitness = payload.fitness_detail
    sleep = payload.sleep_analysis
    vitals = payload.vitals
    summary = payload.daily_summary

    fields = {
        HEALTH_PROPS["device"]: rich_text(payload.metadata.device_name),
        HEALTH_PROPS["height_cm"]: number(body.height if body else None),
        HEALTH_PROPS["weight_kg"]: number(body.weight if body else None),
    }
    if summary is not None:
        fields.update({
            HEALTH_PROPS["steps"]: number(_whole(summary.steps)),
            HEALTH_PROPS["distance_km"]: number(summary.distance_walking_running),
            HEALTH_PROPS["active_energy_kcal"]: number(summary.active_energy_kcal),
            HEALTH_PROPS["exercise_minutes"]: number(_whole(summary.exercise_minutes)),
            HEALTH_PROPS["stand_hours"]: number(_whole(summary.stand_hours)),
        })
    if sleep is not None:
        fields.update({
            HEALTH_PROPS["sleep_hours"]: number(sleep.total_hours),
            HEALTH_PROPS["deep_sleep_min"]: number(_whole(sleep.deep_sleep_min)),
            HEALTH_PROPS["rem_sleep_min"]: number(_whole(sleep.rem_sleep_min)),
            HEALTH_PROPS["core_sleep_min"]: number(_whole(sleep.core_sleep_min)),
            HEALTH_PROPS["awake_min"]: number(_whole(sleep.awake_time_min)),
        })
    # Score and rating are written together or not at all
    if score.has_data:
        fields.update({
            HEALTH_PROPS["actual_sleep_hours"]: number(score.actual_sleep_hours),
            HEALTH_PROPS["sleep_score"]: number(score.score),
            HEALTH_PROPS["sleep_rating"]: rich_text(score.rating.value),
            HEALTH_PROPS["deep_ratio"]: number(score.ratios.get("deep_sleep")),
            HEALTH_PROPS["rem_ratio"]: number(score.ratios.get("rem_sleep")),
            HEALTH_PROPS["awake_ratio"]: number(score.ratios.get("awake_time")),
            HEALTH_PROPS["efficiency"]: number(score.ratios.get("efficiency")),
        })
    if vitals is not None:
        fields.update({
            HEALTH_PROPS["resting_hr"]: number(vitals.resting_heart_rate),
            HEALTH_PROPS["max_hr"]: number(vitals.max_hr_today),
            HEALTH_PROPS["hrv_ms"]: number(vitals.hrv_ms),
            HEALTH_PROPS["respiratory_rate"]: number(vitals.respiratory_rate),
            HEALTH_PROPS["blood_oxygen"]: number(vitals.blood_oxygen_avg),
        })
    if fitness is not None:
        fields.update({
            HEALTH_PROPS["avg_walking_speed"]: number(fitness.avg_walking_speed),
            HEALTH_PROPS["avg_running_speed"]: number(fitness.avg_running_speed),
            HEALTH_PROPS["walking_steadiness"]: number(fitness.walking_steadiness),
            HEALTH_PROPS["cycling_distance"]: number(fitness.cycling_distance),
        })
    return sparse_patch(fields)


def sleep_metrics_from_payload(payload: HealthPayload) -> Optional[SleepMetrics]:
    sleep = payload.sleep_analysis
    if sleep is None:
        return None
    return SleepMetrics(
        time_in_bed_hours=sleep.total_hours,
        awake_minutes=sleep.awake_time_min or 0,
        deep_minutes=sleep.deep_sleep_min or 0,
        rem_minutes=sleep.rem_sleep_min or 0,
        core_minutes=sleep.core_sleep_min or 0,
    )


def totals_from_payload(payload: HealthPayload) -> Optional[DailyTotals]:
    summary = payload.daily_summary
    if summary is None:
        return None
    return DailyTotals(
        steps=summary.steps or 0,
        exercise_minutes=summary.exercise_minutes or 0,
        active_energy_kcal=summary.active_energy_kcal or 0,
    )


async def ingest_health(
    body: Any,
    *,
    store: NotionStore,
    collections: NotionCollections,
    settings: Settings,
    client_ip: str = "-",
) -> HealthIngestResponse:
    payload = validate_payload(HealthPayload, body, "health", client_ip)
    day = payload.metadata.day

    score = score_sleep(sleep_metrics_from_payload(payload), SleepScoringStrategy.TIERED)
    totals = totals_from_payload(payload)
    evaluation = evaluate_goals(totals, activity_targets(settings), GoalMode.PARTIAL)
    logger.info(
        "[%s] Health export for %s: sleep %s (%s), activity %s",
        client_ip, day.isoformat(), score.score, score.rating.value, evaluation.status,
    )

    propagator = SummaryPropagator(store, collections, workout_targets(settings), client_ip)
    handle = await propagator.reconciler.upsert_by_date(
        collections.health, day, health_record_patch(payload, score)
    )
    response = HealthIngestResponse(
        id=handle.id,
        title=collections.health.title_for(day),
        created=handle.created,
        sleep_score=score,
        exercise_status=evaluation,
    )

    try:
        habit = await propagator.sync_daily_status(day, score, evaluation, totals)
        response.habit_record_id = habit.id
    except NotionStoreError as exc:
        logger.warning(
            "[%s] Habit sync failed for health export on %s: %s", client_ip, day.isoformat(), exc
        )
        response.habit_error = exc.message

    return response
