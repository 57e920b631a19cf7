"""
Health Webhook Schemas
======================
Pydantic models for POST /api/health, the once-a-day combined export
(body, vitals, sleep analysis, activity summary).

Only ``metadata.date`` is required; every section and every number in
it is optional, and absent numbers are simply not written to Notion.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from healthsync.models.scoring import GoalEvaluation, ScoreResult

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class HealthMetadata(BaseModel):
    # "2025-12-18" or a full timestamp; the first ten characters are the day
    date: str
    device_name: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _starts_with_day(cls, value: str) -> str:
        if not _DATE_PREFIX.match(value):
            raise ValueError("metadata.date must start with YYYY-MM-DD")
        date.fromisoformat(value[:10])
        return value

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date[:10])


class BodyMetrics(BaseModel):
    height: Optional[float] = None
    weight: Optional[float] = None


class FitnessDetail(BaseModel):
    avg_walking_speed: Optional[float] = None
    avg_running_speed: Optional[float] = None
    walking_steadiness: Optional[float] = None
    cycling_distance: Optional[float] = None


class SleepAnalysis(BaseModel):
    total_hours: Optional[float] = None
    deep_sleep_min: Optional[float] = None
    rem_sleep_min: Optional[float] = None
    core_sleep_min: Optional[float] = None
    awake_time_min: Optional[float] = None


class Vitals(BaseModel):
    resting_heart_rate: Optional[float] = None
    max_hr_today: Optional[float] = None
    hrv_ms: Optional[float] = None
    respiratory_rate: Optional[float] = None
    blood_oxygen_avg: Optional[float] = None


class DailySummary(BaseModel):
    steps: Optional[float] = None
    distance_walking_running: Optional[float] = None
    active_energy_kcal: Optional[float] = None
    exercise_minutes: Optional[float] = None
    stand_hours: Optional[float] = None


class HealthPayload(BaseModel):
    metadata: HealthMetadata
    body: Optional[BodyMetrics] = None
    fitness_detail: Optional[FitnessDetail] = None
    # The exporter shortcut ships the key misspelt as "sleep_analyais"
    sleep_analysis: Optional[SleepAnalysis] = Field(
        default=None,
        validation_alias=AliasChoices("sleep_analysis", "sleep_analyais"),
    )
    vitals: Optional[Vitals] = None
    daily_summary: Optional[DailySummary] = None


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class HealthIngestResponse(BaseModel):
    success: bool = True
    id: str
    title: str
    created: bool
    sleep_score: ScoreResult
    exercise_status: GoalEvaluation
    habit_record_id: Optional[str] = None
    habit_error: Optional[str] = None
