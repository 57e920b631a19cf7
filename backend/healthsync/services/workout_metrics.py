"""
Workout Metrics
===============
Pure functions deriving per-workout numbers from the raw export arrays:
route distance (Haversine), average pace, step totals and heart-rate
statistics. Nothing here touches Notion.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timezone
from typing import Optional, Sequence

import numpy as np

from healthsync.models.workout import HeartRateSample, Quantity, RoutePoint, WorkoutItem

EARTH_RADIUS_M = 6371e3


# ---------------------------------------------------------------------------
# Geo
# ---------------------------------------------------------------------------

def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def route_distance_km(route: Sequence[RoutePoint]) -> float:
    """Sum of leg distances along a route, in kilometres. Fewer than two points is 0."""
    if len(route) < 2:
        return 0.0

    lat = np.radians([p.latitude for p in route])
    lon = np.radians([p.longitude for p in route])
    d_phi = np.diff(lat)
    d_lambda = np.diff(lon)

    a = np.sin(d_phi / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lambda / 2) ** 2
    legs = EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return float(legs.sum()) / 1000


def average_pace(distance_km: Optional[float], duration_minutes: Optional[float]) -> Optional[str]:
    """Minutes per kilometre as ``MM:SS``, or None without distance or time."""
    if not distance_km or distance_km <= 0 or not duration_minutes or duration_minutes <= 0:
        return None

    total_seconds = round(duration_minutes / distance_km * 60)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def sum_step_counts(samples: Sequence[Quantity]) -> Optional[int]:
    if not samples:
        return None
    return sum(int(s.qty or 0) for s in samples)


@dataclass
class HeartRateStats:
    avg: float
    max: int
    min: int


def heart_rate_stats(samples: Sequence[HeartRateSample]) -> Optional[HeartRateStats]:
    """Mean of per-interval averages, extreme max and min. Missing values count as 0."""
    if not samples:
        return None
    return HeartRateStats(
        avg=round(sum(s.avg or 0 for s in samples) / len(samples), 1),
        max=max(int(s.max or 0) for s in samples),
        min=min(int(s.min or 0) for s in samples),
    )


def _qty(quantity: Optional[Quantity]) -> Optional[float]:
    return quantity.qty if quantity is not None else None


# ---------------------------------------------------------------------------
# Per-workout view
# ---------------------------------------------------------------------------

@dataclass
class WorkoutMetrics:
    day: date
    title: str
    duration_minutes: Optional[float]
    steps: Optional[int]
    active_energy_kcal: Optional[float]
    distance_km: float
    pace: Optional[str]
    heart_rate: Optional[HeartRateStats]
    temperature_c: Optional[float]
    humidity_pct: Optional[float]
    intensity: Optional[float]


def derive_workout_metrics(workout: WorkoutItem) -> WorkoutMetrics:
    """Compute everything written to a workout page. ``workout.start`` must be set."""
    if workout.start is None:
        raise ValueError(f"workout {workout.id} has no start time")
    start = workout.start if workout.start.tzinfo else workout.start.replace(tzinfo=timezone.utc)
    start_utc = start.astimezone(timezone.utc)
    day = start_utc.date()
    time_str = start_utc.strftime("%H:%M:%S")

    duration_minutes = workout.duration / 60 if workout.duration else None
    distance_km = route_distance_km(workout.route)

    return WorkoutMetrics(
        day=day,
        title=f"{day.isoformat()} {workout.name} {time_str}",
        duration_minutes=duration_minutes,
        steps=sum_step_counts(workout.step_count),
        active_energy_kcal=_qty(workout.active_energy_burned),
        distance_km=distance_km,
        pace=average_pace(distance_km, duration_minutes),
        heart_rate=heart_rate_stats(workout.heart_rate_data),
        temperature_c=_qty(workout.temperature),
        humidity_pct=_qty(workout.humidity),
        intensity=_qty(workout.intensity),
    )
