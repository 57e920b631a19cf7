"""
HealthSync Configuration
========================
All environment variables in one place. Pydantic Settings validates
types at startup so a missing database id fails on boot, not on the
first webhook from the phone.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from healthsync.models.scoring import SleepScoringStrategy


class Settings(BaseSettings):
    """Loaded from environment variables or a .env / .env.local file."""

    # --- Notion ---
    notion_token: str = ""
    notion_health_database_id: str = ""
    notion_workout_database_id: str = ""
    # Older deployments used the misspelt HABBIT variable name
    notion_habit_trace_database_id: str = Field(
        default="",
        validation_alias=AliasChoices(
            "notion_habit_trace_database_id",
            "notion_habbit_trace_database_id",
        ),
    )
    notion_sleep_database_id: str = ""
    notion_timeout_seconds: float = 30.0

    # --- Webhook security ---
    secret_token: str = ""
    # Comma-separated; empty means every IP is allowed
    ip_whitelist: str = ""

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"

    # --- Daily goals after a workout batch (all must be met) ---
    workout_goal_steps: int = 10000
    workout_goal_exercise_minutes: int = 30
    workout_goal_active_energy_kcal: float = 500
    workout_goal_workout_count: int = 1

    # --- Daily goals for the health summary (80% of target, 2 of 3) ---
    activity_goal_steps: int = 10000
    activity_goal_exercise_minutes: int = 30
    activity_goal_active_energy_kcal: float = 300

    # Used by the raw-stage sleep endpoint
    sleep_scoring_strategy: SleepScoringStrategy = SleepScoringStrategy.BASELINE

    model_config = {
        "env_file": (".env", ".env.local"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def allowed_ips(self) -> list[str]:
        return [ip.strip() for ip in self.ip_whitelist.split(",") if ip.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
