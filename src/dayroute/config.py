# src/dayroute/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every knob of the day template and delay handling is overridable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAYROUTE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (gitignored) never overrides variables already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    storage_backend: str  # "memory" | "sqlite"
    data_dir: Path
    schedule_db_path: Path

    # ---- Operator / admin ----
    operator_name: str
    admin_password: str

    # ---- Delay handling ----
    delay_policy: str  # "mark_only" | "shift_forward"
    auto_delay_threshold_minutes: int
    monitor_interval_seconds: float

    # ---- Day template ----
    day_start: str
    day_end: str
    lunch_start: str
    lunch_end: str
    home_location_id: str
    lunch_location_id: str
    post_lunch_location_id: str
    work_min_minutes: int
    work_max_minutes: int
    generator_max_iterations: int
    random_seed: int | None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "dayroute")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        storage_backend = _env(_k("STORAGE"), "memory").strip().lower()
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dayroute"))
        schedule_db_path = _env_path(_k("DB_PATH"), data_dir / "schedules.sqlite3")

        operator_name = _env(_k("OPERATOR_NAME"), "Nathan").strip() or "Nathan"
        admin_password = _env(_k("ADMIN_PASSWORD"), "admin")

        delay_policy = _env(_k("DELAY_POLICY"), "mark_only").strip().lower()
        auto_delay_threshold_minutes = _env_int(_k("AUTO_DELAY_THRESHOLD_MINUTES"), 5)
        monitor_interval_seconds = _env_float(_k("MONITOR_INTERVAL_SECONDS"), 60.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            storage_backend=storage_backend,
            data_dir=data_dir,
            schedule_db_path=schedule_db_path,
            operator_name=operator_name,
            admin_password=admin_password,
            delay_policy=delay_policy,
            auto_delay_threshold_minutes=auto_delay_threshold_minutes,
            monitor_interval_seconds=monitor_interval_seconds,
            day_start=_env(_k("DAY_START"), "08:00"),
            day_end=_env(_k("DAY_END"), "19:00"),
            lunch_start=_env(_k("LUNCH_START"), "13:40"),
            lunch_end=_env(_k("LUNCH_END"), "14:40"),
            home_location_id=_env(_k("HOME_LOCATION"), "ertsfeld"),
            lunch_location_id=_env(_k("LUNCH_LOCATION"), "lugano"),
            post_lunch_location_id=_env(_k("POST_LUNCH_LOCATION"), "bellinzona"),
            work_min_minutes=_env_int(_k("WORK_MIN_MINUTES"), 30),
            work_max_minutes=_env_int(_k("WORK_MAX_MINUTES"), 90),
            generator_max_iterations=_env_int(_k("GENERATOR_MAX_ITERATIONS"), 500),
            random_seed=_env_optional_int(_k("RANDOM_SEED")),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
