"""Configuration loading and validation."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_SWPC_BASE = "https://services.swpc.noaa.gov"

DEFAULT_ALERTS_URL = f"{_SWPC_BASE}/products/alerts.json"
DEFAULT_DISCUSSION_URL = f"{_SWPC_BASE}/text/discussion.txt"
DEFAULT_FORECAST_URL = f"{_SWPC_BASE}/products/noaa-planetary-k-index-forecast.json"
DEFAULT_IMAGE_URL = f"{_SWPC_BASE}/images/animations/ovation/north/latest.jpg"

COMMIT_POLICIES = frozenset({"confirmed", "after_dispatch"})


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    database_path: str
    telegram_bot_token: str
    telegram_chat_id: str

    # Optional: Schedule
    schedule_cron: str = "*/5 * * * *"
    schedule_timezone: str = "UTC"

    # Optional: Sources
    alerts_url: str = DEFAULT_ALERTS_URL
    discussion_url: str = DEFAULT_DISCUSSION_URL
    forecast_url: str = DEFAULT_FORECAST_URL
    image_url: str = DEFAULT_IMAGE_URL
    sources_config_path: str = ""
    observation_utc_offset_hours: float = 3.0
    fetch_timeout_seconds: float = 30.0
    image_hash_distance: int = 4

    # Optional: Pipeline
    commit_policy: str = "confirmed"
    baseline_on_first_run: bool = True
    max_workers: int = 4
    source_failure_alert_threshold: int = 5
    telegram_max_retries: int = 3

    # Optional: Retention
    seen_retention_days: int = 0
    retention_schedule_cron: str = "30 3 * * *"

    # Optional: Application
    web_host: str = "0.0.0.0"
    web_port: int = 8080
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"


_REQUIRED_VARS = [
    "DATABASE_PATH",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
]

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables, or naming an unknown commit policy.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    commit_policy = os.environ.get("COMMIT_POLICY", "confirmed")
    if commit_policy not in COMMIT_POLICIES:
        raise ValueError(
            f"COMMIT_POLICY '{commit_policy}' is not valid; "
            f"must be one of: {', '.join(sorted(COMMIT_POLICIES))}"
        )

    return Config(
        # Required
        database_path=os.environ["DATABASE_PATH"],
        telegram_bot_token=os.environ["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=os.environ["TELEGRAM_CHAT_ID"],
        # Optional: Schedule
        schedule_cron=os.environ.get("SCHEDULE", "*/5 * * * *"),
        schedule_timezone=os.environ.get("SCHEDULE_TIMEZONE", "UTC"),
        # Optional: Sources
        alerts_url=os.environ.get("ALERTS_URL", DEFAULT_ALERTS_URL),
        discussion_url=os.environ.get("DISCUSSION_URL", DEFAULT_DISCUSSION_URL),
        forecast_url=os.environ.get("FORECAST_URL", DEFAULT_FORECAST_URL),
        image_url=os.environ.get("IMAGE_URL", DEFAULT_IMAGE_URL),
        sources_config_path=os.environ.get("SOURCES_CONFIG_PATH", ""),
        observation_utc_offset_hours=float(
            os.environ.get("OBSERVATION_UTC_OFFSET_HOURS", "3")
        ),
        fetch_timeout_seconds=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "30")),
        image_hash_distance=int(os.environ.get("IMAGE_HASH_DISTANCE", "4")),
        # Optional: Pipeline
        commit_policy=commit_policy,
        baseline_on_first_run=_env_bool("BASELINE_ON_FIRST_RUN", True),
        max_workers=int(os.environ.get("MAX_WORKERS", "4")),
        source_failure_alert_threshold=int(
            os.environ.get("SOURCE_FAILURE_ALERT_THRESHOLD", "5")
        ),
        telegram_max_retries=int(os.environ.get("TELEGRAM_MAX_RETRIES", "3")),
        # Optional: Retention
        seen_retention_days=int(os.environ.get("SEEN_RETENTION_DAYS", "0")),
        retention_schedule_cron=os.environ.get("RETENTION_SCHEDULE_CRON", "30 3 * * *"),
        # Optional: Application
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=int(os.environ.get("WEB_PORT", "8080")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )


def default_source_configs(config: Config) -> list[dict]:
    """Source definitions used when no sources file is configured."""
    return [
        {
            "type": "alerts",
            "name": "alerts",
            "url": config.alerts_url,
        },
        {
            "type": "discussion",
            "name": "discussion",
            "url": config.discussion_url,
        },
        {
            "type": "forecast",
            "name": "kp_forecast",
            "url": config.forecast_url,
            "utc_offset_hours": config.observation_utc_offset_hours,
        },
        {
            "type": "image",
            "name": "aurora_oval",
            "url": config.image_url,
            "max_distance": config.image_hash_distance,
            "silent": True,
        },
    ]


def load_source_configs(config: Config) -> list[dict]:
    """Return the enabled source definitions.

    Reads ``SOURCES_CONFIG_PATH`` (``{"sources": [...]}``) when set, otherwise
    falls back to the four built-in space-weather feeds. Source names must be
    unique; a duplicate raises ValueError.
    """
    if config.sources_config_path:
        with open(config.sources_config_path) as f:
            sources = json.load(f).get("sources", [])
    else:
        sources = default_source_configs(config)

    enabled = [s for s in sources if s.get("enabled", True)]
    names = [s.get("name") or s.get("type", "") for s in enabled]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate source names: {', '.join(duplicates)}")
    return enabled
