"""Application entry point: runs the poll scheduler and status API in one process."""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from spacewatch.config import Config, load_config
from spacewatch.jobs import run_poll_cycle, run_retention
from spacewatch.pipeline import PollContext, build_context
from spacewatch.storage import init_db
from spacewatch.web.app import create_app

logger = logging.getLogger("spacewatch")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Build a CronTrigger from a 5-field or 6-field (leading seconds) expression.

    Raises ValueError for any other field count.
    """
    parts = expression.split()
    if len(parts) == 5:
        second = "0"
        minute, hour, day, month, day_of_week = parts
    elif len(parts) == 6:
        second, minute, hour, day, month, day_of_week = parts
    else:
        raise ValueError(
            f"Cron expression '{expression}' must have 5 or 6 fields, got {len(parts)}"
        )
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=day_of_week,
        timezone=timezone,
    )


def _cycle_interval_seconds(trigger: CronTrigger) -> float | None:
    """Seconds between the next two fire times of *trigger*."""
    now = datetime.now(trigger.timezone)
    first = trigger.get_next_fire_time(None, now)
    if first is None:
        return None
    second = trigger.get_next_fire_time(first, first + timedelta(microseconds=1))
    if second is None:
        return None
    return (second - first).total_seconds()


def _build_scheduler(config: Config, context: PollContext) -> BackgroundScheduler:
    """Create a BackgroundScheduler with the poll and retention jobs."""
    scheduler = BackgroundScheduler()

    poll_trigger = cron_trigger(config.schedule_cron, config.schedule_timezone)
    interval = _cycle_interval_seconds(poll_trigger)
    if interval is not None and config.fetch_timeout_seconds >= interval:
        logger.warning(
            "FETCH_TIMEOUT_SECONDS (%s) is not shorter than the poll interval (%ss)",
            config.fetch_timeout_seconds, interval,
        )

    # Overlapping triggers are dropped (with a scheduler warning), not queued
    scheduler.add_job(
        run_poll_cycle,
        trigger=poll_trigger,
        args=[context],
        id="poll_cycle",
        name="Poll all sources",
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        run_retention,
        trigger=cron_trigger(config.retention_schedule_cron),
        args=[config],
        id="retention",
        name="Seen-record retention",
    )

    return scheduler


def main() -> None:
    """Load config, set up logging, and start scheduler + status API."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "Spacewatch starting (env=%s, db=%s, schedule=%s)",
        config.app_env,
        config.database_path,
        config.schedule_cron,
    )

    init_db(config.database_path)
    context = build_context(config)
    scheduler = _build_scheduler(config, context)

    def _initial_cycle():
        """Run one cycle at startup in a background thread."""
        logger.info("Running initial poll cycle")
        run_poll_cycle(context)

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Scheduler starting")
        scheduler.start()
        # Initial cycle runs in background so the status API is available immediately
        threading.Thread(target=_initial_cycle, daemon=True).start()
        yield
        logger.info("Scheduler shutting down")
        scheduler.shutdown(wait=False)

    app = create_app(config.database_path, lifespan=lifespan)

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
