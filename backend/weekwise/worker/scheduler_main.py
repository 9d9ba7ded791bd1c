"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from weekwise.core.config import settings
from weekwise.core.logging import configure_logging
from weekwise.db.session import SessionLocal
from weekwise.services.job_runner import run_session_nudges, run_weekly_plan_for_all_users


logger = logging.getLogger(__name__)

# Settings use 0=Sunday; APScheduler cron uses mon..sun names.
CRON_DAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running jobs once on startup")
            run_weekly_plan_job()
            run_nudge_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    day_of_week = CRON_DAYS[settings.weekly_job_day % 7]
    scheduler.add_job(
        run_weekly_plan_job,
        trigger="cron",
        day_of_week=day_of_week,
        hour=settings.weekly_job_hour,
        minute=settings.weekly_job_minute,
        id="weekly_plan_job",
        replace_existing=True,
    )
    scheduler.add_job(
        run_nudge_job,
        trigger="cron",
        hour=settings.nudge_job_hour,
        minute=0,
        id="session_nudge_job",
        replace_existing=True,
    )
    logger.info(
        "Registered scheduler jobs (weekly=%s %02d:%02d, nudges=%02d:00 %s)",
        day_of_week,
        settings.weekly_job_hour,
        settings.weekly_job_minute,
        settings.nudge_job_hour,
        settings.scheduler_timezone,
    )


def run_weekly_plan_job() -> None:
    session = SessionLocal()
    try:
        result = run_weekly_plan_for_all_users(session)
        logger.info(
            "Weekly plan job complete: users=%s, plans=%s, skipped=%s, failures=%s",
            result.users_processed,
            result.plans_written,
            result.skipped_existing,
            len(result.failures),
        )
    except Exception:  # pragma: no cover - keeps the scheduler thread alive
        logger.exception("Weekly plan job failed")
    finally:
        session.close()


def run_nudge_job() -> None:
    session = SessionLocal()
    try:
        result = run_session_nudges(session)
        logger.info("Nudge job complete: users=%s, sent=%s", result.users_processed, result.notifications_sent)
    except Exception:  # pragma: no cover - keeps the scheduler thread alive
        logger.exception("Nudge job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
