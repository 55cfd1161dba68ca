"""
Background scheduler: runs the periodic jobs inside the FastAPI process.

Jobs (service time zone, Settings.TIMEZONE):
  - Recurring expenses       (daily, 00:01)
  - Missed recurring check   (every RECOVERY_INTERVAL_HOURS hours)
  - Daily reminders          (daily, DAILY_REMINDER_HOUR:00)
  - Weekly reminders         (every WEEKLY_REMINDER_INTERVAL_MINUTES min during active hours)
  - Monthly income reminder  (daily, INCOME_REMINDER_HOUR:00)

A job that cannot even list users raises; APScheduler records it as a failed
run and the listener logs it. Per-user failures are handled inside the jobs.
"""
import logging

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_recurring_expenses():
    from app.infrastructure.db.session import get_session_factory
    from app.application.recurring_expenses import create_recurring_expenses

    return create_recurring_expenses(get_session_factory())


def _run_recurring_recovery():
    from app.infrastructure.db.session import get_session_factory
    from app.application.recurring_recovery import check_missed_recurring_expenses

    return check_missed_recurring_expenses(get_session_factory())


def _run_daily_reminders():
    from app.infrastructure.db.session import get_session_factory
    from app.application.reminders import send_daily_reminders

    return send_daily_reminders(get_session_factory())


def _run_weekly_reminders():
    from app.infrastructure.db.session import get_session_factory
    from app.application.reminders import send_weekly_reminders

    return send_weekly_reminders(get_session_factory())


def _run_income_reminders():
    from app.infrastructure.db.session import get_session_factory
    from app.application.reminders import send_monthly_income_reminders

    return send_monthly_income_reminders(get_session_factory())


JOBS = {
    "recurring_expenses": _run_recurring_expenses,
    "recurring_recovery": _run_recurring_recovery,
    "daily_reminders": _run_daily_reminders,
    "weekly_reminders": _run_weekly_reminders,
    "income_reminders": _run_income_reminders,
}


def build_triggers(settings=None) -> dict[str, CronTrigger]:
    """Cron triggers per job id, all in the service time zone."""
    settings = settings or get_settings()
    tz = settings.TIMEZONE
    return {
        "recurring_expenses": CronTrigger(hour=0, minute=1, timezone=tz),
        "recurring_recovery": CronTrigger(
            hour=f"*/{settings.RECOVERY_INTERVAL_HOURS}", minute=0, timezone=tz,
        ),
        "daily_reminders": CronTrigger(hour=settings.DAILY_REMINDER_HOUR, minute=0, timezone=tz),
        "weekly_reminders": CronTrigger(
            minute=f"*/{settings.WEEKLY_REMINDER_INTERVAL_MINUTES}",
            hour=settings.WEEKLY_REMINDER_ACTIVE_HOURS,
            timezone=tz,
        ),
        "income_reminders": CronTrigger(hour=settings.INCOME_REMINDER_HOUR, minute=0, timezone=tz),
    }


def _on_job_event(event):
    if event.code == EVENT_JOB_MISSED:
        logger.warning("Job %s missed its run at %s", event.job_id, event.scheduled_run_time)
    elif event.exception is not None:
        logger.error("Job %s failed: %r", event.job_id, event.exception)


def register_jobs(target: BackgroundScheduler, settings=None) -> None:
    settings = settings or get_settings()
    for job_id, trigger in build_triggers(settings).items():
        target.add_job(
            JOBS[job_id],
            trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.JOB_TIMEOUT_SECONDS,
        )
    target.add_listener(_on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    settings = get_settings()
    register_jobs(scheduler, settings)
    scheduler.start()
    logger.info(
        "Scheduler started (%s): recurring_expenses (00:01), recurring_recovery (every %dh), "
        "daily_reminders (%02d:00), weekly_reminders (every %d min, hours %s), income_reminders (%02d:00)",
        settings.TIMEZONE, settings.RECOVERY_INTERVAL_HOURS, settings.DAILY_REMINDER_HOUR,
        settings.WEEKLY_REMINDER_INTERVAL_MINUTES, settings.WEEKLY_REMINDER_ACTIVE_HOURS,
        settings.INCOME_REMINDER_HOUR,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def run_job(job_id: str):
    """Run one job once, synchronously (manual runs / external cron)."""
    if job_id not in JOBS:
        raise KeyError(f"unknown job: {job_id}")
    return JOBS[job_id]()
