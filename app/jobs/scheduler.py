"""APScheduler setup for housekeeping jobs."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.jobs.housekeeping import purge_expired_reset_tokens, purge_expired_sessions

scheduler = AsyncIOScheduler(timezone=settings.timezone)

# job id -> (coroutine, cron fields)
JOBS = {
    "purge_expired_sessions": (purge_expired_sessions, {"minute": "*/15"}),
    "purge_expired_reset_tokens": (purge_expired_reset_tokens, {"minute": 5}),
}


def register_jobs() -> None:
    """Register housekeeping jobs that are not already scheduled."""
    for job_id, (func, cron) in JOBS.items():
        if scheduler.get_job(job_id) is not None:
            continue
        scheduler.add_job(
            func,
            CronTrigger(timezone=settings.timezone, **cron),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
