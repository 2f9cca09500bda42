# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Scheduler service using APScheduler."""

import logging
import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from equiprent.config import get_settings
from equiprent.database import get_session_local
from equiprent.models.auth import AuthToken, CronJob, Notification

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULES = {
    "daily_cleanup": "0 3 * * *",
}

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
    return scheduler


async def run_cron_job(job_key: str, db: Session) -> Dict[str, Any]:
    """Run a cron job by key and record the outcome on its CronJob row.

    Args:
        job_key: The job identifier
        db: Database session

    Returns:
        Result of the job execution.
    """
    start_time = time.time()

    def record(run_status: str) -> None:
        job = db.query(CronJob).filter(CronJob.job_key == job_key).first()
        if job:
            job.last_run_at = datetime.utcnow()
            job.last_run_status = run_status
            job.last_run_duration_ms = int((time.time() - start_time) * 1000)
            if run_status == "success":
                job.total_runs += 1
            else:
                job.total_errors += 1
            db.commit()

    try:
        if job_key == "daily_cleanup":
            result = await _run_daily_cleanup(db)
        else:
            raise ValueError(f"Unknown job key: {job_key}")
    except Exception:
        db.rollback()
        logger.exception("Cron job %s failed", job_key)
        record("error")
        raise

    record("success")
    logger.info("Cron job %s finished: %s", job_key, result)
    return result


async def _run_daily_cleanup(db: Session) -> Dict[str, Any]:
    """Delete stale auth tokens and old read notifications."""
    settings = get_settings()
    results = {}

    token_cutoff = datetime.utcnow() - timedelta(days=settings.cleanup.auth_token_retention_days)
    notif_cutoff = datetime.utcnow() - timedelta(days=settings.cleanup.notification_retention_days)

    results["expired_tokens_deleted"] = (
        db.query(AuthToken)
        .filter(AuthToken.expires_at < token_cutoff)
        .delete(synchronize_session=False)
    )

    results["revoked_tokens_deleted"] = (
        db.query(AuthToken)
        .filter(
            AuthToken.is_revoked == True,
            AuthToken.created_at < token_cutoff,
        )
        .delete(synchronize_session=False)
    )

    results["notifications_deleted"] = (
        db.query(Notification)
        .filter(
            Notification.is_read == True,
            Notification.created_at < notif_cutoff,
        )
        .delete(synchronize_session=False)
    )

    db.commit()
    return results


async def _run_scheduled_job(job_key: str) -> None:
    """Run a job in its own session, skipping it when disabled."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        job = db.query(CronJob).filter(CronJob.job_key == job_key).first()
        if job and job.is_enabled:
            await run_cron_job(job_key, db)
    except Exception:
        # Already recorded on the job row; keep the scheduler running
        logger.warning("Scheduled run of %s did not complete", job_key)
    finally:
        db.close()


def setup_scheduler() -> AsyncIOScheduler:
    """Register every known job using the cron schedule stored in the database."""
    sched = get_scheduler()

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        stored = {job.job_key: job.cron_schedule for job in db.query(CronJob).all()}
    finally:
        db.close()

    for job_key, default_schedule in DEFAULT_SCHEDULES.items():
        cron_schedule = stored.get(job_key) or default_schedule
        sched.add_job(
            _run_scheduled_job,
            CronTrigger.from_crontab(cron_schedule),
            args=[job_key],
            id=job_key,
            replace_existing=True,
        )
        logger.info("Scheduled %s at '%s'", job_key, cron_schedule)

    return sched


def start_scheduler() -> AsyncIOScheduler:
    """Start the scheduler."""
    sched = setup_scheduler()
    if not sched.running:
        sched.start()
    return sched


def stop_scheduler():
    """Stop the scheduler."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown()
