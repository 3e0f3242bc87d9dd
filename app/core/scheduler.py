# File: app/core/scheduler.py
from dataclasses import dataclass
from typing import Callable, Optional
import threading
import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cadence:
    """Cron-style cadence in the configured local zone"""
    minute: str = "0"
    hour: str = "*"
    description: str = ""

    @classmethod
    def every_minutes(cls, minutes: int) -> "Cadence":
        return cls(minute=f"*/{minutes}", hour="*", description=f"every {minutes} minutes")

    @classmethod
    def daily_at(cls, hour: int, minute: int) -> "Cadence":
        return cls(minute=str(minute), hour=str(hour), description=f"daily at {hour:02d}:{minute:02d}")


# One worker so ticks run one after another on a single timeline
scheduler = BackgroundScheduler(
    timezone=settings.TIMEZONE,
    executors={"default": ThreadPoolExecutor(1)},
    job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
)


def register_periodic_job(job_id: str, func: Callable[[], None], cadence: Cadence) -> None:
    """Register `func` to run on `cadence`"""
    scheduler.add_job(
        func,
        trigger=CronTrigger(minute=cadence.minute, hour=cadence.hour, timezone=settings.TIMEZONE),
        id=job_id,
        name=cadence.description or job_id,
        replace_existing=True,
    )


class CronSetupState:
    """Process-wide one-way switch from uninitialized to initialized"""

    def __init__(self):
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def run_once(self, setup: Callable[[], None]) -> bool:
        with self._lock:
            if self._initialized:
                return False
            setup()
            self._initialized = True
            return True


cron_setup_state = CronSetupState()

# Sending evaluator passes run one at a time per process, whether a tick or a manual trigger started them
evaluation_lock = threading.Lock()


def setup_cron_jobs(register: Optional[Callable[[str, Callable[[], None], Cadence], None]] = None) -> bool:
    """Install the half-hourly and daily ticks. Returns False when already installed."""
    from app.tasks.cron_jobs import run_daily_tick, run_periodic_tick

    register = register or register_periodic_job

    def _install():
        logger.info("[Cron] Initializing cron jobs...")
        periodic = Cadence.every_minutes(settings.TICK_INTERVAL_MINUTES)
        daily = Cadence.daily_at(settings.daily_notification_hour, settings.daily_notification_minute)
        register("document_box_periodic_tick", run_periodic_tick, periodic)
        register("document_box_daily_tick", run_daily_tick, daily)
        logger.info(f"[Cron] - Reminder + status transition tick: {periodic.description}")
        logger.info(f"[Cron] - Deadline notification tick: {daily.description}")

    installed = cron_setup_state.run_once(_install)
    if not installed:
        logger.info("[Cron] Already initialized, skipping...")
    return installed


def start_scheduler():
    """Install the jobs and start the background scheduler"""
    try:
        setup_cron_jobs()
        if not scheduler.running:
            scheduler.start()
        logger.info("✅ Scheduler started successfully")
        logger.info(f"Active jobs: {len(scheduler.get_jobs())}")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop scheduler gracefully"""
    try:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
