"""Scheduled background jobs: reminder resync, retries and the daily digest."""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .clock import Clock
from .db import FrequentItemDB, InventoryDB
from .lifecycle import BatchLifecycle
from .memory import FrequencyMemory
from .mood import classify, expiring_soon, mood_message
from .reminders import ReminderScheduler

logger = logging.getLogger(__name__)


class FridgeScheduler:
    """Manages cron jobs for a running inventory.

    Uses APScheduler; the same scheduler instance can also carry the
    per-reminder jobs of a BackgroundDispatcher. Jobs run on worker
    threads, so each one opens its own database connections.
    """

    def __init__(
        self,
        config,
        reminders: ReminderScheduler,
        scheduler: BackgroundScheduler | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize with a FridgeConfig and the shared ReminderScheduler."""
        self._config = config
        self._reminders = reminders
        self._scheduler = scheduler or BackgroundScheduler()
        self._clock = clock or Clock()
        self._running = False

    def setup_jobs(self) -> None:
        """Register scheduled jobs based on config."""
        sched = self._config.scheduler
        jobs = [
            (self._job_resync_reminders, sched.resync_schedule, "resync_reminders", "Reminder resync"),
            (self._job_retry_reminders, sched.retry_schedule, "retry_reminders", "Reminder retry"),
            (self._job_daily_digest, sched.digest_schedule, "daily_digest", "Daily digest"),
        ]
        for func, expr, job_id, name in jobs:
            self._scheduler.add_job(
                func,
                trigger=self._parse_cron(expr),
                id=job_id,
                name=name,
                replace_existing=True,
            )
            logger.info("Registered %s: %s", name.lower(), expr)

    def start(self) -> None:
        """Resync reminders now, then start the scheduler."""
        self.setup_jobs()
        self._job_resync_reminders()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    @staticmethod
    def _parse_cron(expr: str) -> CronTrigger:
        """Parse a 5-field cron expression into a CronTrigger."""
        parts = expr.split()
        if len(parts) == 5:
            return CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
        raise ValueError(f"invalid cron expression: {expr!r}")

    def _open_engine(self) -> BatchLifecycle:
        """Build a lifecycle engine on connections owned by the calling thread."""
        path = self._config.database.path
        return BatchLifecycle(
            store=InventoryDB(path),
            memory=FrequencyMemory(FrequentItemDB(path), self._clock),
            reminders=self._reminders,
            preferences=self._config.reminders.preferences(),
            clock=self._clock,
            consume_threshold=self._config.inventory.consume_threshold,
        )

    @staticmethod
    def _close_engine(engine: BatchLifecycle) -> None:
        engine.store.close()
        engine.memory.db.close()

    def _job_resync_reminders(self) -> None:
        logger.info("Resyncing reminders...")
        engine = self._open_engine()
        try:
            engine.resync_reminders()
        except Exception:
            logger.exception("Reminder resync failed")
        finally:
            self._close_engine(engine)

    def _job_retry_reminders(self) -> None:
        if not self._reminders.pending_resync:
            return
        engine = self._open_engine()
        try:
            count = engine.resync_pending()
            logger.info("Retried pending reminders: %d installed", count)
        except Exception:
            logger.exception("Reminder retry failed")
        finally:
            self._close_engine(engine)

    def _job_daily_digest(self) -> None:
        engine = self._open_engine()
        try:
            batches = engine.list_batches()
            now = self._clock.now()
            inv = self._config.inventory
            mood = classify(batches, now, warning_days=inv.warning_days)
            soon = expiring_soon(batches, now, days=inv.card_warning_days)
            logger.info(
                "%s (%d items, %d expiring soon)", mood_message(mood), len(batches), len(soon)
            )
        except Exception:
            logger.exception("Daily digest failed")
        finally:
            self._close_engine(engine)
