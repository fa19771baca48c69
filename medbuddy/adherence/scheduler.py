"""Periodic re-checks: snooze expiry and the end-of-day missed sweep."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from .actions import ActionProcessor
from .errors import InvalidOccurrence
from .models import Status
from .recurrence import is_active_on
from .slots import flatten
from .status import StatusClassifier

logger = logging.getLogger(__name__)


def build_processor(store, config) -> ActionProcessor:
    """ActionProcessor wired to an AdherenceConfig."""
    return ActionProcessor(
        store,
        classifier=StatusClassifier(
            on_time_minutes=config.classifier.on_time_minutes,
            snooze_minutes=config.classifier.snooze_minutes,
        ),
        default_times=config.slots.default_times,
    )


def sweep_missed(store, processor: ActionProcessor, day: date, now: datetime) -> int:
    """Mark every unacted occurrence of ``day`` as missed once the day is over.

    Returns:
        Number of occurrences of ``day`` that are missed after the sweep.
    """
    count = 0
    for reminder in store.reminders.list_reminders():
        if not is_active_on(reminder, day):
            continue
        for occurrence in flatten(reminder, day, processor.default_times):
            updated = processor.reevaluate(reminder.id, occurrence.slot_label, day, now)
            if updated.status is Status.MISSED:
                count += 1
    return count


def recheck_snoozed(store, processor: ActionProcessor, now: datetime) -> int:
    """Re-evaluate every snoozed occurrence whose snooze has run out.

    Returns:
        Number of occurrences that left the snoozed state.
    """
    count = 0
    for occurrence in store.history.get_snoozed_due(now):
        try:
            updated = processor.reevaluate(
                occurrence.reminder_id, occurrence.slot_label, occurrence.date, now
            )
        except InvalidOccurrence as e:
            logger.info("Bỏ qua nhắc lại: %s", e)
            continue
        if updated.status is not Status.SNOOZED:
            count += 1
    return count


class DoseScheduler:
    """Manages scheduled re-checks for dose occurrences.

    Uses APScheduler: an interval job re-evaluates expired snoozes and a
    cron job sweeps the previous day into ``missed``.
    """

    def __init__(self, config) -> None:
        """Initialize scheduler with an AdherenceConfig.

        Args:
            config: AdherenceConfig instance.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler là bắt buộc: pip install 'medbuddy[scheduler]'"
            )

        self._config = config
        self._scheduler = AsyncIOScheduler()
        self._CronTrigger = CronTrigger
        self._IntervalTrigger = IntervalTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register the recurring jobs based on config."""
        if not self._config.scheduler.enabled:
            logger.info("Bộ lập lịch bị tắt trong cấu hình")
            return

        trigger = self._parse_cron(self._config.scheduler.missed_sweep_schedule)
        self._scheduler.add_job(
            self._job_sweep_missed,
            trigger=trigger,
            id="sweep_missed",
            name="Đánh dấu liều bỏ lỡ",
            replace_existing=True,
        )
        logger.info(
            "Đăng ký công việc quét liều bỏ lỡ: %s",
            self._config.scheduler.missed_sweep_schedule,
        )

        interval = self._config.scheduler.snooze_recheck_seconds
        self._scheduler.add_job(
            self._job_recheck_snoozed,
            trigger=self._IntervalTrigger(seconds=interval),
            id="recheck_snoozed",
            name="Nhắc lại liều đã hoãn",
            replace_existing=True,
        )
        logger.info("Đăng ký công việc nhắc lại liều đã hoãn: mỗi %d giây", interval)

    def start(self) -> None:
        """Start the scheduler."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Bộ lập lịch đã khởi động")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Bộ lập lịch đã dừng")

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

    def _parse_cron(self, expr: str):
        """Parse a cron expression into a CronTrigger."""
        parts = expr.split()
        if len(parts) == 5:
            return self._CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
        raise ValueError(f"Biểu thức cron không hợp lệ: {expr}")

    async def _job_sweep_missed(self) -> None:
        """Mark yesterday's unacted doses as missed."""
        logger.info("Đang quét liều bỏ lỡ...")

        try:
            from .db import AdherenceDB

            now = datetime.now()
            yesterday = now.date() - timedelta(days=1)
            db = AdherenceDB(self._config.database.path)
            try:
                count = sweep_missed(db, build_processor(db, self._config), yesterday, now)
                if count > 0:
                    logger.info("Đã đánh dấu %d liều bỏ lỡ ngày %s", count, yesterday)
            finally:
                db.close()
        except Exception:
            logger.exception("Lỗi khi quét liều bỏ lỡ")

    async def _job_recheck_snoozed(self) -> None:
        """Bring expired snoozes back to pending (or missed)."""
        try:
            from .db import AdherenceDB

            db = AdherenceDB(self._config.database.path)
            try:
                count = recheck_snoozed(db, build_processor(db, self._config), datetime.now())
                if count > 0:
                    logger.info("Đã nhắc lại %d liều đã hoãn", count)
            finally:
                db.close()
        except Exception:
            logger.exception("Lỗi khi nhắc lại liều đã hoãn")
