"""Tests for the missed-dose sweep and DoseScheduler."""

from datetime import date, datetime

import pytest

from medbuddy.adherence.actions import ActionProcessor
from medbuddy.adherence.config import load_config
from medbuddy.adherence.db import AdherenceDB
from medbuddy.adherence.models import Action, Medication, Reminder, SlotLabel, Status
from medbuddy.adherence.scheduler import build_processor, recheck_snoozed, sweep_missed

DAY = date(2025, 3, 5)


@pytest.fixture
def store(tmp_path):
    db = AdherenceDB(tmp_path / "test.db")
    db.medications.save_medication(
        Medication(id="m1", name="Atorvastatin", total_quantity=28, remaining_quantity=28)
    )
    db.reminders.save_reminder(
        Reminder(
            id="r1",
            medication_id="m1",
            start_date=date(2025, 3, 1),
            end_date=date(2025, 3, 31),
            slot_labels=[SlotLabel.MORNING, SlotLabel.EVENING],
            clock_times=["08:00", "20:00"],
        )
    )
    yield db
    db.close()


def test_build_processor_uses_config():
    config = load_config()
    config.classifier.snooze_minutes = 15
    processor = build_processor(None, config)
    assert processor.classifier.snooze_minutes == 15
    assert processor.default_times == config.slots.default_times


def test_sweep_missed_marks_unacted(store):
    """Only doses without a terminal action become missed."""
    ActionProcessor(store).apply("r1", SlotLabel.MORNING, DAY, Action.TAKE, datetime(2025, 3, 5, 8, 5))

    count = sweep_missed(store, ActionProcessor(store), DAY, datetime(2025, 3, 6, 0, 5))

    assert count == 1
    assert store.get_occurrence("r1", DAY, SlotLabel.MORNING).status is Status.ON_TIME
    assert store.get_occurrence("r1", DAY, SlotLabel.EVENING).status is Status.MISSED


def test_sweep_missed_before_day_ends(store):
    assert sweep_missed(store, ActionProcessor(store), DAY, datetime(2025, 3, 5, 21, 0)) == 0
    assert store.get_occurrence("r1", DAY, SlotLabel.EVENING) is None


def test_scheduler_import_error():
    """DoseScheduler raises ImportError if apscheduler is missing."""
    try:
        from medbuddy.adherence.scheduler import DoseScheduler

        scheduler = DoseScheduler(load_config())
        assert scheduler is not None
        assert scheduler.running is False
    except ImportError:
        pass


def test_scheduler_setup_jobs():
    """The missed sweep and snooze re-check jobs are registered when enabled."""
    pytest.importorskip("apscheduler")
    from medbuddy.adherence.scheduler import DoseScheduler

    config = load_config()
    config.scheduler.missed_sweep_schedule = "10 0 * * *"
    scheduler = DoseScheduler(config)
    scheduler.setup_jobs()

    job_ids = {j["id"] for j in scheduler.get_jobs()}
    assert "sweep_missed" in job_ids
    assert "recheck_snoozed" in job_ids


def test_scheduler_disabled():
    pytest.importorskip("apscheduler")
    from medbuddy.adherence.scheduler import DoseScheduler

    config = load_config()
    config.scheduler.enabled = False
    scheduler = DoseScheduler(config)
    scheduler.setup_jobs()
    assert scheduler.get_jobs() == []


def test_scheduler_invalid_cron():
    pytest.importorskip("apscheduler")
    from medbuddy.adherence.scheduler import DoseScheduler

    config = load_config()
    config.scheduler.missed_sweep_schedule = "every night"
    with pytest.raises(ValueError):
        DoseScheduler(config).setup_jobs()


class TestRecheckSnoozed:
    def test_expired_snooze_back_to_pending(self, store):
        processor = ActionProcessor(store)
        processor.apply("r1", SlotLabel.MORNING, DAY, Action.SNOOZE, datetime(2025, 3, 5, 8, 0))

        assert recheck_snoozed(store, processor, datetime(2025, 3, 5, 8, 5)) == 0
        assert store.get_occurrence("r1", DAY, SlotLabel.MORNING).status is Status.SNOOZED

        assert recheck_snoozed(store, processor, datetime(2025, 3, 5, 8, 10)) == 1
        saved = store.get_occurrence("r1", DAY, SlotLabel.MORNING)
        assert saved.status is Status.PENDING
        assert saved.snooze_until is None

    def test_snooze_left_overnight_becomes_missed(self, store):
        processor = ActionProcessor(store)
        processor.apply("r1", SlotLabel.EVENING, DAY, Action.SNOOZE, datetime(2025, 3, 5, 23, 55))

        assert recheck_snoozed(store, processor, datetime(2025, 3, 6, 0, 10)) == 1
        assert store.get_occurrence("r1", DAY, SlotLabel.EVENING).status is Status.MISSED

    def test_deleted_reminder_skipped(self, store):
        processor = ActionProcessor(store)
        processor.apply("r1", SlotLabel.MORNING, DAY, Action.SNOOZE, datetime(2025, 3, 5, 8, 0))
        store.reminders.delete_reminder("r1")

        assert recheck_snoozed(store, processor, datetime(2025, 3, 5, 9, 0)) == 0

    def test_interval_from_config(self):
        pytest.importorskip("apscheduler")
        from medbuddy.adherence.scheduler import DoseScheduler

        config = load_config()
        config.scheduler.snooze_recheck_seconds = 30
        scheduler = DoseScheduler(config)
        scheduler.setup_jobs()

        job = scheduler._scheduler.get_job("recheck_snoozed")
        assert job.trigger.interval.total_seconds() == 30
