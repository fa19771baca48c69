"""Tests for StatusClassifier."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from medbuddy.adherence.models import Action, DoseOccurrence, SlotLabel, Status
from medbuddy.adherence.status import StatusClassifier, end_of_day, local_naive

DAY = date(2025, 3, 5)


@pytest.fixture
def classifier():
    return StatusClassifier()


@pytest.fixture
def occurrence():
    return DoseOccurrence(
        reminder_id="r1",
        medication_id="m1",
        date=DAY,
        slot_label=SlotLabel.MORNING,
        clock_time="08:00",
    )


def at(hour, minute=0, second=0, day=DAY):
    return datetime(day.year, day.month, day.day, hour, minute, second)


class TestTake:
    @pytest.mark.parametrize(
        "now, expected",
        [
            (at(8, 20), Status.ON_TIME),
            (at(8, 45), Status.LATE),
            (at(8, 30), Status.ON_TIME),
            (at(8, 31), Status.LATE),
            (at(7, 40), Status.ON_TIME),
        ],
    )
    def test_on_time_window(self, classifier, occurrence, now, expected):
        assert classifier.classify(occurrence, "08:00", now, Action.TAKE) is expected

    def test_take_sets_taken_at(self, classifier, occurrence):
        updated = classifier.transition(occurrence, at(8, 10), Action.TAKE)
        assert updated.status is Status.ON_TIME
        assert updated.taken_at == at(8, 10)
        assert updated.updated_at == at(8, 10)

    def test_take_reapplied_last_write_wins(self, classifier, occurrence):
        first = classifier.transition(occurrence, at(8, 10), Action.TAKE)
        second = classifier.transition(first, at(9, 0), Action.TAKE)
        assert second.status is Status.LATE
        assert second.taken_at == at(9, 0)

    def test_take_next_day_is_late(self, classifier, occurrence):
        now = at(7, 0, day=DAY + timedelta(days=1))
        assert classifier.classify(occurrence, "08:00", now, Action.TAKE) is Status.LATE

    def test_custom_window(self, occurrence):
        strict = StatusClassifier(on_time_minutes=10)
        assert strict.classify(occurrence, "08:00", at(8, 15), Action.TAKE) is Status.LATE


class TestSkip:
    @pytest.mark.parametrize("now", [at(6, 0), at(8, 0), at(23, 59)])
    def test_always_skipped(self, classifier, occurrence, now):
        assert classifier.classify(occurrence, "08:00", now, Action.SKIP) is Status.SKIPPED


class TestNoAction:
    def test_pending_during_day(self, classifier, occurrence):
        assert classifier.classify(occurrence, "08:00", at(23, 59, 59)) is Status.PENDING

    def test_missed_after_day(self, classifier, occurrence):
        now = at(0, 0, day=DAY + timedelta(days=1))
        assert classifier.classify(occurrence, "08:00", now) is Status.MISSED

    def test_terminal_kept(self, classifier, occurrence):
        taken = replace(occurrence, status=Status.LATE)
        now = at(1, 0, day=DAY + timedelta(days=1))
        assert classifier.classify(taken, "08:00", now) is Status.LATE

    def test_timezone_aware_now(self, classifier, occurrence):
        tz = timezone(timedelta(hours=7))
        now = datetime(2025, 3, 6, 0, 30, tzinfo=tz)
        assert end_of_day(DAY, now).tzinfo is tz
        assert classifier.classify(occurrence, "08:00", now) is Status.MISSED


class TestSnooze:
    def test_default_delay_is_ten_minutes(self, classifier):
        assert classifier.snooze_delay == timedelta(minutes=10)

    def test_snooze_then_expiry(self, classifier, occurrence):
        snoozed = classifier.transition(occurrence, at(8, 0), Action.SNOOZE)
        assert snoozed.status is Status.SNOOZED
        assert snoozed.snooze_until == at(8, 10)
        assert snoozed.snooze_count == 1

        still = classifier.transition(snoozed, at(8, 5))
        assert still.status is Status.SNOOZED

        expired = classifier.transition(snoozed, at(8, 10))
        assert expired.status is Status.PENDING
        assert expired.snooze_until is None
        assert expired.snooze_count == 1

    def test_snooze_expired_after_day_is_missed(self, classifier, occurrence):
        snoozed = classifier.transition(occurrence, at(23, 55), Action.SNOOZE)
        now = at(0, 10, day=DAY + timedelta(days=1))
        assert classifier.transition(snoozed, now).status is Status.MISSED

    def test_snooze_again_counts(self, classifier, occurrence):
        once = classifier.transition(occurrence, at(8, 0), Action.SNOOZE)
        twice = classifier.transition(once, at(8, 12), Action.SNOOZE)
        assert twice.snooze_count == 2
        assert twice.snooze_until == at(8, 22)

    def test_take_after_snooze_measured_from_schedule(self, classifier, occurrence):
        snoozed = classifier.transition(occurrence, at(8, 25), Action.SNOOZE)
        taken = classifier.transition(snoozed, at(8, 35), Action.TAKE)
        assert taken.status is Status.LATE
        assert taken.snooze_until is None


class TestLocalNaive:
    def test_naive_unchanged(self):
        assert local_naive(at(8, 0)) == at(8, 0)

    def test_aware_converted_to_local(self):
        aware = at(8, 0).astimezone(timezone.utc)
        result = local_naive(aware)
        assert result == at(8, 0)
        assert result.tzinfo is None
