"""Tests for reminder recurrence resolution and validation."""

from datetime import date

import pytest

from medbuddy.adherence.errors import MalformedRecurrence
from medbuddy.adherence.models import RecurrenceMode, Reminder, SlotLabel
from medbuddy.adherence.recurrence import active_dates, is_active_on, validate_reminder

MON, TUE, WED = 0, 1, 2


def make_reminder(**kwargs) -> Reminder:
    defaults = dict(
        id="r1",
        medication_id="m1",
        start_date=date(2025, 3, 3),  # Monday
        end_date=date(2025, 3, 16),
        slot_labels=[SlotLabel.MORNING, SlotLabel.EVENING],
        clock_times=["07:00", "19:00"],
    )
    defaults.update(kwargs)
    return Reminder(**defaults)


class TestDaily:
    def test_active_within_range(self):
        reminder = make_reminder()
        assert is_active_on(reminder, date(2025, 3, 3))
        assert is_active_on(reminder, date(2025, 3, 10))
        assert is_active_on(reminder, date(2025, 3, 16))

    def test_inactive_outside_range(self):
        reminder = make_reminder()
        assert not is_active_on(reminder, date(2025, 3, 2))
        assert not is_active_on(reminder, date(2025, 3, 17))

    def test_paused_reminder_never_active(self):
        reminder = make_reminder(is_active=False)
        assert not is_active_on(reminder, date(2025, 3, 5))

    def test_reversed_range_is_inactive_not_error(self):
        reminder = make_reminder(start_date=date(2025, 3, 10), end_date=date(2025, 3, 1))
        assert not is_active_on(reminder, date(2025, 3, 5))
        assert not is_active_on(reminder, date(2025, 3, 10))


class TestWeekly:
    def test_tuesday_never_active_for_mon_wed(self):
        reminder = make_reminder(
            mode=RecurrenceMode.WEEKLY,
            repeat_weekdays=frozenset({MON, WED}),
            end_date=date(2025, 12, 31),
        )
        tuesdays = [d for d in active_dates(reminder, date(2025, 3, 1), date(2025, 12, 31))
                    if d.weekday() == TUE]
        assert tuesdays == []
        assert not is_active_on(reminder, date(2025, 3, 4))

    def test_selected_weekdays_active(self):
        reminder = make_reminder(
            mode=RecurrenceMode.CUSTOM,
            repeat_weekdays=frozenset({MON, WED}),
        )
        assert is_active_on(reminder, date(2025, 3, 3))
        assert is_active_on(reminder, date(2025, 3, 5))

    def test_weekday_outside_range_inactive(self):
        reminder = make_reminder(
            mode=RecurrenceMode.WEEKLY,
            repeat_weekdays=frozenset({MON}),
        )
        assert not is_active_on(reminder, date(2025, 3, 17))


class TestOnce:
    def test_only_start_date(self):
        reminder = make_reminder(mode=RecurrenceMode.ONCE, end_date=date(2025, 3, 20))
        assert is_active_on(reminder, date(2025, 3, 3))
        assert not is_active_on(reminder, date(2025, 3, 4))


def test_active_dates_window():
    """active_dates yields every matching date in the window."""
    reminder = make_reminder(end_date=date(2025, 3, 5))
    assert list(active_dates(reminder, date(2025, 3, 1), date(2025, 3, 10))) == [
        date(2025, 3, 3),
        date(2025, 3, 4),
        date(2025, 3, 5),
    ]


class TestValidate:
    def test_valid_reminder_passes(self):
        validate_reminder(make_reminder())

    def test_reversed_dates(self):
        with pytest.raises(MalformedRecurrence) as exc:
            validate_reminder(
                make_reminder(start_date=date(2025, 3, 10), end_date=date(2025, 3, 1))
            )
        assert len(exc.value.problems) == 1

    def test_mismatched_lists(self):
        with pytest.raises(MalformedRecurrence):
            validate_reminder(make_reminder(clock_times=["07:00"]))

    def test_invalid_clock(self):
        with pytest.raises(MalformedRecurrence):
            validate_reminder(make_reminder(clock_times=["07:00", "25:00"]))

    def test_empty_slots(self):
        with pytest.raises(MalformedRecurrence):
            validate_reminder(make_reminder(slot_labels=[], clock_times=[]))

    def test_weekly_without_days(self):
        with pytest.raises(MalformedRecurrence):
            validate_reminder(make_reminder(mode=RecurrenceMode.WEEKLY))

    def test_duplicate_derived_labels(self):
        """Two morning clock times would collide on occurrence identity."""
        with pytest.raises(MalformedRecurrence):
            validate_reminder(make_reminder(slot_labels=[], clock_times=["07:00", "09:00"]))

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_reminder(make_reminder(slot_labels=[], clock_times=[]))
