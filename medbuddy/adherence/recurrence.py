"""Decide whether a reminder is due on a calendar date."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

from .errors import MalformedRecurrence
from .models import RecurrenceMode, Reminder, SlotLabel, is_valid_clock


def is_active_on(reminder: Reminder, day: date) -> bool:
    """Return True if the reminder has doses due on ``day``.

    Inactive reminders and reminders whose start date is after their end
    date are never active. This never raises.
    """
    if not reminder.is_active:
        return False

    match reminder.mode:
        case RecurrenceMode.ONCE:
            return day == reminder.start_date
        case RecurrenceMode.DAILY:
            return reminder.start_date <= day <= reminder.end_date
        case RecurrenceMode.WEEKLY | RecurrenceMode.CUSTOM:
            if not reminder.start_date <= day <= reminder.end_date:
                return False
            return day.weekday() in reminder.repeat_weekdays
    return False


def active_dates(reminder: Reminder, start: date, end: date) -> Iterator[date]:
    """Yield every date in ``[start, end]`` on which the reminder is active."""
    day = start
    while day <= end:
        if is_active_on(reminder, day):
            yield day
        day += timedelta(days=1)


def validate_reminder(reminder: Reminder) -> None:
    """Validate a reminder before it is stored.

    Raises:
        MalformedRecurrence: listing every problem found.
    """
    problems: list[str] = []

    if reminder.mode is not RecurrenceMode.ONCE and reminder.start_date > reminder.end_date:
        problems.append(
            f"ngày bắt đầu {reminder.start_date} sau ngày kết thúc {reminder.end_date}"
        )
    if not reminder.slot_labels and not reminder.clock_times:
        problems.append("cần ít nhất một buổi uống")
    if (
        reminder.slot_labels
        and reminder.clock_times
        and len(reminder.slot_labels) != len(reminder.clock_times)
    ):
        problems.append(
            f"số buổi ({len(reminder.slot_labels)}) khác số giờ nhắc "
            f"({len(reminder.clock_times)})"
        )
    bad = [t for t in reminder.clock_times if not is_valid_clock(t)]
    if bad:
        problems.append(f"giờ nhắc không hợp lệ: {', '.join(bad)}")
    if reminder.mode in (RecurrenceMode.WEEKLY, RecurrenceMode.CUSTOM):
        if not reminder.repeat_weekdays:
            problems.append("cần chọn ít nhất một ngày trong tuần")
        elif any(not 0 <= d <= 6 for d in reminder.repeat_weekdays):
            problems.append("ngày trong tuần phải nằm trong 0..6")
    labels = reminder.slot_labels or [
        SlotLabel.for_clock(t) for t in reminder.clock_times if is_valid_clock(t)
    ]
    if len(set(labels)) != len(labels):
        problems.append("buổi uống bị trùng")

    if problems:
        raise MalformedRecurrence(reminder.id, problems)
