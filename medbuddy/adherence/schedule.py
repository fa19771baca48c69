"""Per-date dose views built from reminders and recorded history."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta

from .models import DoseOccurrence, Reminder, SlotLabel, Status, clock_minutes
from .recurrence import is_active_on
from .slots import flatten
from .status import StatusClassifier, local_naive

WEEKDAY_LABELS = ["T2", "T3", "T4", "T5", "T6", "T7", "CN"]


def week_dates(anchor: date, offset: int = 0) -> list[date]:
    """The seven dates (Monday first) of the week containing ``anchor``, shifted by ``offset`` weeks."""
    monday = anchor - timedelta(days=anchor.weekday()) + timedelta(weeks=offset)
    return [monday + timedelta(days=i) for i in range(7)]


def occurrences_for(
    reminders: Iterable[Reminder],
    day: date,
    now: datetime,
    recorded: Iterable[DoseOccurrence] = (),
    classifier: StatusClassifier | None = None,
    default_times: dict[SlotLabel, str] | None = None,
) -> list[DoseOccurrence]:
    """All dose occurrences due on ``day`` with their current status.

    Recorded occurrences are matched by identity (reminder, date, slot) and
    their status is carried over, then re-evaluated against ``now``.
    Recorded entries whose reminder no longer produces that slot are dropped.
    """
    now = local_naive(now)
    classifier = classifier or StatusClassifier()
    known = {o.key: o for o in recorded if o.date == day}

    result: list[DoseOccurrence] = []
    for reminder in reminders:
        if not is_active_on(reminder, day):
            continue
        for derived in flatten(reminder, day, default_times):
            prior = known.get(derived.key)
            current = derived
            if prior is not None:
                current = replace(
                    prior,
                    clock_time=derived.clock_time,
                    medication_id=derived.medication_id,
                )
            result.append(classifier.transition(current, now))

    result.sort(key=lambda o: (clock_minutes(o.clock_time), o.medication_id, o.reminder_id))
    return result


def load_day(
    store,
    day: date,
    now: datetime,
    classifier: StatusClassifier | None = None,
    default_times: dict[SlotLabel, str] | None = None,
) -> list[DoseOccurrence]:
    """``occurrences_for`` against an AdherenceDB-like store."""
    return occurrences_for(
        store.reminders.list_reminders(),
        day,
        now,
        recorded=store.history.get_by_date(day),
        classifier=classifier,
        default_times=default_times,
    )


def due_now(occurrences: Iterable[DoseOccurrence], now: datetime) -> list[DoseOccurrence]:
    """Pending occurrences whose scheduled time has arrived.

    Expired snoozes are already back to pending after re-evaluation. This is
    what a notification dispatcher would be told about.
    """
    due: list[DoseOccurrence] = []
    for o in occurrences:
        scheduled = o.scheduled_at.replace(tzinfo=now.tzinfo)
        if o.status is Status.PENDING and scheduled <= now:
            due.append(o)
    return due
