"""Dose status classification.

A dose occurrence starts ``pending``. User actions move it to ``on_time`` /
``late`` (take), ``skipped`` (skip) or ``snoozed`` (snooze). Without an
action it becomes ``missed`` once its day has fully elapsed. A snoozed dose
is offered again after the snooze delay and then re-evaluates as if no
action had been taken.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta

from .models import Action, DoseOccurrence, Status

ON_TIME_MINUTES = 30
SNOOZE_MINUTES = 10


def _at(day: date, clock_time: str, like: datetime) -> datetime:
    hour, minute = clock_time.split(":")
    return datetime(day.year, day.month, day.day, int(hour), int(minute), tzinfo=like.tzinfo)


def local_naive(moment: datetime) -> datetime:
    """Naive local time for ``moment``. Stored timestamps are naive local times."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def end_of_day(day: date, like: datetime) -> datetime:
    """Midnight following ``day``, in the same timezone as ``like``."""
    nxt = day + timedelta(days=1)
    return datetime(nxt.year, nxt.month, nxt.day, tzinfo=like.tzinfo)


class StatusClassifier:
    """Computes dose statuses from the scheduled time, now, and an action."""

    def __init__(
        self,
        on_time_minutes: int = ON_TIME_MINUTES,
        snooze_minutes: int = SNOOZE_MINUTES,
    ) -> None:
        self.on_time_minutes = on_time_minutes
        self.snooze_minutes = snooze_minutes

    @property
    def snooze_delay(self) -> timedelta:
        return timedelta(minutes=self.snooze_minutes)

    def minutes_late(self, occurrence: DoseOccurrence, scheduled_clock_time: str, now: datetime) -> int:
        """Whole minutes between the scheduled time and ``now`` (negative if early)."""
        scheduled = _at(occurrence.date, scheduled_clock_time, now)
        return int((now - scheduled).total_seconds() // 60)

    def classify(
        self,
        occurrence: DoseOccurrence,
        scheduled_clock_time: str,
        now: datetime,
        action: Action | None = None,
    ) -> Status:
        match action:
            case Action.TAKE:
                late_by = self.minutes_late(occurrence, scheduled_clock_time, now)
                return Status.ON_TIME if late_by <= self.on_time_minutes else Status.LATE
            case Action.SKIP:
                return Status.SKIPPED
            case Action.SNOOZE:
                return Status.SNOOZED
            case None:
                return self._reevaluate(occurrence, now)
        raise ValueError(f"unknown action: {action!r}")

    def _reevaluate(self, occurrence: DoseOccurrence, now: datetime) -> Status:
        if occurrence.status.is_terminal:
            return occurrence.status
        if (
            occurrence.status is Status.SNOOZED
            and occurrence.snooze_until is not None
            and now < occurrence.snooze_until
        ):
            return Status.SNOOZED
        if now >= end_of_day(occurrence.date, now):
            return Status.MISSED
        return Status.PENDING

    def transition(
        self,
        occurrence: DoseOccurrence,
        now: datetime,
        action: Action | None = None,
        scheduled_clock_time: str | None = None,
    ) -> DoseOccurrence:
        """Return a copy of ``occurrence`` with the action applied."""
        clock = scheduled_clock_time or occurrence.clock_time
        status = self.classify(occurrence, clock, now, action)

        match action:
            case Action.TAKE:
                return replace(
                    occurrence,
                    clock_time=clock,
                    status=status,
                    taken_at=now,
                    snooze_until=None,
                    updated_at=now,
                )
            case Action.SKIP:
                return replace(
                    occurrence,
                    clock_time=clock,
                    status=status,
                    taken_at=None,
                    snooze_until=None,
                    consumed=0.0,
                    updated_at=now,
                )
            case Action.SNOOZE:
                return replace(
                    occurrence,
                    clock_time=clock,
                    status=status,
                    snooze_until=now + self.snooze_delay,
                    snooze_count=occurrence.snooze_count + 1,
                    updated_at=now,
                )

        if status is Status.SNOOZED:
            return replace(occurrence, clock_time=clock)
        return replace(occurrence, clock_time=clock, status=status, snooze_until=None)
