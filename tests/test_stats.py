"""Tests for adherence statistics."""

from datetime import date

from medbuddy.adherence.models import DoseOccurrence, SlotLabel, Status
from medbuddy.adherence.stats import summarize


def occ(day, status, slot=SlotLabel.MORNING):
    return DoseOccurrence(
        reminder_id="r1",
        medication_id="m1",
        date=day,
        slot_label=slot,
        clock_time="08:00",
        status=status,
    )


def test_empty_history():
    overview = summarize([])
    assert overview.total == 0
    assert overview.adherence_rate == 0
    assert overview.on_time_rate == 0


def test_rates_count_late_as_taken():
    history = [
        occ(date(2025, 3, 3), Status.ON_TIME),
        occ(date(2025, 3, 3), Status.LATE, SlotLabel.EVENING),
        occ(date(2025, 3, 4), Status.MISSED),
        occ(date(2025, 3, 4), Status.SKIPPED, SlotLabel.EVENING),
    ]
    overview = summarize(history)

    assert overview.total == 4
    assert overview.taken == 2
    assert overview.adherence_rate == 50
    assert overview.on_time_rate == 25
    assert overview.counts[Status.MISSED] == 1


def test_daily_breakdown_by_weekday_label():
    history = [
        occ(date(2025, 3, 3), Status.ON_TIME),  # Monday
        occ(date(2025, 3, 9), Status.MISSED),  # Sunday
    ]
    overview = summarize(history)

    assert overview.daily["T2"].taken == 1
    assert overview.daily["CN"].missed == 1
    assert overview.daily["T4"].total == 0


def test_display_mentions_rate():
    text = summarize([occ(date(2025, 3, 3), Status.ON_TIME)]).display()
    assert "100%" in text
    assert "T2" in text
