"""Expand a reminder's time slots into dose occurrences for one date."""

from __future__ import annotations

import logging
from datetime import date

from .models import (
    DoseOccurrence,
    Reminder,
    SlotLabel,
    TimeSlot,
    clock_minutes,
    is_valid_clock,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT_TIMES: dict[SlotLabel, str] = {
    SlotLabel.MORNING: "07:00",
    SlotLabel.AFTERNOON: "13:00",
    SlotLabel.EVENING: "19:00",
}


def parse_time_field(text: str) -> tuple[list[SlotLabel], list[str]]:
    """Split the single-string encoding ``"Sáng 07:00,Tối 19:00"``.

    Entries may also be a bare label ("Sáng") or a bare clock ("07:00").
    Returns the two parallel lists; a list is empty if no entry carried
    that half.
    """
    labels: list[SlotLabel] = []
    clocks: list[str] = []
    for part in (text or "").split(","):
        part = part.strip()
        if not part:
            continue
        tokens = part.split()
        for token in tokens:
            if is_valid_clock(token):
                clocks.append(token)
            else:
                labels.append(SlotLabel.parse(token))
    return labels, clocks


def time_slots(
    reminder: Reminder,
    default_times: dict[SlotLabel, str] | None = None,
) -> list[TimeSlot]:
    """Pair the reminder's labels and clock times into TimeSlots.

    Both lists present: zipped by index, truncated to the shorter one.
    Only labels: each label gets its default clock time.
    Only clock times: labels are derived from the hour.
    """
    defaults = default_times or DEFAULT_SLOT_TIMES
    labels = reminder.slot_labels
    clocks = reminder.clock_times

    if labels and clocks:
        if len(labels) != len(clocks):
            logger.warning(
                "Lịch nhắc %s: %d buổi nhưng %d giờ nhắc, chỉ dùng %d cặp đầu",
                reminder.id,
                len(labels),
                len(clocks),
                min(len(labels), len(clocks)),
            )
        pairs = list(zip(labels, clocks))
    elif labels:
        pairs = [(label, defaults.get(label, DEFAULT_SLOT_TIMES[label])) for label in labels]
    else:
        pairs = [(None, clock) for clock in clocks]

    slots: list[TimeSlot] = []
    for label, clock in pairs:
        if not is_valid_clock(clock):
            logger.warning("Lịch nhắc %s: bỏ qua giờ không hợp lệ %r", reminder.id, clock)
            continue
        slots.append(TimeSlot(label=label or SlotLabel.for_clock(clock), clock_time=clock))
    return slots


def flatten(
    reminder: Reminder,
    day: date,
    default_times: dict[SlotLabel, str] | None = None,
) -> list[DoseOccurrence]:
    """Return one pending DoseOccurrence per time slot, ordered by clock time.

    Callers are expected to have checked ``is_active_on(reminder, day)``.
    """
    occurrences = [
        DoseOccurrence(
            reminder_id=reminder.id,
            medication_id=reminder.medication_id,
            date=day,
            slot_label=slot.label,
            clock_time=slot.clock_time,
        )
        for slot in time_slots(reminder, default_times)
    ]
    occurrences.sort(key=lambda o: clock_minutes(o.clock_time))
    return occurrences
