"""Data models for medications, reminders and dose occurrences."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_clock(value: str) -> bool:
    """Return True for a 24h ``HH:MM`` string."""
    return bool(_CLOCK_RE.match(value or ""))


def clock_minutes(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string."""
    hour, minute = value.split(":")
    return int(hour) * 60 + int(minute)


class DosageUnit(Enum):
    TABLET = "viên"
    BOTTLE = "lọ"
    AMPOULE = "ống"
    SACHET = "gói"

    @property
    def display(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str | None) -> DosageUnit:
        """Map a free-form form string ("Viên nén", "lọ 100ml"...) onto a unit.

        Unknown or empty input falls back to tablets.
        """
        lowered = (text or "").strip().lower()
        for unit in cls:
            if unit.value in lowered:
                return unit
        aliases = {
            "tablet": cls.TABLET,
            "pill": cls.TABLET,
            "bottle": cls.BOTTLE,
            "ampoule": cls.AMPOULE,
            "sachet": cls.SACHET,
        }
        for alias, unit in aliases.items():
            if alias in lowered:
                return unit
        return cls.TABLET


class SlotLabel(Enum):
    MORNING = "Sáng"
    AFTERNOON = "Chiều"
    EVENING = "Tối"

    @classmethod
    def parse(cls, text: str) -> SlotLabel:
        value = (text or "").strip()
        for label in cls:
            if value == label.value or value.lower() == label.name.lower():
                return label
        # "Trưa" (noon) appears in older reminder forms
        if value == "Trưa" or value.lower() == "noon":
            return cls.AFTERNOON
        raise ValueError(f"Không nhận diện được buổi uống: {text!r}")

    @classmethod
    def for_clock(cls, clock_time: str) -> SlotLabel:
        hour = clock_minutes(clock_time) // 60
        if hour < 12:
            return cls.MORNING
        if hour < 18:
            return cls.AFTERNOON
        return cls.EVENING


class RecurrenceMode(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"
    ONCE = "once"


class Status(Enum):
    PENDING = "pending"
    ON_TIME = "on_time"
    LATE = "late"
    SKIPPED = "skipped"
    SNOOZED = "snoozed"
    MISSED = "missed"

    @property
    def is_terminal(self) -> bool:
        return self in (Status.ON_TIME, Status.LATE, Status.SKIPPED)

    @property
    def is_taken(self) -> bool:
        return self in (Status.ON_TIME, Status.LATE)


class Action(Enum):
    TAKE = "take"
    SKIP = "skip"
    SNOOZE = "snooze"

    @classmethod
    def parse(cls, text: str) -> Action:
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise ValueError(
                f"Hành động không hợp lệ: {text!r} (take / skip / snooze)"
            ) from None

    @property
    def resulting_terminal(self) -> tuple[Status, ...]:
        """Terminal statuses this action can produce."""
        if self is Action.TAKE:
            return (Status.ON_TIME, Status.LATE)
        if self is Action.SKIP:
            return (Status.SKIPPED,)
        return ()


@dataclass
class TimeSlot:
    label: SlotLabel
    clock_time: str  # "HH:MM"


@dataclass
class Medication:
    """A medication with its stock counters."""

    id: str
    name: str
    unit: DosageUnit = DosageUnit.TABLET
    total_quantity: float = 0.0
    remaining_quantity: float = 0.0
    low_stock_threshold: float = 0.0
    doses: dict[SlotLabel, float] = field(default_factory=dict)
    last_refill_date: date | None = None

    def dosage_for(self, slot: SlotLabel) -> float:
        return self.doses.get(slot, 1.0)


@dataclass
class Reminder:
    """A recurring or one-time instruction to take a medication.

    ``slot_labels`` and ``clock_times`` mirror the two parallel lists the
    backend stores; either one may be empty.
    """

    id: str
    medication_id: str
    start_date: date
    end_date: date
    slot_labels: list[SlotLabel] = field(default_factory=list)
    clock_times: list[str] = field(default_factory=list)
    mode: RecurrenceMode = RecurrenceMode.DAILY
    repeat_weekdays: frozenset[int] = frozenset()  # date.weekday(): Mon=0
    is_active: bool = True
    note: str = ""


@dataclass
class DoseOccurrence:
    """One concrete dose slot of a reminder on a calendar date."""

    reminder_id: str
    medication_id: str
    date: date
    slot_label: SlotLabel
    clock_time: str
    status: Status = Status.PENDING
    taken_at: datetime | None = None
    snooze_until: datetime | None = None
    snooze_count: int = 0
    updated_at: datetime | None = None
    consumed: float = 0.0  # stock actually deducted by the take

    @property
    def key(self) -> tuple[str, date, SlotLabel]:
        return (self.reminder_id, self.date, self.slot_label)

    @property
    def scheduled_at(self) -> datetime:
        hour, minute = self.clock_time.split(":")
        return datetime.combine(self.date, datetime.min.time()).replace(
            hour=int(hour), minute=int(minute)
        )
