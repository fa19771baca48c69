"""Conversion between backend JSON records and adherence models.

Backend reminders carry slot labels and clock times as two parallel lists
(``times`` / ``repeatTimes``), or as one ``time`` string such as
``"Sáng 07:00,Tối 19:00"``. ``repeatDays`` uses JavaScript weekday numbers
(Sunday = 0); models use ``date.weekday()`` (Monday = 0).
"""

from __future__ import annotations

from datetime import date, datetime

from .inventory import parse_dosage_amount
from .models import (
    Action,
    DosageUnit,
    DoseOccurrence,
    Medication,
    RecurrenceMode,
    Reminder,
    SlotLabel,
    Status,
)
from .slots import parse_time_field


def _record_id(value) -> str:
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
    return str(value or "")


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _entry_text(entry) -> str:
    if isinstance(entry, dict):
        return str(entry.get("time", ""))
    return str(entry)


def js_to_weekday(js_day: int) -> int:
    """JavaScript ``getDay()`` (Sun=0) to ``date.weekday()`` (Mon=0)."""
    return (int(js_day) - 1) % 7


def weekday_to_js(weekday: int) -> int:
    return (weekday + 1) % 7


def reminder_from_record(record: dict) -> Reminder:
    """Build a Reminder from a backend reminder record."""
    labels = [SlotLabel.parse(_entry_text(e)) for e in record.get("times") or []]
    clocks = [_entry_text(e) for e in record.get("repeatTimes") or []]
    if not labels and not clocks and record.get("time"):
        labels, clocks = parse_time_field(record["time"])

    start = _parse_date(record.get("startDate") or record.get("date")) or date.today()
    end = _parse_date(record.get("endDate")) or date.max

    mode = RecurrenceMode(record.get("repeat") or "daily")
    weekdays = frozenset(js_to_weekday(d) for d in record.get("repeatDays") or [])
    if mode is RecurrenceMode.WEEKLY and not weekdays:
        weekdays = frozenset({start.weekday()})
    if mode is RecurrenceMode.ONCE:
        end = start

    return Reminder(
        id=_record_id(record.get("_id") or record.get("id")),
        medication_id=_record_id(record.get("medicationId")),
        start_date=start,
        end_date=end,
        slot_labels=labels,
        clock_times=clocks,
        mode=mode,
        repeat_weekdays=weekdays,
        is_active=bool(record.get("isActive", True)),
        note=record.get("note") or "",
    )


def reminder_to_record(reminder: Reminder) -> dict:
    return {
        "_id": reminder.id,
        "medicationId": reminder.medication_id,
        "times": [{"time": s.value} for s in reminder.slot_labels],
        "repeatTimes": [{"time": t} for t in reminder.clock_times],
        "startDate": reminder.start_date.isoformat(),
        "endDate": reminder.end_date.isoformat(),
        "repeat": reminder.mode.value,
        "repeatDays": sorted(weekday_to_js(d) for d in reminder.repeat_weekdays),
        "isActive": reminder.is_active,
        "note": reminder.note,
    }


def medication_from_record(record: dict, default_threshold: float = 0.0) -> Medication:
    """Build a Medication from a backend medication record."""
    total = float(record.get("totalQuantity") or 0)
    remaining = record.get("remainingQuantity")
    remaining = total if remaining is None else float(remaining)

    doses: dict[SlotLabel, float] = {}
    for entry in record.get("times") or []:
        if isinstance(entry, dict) and entry.get("time"):
            doses[SlotLabel.parse(entry["time"])] = parse_dosage_amount(entry.get("dosage"))

    threshold = record.get("lowStockThreshold")
    return Medication(
        id=_record_id(record.get("_id") or record.get("id")),
        name=record.get("name", ""),
        unit=DosageUnit.parse(record.get("form")),
        total_quantity=max(total, remaining),
        remaining_quantity=max(0.0, remaining),
        low_stock_threshold=default_threshold if threshold is None else float(threshold),
        doses=doses,
        last_refill_date=_parse_date(record.get("lastRefillDate")),
    )


def status_patch_body(occurrence: DoseOccurrence, action: Action) -> dict:
    """Body for ``PATCH /reminders/{id}/status``."""
    return {
        "action": action.value,
        "time": occurrence.clock_time,
        "status": occurrence.status.value,
    }


def occurrence_to_record(occurrence: DoseOccurrence) -> dict:
    return {
        "reminderId": occurrence.reminder_id,
        "medicationId": occurrence.medication_id,
        "date": occurrence.date.isoformat(),
        "time": occurrence.clock_time,
        "timeOfDay": occurrence.slot_label.value,
        "status": occurrence.status.value,
        "taken": occurrence.status.is_taken,
        "takenAt": occurrence.taken_at.isoformat() if occurrence.taken_at else None,
        "snoozeUntil": occurrence.snooze_until.isoformat() if occurrence.snooze_until else None,
        "snoozeCount": occurrence.snooze_count,
        "updatedAt": occurrence.updated_at.isoformat() if occurrence.updated_at else None,
        "consumed": occurrence.consumed,
    }


def occurrence_from_record(record: dict, reminder_id: str = "", medication_id: str = "") -> DoseOccurrence:
    clock = record["time"]
    label_text = record.get("timeOfDay") or record.get("slot")
    label = SlotLabel.parse(label_text) if label_text else SlotLabel.for_clock(clock)
    return DoseOccurrence(
        reminder_id=_record_id(record.get("reminderId")) or reminder_id,
        medication_id=_record_id(record.get("medicationId")) or medication_id,
        date=_parse_date(record["date"]),
        slot_label=label,
        clock_time=clock,
        status=Status(record.get("status") or "pending"),
        taken_at=_parse_datetime(record.get("takenAt")),
        snooze_until=_parse_datetime(record.get("snoozeUntil")),
        snooze_count=int(record.get("snoozeCount") or 0),
        updated_at=_parse_datetime(record.get("updatedAt")),
        consumed=float(record.get("consumed") or 0),
    )


def occurrences_from_status_detail(payload, reminder: Reminder) -> list[DoseOccurrence]:
    """Parse the ``GET /reminders/{id}/status`` detail into occurrences.

    Accepts either a bare list or an object wrapping it under ``data``.
    """
    entries = payload.get("data", []) if isinstance(payload, dict) else payload
    return [
        occurrence_from_record(e, reminder_id=reminder.id, medication_id=reminder.medication_id)
        for e in entries or []
    ]
