"""Reminder CRUD operations."""

from __future__ import annotations

import json
import sqlite3
from datetime import date
from pathlib import Path

from ..models import RecurrenceMode, Reminder, SlotLabel
from ..recurrence import validate_reminder
from .medications import DEFAULT_DB_PATH
from .schema import ensure_schema


def reminder_from_row(row: sqlite3.Row) -> Reminder:
    return Reminder(
        id=row["id"],
        medication_id=row["medication_id"],
        slot_labels=[SlotLabel(v) for v in json.loads(row["slot_labels_json"])],
        clock_times=json.loads(row["clock_times_json"]),
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        mode=RecurrenceMode(row["mode"]),
        repeat_weekdays=frozenset(json.loads(row["repeat_weekdays_json"])),
        is_active=bool(row["is_active"]),
        note=row["note"],
    )


class ReminderDB:
    """Manages the reminders table."""

    def __init__(
        self,
        db_path: str | Path = DEFAULT_DB_PATH,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        self._db_path = db_path
        self._conn = conn

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def save_reminder(self, reminder: Reminder) -> None:
        """Validate and insert or replace a reminder.

        Raises:
            MalformedRecurrence: If the reminder fails validation.
        """
        validate_reminder(reminder)
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO reminders
               (id, medication_id, slot_labels_json, clock_times_json,
                start_date, end_date, mode, repeat_weekdays_json, is_active, note)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   medication_id = excluded.medication_id,
                   slot_labels_json = excluded.slot_labels_json,
                   clock_times_json = excluded.clock_times_json,
                   start_date = excluded.start_date,
                   end_date = excluded.end_date,
                   mode = excluded.mode,
                   repeat_weekdays_json = excluded.repeat_weekdays_json,
                   is_active = excluded.is_active,
                   note = excluded.note,
                   updated_at = datetime('now', 'localtime')""",
            (
                reminder.id,
                reminder.medication_id,
                json.dumps([s.value for s in reminder.slot_labels], ensure_ascii=False),
                json.dumps(reminder.clock_times),
                reminder.start_date.isoformat(),
                reminder.end_date.isoformat(),
                reminder.mode.value,
                json.dumps(sorted(reminder.repeat_weekdays)),
                int(reminder.is_active),
                reminder.note,
            ),
        )
        conn.commit()

    def get_reminder(self, reminder_id: str) -> Reminder | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
        ).fetchone()
        return reminder_from_row(row) if row else None

    def list_reminders(self, include_inactive: bool = False) -> list[Reminder]:
        conn = self._get_conn()
        if include_inactive:
            rows = conn.execute("SELECT * FROM reminders ORDER BY start_date").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE is_active = 1 ORDER BY start_date"
            ).fetchall()
        return [reminder_from_row(r) for r in rows]

    def set_active(self, reminder_id: str, active: bool) -> None:
        """Pause or resume a reminder."""
        conn = self._get_conn()
        conn.execute(
            """UPDATE reminders
               SET is_active = ?,
                   updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (int(active), reminder_id),
        )
        conn.commit()

    def delete_reminder(self, reminder_id: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
        conn.commit()
