"""Per-occurrence dose status history."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from pathlib import Path

from ..models import DoseOccurrence, SlotLabel, Status
from .medications import DEFAULT_DB_PATH
from .schema import ensure_schema


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def occurrence_from_row(row: sqlite3.Row) -> DoseOccurrence:
    return DoseOccurrence(
        reminder_id=row["reminder_id"],
        medication_id=row["medication_id"],
        date=date.fromisoformat(row["date"]),
        slot_label=SlotLabel(row["slot_label"]),
        clock_time=row["clock_time"],
        status=Status(row["status"]),
        taken_at=_dt(row["taken_at"]),
        snooze_until=_dt(row["snooze_until"]),
        snooze_count=row["snooze_count"],
        updated_at=_dt(row["updated_at"]),
        consumed=row["consumed"],
    )


class DoseHistoryDB:
    """Manages the dose_history table."""

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

    def save_occurrence(self, occurrence: DoseOccurrence) -> None:
        conn = self._get_conn()
        self._write(conn, occurrence)
        conn.commit()

    def _write(self, conn: sqlite3.Connection, occurrence: DoseOccurrence) -> None:
        conn.execute(
            """INSERT INTO dose_history
               (reminder_id, date, slot_label, medication_id, clock_time,
                status, taken_at, snooze_until, snooze_count, updated_at, consumed)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(reminder_id, date, slot_label) DO UPDATE SET
                   medication_id = excluded.medication_id,
                   clock_time = excluded.clock_time,
                   status = excluded.status,
                   taken_at = excluded.taken_at,
                   snooze_until = excluded.snooze_until,
                   snooze_count = excluded.snooze_count,
                   updated_at = excluded.updated_at,
                   consumed = excluded.consumed""",
            (
                occurrence.reminder_id,
                occurrence.date.isoformat(),
                occurrence.slot_label.value,
                occurrence.medication_id,
                occurrence.clock_time,
                occurrence.status.value,
                occurrence.taken_at.isoformat() if occurrence.taken_at else None,
                occurrence.snooze_until.isoformat() if occurrence.snooze_until else None,
                occurrence.snooze_count,
                occurrence.updated_at.isoformat() if occurrence.updated_at else None,
                occurrence.consumed,
            ),
        )

    def get_occurrence(
        self, reminder_id: str, day: date, slot_label: SlotLabel
    ) -> DoseOccurrence | None:
        conn = self._get_conn()
        row = conn.execute(
            """SELECT * FROM dose_history
               WHERE reminder_id = ? AND date = ? AND slot_label = ?""",
            (reminder_id, day.isoformat(), slot_label.value),
        ).fetchone()
        return occurrence_from_row(row) if row else None

    def get_between(self, start: date, end: date) -> list[DoseOccurrence]:
        """Recorded occurrences with ``start <= date <= end``."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM dose_history
               WHERE date >= ? AND date <= ?
               ORDER BY date, clock_time""",
            (start.isoformat(), end.isoformat()),
        ).fetchall()
        return [occurrence_from_row(r) for r in rows]

    def get_by_date(self, day: date) -> list[DoseOccurrence]:
        return self.get_between(day, day)

    def get_snoozed_due(self, now: datetime) -> list[DoseOccurrence]:
        """Snoozed occurrences whose snooze has run out by ``now``."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM dose_history
               WHERE status = ?
               ORDER BY date, clock_time""",
            (Status.SNOOZED.value,),
        ).fetchall()
        snoozed = [occurrence_from_row(r) for r in rows]
        return [o for o in snoozed if o.snooze_until is None or o.snooze_until <= now]
