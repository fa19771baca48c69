"""Single-connection store combining medications, reminders and dose history."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from pathlib import Path

from ..models import DoseOccurrence, Medication, Reminder, SlotLabel
from .dose_history import DoseHistoryDB
from .medications import DEFAULT_DB_PATH, MedicationDB
from .reminders import ReminderDB
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class AdherenceDB:
    """Host-side store used by the action processor.

    The three table managers share one connection so that a dose status and
    the matching stock change can be committed in one transaction.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._medications: MedicationDB | None = None
        self._reminders: ReminderDB | None = None
        self._history: DoseHistoryDB | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
            self._medications = MedicationDB(conn=self._conn)
            self._reminders = ReminderDB(conn=self._conn)
            self._history = DoseHistoryDB(conn=self._conn)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._medications = self._reminders = self._history = None

    def __enter__(self) -> AdherenceDB:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def medications(self) -> MedicationDB:
        self._get_conn()
        return self._medications

    @property
    def reminders(self) -> ReminderDB:
        self._get_conn()
        return self._reminders

    @property
    def history(self) -> DoseHistoryDB:
        self._get_conn()
        return self._history

    # Lookups used by ActionProcessor

    def get_reminder(self, reminder_id: str) -> Reminder | None:
        return self.reminders.get_reminder(reminder_id)

    def get_medication(self, medication_id: str) -> Medication | None:
        return self.medications.get_medication(medication_id)

    def get_occurrence(
        self, reminder_id: str, day: date, slot_label: SlotLabel
    ) -> DoseOccurrence | None:
        return self.history.get_occurrence(reminder_id, day, slot_label)

    def record_dose(
        self,
        occurrence: DoseOccurrence,
        medication: Medication | None = None,
    ) -> None:
        """Persist a dose status and, if given, the medication's new stock atomically.

        Either both rows are written or neither is.
        """
        conn = self._get_conn()
        try:
            with conn:
                self._history._write(conn, occurrence)
                if medication is not None:
                    self._medications._write(conn, medication)
        except sqlite3.Error:
            logger.exception(
                "Không lưu được liều %s/%s/%s, đã hoàn tác",
                occurrence.reminder_id,
                occurrence.date,
                occurrence.slot_label.value,
            )
            raise
