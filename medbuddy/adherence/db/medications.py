"""Medication CRUD and stock counters."""

from __future__ import annotations

import json
import sqlite3
from datetime import date
from pathlib import Path

from ..models import DosageUnit, Medication, SlotLabel
from .schema import ensure_schema

DEFAULT_DB_PATH = "~/.config/medbuddy/adherence.db"


def medication_from_row(row: sqlite3.Row) -> Medication:
    doses = json.loads(row["doses_json"] or "{}")
    return Medication(
        id=row["id"],
        name=row["name"],
        unit=DosageUnit(row["unit"]),
        total_quantity=row["total_quantity"],
        remaining_quantity=row["remaining_quantity"],
        low_stock_threshold=row["low_stock_threshold"],
        doses={SlotLabel(k): float(v) for k, v in doses.items()},
        last_refill_date=(
            date.fromisoformat(row["last_refill_date"]) if row["last_refill_date"] else None
        ),
    )


class MedicationDB:
    """Manages the medications table."""

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

    def save_medication(self, medication: Medication) -> None:
        """Insert or replace a medication."""
        conn = self._get_conn()
        self._write(conn, medication)
        conn.commit()

    def _write(self, conn: sqlite3.Connection, medication: Medication) -> None:
        conn.execute(
            """INSERT INTO medications
               (id, name, unit, total_quantity, remaining_quantity,
                low_stock_threshold, doses_json, last_refill_date)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name,
                   unit = excluded.unit,
                   total_quantity = excluded.total_quantity,
                   remaining_quantity = excluded.remaining_quantity,
                   low_stock_threshold = excluded.low_stock_threshold,
                   doses_json = excluded.doses_json,
                   last_refill_date = excluded.last_refill_date,
                   updated_at = datetime('now', 'localtime')""",
            (
                medication.id,
                medication.name,
                medication.unit.value,
                medication.total_quantity,
                medication.remaining_quantity,
                medication.low_stock_threshold,
                json.dumps(
                    {k.value: v for k, v in medication.doses.items()},
                    ensure_ascii=False,
                ),
                medication.last_refill_date.isoformat()
                if medication.last_refill_date
                else None,
            ),
        )

    def get_medication(self, medication_id: str) -> Medication | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM medications WHERE id = ?", (medication_id,)
        ).fetchone()
        return medication_from_row(row) if row else None

    def list_medications(self) -> list[Medication]:
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM medications ORDER BY name").fetchall()
        return [medication_from_row(r) for r in rows]

    def get_low_stock(self) -> list[Medication]:
        """Return medications at or below their low-stock threshold."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM medications
               WHERE remaining_quantity <= low_stock_threshold
               ORDER BY remaining_quantity"""
        ).fetchall()
        return [medication_from_row(r) for r in rows]

    def set_threshold(self, medication_id: str, threshold: float) -> None:
        """Update the low-stock alert threshold.

        Raises:
            ValueError: If ``threshold`` is negative.
        """
        if threshold < 0:
            raise ValueError(f"Ngưỡng cảnh báo không được âm: {threshold}")
        conn = self._get_conn()
        conn.execute(
            """UPDATE medications
               SET low_stock_threshold = ?,
                   updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (threshold, medication_id),
        )
        conn.commit()

    def delete_medication(self, medication_id: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM medications WHERE id = ?", (medication_id,))
        conn.commit()
