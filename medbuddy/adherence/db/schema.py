"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 2

# Applied on top of an existing database, keyed by the version they introduce
_MIGRATIONS: dict[int, list[str]] = {
    2: ["ALTER TABLE dose_history ADD COLUMN consumed REAL NOT NULL DEFAULT 0.0"],
}

_DDL = """
CREATE TABLE IF NOT EXISTS medications (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    unit TEXT NOT NULL DEFAULT 'viên',
    total_quantity REAL NOT NULL DEFAULT 0.0,
    remaining_quantity REAL NOT NULL DEFAULT 0.0,
    low_stock_threshold REAL NOT NULL DEFAULT 0.0,
    doses_json TEXT NOT NULL DEFAULT '{}',
    last_refill_date TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    CHECK (remaining_quantity >= 0)
);

CREATE TABLE IF NOT EXISTS reminders (
    id TEXT PRIMARY KEY,
    medication_id TEXT NOT NULL,
    slot_labels_json TEXT NOT NULL DEFAULT '[]',
    clock_times_json TEXT NOT NULL DEFAULT '[]',
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    mode TEXT NOT NULL DEFAULT 'daily',
    repeat_weekdays_json TEXT NOT NULL DEFAULT '[]',
    is_active INTEGER NOT NULL DEFAULT 1,
    note TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_reminders_medication ON reminders(medication_id);

CREATE TABLE IF NOT EXISTS dose_history (
    reminder_id TEXT NOT NULL,
    date TEXT NOT NULL,
    slot_label TEXT NOT NULL,
    medication_id TEXT NOT NULL,
    clock_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    taken_at TEXT,
    snooze_until TEXT,
    snooze_count INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT,
    consumed REAL NOT NULL DEFAULT 0.0,
    PRIMARY KEY (reminder_id, date, slot_label)
);

CREATE INDEX IF NOT EXISTS idx_dose_history_date ON dose_history(date);
CREATE INDEX IF NOT EXISTS idx_dose_history_status ON dose_history(status);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        if current_version > 0:
            for version in range(current_version + 1, _SCHEMA_VERSION + 1):
                for statement in _MIGRATIONS.get(version, []):
                    conn.execute(statement)
        conn.executescript(_DDL)
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        conn.commit()

    return conn
