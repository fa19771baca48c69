"""SQLite storage for medications, reminders and dose history."""

from .dose_history import DoseHistoryDB
from .medications import MedicationDB
from .reminders import ReminderDB
from .schema import ensure_schema
from .store import AdherenceDB

__all__ = [
    "AdherenceDB",
    "DoseHistoryDB",
    "MedicationDB",
    "ReminderDB",
    "ensure_schema",
]
