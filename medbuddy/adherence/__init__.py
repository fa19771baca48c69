"""Medication reminder recurrence, dose status and inventory tracking."""

from .actions import ActionProcessor
from .config import AdherenceConfig, load_config
from .errors import (
    AdherenceError,
    InvalidOccurrence,
    InventoryUnderflow,
    MalformedRecurrence,
)
from .inventory import InventoryTracker, is_low_stock, low_stock, parse_dosage_amount
from .models import (
    Action,
    DosageUnit,
    DoseOccurrence,
    Medication,
    RecurrenceMode,
    Reminder,
    SlotLabel,
    Status,
    TimeSlot,
)
from .recurrence import active_dates, is_active_on, validate_reminder
from .reconcile import OptimisticLedger
from .schedule import occurrences_for, week_dates
from .slots import flatten, parse_time_field
from .stats import AdherenceOverview, summarize
from .status import StatusClassifier

__all__ = [
    "ActionProcessor",
    "AdherenceConfig",
    "load_config",
    "AdherenceError",
    "InvalidOccurrence",
    "InventoryUnderflow",
    "MalformedRecurrence",
    "InventoryTracker",
    "is_low_stock",
    "low_stock",
    "parse_dosage_amount",
    "Action",
    "DosageUnit",
    "DoseOccurrence",
    "Medication",
    "RecurrenceMode",
    "Reminder",
    "SlotLabel",
    "Status",
    "TimeSlot",
    "active_dates",
    "is_active_on",
    "validate_reminder",
    "OptimisticLedger",
    "occurrences_for",
    "week_dates",
    "flatten",
    "parse_time_field",
    "AdherenceOverview",
    "summarize",
    "StatusClassifier",
]
