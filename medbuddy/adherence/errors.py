"""Error kinds raised by the adherence core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

USER_MESSAGE_INVALID = "Không thể cập nhật liều thuốc này nữa"  # this dose can no longer be updated


class AdherenceError(Exception):
    """Base class for adherence errors."""


class InvalidOccurrence(AdherenceError):
    """An action targeted a reminder/date/slot that is not a live dose."""

    def __init__(
        self,
        reminder_id: str,
        day: date,
        slot: object = None,
        reason: str = "",
    ) -> None:
        self.reminder_id = reminder_id
        self.date = day
        self.slot = slot
        self.reason = reason
        self.user_message = USER_MESSAGE_INVALID
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"{USER_MESSAGE_INVALID}: reminder={reminder_id} "
            f"date={day.isoformat()} slot={getattr(slot, 'value', slot)}{detail}"
        )


class MalformedRecurrence(AdherenceError, ValueError):
    """A reminder failed validation at creation/edit time."""

    def __init__(self, reminder_id: str, problems: list[str]) -> None:
        self.reminder_id = reminder_id
        self.problems = problems
        super().__init__(
            f"Lịch nhắc {reminder_id} không hợp lệ: " + "; ".join(problems)
        )


@dataclass
class InventoryUnderflow:
    """Recorded when a dose exceeded the remaining stock and was clamped."""

    medication_id: str
    requested: float
    available: float
    at: datetime | None = None

    @property
    def shortfall(self) -> float:
        return self.requested - self.available
