"""Entry point for user dose actions (take / skip / snooze)."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Protocol

from .errors import InvalidOccurrence
from .inventory import InventoryTracker
from .models import Action, DoseOccurrence, Medication, Reminder, SlotLabel
from .recurrence import is_active_on
from .slots import flatten
from .status import StatusClassifier, local_naive

logger = logging.getLogger(__name__)


class DoseStore(Protocol):
    """What ActionProcessor needs from the host's storage."""

    def get_reminder(self, reminder_id: str) -> Reminder | None: ...

    def get_medication(self, medication_id: str) -> Medication | None: ...

    def get_occurrence(
        self, reminder_id: str, day: date, slot_label: SlotLabel
    ) -> DoseOccurrence | None: ...

    def record_dose(
        self, occurrence: DoseOccurrence, medication: Medication | None = None
    ) -> None: ...


class ActionProcessor:
    """Applies user actions to dose occurrences.

    The scheduled time is always re-derived from the stored reminder, never
    taken from the caller. A take decrements stock, and the new status and
    stock are handed to the store together for an atomic write.
    """

    def __init__(
        self,
        store: DoseStore,
        classifier: StatusClassifier | None = None,
        tracker: InventoryTracker | None = None,
        default_times: dict[SlotLabel, str] | None = None,
    ) -> None:
        self._store = store
        self.classifier = classifier or StatusClassifier()
        self.tracker = tracker or InventoryTracker()
        self.default_times = default_times

    def derive(self, reminder_id: str, slot_label: SlotLabel, day: date) -> tuple[Reminder, DoseOccurrence]:
        """Look up the live reminder and derive the occurrence for one slot.

        Raises:
            InvalidOccurrence: If the reminder is missing, paused, not due
                that day, or has no such slot.
        """
        reminder = self._store.get_reminder(reminder_id)
        if reminder is None:
            raise InvalidOccurrence(reminder_id, day, slot_label, "không tồn tại")
        if not reminder.is_active:
            raise InvalidOccurrence(reminder_id, day, slot_label, "đã tạm dừng")
        if not is_active_on(reminder, day):
            raise InvalidOccurrence(reminder_id, day, slot_label, "không có lịch ngày này")

        for occurrence in flatten(reminder, day, self.default_times):
            if occurrence.slot_label is slot_label:
                return reminder, occurrence
        raise InvalidOccurrence(reminder_id, day, slot_label, "không có buổi này")

    def _current(self, derived: DoseOccurrence) -> DoseOccurrence:
        prior = self._store.get_occurrence(derived.reminder_id, derived.date, derived.slot_label)
        if prior is None:
            return derived
        return replace(
            prior,
            clock_time=derived.clock_time,
            medication_id=derived.medication_id,
        )

    def apply(
        self,
        reminder_id: str,
        slot_label: SlotLabel,
        day: date,
        action: Action,
        now: datetime,
    ) -> DoseOccurrence:
        """Apply ``action`` to the occurrence (reminder_id, day, slot_label).

        Repeating an action against the terminal state it produced, snoozing
        a terminal dose, or replaying an action older than the last recorded
        one returns the existing state unchanged.
        An aware ``now`` is converted to naive local time, matching what the
        store records.
        """
        now = local_naive(now)
        reminder, derived = self.derive(reminder_id, slot_label, day)
        current = self._current(derived)

        if current.updated_at is not None and now < current.updated_at:
            logger.info(
                "Bỏ qua thao tác %s cũ cho %s/%s/%s (đã cập nhật lúc %s)",
                action.value,
                reminder_id,
                day,
                slot_label.value,
                current.updated_at,
            )
            return current

        if current.status.is_terminal and (
            current.status in action.resulting_terminal or action is Action.SNOOZE
        ):
            logger.debug(
                "Liều %s/%s/%s đã ở trạng thái %s, bỏ qua %s",
                reminder_id,
                day,
                slot_label.value,
                current.status.value,
                action.value,
            )
            return current

        updated = self.classifier.transition(current, now, action, derived.clock_time)

        medication = None
        if action is Action.TAKE or current.status.is_taken:
            medication = self._store.get_medication(reminder.medication_id)
            if medication is None:
                logger.warning(
                    "Không tìm thấy thuốc %s của lịch nhắc %s, không trừ tồn kho",
                    reminder.medication_id,
                    reminder_id,
                )
            else:
                if current.status.is_taken and current.consumed > 0:
                    self.tracker.release(medication, current.consumed)
                consumed = 0.0
                if action is Action.TAKE:
                    before = medication.remaining_quantity
                    self.tracker.consume(
                        medication, slot_label, medication.dosage_for(slot_label), at=now
                    )
                    consumed = before - medication.remaining_quantity
                updated = replace(updated, consumed=consumed)

        self._store.record_dose(updated, medication)
        logger.info(
            "Liều %s/%s/%s: %s -> %s",
            reminder_id,
            day,
            slot_label.value,
            current.status.value,
            updated.status.value,
        )
        return updated

    def reevaluate(
        self,
        reminder_id: str,
        slot_label: SlotLabel,
        day: date,
        now: datetime,
    ) -> DoseOccurrence:
        """Re-check an occurrence with no new action (snooze expiry, end of day).

        The occurrence is persisted only if its status changed.
        """
        now = local_naive(now)
        _, derived = self.derive(reminder_id, slot_label, day)
        current = self._current(derived)
        updated = self.classifier.transition(current, now, None, derived.clock_time)
        if updated.status is not current.status:
            self._store.record_dose(updated)
            logger.info(
                "Liều %s/%s/%s: %s -> %s",
                reminder_id,
                day,
                slot_label.value,
                current.status.value,
                updated.status.value,
            )
        return updated
