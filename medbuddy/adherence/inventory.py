"""Medication stock depletion and low-stock alerts."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime

from .errors import InventoryUnderflow
from .models import Medication, Reminder, SlotLabel
from .recurrence import is_active_on
from .slots import time_slots

logger = logging.getLogger(__name__)

_FRACTION_MAP: dict[str, float] = {
    "1/2": 0.5,
    "1/3": 1 / 3,
    "1/4": 0.25,
    "3/4": 0.75,
    "nửa": 0.5,
    "rưỡi": 0.5,
}

_AMOUNT_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?(?:/\d+)?|nửa)")


def parse_dosage_amount(text: str | float | int | None) -> float:
    """Parse a per-dose amount string.

    Args:
        text: e.g. "1 viên", "1/2 viên", "0,5 gói", "2"

    Returns:
        The amount as a float. Defaults to 1.0 if unparseable.
    """
    if isinstance(text, (int, float)):
        return float(text)
    text = (text or "").strip().lower()
    if not text:
        return 1.0

    m = _AMOUNT_PATTERN.search(text)
    if not m:
        return 1.0
    return _parse_number(m.group(1))


def _parse_number(s: str) -> float:
    if s in _FRACTION_MAP:
        return _FRACTION_MAP[s]

    if "/" in s:
        num, _, den = s.partition("/")
        try:
            return float(num) / float(den)
        except (ValueError, ZeroDivisionError):
            return 1.0

    try:
        return float(s.replace(",", "."))
    except ValueError:
        return 1.0


def is_low_stock(medication: Medication) -> bool:
    """True when remaining stock is at or below the alert threshold."""
    return medication.remaining_quantity <= medication.low_stock_threshold


def low_stock(medications: Iterable[Medication]) -> list[Medication]:
    """Medications at or below their threshold, lowest remaining first."""
    return sorted(
        (m for m in medications if is_low_stock(m)),
        key=lambda m: m.remaining_quantity,
    )


class InventoryTracker:
    """Applies confirmed doses to medication stock.

    Quantities are clamped to ``[0, total_quantity]``. Running out is an
    expected state: an oversized dose is logged and recorded in
    ``underflows`` instead of raising.
    """

    def __init__(self) -> None:
        self.underflows: list[InventoryUnderflow] = []

    def consume(
        self,
        medication: Medication,
        slot_label: SlotLabel,
        dosage_amount: float,
        at: datetime | None = None,
    ) -> Medication:
        """Decrement remaining stock by ``dosage_amount``; mutates and returns ``medication``."""
        available = medication.remaining_quantity
        if dosage_amount > available:
            event = InventoryUnderflow(
                medication_id=medication.id,
                requested=dosage_amount,
                available=available,
                at=at,
            )
            self.underflows.append(event)
            logger.warning(
                "Thuốc %s (%s) hết: cần %s %s nhưng chỉ còn %s",
                medication.name,
                slot_label.value,
                dosage_amount,
                medication.unit.display,
                available,
            )
        medication.remaining_quantity = max(0.0, available - dosage_amount)

        if is_low_stock(medication):
            logger.info(
                "Thuốc %s sắp hết: còn %s %s (ngưỡng %s)",
                medication.name,
                medication.remaining_quantity,
                medication.unit.display,
                medication.low_stock_threshold,
            )
        return medication

    def release(self, medication: Medication, amount: float) -> Medication:
        """Return a previously consumed dose to stock, clamped to the total."""
        medication.remaining_quantity = min(
            medication.total_quantity, medication.remaining_quantity + amount
        )
        return medication

    def restock(
        self,
        medication: Medication,
        added_quantity: float,
        on: date | None = None,
    ) -> Medication:
        """Add purchased stock.

        Raises:
            ValueError: If ``added_quantity`` is not positive.
        """
        if added_quantity <= 0:
            raise ValueError(f"Số lượng thêm phải lớn hơn 0: {added_quantity}")
        medication.remaining_quantity += added_quantity
        medication.total_quantity = max(
            medication.total_quantity, medication.remaining_quantity
        )
        medication.last_refill_date = on or date.today()
        logger.info(
            "Đã thêm %s %s cho thuốc %s (còn %s)",
            added_quantity,
            medication.unit.display,
            medication.name,
            medication.remaining_quantity,
        )
        return medication


def daily_consumption(medication: Medication, reminders: Iterable[Reminder], day: date) -> float:
    """Total amount of ``medication`` scheduled on ``day`` across its reminders."""
    total = 0.0
    for reminder in reminders:
        if reminder.medication_id != medication.id or not is_active_on(reminder, day):
            continue
        for slot in time_slots(reminder):
            total += medication.dosage_for(slot.label)
    return total


def days_of_supply(
    medication: Medication,
    reminders: Iterable[Reminder],
    day: date | None = None,
) -> float | None:
    """Estimate how many days the remaining stock lasts at ``day``'s rate.

    Returns None when nothing is scheduled that day.
    """
    per_day = daily_consumption(medication, reminders, day or date.today())
    if per_day <= 0:
        return None
    return medication.remaining_quantity / per_day
