"""Optimistic local status updates reconciled against the server."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from .models import DoseOccurrence, SlotLabel, clock_minutes

Key = tuple[str, date, SlotLabel]


class OptimisticLedger:
    """Holds confirmed occurrences plus provisional local changes.

    A provisional change is shown immediately, then either replaced by the
    server's authoritative occurrence or rolled back. Everything is keyed by
    occurrence identity, never by list position.
    """

    def __init__(self, confirmed: Iterable[DoseOccurrence] = ()) -> None:
        self._confirmed: dict[Key, DoseOccurrence] = {o.key: o for o in confirmed}
        self._provisional: dict[Key, DoseOccurrence] = {}

    def apply_provisional(self, occurrence: DoseOccurrence) -> None:
        self._provisional[occurrence.key] = occurrence

    def confirm(self, authoritative: DoseOccurrence) -> None:
        self._provisional.pop(authoritative.key, None)
        self._confirmed[authoritative.key] = authoritative

    def rollback(self, key: Key) -> DoseOccurrence | None:
        """Drop a provisional change; returns the confirmed occurrence, if any."""
        self._provisional.pop(key, None)
        return self._confirmed.get(key)

    @property
    def pending_keys(self) -> set[Key]:
        return set(self._provisional)

    def get(self, key: Key) -> DoseOccurrence | None:
        return self._provisional.get(key) or self._confirmed.get(key)

    def view(self) -> list[DoseOccurrence]:
        merged = {**self._confirmed, **self._provisional}
        return sorted(
            merged.values(),
            key=lambda o: (o.date, clock_minutes(o.clock_time), o.reminder_id),
        )
