"""Adherence statistics over recorded dose occurrences."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import DoseOccurrence, Status
from .schedule import WEEKDAY_LABELS


@dataclass
class DayStats:
    taken: int = 0
    missed: int = 0
    total: int = 0


@dataclass
class AdherenceOverview:
    counts: dict[Status, int] = field(default_factory=lambda: {s: 0 for s in Status})
    daily: dict[str, DayStats] = field(
        default_factory=lambda: {label: DayStats() for label in WEEKDAY_LABELS}
    )

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def taken(self) -> int:
        return self.counts[Status.ON_TIME] + self.counts[Status.LATE]

    @property
    def adherence_rate(self) -> int:
        """Percentage of doses taken (on time or late), rounded."""
        if self.total == 0:
            return 0
        return round(self.taken / self.total * 100)

    @property
    def on_time_rate(self) -> int:
        if self.total == 0:
            return 0
        return round(self.counts[Status.ON_TIME] / self.total * 100)

    def display(self) -> str:
        lines = [
            f"Tuân thủ: {self.taken}/{self.total} lần ({self.adherence_rate}%)",
            f"  Đúng giờ: {self.counts[Status.ON_TIME]}  Muộn: {self.counts[Status.LATE]}"
            f"  Bỏ qua: {self.counts[Status.SKIPPED]}  Bỏ lỡ: {self.counts[Status.MISSED]}",
        ]
        for label, day in self.daily.items():
            lines.append(f"  {label}: uống {day.taken}, bỏ lỡ {day.missed} / {day.total}")
        return "\n".join(lines)


def summarize(occurrences: Iterable[DoseOccurrence]) -> AdherenceOverview:
    """Count occurrences by status and by weekday."""
    overview = AdherenceOverview()
    for o in occurrences:
        overview.counts[o.status] += 1
        day = overview.daily[WEEKDAY_LABELS[o.date.weekday()]]
        day.total += 1
        if o.status.is_taken:
            day.taken += 1
        elif o.status is Status.MISSED:
            day.missed += 1
    return overview
