"""TOML configuration loader for the adherence module."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .models import SlotLabel

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class ClassifierConfig:
    on_time_minutes: int = 30
    snooze_minutes: int = 10


@dataclass
class SlotsConfig:
    default_times: dict[SlotLabel, str] = field(default_factory=lambda: {
        SlotLabel.MORNING: "07:00",
        SlotLabel.AFTERNOON: "13:00",
        SlotLabel.EVENING: "19:00",
    })


@dataclass
class InventoryConfig:
    default_low_stock_threshold: float = 5.0


@dataclass
class DatabaseConfig:
    path: str = "~/.config/medbuddy/adherence.db"


@dataclass
class SchedulerConfig:
    enabled: bool = True
    missed_sweep_schedule: str = "5 0 * * *"
    snooze_recheck_seconds: int = 60


@dataclass
class AdherenceConfig:
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    slots: SlotsConfig = field(default_factory=SlotsConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(path: str | Path | None = None) -> AdherenceConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path can be overridden via MEDBUDDY_DB_PATH.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cls = raw.get("classifier", {})
    slt = raw.get("slots", {})
    inv = raw.get("inventory", {})
    dbs = raw.get("database", {})
    sch = raw.get("scheduler", {})

    # Merge custom slot times with defaults
    default_times = SlotsConfig().default_times
    custom_times = {SlotLabel.parse(k): v for k, v in slt.items()}
    slot_times = {**default_times, **custom_times}

    # Resolve DB path: environment variable → config file → default
    db_path = os.environ.get("MEDBUDDY_DB_PATH", "") or dbs.get(
        "path", "~/.config/medbuddy/adherence.db"
    )

    return AdherenceConfig(
        classifier=ClassifierConfig(
            on_time_minutes=cls.get("on_time_minutes", 30),
            snooze_minutes=cls.get("snooze_minutes", 10),
        ),
        slots=SlotsConfig(default_times=slot_times),
        inventory=InventoryConfig(
            default_low_stock_threshold=inv.get("default_low_stock_threshold", 5.0),
        ),
        database=DatabaseConfig(path=db_path),
        scheduler=SchedulerConfig(
            enabled=sch.get("enabled", True),
            missed_sweep_schedule=sch.get("missed_sweep_schedule", "5 0 * * *"),
            snooze_recheck_seconds=sch.get("snooze_recheck_seconds", 60),
        ),
    )
