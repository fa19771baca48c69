"""Tests for adherence config loading."""

import os
import tempfile

import pytest

from medbuddy.adherence.config import AdherenceConfig, load_config
from medbuddy.adherence.models import SlotLabel


@pytest.fixture(autouse=True)
def _no_db_env(monkeypatch):
    monkeypatch.delenv("MEDBUDDY_DB_PATH", raising=False)


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, AdherenceConfig)
    assert config.classifier.on_time_minutes == 30
    assert config.classifier.snooze_minutes == 10
    assert config.slots.default_times[SlotLabel.MORNING] == "07:00"
    assert config.slots.default_times[SlotLabel.EVENING] == "19:00"
    assert config.inventory.default_low_stock_threshold == 5.0
    assert config.database.path == "~/.config/medbuddy/adherence.db"
    assert config.scheduler.enabled is True
    assert config.scheduler.missed_sweep_schedule == "5 0 * * *"
    assert config.scheduler.snooze_recheck_seconds == 60


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.classifier.on_time_minutes == 30


def test_load_config_from_toml(tmp_path):
    """Loading a valid TOML file populates config."""
    path = tmp_path / "medbuddy.toml"
    path.write_text(
        """\
[classifier]
on_time_minutes = 15
snooze_minutes = 5

[inventory]
default_low_stock_threshold = 3

[database]
path = "/var/lib/medbuddy/adherence.db"

[scheduler]
enabled = false
missed_sweep_schedule = "0 1 * * *"
snooze_recheck_seconds = 30
""",
        encoding="utf-8",
    )
    config = load_config(path)

    assert config.classifier.on_time_minutes == 15
    assert config.classifier.snooze_minutes == 5
    assert config.inventory.default_low_stock_threshold == 3
    assert config.database.path == "/var/lib/medbuddy/adherence.db"
    assert config.scheduler.enabled is False
    assert config.scheduler.missed_sweep_schedule == "0 1 * * *"
    assert config.scheduler.snooze_recheck_seconds == 30


def test_load_config_custom_slot_times():
    """Custom slot times are merged with defaults."""
    toml_content = "[slots]\n\"Sáng\" = \"06:30\"\n\"Trưa\" = \"12:00\"\n".encode("utf-8")
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(toml_content)
        f.flush()
        config = load_config(f.name)

    os.unlink(f.name)
    assert config.slots.default_times[SlotLabel.MORNING] == "06:30"
    assert config.slots.default_times[SlotLabel.AFTERNOON] == "12:00"
    # Defaults preserved for non-overridden labels
    assert config.slots.default_times[SlotLabel.EVENING] == "19:00"


def test_load_config_env_db_path(monkeypatch, tmp_path):
    """MEDBUDDY_DB_PATH overrides the database path from the file."""
    monkeypatch.setenv("MEDBUDDY_DB_PATH", "/tmp/env.db")
    path = tmp_path / "medbuddy.toml"
    path.write_text('[database]\npath = "/from/file.db"\n', encoding="utf-8")

    config = load_config(path)
    assert config.database.path == "/tmp/env.db"


def test_load_config_partial_toml(tmp_path):
    """Partial TOML uses defaults for missing sections."""
    path = tmp_path / "medbuddy.toml"
    path.write_text("[classifier]\nsnooze_minutes = 20\n", encoding="utf-8")

    config = load_config(path)
    assert config.classifier.snooze_minutes == 20
    assert config.classifier.on_time_minutes == 30
    assert config.scheduler.enabled is True
