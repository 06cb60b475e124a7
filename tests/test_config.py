"""Tests for config loading."""

from buddyfridge.config import DEFAULT_DB_PATH, FridgeConfig, ReminderPreferences, load_config


def test_load_config_defaults(monkeypatch):
    """load_config with no path returns defaults."""
    monkeypatch.delenv("BUDDYFRIDGE_DB", raising=False)
    config = load_config()
    assert isinstance(config, FridgeConfig)
    assert config.database.path == DEFAULT_DB_PATH
    assert config.reminders.enabled is True
    assert config.reminders.five_days_before is False
    assert config.notifications.backend == "log"
    assert config.scheduler.resync_schedule == "0 3 * * *"
    assert config.scheduler.retry_schedule == "*/15 * * * *"
    assert config.inventory.warning_days == 2
    assert config.inventory.card_warning_days == 3


def test_load_config_nonexistent_file(monkeypatch):
    """Non-existent config file returns defaults."""
    monkeypatch.delenv("BUDDYFRIDGE_DB", raising=False)
    config = load_config("/nonexistent/path.toml")
    assert config.database.path == DEFAULT_DB_PATH


def test_load_config_from_toml(tmp_path):
    """Load config from a TOML file."""
    toml_file = tmp_path / "config.toml"
    toml_file.write_text(
        """\
[database]
path = "/tmp/fridge.db"

[reminders]
five_days_before = true
same_day_hour = 7

[notifications]
backend = "apscheduler"

[scheduler]
digest_schedule = "30 7 * * *"
retry_schedule = "*/5 * * * *"

[inventory]
warning_days = 1
seed_starter_pack = false
""",
        encoding="utf-8",
    )

    config = load_config(toml_file)
    assert config.database.path == "/tmp/fridge.db"
    assert config.reminders.five_days_before is True
    assert config.reminders.same_day_hour == 7
    assert config.reminders.one_day_before is True
    assert config.notifications.backend == "apscheduler"
    assert config.scheduler.digest_schedule == "30 7 * * *"
    assert config.scheduler.resync_schedule == "0 3 * * *"
    assert config.scheduler.retry_schedule == "*/5 * * * *"
    assert config.inventory.warning_days == 1
    assert config.inventory.seed_starter_pack is False


def test_db_path_from_env(monkeypatch):
    monkeypatch.setenv("BUDDYFRIDGE_DB", "/data/env.db")
    assert load_config().database.path == "/data/env.db"


def test_reminder_preferences_from_config():
    config = load_config()
    prefs = config.reminders.preferences()
    assert prefs == ReminderPreferences()
    assert prefs.offsets() == [1]


def test_preference_offsets():
    assert ReminderPreferences(five_days_before=True).offsets() == [1, 5]
    assert ReminderPreferences(one_day_before=False).offsets() == []
