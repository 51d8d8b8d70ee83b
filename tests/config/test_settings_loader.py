"""
Tests for fincontrol_config: YAML loading, environment overrides and
schema validation.
"""

from dataclasses import FrozenInstanceError

import pytest
import yaml

from fincontrol_config import load_settings
from fincontrol_config.loader import DEFAULT_CONFIG_PATH, parse_settings
from fincontrol_config.schema import (
    DEFAULT_DATABASE_URL,
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    SchedulerSettings,
)


def _write(tmp_path, text: str):
    path = tmp_path / "settings.yaml"
    path.write_text(text)
    return path


# =============================================================================
# Schema
# =============================================================================


class TestSchema:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.database.url == DEFAULT_DATABASE_URL
        assert settings.logging.level == "INFO"
        assert settings.scheduler.enabled is True
        assert [t.name for t in settings.scheduler.triggers] == ["mark_overdue", "auto_settle"]
        assert settings.scheduler.triggers[0].cron_expression == "0 1 * * *"
        assert settings.scheduler.triggers[1].cron_expression == "0 2 * * *"

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            AppSettings().logging = LoggingSettings()

    def test_level_is_normalized(self):
        assert LoggingSettings(level="debug").level == "DEBUG"
        assert LoggingSettings(level="warning").level_number == 30

    def test_bad_level(self):
        with pytest.raises(ValueError, match="logging.level"):
            LoggingSettings(level="LOUD")

    def test_bad_pool_size(self):
        with pytest.raises(ValueError):
            DatabaseSettings(pool_size=0)

    def test_bad_tick_interval(self):
        with pytest.raises(ValueError):
            SchedulerSettings(tick_interval_seconds=0)


# =============================================================================
# Loader
# =============================================================================


class TestLoadSettings:

    def test_shipped_file_loads(self):
        settings = load_settings(DEFAULT_CONFIG_PATH, env={})
        assert settings == AppSettings(
            database=DatabaseSettings(url="sqlite:///fincontrol.db"),
        )

    def test_explicit_file(self, tmp_path):
        path = _write(
            tmp_path,
            """
database:
  url: postgresql://app@db/fincontrol
logging:
  level: warning
scheduler:
  timezone: America/Sao_Paulo
  triggers:
    nightly:
      cron: "15 3 * * *"
      tasks: [bills.mark_overdue]
    paused:
      cron: "0 4 * * *"
      tasks: [bills.auto_pay]
      active: false
""",
        )
        settings = load_settings(path, env={})

        assert settings.database.url == "postgresql://app@db/fincontrol"
        assert settings.logging.level == "WARNING"
        assert settings.scheduler.timezone == "America/Sao_Paulo"
        nightly, paused = settings.scheduler.triggers
        assert nightly.task_types == ("bills.mark_overdue",)
        assert nightly.is_active is True
        assert paused.is_active is False

    def test_env_overrides_file(self, tmp_path):
        path = _write(tmp_path, "database:\n  url: sqlite:///from-file.db\nlogging:\n  level: INFO\n")
        settings = load_settings(
            path,
            env={"FINCONTROL_DATABASE_URL": "sqlite://", "FINCONTROL_LOG_LEVEL": "debug"},
        )
        assert settings.database.url == "sqlite://"
        assert settings.logging.level == "DEBUG"

    def test_plain_database_url_var(self, tmp_path):
        path = _write(tmp_path, "{}\n")
        settings = load_settings(path, env={"DATABASE_URL": "sqlite:///plain.db"})
        assert settings.database.url == "sqlite:///plain.db"

    def test_config_path_from_env(self, tmp_path):
        path = _write(tmp_path, "scheduler:\n  enabled: false\n")
        settings = load_settings(env={"FINCONTROL_CONFIG": str(path)})
        assert settings.scheduler.enabled is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = _write(tmp_path, "")
        assert load_settings(path, env={}) == AppSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", env={})

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_settings(path, env={})

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "database: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_settings(path, env={})

    def test_invalid_cron_names_the_trigger(self):
        with pytest.raises(ValueError, match="scheduler.triggers.broken"):
            parse_settings(
                {"scheduler": {"triggers": {"broken": {"cron": "0 25 * * *", "tasks": ["bills.auto_pay"]}}}}
            )

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            parse_settings({"database": {"uri": "sqlite://"}})
