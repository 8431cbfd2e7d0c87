"""
Unit tests for the config module.
Tests defaults, persistence and path/timezone resolution.
"""

import json
import pytest
from datetime import timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from taskflow.core.config import Config


class TestConfigDefaults:
    """Tests for default settings and preferences."""

    def test_creates_files_with_defaults(self, tmp_path):
        config = Config(tmp_path)
        assert (tmp_path / "settings.json").exists()
        assert (tmp_path / "preferences.json").exists()
        assert config.get("timer_backend") == "sqlite"
        assert config.get("due_soon_days", section="preferences") == 3

    def test_env_var_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TASKFLOW_CONFIG_DIR", str(tmp_path / "cfg"))
        config = Config()
        assert config.config_dir == tmp_path / "cfg"

    def test_unknown_key_default(self, tmp_path):
        config = Config(tmp_path)
        assert config.get("missing", default="x") == "x"
        assert config.get("timezone", section="nope") is None


class TestConfigPersistence:
    """Tests for loading and saving."""

    def test_loaded_values_merge_over_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text(json.dumps({"timezone": "Europe/Berlin"}))
        config = Config(tmp_path)
        assert config.get("timezone") == "Europe/Berlin"
        assert config.get("timer_backend") == "sqlite"

    def test_set_persists(self, tmp_path):
        Config(tmp_path).set("upcoming_deadlines_limit", 10, section="preferences")
        assert Config(tmp_path).get("upcoming_deadlines_limit", section="preferences") == 10


class TestConfigResolution:
    """Tests for derived paths and timezone."""

    def test_relative_paths_resolve_against_config_dir(self, tmp_path):
        config = Config(tmp_path)
        assert config.get_database_path() == tmp_path / "taskflow.db"
        assert config.get_timer_state_path() == tmp_path / "active_timer.json"

    def test_absolute_path_kept(self, tmp_path):
        config = Config(tmp_path)
        config.set("database_path", str(tmp_path / "elsewhere" / "db.sqlite"))
        assert config.get_database_path() == tmp_path / "elsewhere" / "db.sqlite"

    def test_timezone(self, tmp_path):
        config = Config(tmp_path)
        assert config.get_timezone() == timezone.utc
        config.set("timezone", "America/New_York")
        assert config.get_timezone() is not None

    def test_bad_timezone(self, tmp_path):
        config = Config(tmp_path)
        config.set("timezone", "Mars/Olympus_Mons")
        with pytest.raises(ValueError):
            config.get_timezone()
