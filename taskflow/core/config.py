"""
Configuration management for the TaskFlow temporal engine
Handles loading and saving engine settings and user preferences
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import tzinfo

from .clock import resolve_timezone


class Config:
    """Configuration manager for the temporal engine"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to configuration directory (defaults to
                $TASKFLOW_CONFIG_DIR, then ~/.taskflow)
        """
        if config_dir is None:
            env_dir = os.environ.get("TASKFLOW_CONFIG_DIR")
            config_dir = Path(env_dir) if env_dir else Path.home() / ".taskflow"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.json"
        self.preferences_file = self.config_dir / "preferences.json"

        # Load configurations
        self.settings = self._load_json(self.settings_file, self._default_settings())
        self.preferences = self._load_json(self.preferences_file, self._default_preferences())

    def _load_json(self, file_path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        """Load JSON file merged over defaults, creating it if missing"""
        if file_path.exists():
            with open(file_path, 'r') as f:
                loaded = json.load(f)
            merged = dict(default)
            merged.update(loaded)
            return merged
        else:
            # Create file with defaults
            self._save_json(file_path, default)
            return default

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Save data to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def _default_settings(self) -> Dict[str, Any]:
        """Default engine settings"""
        return {
            "database_path": "taskflow.db",
            "timer_state_path": "active_timer.json",
            "timer_backend": "sqlite",
            "timezone": "UTC",
            "date_format": "%Y-%m-%d",
            "time_format": "%H:%M",
            "first_day_of_week": "monday"
        }

    def _default_preferences(self) -> Dict[str, Any]:
        """Default user preferences"""
        return {
            "user_id": "default",
            "due_soon_days": 3,
            "status_refresh_seconds": 60,
            "timer_tick_seconds": 1,
            "notification_poll_seconds": 60,
            "upcoming_deadlines_limit": 5
        }

    def get(self, key: str, section: str = "settings", default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key
            section: Configuration section ('settings', 'preferences')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        section_map = {
            "settings": self.settings,
            "preferences": self.preferences
        }

        return section_map.get(section, {}).get(key, default)

    def set(self, key: str, value: Any, section: str = "settings") -> None:
        """
        Set configuration value and save to disk

        Args:
            key: Configuration key
            value: Value to set
            section: Configuration section ('settings', 'preferences')
        """
        section_map = {
            "settings": (self.settings, self.settings_file),
            "preferences": (self.preferences, self.preferences_file)
        }

        if section in section_map:
            config_dict, file_path = section_map[section]
            config_dict[key] = value
            self._save_json(file_path, config_dict)

    def _resolve_path(self, value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.config_dir / path

    def get_database_path(self) -> Path:
        """Get full path to database file"""
        return self._resolve_path(self.settings["database_path"])

    def get_timer_state_path(self) -> Path:
        """Get full path to the JSON timer state file"""
        return self._resolve_path(self.settings["timer_state_path"])

    def get_timezone(self) -> tzinfo:
        """Resolve the configured timezone"""
        return resolve_timezone(self.settings.get("timezone"))
