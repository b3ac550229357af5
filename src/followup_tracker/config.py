"""
Configuration management for the follow-up tracker.

Handles auto-configuration with sensible defaults, an optional JSON config
file and environment variable overrides.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict, field
import logging

from .core.enums import SaveAction

DEFAULT_LINE_STATUSES: Dict[str, str] = {
    "0": "Pending",
    "1": "Finished",
    "2": "On hold",
}


def _env_flag(name: str) -> Optional[bool]:
    """Read a boolean environment flag; None when unset."""
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///./followup_tracker.db"
    echo: bool = False
    log_queries: bool = False  # Enable query logging for performance analysis


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    auto_reload: bool = False


@dataclass
class EditorConfig:
    """Document editor behaviour."""

    default_save_action: str = SaveAction.SAVE_AND_NEW.value
    time_format: str = "%H:%M"
    status_timestamp_display_format: str = "%d/%m/%Y %H:%M"
    default_line_statuses: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_LINE_STATUSES)
    )


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Follow-up Tracker"
    version: str = "1.0.0"
    description: str = "Purchase order follow-up tracking documents"

    user_data_dir: Optional[str] = None
    enable_cors: bool = True

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"  # Directory for log files

    is_development: bool = False


@dataclass
class FollowupConfig:
    """Complete configuration for the follow-up tracker."""

    app: AppConfig = field(default_factory=AppConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    editor: EditorConfig = field(default_factory=EditorConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app": asdict(self.app),
            "server": asdict(self.server),
            "database": asdict(self.database),
            "editor": asdict(self.editor),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FollowupConfig":
        """Create from dictionary."""
        return cls(
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            database=DatabaseConfig(**data.get("database", {})),
            editor=EditorConfig(**data.get("editor", {})),
        )


class ConfigManager:
    """Manages configuration loading, saving, and environment overrides."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[FollowupConfig] = None

    def detect_environment(self) -> Dict[str, Any]:
        """Detect the current environment and return environment info."""
        return {
            "user_data_dir": os.getenv("FOLLOWUP_USER_DATA_DIR"),
            "debug": _env_flag("FOLLOWUP_DEBUG"),
            "log_to_file": _env_flag("FOLLOWUP_LOG_TO_FILE"),
            "log_dir": os.getenv("FOLLOWUP_LOG_DIR"),
            "database_url": os.getenv("FOLLOWUP_DATABASE_URL"),
        }

    def get_config_file_path(self) -> Path:
        """Get the path for the config file."""
        explicit = os.getenv("FOLLOWUP_CONFIG_FILE")
        if explicit:
            return Path(explicit)

        user_data_dir = os.getenv("FOLLOWUP_USER_DATA_DIR")
        if user_data_dir:
            config_dir = Path(user_data_dir)
        else:
            config_dir = Path.cwd() / "data"

        return config_dir / "config.json"

    def apply_environment(self, config: FollowupConfig) -> FollowupConfig:
        """Apply environment variable overrides to a configuration."""
        env_info = self.detect_environment()

        if env_info["user_data_dir"]:
            config.app.user_data_dir = env_info["user_data_dir"]
        if env_info["debug"] is not None:
            config.server.debug = env_info["debug"]
            config.app.is_development = env_info["debug"]
            if env_info["debug"]:
                config.app.log_level = "DEBUG"
        if env_info["log_to_file"] is not None:
            config.app.log_to_file = env_info["log_to_file"]
        if env_info["log_dir"]:
            config.app.log_dir = env_info["log_dir"]
        if env_info["database_url"]:
            config.database.url = env_info["database_url"]

        return config

    def create_default_config(self) -> FollowupConfig:
        """Create default configuration with environment overrides applied."""
        config = FollowupConfig()

        user_data_dir = os.getenv("FOLLOWUP_USER_DATA_DIR")
        if user_data_dir:
            db_path = Path(user_data_dir) / "followup_tracker.db"
            config.database.url = f"sqlite:///{db_path}"

        return self.apply_environment(config)

    def load_config(self) -> FollowupConfig:
        """Load configuration from file or create default."""
        self.config_file = self.get_config_file_path()

        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)

                self.config = self.apply_environment(FollowupConfig.from_dict(data))
                logging.info(f"Loaded configuration from {self.config_file}")

            except (OSError, ValueError, TypeError) as e:
                logging.warning(f"Failed to load config from {self.config_file}: {e}")
                logging.info("Creating default configuration")
                self.config = self.create_default_config()
        else:
            logging.debug("No config file found, using default configuration")
            self.config = self.create_default_config()

        return self.config

    def save_config(self, config: Optional[FollowupConfig] = None) -> bool:
        """Save configuration to file."""
        if config is None:
            config = self.config

        if config is None:
            logging.error("No configuration to save")
            return False

        try:
            if self.config_file is None:
                self.config_file = self.get_config_file_path()

            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)

            logging.info(f"Saved configuration to {self.config_file}")
            return True

        except OSError as e:
            logging.error(f"Failed to save config to {self.config_file}: {e}")
            return False

    def update_config(self, updates: Dict[str, Any]) -> bool:
        """Update configuration with new values.

        Keys may be dotted (``"server.port"``) or whole sections.
        """
        if self.config is None:
            self.load_config()

        try:
            config_dict = self.config.to_dict()

            for key, value in updates.items():
                if "." in key:
                    section, name = key.split(".", 1)
                    if section in config_dict:
                        config_dict[section][name] = value
                elif key in config_dict and isinstance(value, dict):
                    config_dict[key].update(value)

            self.config = FollowupConfig.from_dict(config_dict)
            return self.save_config()

        except TypeError as e:
            logging.error(f"Failed to update configuration: {e}")
            return False

    def get_database_url(self) -> str:
        """Get the database URL."""
        if self.config is None:
            self.load_config()
        return self.config.database.url

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of warnings/errors."""
        if self.config is None:
            self.load_config()

        issues = []

        valid_actions = {action.value for action in SaveAction}
        if self.config.editor.default_save_action not in valid_actions:
            issues.append(
                f"Unknown default save action: {self.config.editor.default_save_action}"
            )

        if not self.config.editor.default_line_statuses:
            issues.append("No default line statuses configured")

        if not 0 < self.config.server.port < 65536:
            issues.append(f"Invalid server port: {self.config.server.port}")

        db_url = self.config.database.url
        if db_url.startswith("sqlite:///") and ":memory:" not in db_url:
            db_path = Path(db_url.replace("sqlite:///", ""))
            db_dir = db_path.parent
            if not db_dir.exists():
                try:
                    db_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    issues.append(f"Cannot create database directory: {e}")
            elif not os.access(db_dir, os.W_OK):
                issues.append(f"Database directory is not writable: {db_dir}")

        return issues

    def reset(self) -> None:
        """Forget the loaded configuration so the next access reloads it."""
        self.config = None
        self.config_file = None


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> FollowupConfig:
    """Get the current configuration, loading it on first access."""
    if config_manager.config is None:
        return config_manager.load_config()
    return config_manager.config


def get_database_url() -> str:
    """Get the database URL."""
    return config_manager.get_database_url()
