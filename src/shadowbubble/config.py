"""Configuration management for shadowbubble.

Settings come from (highest first) explicit kwargs, ``SHADOWBUBBLE_*``
environment variables, ``.env`` and ``~/.shadowbubble/config.json``.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the config directory, creating if needed."""
    config_dir = Path.home() / ".shadowbubble"
    config_dir.mkdir(exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path."""
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """shadowbubble settings with env and file support."""

    model_config = SettingsConfigDict(env_prefix="SHADOWBUBBLE_", env_file=".env", extra="ignore")

    # Backend
    backend_url: str = Field(
        default="http://127.0.0.1:7878/api/v1", description="Base URL of the assistant backend"
    )
    request_timeout: float = Field(default=5.0, description="Per-request timeout in seconds")

    # Trigger policy
    dedup_window_seconds: float = Field(
        default=30.0, description="Minimum spacing between two shown bubbles"
    )
    snooze_poll_seconds: int = Field(default=30, description="Snooze status poll interval")
    stats_poll_seconds: int = Field(default=300, description="Trigger stats poll interval")
    auto_start_loop: bool = Field(
        default=True, description="Ask the backend to start its trigger loop on startup"
    )

    # Activity detection
    activity_detection: bool = Field(default=True, description="Report user activity to backend")
    keyboard_throttle_ms: int = Field(default=500, description="Keyboard report throttle")
    pointer_throttle_ms: int = Field(default=300, description="Pointer report throttle")
    scroll_throttle_ms: int = Field(default=300, description="Scroll report throttle")

    # Placement
    bubble_width: int = Field(default=300, description="Interrupt bubble width in px")
    bubble_height: int = Field(default=200, description="Interrupt bubble height in px")
    bubble_margin: int = Field(default=24, description="Clearance from cursor and screen edges")
    preferred_side: str = Field(
        default="right", description="Preferred side of the cursor: 'left' or 'right'"
    )
    dock_width: int = Field(default=420, description="Docked panel width in px")
    dock_height: int = Field(default=640, description="Docked panel height in px")
    screen_width: int = Field(default=1920, description="Working screen area width in px")
    screen_height: int = Field(default=1080, description="Working screen area height in px")

    # Logging
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")

    def save(self) -> None:
        """Save settings to the config file."""
        config_path = get_config_path()
        config_path.write_text(json.dumps(self.model_dump(), indent=2))

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from config file, falling back to env/defaults."""
        config_path = get_config_path()
        if config_path.exists():
            try:
                data = json.loads(config_path.read_text())
                return cls(**data)
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return cls()


@lru_cache
def get_settings(force_reload: bool = False) -> Settings:
    """Get cached settings instance."""
    if force_reload:
        get_settings.cache_clear()
    return Settings.load()
