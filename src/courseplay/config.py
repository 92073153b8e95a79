"""Configuration management for courseplay."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from courseplay.playback.state import SPEED_OPTIONS


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with COURSEPLAY_ (e.g. COURSEPLAY_DATA_DIR,
    COURSEPLAY_AUTO_MARK_COMPLETE_AT).
    """

    model_config = {"env_prefix": "COURSEPLAY_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".courseplay",
        description="Root directory for all courseplay data",
    )

    # Playback
    resume_playback: bool = True
    auto_mark_complete_at: float = Field(default=95.0, ge=1.0, le=100.0)  # percent
    keyboard_shortcuts: bool = True
    auto_play_next: bool = True
    default_speed: float = 1.0
    default_volume: float = Field(default=0.75, ge=0.0, le=1.0)

    # Timing (seconds unless noted)
    progress_interval: float = 5.0
    autoplay_countdown: int = 3  # steps
    countdown_step: float = 1.0
    boost_hold_delay: float = 0.5
    boost_speed: float = 2.0

    # Resume windows
    resume_min_position: float = 5.0
    resume_tail_margin: float = 10.0
    resume_max_fraction: float = 0.95

    @field_validator("default_speed")
    @classmethod
    def _known_speed(cls, v: float) -> float:
        if v not in SPEED_OPTIONS:
            raise ValueError(f"default_speed must be one of {SPEED_OPTIONS}")
        return v

    @property
    def db_path(self) -> Path:
        """SQLite database path."""
        return self.data_dir / "courseplay.db"

    @property
    def session_path(self) -> Path:
        """JSON file remembering the root folder name between runs."""
        return self.data_dir / "session.json"

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this throughout the app
settings = Settings()
