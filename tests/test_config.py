# tests/test_config.py
"""Tests for courseplay configuration."""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from courseplay.config import Settings


class TestSettings:
    def test_default_settings(self):
        s = Settings()
        assert s.data_dir == Path.home() / ".courseplay"
        assert s.auto_mark_complete_at == 95.0
        assert s.progress_interval == 5.0
        assert s.autoplay_countdown == 3
        assert s.boost_hold_delay == 0.5
        assert s.default_volume == 0.75

    def test_derived_paths(self):
        s = Settings()
        assert s.db_path == s.data_dir / "courseplay.db"
        assert s.session_path == s.data_dir / "session.json"

    def test_ensure_dirs_creates(self, tmp_path):
        s = Settings(data_dir=tmp_path / "testdata")
        s.ensure_dirs()
        assert s.data_dir.exists()

    def test_env_override(self):
        with patch.dict("os.environ", {"COURSEPLAY_AUTO_MARK_COMPLETE_AT": "80"}):
            s = Settings()
            assert s.auto_mark_complete_at == 80.0

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            Settings(auto_mark_complete_at=0)
        with pytest.raises(ValidationError):
            Settings(auto_mark_complete_at=150)

    def test_default_speed_must_be_an_option(self):
        with pytest.raises(ValidationError):
            Settings(default_speed=1.1)
        with patch.dict("os.environ", {"COURSEPLAY_DEFAULT_SPEED": "1.5"}):
            assert Settings().default_speed == 1.5
