# tests/test_keyboard.py
"""Tests for keyboard shortcut dispatch."""

import pytest
import pytest_asyncio

from courseplay.playback.controller import PlaybackSessionController
from courseplay.playback.keyboard import handle_key


@pytest_asyncio.fixture
async def ready(controller, remote_video):
    """Controller with the remote video loaded at 100s."""
    await controller.load(remote_video)
    controller.seek(100)
    return controller


class TestHandleKey:
    @pytest.mark.asyncio
    async def test_toggle_play(self, ready):
        assert handle_key(ready, " ") is True
        assert ready.state.is_playing is True
        assert handle_key(ready, "k") is True
        assert ready.state.is_playing is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key,expected", [
        ("ArrowLeft", 95.0),
        ("ArrowRight", 105.0),
        ("j", 90.0),
        ("l", 110.0),
        ("3", 90.0),
        ("0", 0.0),
    ])
    async def test_seeking(self, ready, key, expected):
        handle_key(ready, key)
        assert ready.state.current_time == expected

    @pytest.mark.asyncio
    async def test_volume_and_mute(self, ready):
        handle_key(ready, "ArrowDown")
        assert ready.state.volume == pytest.approx(0.70)
        handle_key(ready, "ArrowUp")
        assert ready.state.volume == pytest.approx(0.75)
        handle_key(ready, "m")
        assert ready.state.is_muted is True

    @pytest.mark.asyncio
    async def test_speed_steps(self, ready):
        handle_key(ready, ">")
        assert ready.state.playback_speed == 1.25
        handle_key(ready, ",")
        handle_key(ready, ",")
        assert ready.state.playback_speed == 0.75

    @pytest.mark.asyncio
    async def test_toggles(self, ready):
        handle_key(ready, "c")
        assert ready.state.captions_enabled is True
        auto_play = ready.state.auto_play
        handle_key(ready, "a")
        assert ready.state.auto_play is not auto_play

    @pytest.mark.asyncio
    async def test_next_requires_shift(self, resolver, library, fast_settings, remote_video):
        advanced = []
        ctrl = PlaybackSessionController(
            resolver, library, settings=fast_settings, on_next=lambda: advanced.append(True)
        )
        await ctrl.load(remote_video)
        assert handle_key(ctrl, "n") is False
        assert handle_key(ctrl, "N", shift=True) is True
        assert advanced == [True]

    @pytest.mark.asyncio
    async def test_unknown_and_escape(self, ready):
        assert handle_key(ready, "z") is False
        assert handle_key(ready, "Escape") is True

    @pytest.mark.asyncio
    async def test_disabled(self, ready):
        assert handle_key(ready, "k", enabled=False) is False
        assert ready.state.is_playing is False

    @pytest.mark.asyncio
    async def test_disabled_by_settings(self, resolver, library, fast_settings, remote_video):
        ctrl = PlaybackSessionController(
            resolver, library, settings=fast_settings.model_copy(update={"keyboard_shortcuts": False})
        )
        await ctrl.load(remote_video)
        assert handle_key(ctrl, "k") is False
