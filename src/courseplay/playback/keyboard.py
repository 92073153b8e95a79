"""Keyboard shortcuts for the player."""

from courseplay.playback.controller import PlaybackSessionController

SEEK_SMALL = 5.0
SEEK_LARGE = 10.0
VOLUME_STEP = 0.05


def handle_key(
    controller: PlaybackSessionController,
    key: str,
    *,
    shift: bool = False,
    ctrl: bool = False,
    enabled: bool | None = None,
) -> bool:
    """Dispatch a key press to the controller.

    Args:
        controller: The active player.
        key: Key name as reported by the UI ("k", " ", "ArrowLeft", "7", ...).
        shift: Whether Shift was held.
        ctrl: Whether Ctrl was held.
        enabled: Override for the keyboard-shortcut setting; defaults to the
                 controller's settings. When False nothing is handled.

    Returns:
        True if the key was consumed.
    """
    if enabled is None:
        enabled = controller.settings.keyboard_shortcuts
    if not enabled:
        return False

    key = key.lower()

    # 0-9 jump to 0%..90%
    if not shift and not ctrl and len(key) == 1 and key.isdigit():
        controller.seek_percent(int(key))
        return True

    if key in (" ", "k"):
        controller.toggle_play()
    elif key == "arrowleft":
        controller.seek_relative(-SEEK_SMALL)
    elif key == "arrowright":
        controller.seek_relative(SEEK_SMALL)
    elif key == "j":
        controller.seek_relative(-SEEK_LARGE)
    elif key == "l":
        controller.seek_relative(SEEK_LARGE)
    elif key == "arrowup":
        controller.change_volume(VOLUME_STEP)
    elif key == "arrowdown":
        controller.change_volume(-VOLUME_STEP)
    elif key == "m":
        controller.toggle_mute()
    elif key in (",", "<"):
        controller.step_speed(-1)
    elif key in (".", ">"):
        controller.step_speed(1)
    elif key == "n":
        if not shift:
            return False
        controller.next_video()
    elif key == "a":
        controller.toggle_auto_play()
    elif key == "c":
        controller.toggle_captions()
    elif key == "escape":
        pass  # closes menus in the UI; nothing to do here
    else:
        return False
    return True
