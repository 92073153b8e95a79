"""Playback state, lifecycle phases and the error taxonomy."""

from dataclasses import dataclass
from enum import Enum

SPEED_OPTIONS = (0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0)


class Phase(str, Enum):
    """Top-level controller lifecycle."""

    IDLE = "idle"
    LOADING = "loading"
    NEEDS_FOLDER_ACCESS = "needs_folder_access"
    ERROR = "error"
    READY = "ready"


class View(str, Enum):
    """The single thing the caller should be showing right now."""

    LOADING = "loading"
    RESUME_PROMPT = "resume_prompt"
    FOLDER_ACCESS = "folder_access"
    ERROR = "error"
    READY = "ready"


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNSUPPORTED_FORMAT = "unsupported_format"
    NETWORK = "network"
    UNKNOWN = "unknown"


# Media element error codes: 1 aborted, 2 network, 3 decode, 4 source not supported
_MEDIA_ERROR_KINDS = {
    1: ErrorKind.UNKNOWN,
    2: ErrorKind.NETWORK,
    3: ErrorKind.UNSUPPORTED_FORMAT,
    4: ErrorKind.UNSUPPORTED_FORMAT,
}

_MEDIA_ERROR_MESSAGES = {
    1: "Video loading was aborted.",
    2: "Network error while loading video. Please check your connection.",
    3: "Video format is not supported or the file is corrupted. Try converting it to MP4 (H.264).",
    4: "Video format is not supported by this player. Try converting it to MP4 (H.264).",
}


@dataclass(frozen=True)
class PlaybackError:
    """What went wrong, and whether a retry can help."""

    kind: ErrorKind
    message: str

    @classmethod
    def from_media_code(cls, code: int | None) -> "PlaybackError":
        kind = _MEDIA_ERROR_KINDS.get(code, ErrorKind.UNKNOWN)
        message = _MEDIA_ERROR_MESSAGES.get(code, "Failed to load video.")
        return cls(kind=kind, message=message)

    def retryable(self, attempts: int = 0) -> bool:
        """Whether a fresh load is worth offering after `attempts` retries."""
        if self.kind is ErrorKind.UNSUPPORTED_FORMAT:
            return False
        if self.kind is ErrorKind.UNKNOWN:
            return attempts < 1
        return True


@dataclass
class PlaybackState:
    """Mutable transport state for exactly one video.

    Thrown away and rebuilt whenever the active video changes.
    """

    current_time: float = 0.0
    duration: float = 0.0
    is_playing: bool = False
    volume: float = 0.75
    is_muted: bool = False
    playback_speed: float = 1.0
    is_boosting: bool = False
    speed_before_boost: float = 1.0
    captions_enabled: bool = False
    auto_play: bool = True
    resume_pending: bool = False
    resume_position: float = 0.0
    resume_fraction: float | None = None  # stored fraction awaiting a known duration
    countdown: int | None = None  # remaining auto-advance steps, None when idle
    ended: bool = False
