"""Playback session controller — the state machine behind one player.

Lifecycle:

    Idle → Loading → Ready
                   → NeedsFolderAccess  (reselect folder → Loading)
                   → Error              (retry → Loading)

Ready carries independent flags (playing, boosting, resume prompt,
captions) instead of extra states. The controller is driven from a
single asyncio loop: commands come from the caller, media events
(metadata, time updates, play/pause/ended, errors) from the transport.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from courseplay.captions import CaptionSynchronizer
from courseplay.config import Settings, settings as default_settings
from courseplay.media.blobs import ReleasedSourceError
from courseplay.media.handles import PickedFolder
from courseplay.media.resolver import MediaLoadError, MediaSourceResolver, PermissionDeniedError
from courseplay.media.sources import LocalSource, NeedsFolderAccess, RemoteSource, SourceDescriptor
from courseplay.models import CaptionChunk, Video
from courseplay.playback.state import (
    SPEED_OPTIONS,
    ErrorKind,
    Phase,
    PlaybackError,
    PlaybackState,
    View,
)
from courseplay.playback.timers import ScheduledTask, after, every
from courseplay.storage.repository import LibraryRepository

logger = logging.getLogger(__name__)


def clamp_seek(t: float, duration: float) -> float:
    """Clamp a seek target into [0, duration]."""
    if duration <= 0:
        return 0.0
    return max(0.0, min(float(t), float(duration)))


class MediaTransport(Protocol):
    """The media element the controller drives."""

    def load(self, source: SourceDescriptor) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, t: float) -> None: ...

    def set_rate(self, rate: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...


class NullTransport:
    """Transport that renders nothing; state lives in the controller only."""

    def load(self, source: SourceDescriptor) -> None:
        pass

    def play(self) -> None:
        pass

    def pause(self) -> None:
        pass

    def seek(self, t: float) -> None:
        pass

    def set_rate(self, rate: float) -> None:
        pass

    def set_volume(self, volume: float) -> None:
        pass


class PlaybackSessionController:
    """Owns transport state, progress persistence, auto-advance and speed.

    Dependencies are injected via constructor. The controller never
    touches session caches directly; everything source-related goes
    through the resolver.
    """

    def __init__(
        self,
        resolver: MediaSourceResolver,
        repository: LibraryRepository,
        *,
        settings: Settings | None = None,
        transport: MediaTransport | None = None,
        on_complete: Callable[[str], None] | None = None,
        on_next: Callable[[], None] | None = None,
        on_change: Callable[["PlaybackSessionController"], None] | None = None,
    ) -> None:
        self._resolver = resolver
        self._repo = repository
        self._settings = settings or default_settings
        self._transport = transport or NullTransport()
        self._on_complete = on_complete
        self._on_next = on_next
        self._on_change = on_change

        self.phase = Phase.IDLE
        self.video: Video | None = None
        self.course_id: str | None = None
        self.source: SourceDescriptor | None = None
        self.error: PlaybackError | None = None
        self.state = self._fresh_state()
        self.captions = CaptionSynchronizer()

        self._generation = 0
        self._completed = False
        self._attempts = 0
        self._suppress_click = False
        self._pending_resume_seek = False

        self._progress_timer = ScheduledTask("progress-tick")
        self._countdown_timer = ScheduledTask("autoplay-countdown")
        self._boost_timer = ScheduledTask("speed-boost-hold")

    # ------------------------------------------------------------------
    # Surfaced view
    # ------------------------------------------------------------------

    @property
    def view(self) -> View:
        """Exactly one of loading / resume prompt / folder access / error / ready."""
        if self.phase is Phase.ERROR:
            return View.ERROR
        if self.phase is Phase.NEEDS_FOLDER_ACCESS:
            return View.FOLDER_ACCESS
        if self.phase is Phase.READY:
            return View.RESUME_PROMPT if self.state.resume_pending else View.READY
        return View.LOADING

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def can_retry(self) -> bool:
        return self.error is not None and self.error.retryable(self._attempts)

    @property
    def current_caption(self) -> str:
        if not self.state.captions_enabled:
            return ""
        return self.captions.text_at(self.state.current_time)

    @property
    def completed(self) -> bool:
        return self._completed

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, video: Video, course_id: str | None = None) -> None:
        """Switch to a video: release the old source and resolve the new one."""
        retrying = self.video is not None and video.id == self.video.id and self.phase is Phase.ERROR
        self._attempts = self._attempts + 1 if retrying else 0

        if self.state.is_playing:
            self._persist_progress()
        self._teardown()

        self._generation += 1
        generation = self._generation
        self.video = video
        self.course_id = course_id or video.course_id
        self.state = self._fresh_state(previous=self.state)
        self.captions.load(video.caption_chunks)
        self._completed = video.is_completed
        self.error = None
        self.phase = Phase.LOADING
        self._notify()

        logger.info("Loading video %s (%s)", video.id, video.title)
        try:
            source = await self._resolver.resolve(video, self.course_id)
        except PermissionDeniedError as e:
            if self._is_current(generation):
                self._fail(ErrorKind.PERMISSION_DENIED, str(e))
            return
        except MediaLoadError as e:
            if self._is_current(generation):
                self._fail(ErrorKind.UNKNOWN, str(e))
            return
        except Exception as e:
            logger.exception("Unexpected failure resolving %s", video.id)
            if self._is_current(generation):
                self._fail(ErrorKind.UNKNOWN, f"Failed to load video: {e}")
            return

        if not self._is_current(generation):
            logger.debug("Discarding stale resolution for %s", video.id)
            self._release(source)
            return

        self._apply_source(source)

    async def retry(self) -> None:
        """Start a fresh load of the current video."""
        if self.video is not None:
            await self.load(self.video, self.course_id)

    async def reselect_folder(self, picked: PickedFolder | None) -> None:
        """Cache a freshly picked folder and reload the current video.

        An abandoned pick (None) leaves the folder-access prompt in place.
        """
        if picked is None:
            logger.info("Folder pick abandoned")
            return
        self._resolver.session.cache_picked_folder(picked)
        if self.video is not None:
            await self.load(self.video, self.course_id)

    def close(self) -> None:
        """Tear down the session: flush, release and cancel everything."""
        if self.state.is_playing:
            self._persist_progress()
        self._teardown()
        self._generation += 1
        self.video = None
        self.error = None
        self.phase = Phase.IDLE
        self.state = self._fresh_state(previous=self.state)
        self._notify()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _apply_source(self, source: SourceDescriptor) -> None:
        self.source = source
        if isinstance(source, NeedsFolderAccess):
            self.phase = Phase.NEEDS_FOLDER_ACCESS
            self._notify()
            return

        if isinstance(source, RemoteSource):
            # Provisional until the embed reports its own duration
            self.state.duration = self.video.duration
        elif isinstance(source, LocalSource):
            self.state.duration = 0.0

        self._transport.load(source)
        self._transport.set_rate(self.state.playback_speed)
        self._transport.set_volume(self._effective_volume())
        self._prepare_resume()
        self.phase = Phase.READY
        logger.info("Video ready: %s", self.video.id)
        self._notify()

    def _prepare_resume(self) -> None:
        """Decide whether to offer resuming, always in absolute seconds."""
        if not self._settings.resume_playback:
            return

        video = self.video
        position = video.last_watched_position
        fraction = video.watch_progress
        stored_duration = video.duration
        fraction_ok = 0 < fraction < self._settings.resume_max_fraction

        if position <= 0 and fraction_ok:
            if stored_duration <= 0:
                # Converted once the media reports its duration
                self.state.resume_fraction = fraction
                self.state.resume_pending = True
                return
            position = fraction * stored_duration

        if stored_duration > 0:
            eligible = self._in_resume_window(position, stored_duration)
        else:
            eligible = position > self._settings.resume_min_position and fraction_ok

        if eligible:
            self.state.resume_position = position
            self.state.resume_pending = True

    def _in_resume_window(self, position: float, duration: float) -> bool:
        return (
            self._settings.resume_min_position
            < position
            < duration - self._settings.resume_tail_margin
        )

    # ------------------------------------------------------------------
    # Media events
    # ------------------------------------------------------------------

    def on_loaded_metadata(self, duration: float) -> None:
        """The media reported its real duration."""
        if self.phase is not Phase.READY or duration <= 0:
            return
        self.state.duration = float(duration)
        if self.state.resume_fraction is not None:
            position = self.state.resume_fraction * self.state.duration
            self.state.resume_fraction = None
            if self._in_resume_window(position, self.state.duration):
                self.state.resume_position = position
            else:
                self.state.resume_pending = False
                self._pending_resume_seek = False
        if self._pending_resume_seek:
            self._pending_resume_seek = False
            self.seek(self.state.resume_position)
        self._notify()

    def on_time_update(self, t: float) -> None:
        if self.phase is not Phase.READY:
            return
        self.state.current_time = max(0.0, float(t))
        self._notify()

    def on_play(self) -> None:
        self._handle_play()

    def on_pause(self) -> None:
        self._handle_pause()

    def on_ended(self) -> None:
        if self.phase is not Phase.READY:
            return
        self.state.is_playing = False
        self.state.ended = True
        self._progress_timer.cancel()
        self._end_boost(restore=True)
        if self.state.duration > 0:
            self.state.current_time = self.state.duration
        self._check_completion()

        if self.state.auto_play and self._settings.auto_play_next:
            self.state.countdown = self._settings.autoplay_countdown
            self._countdown_timer.start(self._run_countdown)
        self._notify()

    def on_media_error(self, code: int | None = None) -> None:
        """The local media element failed to decode or fetch."""
        self._fail_from(PlaybackError.from_media_code(code))

    def on_remote_error(self, message: str = "Failed to load remote video.") -> None:
        """The remote embed failed to load."""
        self._fail_from(PlaybackError(kind=ErrorKind.NETWORK, message=message))

    # ------------------------------------------------------------------
    # Transport commands
    # ------------------------------------------------------------------

    def play(self) -> None:
        if self.phase is not Phase.READY:
            return
        self._cancel_countdown()
        self.state.resume_pending = False
        if self.state.ended:
            self.state.ended = False
            self.seek(0)
        self._transport.play()
        self._handle_play()

    def pause(self) -> None:
        if self.phase is not Phase.READY:
            return
        self._transport.pause()
        self._handle_pause()

    def toggle_play(self) -> None:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()

    def click(self) -> None:
        """A click on the video surface; swallowed once right after a boost."""
        if self._suppress_click:
            self._suppress_click = False
            return
        self.toggle_play()

    def resume(self) -> None:
        """Accept the resume prompt: jump to the saved position and play."""
        if not self.state.resume_pending:
            return
        if self.state.resume_fraction is not None or self.state.duration <= 0:
            # Seek once the media reports its duration
            self._pending_resume_seek = True
        else:
            self.seek(self.state.resume_position)
        self.play()

    def start_over(self) -> None:
        """Decline the resume prompt: play from the beginning."""
        self._pending_resume_seek = False
        self.state.resume_fraction = None
        self.seek(0)
        self.play()

    def seek(self, t: float) -> None:
        if self.phase is not Phase.READY:
            return
        target = clamp_seek(t, self.state.duration)
        self.state.current_time = target
        if target < self.state.duration:
            self.state.ended = False
        self._transport.seek(target)
        self._notify()

    def seek_relative(self, delta: float) -> None:
        self.seek(self.state.current_time + delta)

    def seek_percent(self, digit: int) -> None:
        """Jump to digit * 10% of the duration (0-9)."""
        if not 0 <= digit <= 9 or self.state.duration <= 0:
            return
        self.seek(self.state.duration * digit / 10)

    # ------------------------------------------------------------------
    # Speed
    # ------------------------------------------------------------------

    def set_speed(self, speed: float) -> bool:
        """Change speed; values outside SPEED_OPTIONS are ignored."""
        if speed not in SPEED_OPTIONS:
            logger.debug("Ignoring unsupported speed %s", speed)
            return False
        if self.state.is_boosting:
            # Applied when the boost is released
            self.state.speed_before_boost = speed
            return True
        self.state.playback_speed = speed
        self._transport.set_rate(speed)
        self._notify()
        return True

    def step_speed(self, direction: int) -> bool:
        current = self.state.speed_before_boost if self.state.is_boosting else self.state.playback_speed
        try:
            idx = SPEED_OPTIONS.index(current)
        except ValueError:
            return False
        new_idx = idx + (1 if direction > 0 else -1)
        if not 0 <= new_idx < len(SPEED_OPTIONS):
            return False
        return self.set_speed(SPEED_OPTIONS[new_idx])

    def press(self) -> None:
        """Start of a press-and-hold on the video surface."""
        if self.phase is not Phase.READY:
            return
        self._boost_timer.start(lambda: after(self._settings.boost_hold_delay, self._begin_boost))

    def release(self) -> None:
        """End of a press: restores speed if boosting, otherwise does nothing."""
        self._boost_timer.cancel()
        if self.state.is_boosting:
            self._end_boost(restore=True)
            self._suppress_click = True
            self._notify()

    def _begin_boost(self) -> None:
        if not self.state.is_playing or self.state.is_boosting:
            return
        self.state.speed_before_boost = self.state.playback_speed
        self.state.playback_speed = self._settings.boost_speed
        self.state.is_boosting = True
        self._transport.set_rate(self.state.playback_speed)
        self._notify()

    def _end_boost(self, *, restore: bool) -> None:
        self._boost_timer.cancel()
        if not self.state.is_boosting:
            return
        self.state.is_boosting = False
        if restore:
            self.state.playback_speed = self.state.speed_before_boost
            self._transport.set_rate(self.state.playback_speed)

    # ------------------------------------------------------------------
    # Volume, captions, auto-advance
    # ------------------------------------------------------------------

    def set_volume(self, volume: float) -> None:
        self.state.volume = max(0.0, min(1.0, float(volume)))
        self.state.is_muted = self.state.volume == 0
        self._transport.set_volume(self._effective_volume())
        self._notify()

    def change_volume(self, delta: float) -> None:
        self.set_volume(self.state.volume + delta)

    def toggle_mute(self) -> None:
        if self.state.is_muted:
            if self.state.volume == 0:
                self.state.volume = self._settings.default_volume
            self.state.is_muted = False
        else:
            self.state.is_muted = True
        self._transport.set_volume(self._effective_volume())
        self._notify()

    def toggle_captions(self) -> None:
        self.state.captions_enabled = not self.state.captions_enabled
        self._notify()

    def set_caption_chunks(self, chunks: list[CaptionChunk]) -> None:
        """Replace the caption tokens (e.g. after transcription) and regroup."""
        if self.video is not None:
            self.video.caption_chunks = list(chunks)
        self.captions.load(chunks)
        self._notify()

    def toggle_auto_play(self) -> None:
        self.state.auto_play = not self.state.auto_play
        if not self.state.auto_play:
            self._cancel_countdown()
        self._notify()

    def cancel_auto_advance(self) -> None:
        """Stop the countdown; the player stays at the end of the video."""
        self._cancel_countdown()
        self._notify()

    def next_video(self) -> None:
        self._cancel_countdown()
        if self._on_next is not None:
            self._on_next()

    async def _run_countdown(self) -> None:
        while self.state.countdown:
            await asyncio.sleep(self._settings.countdown_step)
            self.state.countdown -= 1
            self._notify()
        self.state.countdown = None
        self._countdown_timer.cancel()
        self.next_video()

    def _cancel_countdown(self) -> None:
        self._countdown_timer.cancel()
        self.state.countdown = None

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def apply_settings(self, new_settings: Settings) -> None:
        """Swap in changed settings; a running progress tick picks up the new interval."""
        self._settings = new_settings
        if self.state.is_playing:
            self._start_progress_tick()

    # ------------------------------------------------------------------
    # Progress and completion
    # ------------------------------------------------------------------

    def _handle_play(self) -> None:
        if self.phase is not Phase.READY or self.state.is_playing:
            return
        self.state.is_playing = True
        self.state.resume_pending = False
        self._start_progress_tick()
        self._notify()

    def _handle_pause(self) -> None:
        if not self.state.is_playing:
            return
        self.state.is_playing = False
        self._progress_timer.cancel()
        self._end_boost(restore=True)
        self._flush()
        self._notify()

    def _start_progress_tick(self) -> None:
        self._progress_timer.start(lambda: every(self._settings.progress_interval, self._flush))

    def _flush(self) -> None:
        self._persist_progress()
        self._check_completion()

    def _persist_progress(self) -> None:
        """Write the current position; failures are logged and retried next tick."""
        if self.video is None or self.phase is not Phase.READY:
            return
        try:
            self._repo.update_video_progress(
                self.video.id, self.state.current_time, self.state.duration
            )
        except Exception as e:
            logger.warning("Failed to save progress for %s: %s", self.video.id, e)

    def _check_completion(self) -> None:
        """Mark the video complete the first time the threshold is crossed."""
        if self.video is None or self._completed or self.state.duration <= 0:
            return
        watched = self.state.current_time / self.state.duration * 100
        if watched < self._settings.auto_mark_complete_at:
            return
        try:
            self._repo.mark_video_complete(self.video.id, True)
        except Exception as e:
            logger.warning("Failed to mark %s complete: %s", self.video.id, e)
            return
        self._completed = True
        self.video.is_completed = True
        logger.info("Video completed: %s", self.video.id)
        if self._on_complete is not None:
            self._on_complete(self.video.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fresh_state(self, previous: PlaybackState | None = None) -> PlaybackState:
        """New per-video state; volume, captions and auto-play carry over."""
        state = PlaybackState(
            volume=self._settings.default_volume,
            playback_speed=self._settings.default_speed,
            speed_before_boost=self._settings.default_speed,
            auto_play=self._settings.auto_play_next,
        )
        if previous is not None:
            state.volume = previous.volume
            state.is_muted = previous.is_muted
            state.captions_enabled = previous.captions_enabled
            state.auto_play = previous.auto_play
        return state

    def _effective_volume(self) -> float:
        return 0.0 if self.state.is_muted else self.state.volume

    def _teardown(self) -> None:
        self._progress_timer.cancel()
        self._countdown_timer.cancel()
        self._boost_timer.cancel()
        self._suppress_click = False
        self._pending_resume_seek = False
        if self.source is not None:
            self._release(self.source)
            self.source = None

    @staticmethod
    def _release(source: SourceDescriptor) -> None:
        try:
            source.release()
        except ReleasedSourceError:
            logger.debug("Source already released: %r", source)

    def _fail(self, kind: ErrorKind, message: str) -> None:
        self._fail_from(PlaybackError(kind=kind, message=message))

    def _fail_from(self, error: PlaybackError) -> None:
        logger.warning("Playback error (%s): %s", error.kind.value, error.message)
        self.state.is_playing = False
        self._teardown()
        self.error = error
        self.phase = Phase.ERROR
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
