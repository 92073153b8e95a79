# tests/conftest.py
"""Shared fixtures for courseplay tests."""

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from courseplay.config import Settings
from courseplay.media.resolver import MediaSourceResolver
from courseplay.media.session import MediaSession
from courseplay.models import CaptionChunk, Course, Video
from courseplay.playback.controller import PlaybackSessionController
from courseplay.storage.sqlite import SQLiteLibraryRepository


class RecordingTransport:
    """MediaTransport that records every call for assertions."""

    def __init__(self):
        self.calls = []

    def load(self, source):
        self.calls.append(("load", source))

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))

    def seek(self, t):
        self.calls.append(("seek", t))

    def set_rate(self, rate):
        self.calls.append(("set_rate", rate))

    def set_volume(self, volume):
        self.calls.append(("set_volume", volume))

    def last(self, name):
        return next((c for c in reversed(self.calls) if c[0] == name), None)


@pytest.fixture
def fast_settings(tmp_path):
    """Settings with millisecond-scale timers and an isolated data dir."""
    return Settings(
        data_dir=tmp_path / "data",
        progress_interval=0.01,
        countdown_step=0.01,
        boost_hold_delay=0.01,
    )


@pytest.fixture
def sample_chunks():
    """Word-level caption chunks covering two display segments."""
    words = ["Welcome", "to", "the", "course", "!", "Today", "we", "learn", "about", "loops", "in", "Python"]
    return [
        CaptionChunk(text=w, timestamp=[i * 0.5, i * 0.5 + 0.5])
        for i, w in enumerate(words)
    ]


@pytest.fixture
def sample_course():
    return Course(
        id="course-1",
        title="Python Basics",
        original_title="01_Python_Basics",
        added_at=datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def local_video(sample_course, sample_chunks):
    """Local video stored by folder-relative path."""
    return Video(
        id="local-1",
        course_id=sample_course.id,
        title="Intro",
        module="Main Content",
        order=0,
        duration=120.0,
        relative_path="01_Python_Basics/01-intro.mp4",
        file_name="01-intro.mp4",
        caption_chunks=sample_chunks,
    )


@pytest.fixture
def remote_video(sample_course):
    return Video(
        id="remote-1",
        course_id=sample_course.id,
        title="Loops Explained",
        module="Main Content",
        order=1,
        duration=300.0,
        youtube_id="dQw4w9WgXcQ",
    )


@pytest.fixture
def sqlite_repo():
    """SQLiteLibraryRepository backed by in-memory database."""
    return SQLiteLibraryRepository(":memory:")


@pytest.fixture
def library(sqlite_repo, sample_course, local_video, remote_video):
    """Repository pre-loaded with one course and two videos."""
    sqlite_repo.save_course(sample_course)
    sqlite_repo.save_video(local_video)
    sqlite_repo.save_video(remote_video)
    return sqlite_repo


@pytest.fixture
def course_folder(tmp_path):
    """On-disk course folder: one root video, one module video, one non-video."""
    root = tmp_path / "courses"
    folder = root / "01_Python_Basics"
    (folder / "02_Loops").mkdir(parents=True)
    (folder / "01-intro.mp4").write_bytes(b"intro-bytes")
    (folder / "02_Loops" / "01_for_loops.mp4").write_bytes(b"loop-bytes")
    (folder / "notes.txt").write_text("not a video")
    return folder


@pytest.fixture
def media_session(tmp_path):
    """MediaSession persisting its root folder name under tmp_path."""
    return MediaSession(state_path=tmp_path / "session.json")


@pytest.fixture
def resolver(media_session, library):
    return MediaSourceResolver(media_session, library)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def controller(resolver, library, fast_settings, transport):
    """Controller wired to the in-memory library and a recording transport."""
    return PlaybackSessionController(
        resolver, library, settings=fast_settings, transport=transport
    )


@pytest.fixture
def mock_extractor(remote_video):
    """YouTubeExtractor with mocked yt-dlp returning a copy of remote_video."""
    from courseplay.ingestion.youtube import YouTubeExtractor

    extractor = YouTubeExtractor()
    imported = remote_video.model_copy(update={"id": "imported-1", "course_id": None})
    with patch.object(extractor, "extract", return_value=imported) as mock:
        extractor._mock = mock
        yield extractor


@pytest.fixture
def service(sqlite_repo, media_session, mock_extractor, fast_settings):
    """Fully wired CourseService with in-memory storage and mocked extractor."""
    from courseplay.service import CourseService

    return CourseService(
        repository=sqlite_repo,
        session=media_session,
        extractor=mock_extractor,
        config=fast_settings,
    )
