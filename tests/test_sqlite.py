# tests/test_sqlite.py
"""Tests for SQLite library repository."""

from datetime import datetime, timezone

import pytest

from courseplay.media.handles import LocalFileHandle
from courseplay.models import Course, Video
from courseplay.storage.repository import VideoNotFoundError
from courseplay.storage.sqlite import SQLiteLibraryRepository


class TestCourses:
    def test_save_and_get(self, sqlite_repo, sample_course):
        sqlite_repo.save_course(sample_course)
        loaded = sqlite_repo.get_course(sample_course.id)
        assert loaded.title == "Python Basics"
        assert loaded.original_title == "01_Python_Basics"

    def test_get_not_found(self, sqlite_repo):
        assert sqlite_repo.get_course("nonexistent") is None

    def test_list_ordered_by_added_at(self, sqlite_repo):
        sqlite_repo.save_course(Course(id="a", title="First", added_at=datetime(2025, 1, 1, tzinfo=timezone.utc)))
        sqlite_repo.save_course(Course(id="b", title="Second", added_at=datetime(2025, 6, 1, tzinfo=timezone.utc)))
        assert [c.id for c in sqlite_repo.list_courses()] == ["b", "a"]

    def test_delete_removes_videos(self, library, sample_course):
        library.delete_course(sample_course.id)
        assert library.get_course(sample_course.id) is None
        assert library.list_videos(sample_course.id) == []


class TestVideos:
    def test_save_and_get(self, sqlite_repo, local_video):
        sqlite_repo.save_video(local_video)
        loaded = sqlite_repo.get_video(local_video.id)
        assert loaded is not None
        assert loaded.title == local_video.title
        assert loaded.relative_path == local_video.relative_path
        assert len(loaded.caption_chunks) == len(local_video.caption_chunks)
        assert loaded.caption_chunks[0].timestamp == [0.0, 0.5]

    def test_save_upsert(self, sqlite_repo, local_video):
        sqlite_repo.save_video(local_video)
        local_video.title = "Updated Title"
        sqlite_repo.save_video(local_video)
        assert sqlite_repo.get_video(local_video.id).title == "Updated Title"
        assert len(sqlite_repo.list_videos()) == 1

    def test_list_returns_metadata_only(self, library, local_video):
        videos = library.list_videos()
        assert len(videos) == 2
        assert all(v.caption_chunks == [] for v in videos)

    def test_list_in_playlist_order(self, sqlite_repo):
        sqlite_repo.save_video(Video(id="b", course_id="c", title="B", module="M", order=1))
        sqlite_repo.save_video(Video(id="a", course_id="c", title="A", module="M", order=0))
        sqlite_repo.save_video(Video(id="x", course_id="other", title="X"))
        assert [v.id for v in sqlite_repo.list_videos("c")] == ["a", "b"]

    def test_file_handle_persisted_as_path(self, sqlite_repo, tmp_path):
        path = tmp_path / "lesson.mp4"
        sqlite_repo.save_video(Video(id="h", title="Handle", file_handle=LocalFileHandle(path)))
        loaded = sqlite_repo.get_video("h")
        assert isinstance(loaded.file_handle, LocalFileHandle)
        assert loaded.file_handle.path == path

    def test_delete(self, sqlite_repo, local_video):
        sqlite_repo.save_video(local_video)
        sqlite_repo.delete_video(local_video.id)
        assert sqlite_repo.get_video(local_video.id) is None

    def test_delete_nonexistent(self, sqlite_repo):
        sqlite_repo.delete_video("nonexistent")  # should not raise

    def test_exists(self, sqlite_repo, local_video):
        assert sqlite_repo.exists(local_video.id) is False
        sqlite_repo.save_video(local_video)
        assert sqlite_repo.exists(local_video.id) is True

    def test_memory_database(self):
        repo = SQLiteLibraryRepository(":memory:")
        repo.save_video(Video(id="test123", title="Memory Test"))
        assert repo.get_video("test123") is not None


class TestProgress:
    def test_update_progress(self, library, local_video):
        video = library.update_video_progress(local_video.id, 30.0, 120.0)
        assert video.last_watched_position == 30.0
        assert video.watch_progress == 0.25
        assert video.last_watched_at is not None
        assert library.get_video(local_video.id).last_watched_position == 30.0

    def test_watch_count_increments_from_zero_position_only(self, library, local_video):
        library.update_video_progress(local_video.id, 10.0, 120.0)
        library.update_video_progress(local_video.id, 20.0, 120.0)
        assert library.get_video(local_video.id).watch_count == 1

    def test_zero_duration_gives_zero_fraction(self, library, local_video):
        video = library.update_video_progress(local_video.id, 10.0, 0.0)
        assert video.watch_progress == 0.0
        assert video.duration == local_video.duration

    def test_update_unknown_raises(self, sqlite_repo):
        with pytest.raises(VideoNotFoundError):
            sqlite_repo.update_video_progress("nonexistent", 1.0, 10.0)

    def test_mark_complete(self, library, local_video):
        video = library.mark_video_complete(local_video.id)
        assert video.is_completed is True
        assert video.completed_at is not None
        assert video.watch_progress == 1.0

    def test_mark_incomplete_clears_timestamp(self, library, local_video):
        library.mark_video_complete(local_video.id)
        video = library.mark_video_complete(local_video.id, False)
        assert video.is_completed is False
        assert video.completed_at is None

    def test_mark_unknown_raises(self, sqlite_repo):
        with pytest.raises(VideoNotFoundError):
            sqlite_repo.mark_video_complete("nonexistent")
