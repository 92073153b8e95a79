# tests/test_models.py
"""Tests for courseplay domain models."""

from datetime import timezone

from courseplay.media.handles import LocalFileHandle
from courseplay.models import CaptionChunk, CaptionSegment, Course, Video


class TestCaptionSegment:
    def test_duration_computed(self):
        seg = CaptionSegment(text="hello", start=10.0, end=15.0)
        assert seg.duration == 5.0

    def test_serialization_includes_duration(self):
        data = CaptionSegment(text="hello", start=1.5, end=3.0).model_dump()
        assert data["duration"] == 1.5


class TestCaptionChunk:
    def test_timestamp_optional(self):
        chunk = CaptionChunk(text="hi")
        assert chunk.timestamp is None

    def test_open_ended_timestamp(self):
        chunk = CaptionChunk(text="hi", timestamp=[1.0, None])
        assert chunk.timestamp == [1.0, None]


class TestCourse:
    def test_defaults(self):
        course = Course(title="Python")
        assert len(course.id) == 32
        assert course.original_title == ""
        assert course.added_at.tzinfo == timezone.utc


class TestVideo:
    def test_defaults(self):
        video = Video(title="Test")
        assert video.caption_chunks == []
        assert video.last_watched_position == 0.0
        assert video.watch_progress == 0.0
        assert video.watch_count == 0
        assert video.is_completed is False
        assert video.file_handle is None

    def test_unique_ids(self):
        assert Video(title="a").id != Video(title="b").id

    def test_file_handle_not_serialized(self, tmp_path):
        video = Video(title="Test", file_handle=LocalFileHandle(tmp_path / "a.mp4"))
        data = video.model_dump()
        assert "file_handle" not in data

    def test_serialization_json_roundtrip(self, local_video):
        data = local_video.model_dump(mode="json")
        restored = Video(**data)
        assert restored.id == local_video.id
        assert restored.relative_path == local_video.relative_path
        assert len(restored.caption_chunks) == len(local_video.caption_chunks)
