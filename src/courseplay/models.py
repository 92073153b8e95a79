"""Domain models for courseplay."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field


def _new_id() -> str:
    return uuid4().hex


class CaptionChunk(BaseModel):
    """A single word-level token produced by transcription."""

    text: str
    timestamp: list[Any] | None = None  # [start, end] in seconds, either may be None


class CaptionSegment(BaseModel):
    """A display caption grouped from consecutive chunks."""

    text: str
    start: float  # start time in seconds
    end: float  # end time in seconds

    @computed_field
    @property
    def duration(self) -> float:
        """Length of the segment in seconds."""
        return self.end - self.start


class Course(BaseModel):
    """A course imported from a folder or assembled from remote videos."""

    id: str = Field(default_factory=_new_id)
    title: str
    original_title: str = ""  # raw folder name, key into the fallback file index
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Video(BaseModel):
    """Core domain entity for a single playable lesson.

    Exactly one origin is expected to be populated: a remote identifier
    (youtube_id, drive_file_id or url) or a local one (file_handle,
    relative_path or file_name). The playback core only reads this record
    and asks the store to update position and completion.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=_new_id)
    course_id: str | None = None
    title: str
    module: str = ""
    order: int = 0
    duration: float = 0.0  # seconds, may be stale

    # Remote origins
    youtube_id: str | None = None
    drive_file_id: str | None = None
    url: str | None = None

    # Local origins
    file_handle: Any = Field(default=None, exclude=True)  # runtime capability, never serialized
    relative_path: str | None = None  # "CourseFolder/Module/file.mp4"
    file_name: str | None = None
    file_size: int = 0

    # Progress
    last_watched_position: float = 0.0
    last_watched_at: datetime | None = None
    watch_progress: float = 0.0  # fraction 0-1
    watch_count: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None

    caption_chunks: list[CaptionChunk] = Field(default_factory=list)
