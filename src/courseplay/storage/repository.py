"""Abstract repository interface for course and video storage."""

from abc import ABC, abstractmethod

from courseplay.models import Course, Video


class VideoNotFoundError(Exception):
    """Raised when a requested video is not in the library."""


class CourseNotFoundError(Exception):
    """Raised when a requested course is not in the library."""


class LibraryRepository(ABC):
    """Abstract base class defining the course/video storage contract.

    The playback core only needs get_course, update_video_progress and
    mark_video_complete; the rest serves the service layer and CLI.
    Implementations are expected to be idempotent on retry.
    """

    @abstractmethod
    def save_course(self, course: Course) -> None:
        """Persist a course. Upserts if the id already exists."""

    @abstractmethod
    def get_course(self, course_id: str) -> Course | None:
        """Retrieve a course by id. Returns None if not found."""

    @abstractmethod
    def list_courses(self) -> list[Course]:
        """List all courses, most recently added first."""

    @abstractmethod
    def delete_course(self, course_id: str) -> None:
        """Remove a course and its videos. No-op if it does not exist."""

    @abstractmethod
    def save_video(self, video: Video) -> None:
        """Persist a video. Upserts if the id already exists."""

    @abstractmethod
    def get_video(self, video_id: str) -> Video | None:
        """Retrieve a video by id, including caption chunks. Returns None if not found."""

    @abstractmethod
    def list_videos(self, course_id: str | None = None) -> list[Video]:
        """List videos in playlist order, optionally scoped to one course.

        Caption chunks are left out; use get_video() for the full record.
        """

    @abstractmethod
    def delete_video(self, video_id: str) -> None:
        """Remove a video. No-op if it does not exist."""

    @abstractmethod
    def exists(self, video_id: str) -> bool:
        """Check whether a video with the given id is in storage."""

    @abstractmethod
    def update_video_progress(self, video_id: str, current_time: float, duration: float) -> Video:
        """Record the latest playback position.

        Raises:
            VideoNotFoundError: If the video is not in storage.
        """

    @abstractmethod
    def mark_video_complete(self, video_id: str, completed: bool = True) -> Video:
        """Set or clear the completion flag.

        Raises:
            VideoNotFoundError: If the video is not in storage.
        """
