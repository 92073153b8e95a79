"""SQLite implementation of the library repository."""

import json
import sqlite3
from datetime import datetime, timezone

from courseplay.config import settings
from courseplay.media.handles import LocalFileHandle
from courseplay.models import CaptionChunk, Course, Video
from courseplay.storage.repository import LibraryRepository, VideoNotFoundError


class SQLiteLibraryRepository(LibraryRepository):
    """SQLite-backed course and video storage.

    Implements LibraryRepository using stdlib sqlite3. Caption chunks
    live in a JSON column. File handles cannot be stored as such, so a
    LocalFileHandle is persisted as its path and rebuilt on load.
    """

    _CREATE_COURSES = """
        CREATE TABLE IF NOT EXISTS courses (
            id             TEXT PRIMARY KEY,
            title          TEXT NOT NULL,
            original_title TEXT DEFAULT '',
            added_at       TEXT NOT NULL
        )
    """

    _CREATE_VIDEOS = """
        CREATE TABLE IF NOT EXISTS videos (
            id                    TEXT PRIMARY KEY,
            course_id             TEXT,
            title                 TEXT NOT NULL,
            module                TEXT DEFAULT '',
            sort_order            INTEGER DEFAULT 0,
            duration              REAL DEFAULT 0.0,
            youtube_id            TEXT,
            drive_file_id         TEXT,
            url                   TEXT,
            file_path             TEXT,
            relative_path         TEXT,
            file_name             TEXT,
            file_size             INTEGER DEFAULT 0,
            last_watched_position REAL DEFAULT 0.0,
            last_watched_at       TEXT,
            watch_progress        REAL DEFAULT 0.0,
            watch_count           INTEGER DEFAULT 0,
            is_completed          INTEGER DEFAULT 0,
            completed_at          TEXT,
            caption_chunks        TEXT DEFAULT '[]'
        )
    """

    def __init__(self, db_path: str | None = None) -> None:
        """Initialize the repository.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        self._db_path = db_path or str(settings.db_path)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._init_db()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.execute(self._CREATE_COURSES)
        self._conn.execute(self._CREATE_VIDEOS)
        self._conn.commit()

    # --- courses ---

    def save_course(self, course: Course) -> None:
        sql = """
            INSERT INTO courses (id, title, original_title, added_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                original_title = excluded.original_title
        """
        self._conn.execute(sql, (
            course.id,
            course.title,
            course.original_title,
            course.added_at.isoformat(),
        ))
        self._conn.commit()

    def get_course(self, course_id: str) -> Course | None:
        row = self._conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
        if row is None:
            return None
        return Course(**dict(row))

    def list_courses(self) -> list[Course]:
        rows = self._conn.execute("SELECT * FROM courses ORDER BY added_at DESC").fetchall()
        return [Course(**dict(row)) for row in rows]

    def delete_course(self, course_id: str) -> None:
        self._conn.execute("DELETE FROM videos WHERE course_id = ?", (course_id,))
        self._conn.execute("DELETE FROM courses WHERE id = ?", (course_id,))
        self._conn.commit()

    # --- videos ---

    def save_video(self, video: Video) -> None:
        """Persist a video to storage. Upserts if the id already exists."""
        sql = """
            INSERT INTO videos (
                id, course_id, title, module, sort_order, duration,
                youtube_id, drive_file_id, url, file_path, relative_path,
                file_name, file_size, last_watched_position, last_watched_at,
                watch_progress, watch_count, is_completed, completed_at,
                caption_chunks
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                course_id = excluded.course_id,
                title = excluded.title,
                module = excluded.module,
                sort_order = excluded.sort_order,
                duration = excluded.duration,
                youtube_id = excluded.youtube_id,
                drive_file_id = excluded.drive_file_id,
                url = excluded.url,
                file_path = excluded.file_path,
                relative_path = excluded.relative_path,
                file_name = excluded.file_name,
                file_size = excluded.file_size,
                last_watched_position = excluded.last_watched_position,
                last_watched_at = excluded.last_watched_at,
                watch_progress = excluded.watch_progress,
                watch_count = excluded.watch_count,
                is_completed = excluded.is_completed,
                completed_at = excluded.completed_at,
                caption_chunks = excluded.caption_chunks
        """
        handle_path = getattr(video.file_handle, "path", None)
        self._conn.execute(sql, (
            video.id,
            video.course_id,
            video.title,
            video.module,
            video.order,
            video.duration,
            video.youtube_id,
            video.drive_file_id,
            video.url,
            str(handle_path) if handle_path is not None else None,
            video.relative_path,
            video.file_name,
            video.file_size,
            video.last_watched_position,
            _iso(video.last_watched_at),
            video.watch_progress,
            video.watch_count,
            int(video.is_completed),
            _iso(video.completed_at),
            json.dumps([chunk.model_dump() for chunk in video.caption_chunks]),
        ))
        self._conn.commit()

    def get_video(self, video_id: str) -> Video | None:
        """Retrieve a video by id with caption chunks. Returns None if not found."""
        row = self._conn.execute("SELECT * FROM videos WHERE id = ?", (video_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_video(row, include_captions=True)

    def list_videos(self, course_id: str | None = None) -> list[Video]:
        """List videos in playlist order — no caption chunks for efficiency."""
        if course_id is None:
            sql = "SELECT * FROM videos ORDER BY course_id, module, sort_order"
            rows = self._conn.execute(sql).fetchall()
        else:
            sql = "SELECT * FROM videos WHERE course_id = ? ORDER BY module, sort_order"
            rows = self._conn.execute(sql, (course_id,)).fetchall()
        return [self._row_to_video(row, include_captions=False) for row in rows]

    def delete_video(self, video_id: str) -> None:
        self._conn.execute("DELETE FROM videos WHERE id = ?", (video_id,))
        self._conn.commit()

    def exists(self, video_id: str) -> bool:
        sql = "SELECT 1 FROM videos WHERE id = ? LIMIT 1"
        return self._conn.execute(sql, (video_id,)).fetchone() is not None

    def update_video_progress(self, video_id: str, current_time: float, duration: float) -> Video:
        """Record position, fractional progress and watch count."""
        video = self.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")

        # A view is counted when playback starts from the very beginning
        if video.last_watched_position == 0:
            video.watch_count += 1
        video.watch_progress = current_time / duration if duration > 0 else 0.0
        video.last_watched_position = current_time
        video.last_watched_at = datetime.now(timezone.utc)
        if duration > 0:
            video.duration = duration

        self.save_video(video)
        return video

    def mark_video_complete(self, video_id: str, completed: bool = True) -> Video:
        video = self.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")

        video.is_completed = completed
        video.completed_at = datetime.now(timezone.utc) if completed else None
        if completed:
            video.watch_progress = 1.0

        self.save_video(video)
        return video

    @staticmethod
    def _row_to_video(row: sqlite3.Row, *, include_captions: bool) -> Video:
        """Convert a database row to a Video model.

        Args:
            row: SQLite row with all video columns.
            include_captions: If False, caption chunks are left empty to
                              avoid unnecessary deserialization.
        """
        chunks = []
        if include_captions:
            chunks = [CaptionChunk(**c) for c in json.loads(row["caption_chunks"])]

        return Video(
            id=row["id"],
            course_id=row["course_id"],
            title=row["title"],
            module=row["module"],
            order=row["sort_order"],
            duration=row["duration"],
            youtube_id=row["youtube_id"],
            drive_file_id=row["drive_file_id"],
            url=row["url"],
            file_handle=LocalFileHandle(row["file_path"]) if row["file_path"] else None,
            relative_path=row["relative_path"],
            file_name=row["file_name"],
            file_size=row["file_size"],
            last_watched_position=row["last_watched_position"],
            last_watched_at=row["last_watched_at"],
            watch_progress=row["watch_progress"],
            watch_count=row["watch_count"],
            is_completed=bool(row["is_completed"]),
            completed_at=row["completed_at"],
            caption_chunks=chunks,
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
