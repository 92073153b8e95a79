"""Core business logic for courseplay."""

import logging
import re
from pathlib import Path

from courseplay.captions import CaptionSynchronizer
from courseplay.config import Settings, settings
from courseplay.ingestion.youtube import YouTubeExtractor
from courseplay.media.handles import DirectoryHandle, PickedFolder, pick_folder_files
from courseplay.media.remote import parse_drive_id, parse_youtube_id
from courseplay.media.resolver import MediaSourceResolver
from courseplay.media.session import MediaSession
from courseplay.media.sources import SourceDescriptor
from courseplay.models import Course, Video
from courseplay.playback.controller import MediaTransport, PlaybackSessionController
from courseplay.storage.repository import CourseNotFoundError, LibraryRepository, VideoNotFoundError
from courseplay.transcription import TranscriptionClient

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = ("mp4", "webm", "mov", "ogg", "avi", "mkv")
ROOT_MODULE = "Main Content"

__all__ = [
    "AmbiguousVideoError",
    "CourseNotFoundError",
    "CourseService",
    "VideoAlreadyExistsError",
    "VideoNotFoundError",
]


class VideoAlreadyExistsError(Exception):
    """Raised when attempting to add a video that is already in the library."""


class AmbiguousVideoError(Exception):
    """Raised when a query matches multiple videos and cannot be disambiguated."""


def is_video_file(name: str) -> bool:
    return "." in name and name.rsplit(".", 1)[1].lower() in VIDEO_EXTENSIONS


def clean_course_title(name: str) -> str:
    if not name:
        return "Untitled Course"
    cleaned = re.sub(r"[_-]+", " ", re.sub(r"^[\d\s._-]+", "", name)).strip()
    return cleaned or name


def clean_module_title(name: str) -> str:
    if not name:
        return "Untitled Module"
    cleaned = re.sub(r"[_-]+", " ", re.sub(r"^\d+[\s._-]*", "", name)).strip()
    return cleaned or name


def clean_video_title(name: str) -> str:
    if not name:
        return "Untitled Video"
    stem = re.sub(r"\.[^.]+$", "", name)
    cleaned = re.sub(r"[_-]+", " ", re.sub(r"^\d+[\s._-]*", "", stem)).strip()
    return cleaned or name


class CourseService:
    """Core service layer — single orchestration point for courseplay operations.

    The CLI is a thin wrapper over this class. Dependencies are injected
    via constructor for testability.
    """

    def __init__(
        self,
        repository: LibraryRepository,
        session: MediaSession | None = None,
        extractor: YouTubeExtractor | None = None,
        config: Settings | None = None,
    ) -> None:
        self._repo = repository
        self._session = session or MediaSession()
        self._extractor = extractor or YouTubeExtractor()
        self._settings = config or settings
        self._resolver = MediaSourceResolver(self._session, self._repo)

        self._settings.ensure_dirs()

    @property
    def session(self) -> MediaSession:
        return self._session

    @property
    def resolver(self) -> MediaSourceResolver:
        return self._resolver

    # --- import ---

    def add_course_from_folder(self, folder: Path | str) -> tuple[Course, list[Video]]:
        """Import every video under a folder as one course.

        Videos directly in the folder go to a "Main Content" module;
        each first-level sub-folder becomes a module. The picked files are
        also cached so the course plays without re-picking this session.

        Raises:
            HandleError: If the folder cannot be read.
            ValueError: If the folder holds no video files.
        """
        picked = pick_folder_files(Path(folder))
        files = [f for f in picked.files if is_video_file(f.name)]
        if not files:
            raise ValueError(f"No video files found in {picked.folder_name}")

        course = Course(title=clean_course_title(picked.folder_name), original_title=picked.folder_name)
        self._repo.save_course(course)

        videos = []
        order_in_module: dict[str, int] = {}
        for f in files:
            parts = f.relative_path.split("/")
            module = clean_module_title(parts[1]) if len(parts) > 2 else ROOT_MODULE
            order = order_in_module.get(module, 0)
            order_in_module[module] = order + 1

            video = Video(
                course_id=course.id,
                title=clean_video_title(f.name),
                module=module,
                order=order,
                relative_path=f.relative_path,
                file_name=f.name,
                file_size=f.size,
            )
            self._repo.save_video(video)
            videos.append(video)

        self._session.cache_picked_folder(picked)
        logger.info("Course added: %s — %d video(s)", course.title, len(videos))
        return course, videos

    def add_remote_video(self, url: str, course_id: str | None = None) -> Video:
        """Add a YouTube or Google Drive video to the library.

        YouTube videos are imported with metadata and captions; Drive
        links are stored as-is.

        Raises:
            ValueError: If the URL is neither YouTube nor Google Drive.
            ExtractionError: If YouTube extraction fails.
            VideoAlreadyExistsError: If the video is already in the library.
            CourseNotFoundError: If course_id is given but unknown.
        """
        if course_id is not None and self._repo.get_course(course_id) is None:
            raise CourseNotFoundError(f"Course not found: {course_id}")

        youtube_id = parse_youtube_id(url)
        drive_id = None if youtube_id else parse_drive_id(url)
        if youtube_id is None and drive_id is None:
            raise ValueError(f"Not a YouTube or Google Drive URL: {url}")

        for existing in self._repo.list_videos():
            if (youtube_id and existing.youtube_id == youtube_id) or (
                drive_id and existing.drive_file_id == drive_id
            ):
                raise VideoAlreadyExistsError(
                    f"Video already in library: {existing.id}. "
                    "Use remove_video() first to re-import."
                )

        if youtube_id:
            logger.info("Importing YouTube video: %s", url)
            video = self._extractor.extract(url, course_id=course_id)
        else:
            video = Video(course_id=course_id, title=f"Drive video {drive_id}", drive_file_id=drive_id, url=url)

        if course_id is not None:
            video.order = len(self._repo.list_videos(course_id))
        self._repo.save_video(video)
        logger.info("Video added: %s — %s", video.id, video.title)
        return video

    # --- queries ---

    def list_courses(self) -> list[Course]:
        return self._repo.list_courses()

    def list_videos(self, course_id: str | None = None) -> list[Video]:
        """List videos in playlist order (metadata only, no captions)."""
        return self._repo.list_videos(course_id)

    def get_info(self, video_id: str) -> Video:
        """Get the full video record including caption chunks.

        Raises:
            VideoNotFoundError: If the video is not in the library.
        """
        video = self._repo.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")
        return video

    def resolve_video(self, query: str) -> Video:
        """Smart video lookup — tiered resolution strategy.

        Tier 1: Exact video ID match
        Tier 2: Numeric index from list (playlist order)
        Tier 3: Case-insensitive substring match on title

        Raises:
            VideoNotFoundError: If no video can be resolved.
            AmbiguousVideoError: If multiple videos match.
        """
        # Tier 1: Exact video ID
        video = self._repo.get_video(query)
        if video is not None:
            return video

        # Tier 2: Numeric index
        if query.isdigit():
            videos = self._repo.list_videos()
            idx = int(query) - 1  # 1-based for humans
            if 0 <= idx < len(videos):
                return self._repo.get_video(videos[idx].id)
            raise VideoNotFoundError(
                f"Index {query} out of range. Library has {len(videos)} video(s)."
            )

        # Tier 3: Substring match (case-insensitive)
        videos = self._repo.list_videos()
        q = query.lower()
        matches = [v for v in videos if q in v.title.lower()]

        if len(matches) == 1:
            return self._repo.get_video(matches[0].id)
        if len(matches) > 1:
            raise AmbiguousVideoError(
                f"Multiple videos match '{query}':\n"
                + "\n".join(f"  {i+1}. {v.title}" for i, v in enumerate(matches))
            )

        raise VideoNotFoundError(f"No video matching: {query}")

    # --- playback ---

    def cache_folder(self, folder: Path | str) -> PickedFolder:
        """Pick a folder into the session's fallback index."""
        picked = pick_folder_files(Path(folder))
        self._session.cache_picked_folder(picked)
        return picked

    def set_root_folder(self, handle: DirectoryHandle) -> None:
        self._session.set_root_folder(handle)

    async def resolve_source(self, video_id: str) -> SourceDescriptor:
        """Resolve a video to a source descriptor; the caller releases it.

        Raises:
            VideoNotFoundError: If the video is not in the library.
            PermissionDeniedError: If the video's file handle was refused.
            MediaLoadError: If a granted file can no longer be read.
        """
        video = self.get_info(video_id)
        return await self._resolver.resolve(video)

    def export_captions(self, video_id: str, fmt: str = "vtt") -> str:
        """Render a video's captions as WebVTT or SubRip text.

        Raises:
            VideoNotFoundError: If the video is not in the library.
            ValueError: If the format is unknown or there are no captions.
        """
        video = self.get_info(video_id)
        sync = CaptionSynchronizer(video.caption_chunks)
        if not sync:
            raise ValueError(f"No captions for video: {video_id}")
        return sync.export(fmt)

    async def transcribe_video(
        self,
        video_id: str,
        audio_samples: list[float],
        client: TranscriptionClient,
        player: PlaybackSessionController | None = None,
    ) -> Video:
        """Transcribe a video's audio and store the word-level captions.

        If `player` is showing the same video, its captions are swapped
        in place.

        Raises:
            VideoNotFoundError: If the video is not in the library.
            TranscriptionError: If the worker reports an error.
        """
        self.get_info(video_id)
        result = await client.transcribe(audio_samples)

        # Re-read so progress written while transcribing is kept
        video = self.get_info(video_id)
        video.caption_chunks = result.chunks
        self._repo.save_video(video)
        logger.info("Transcribed %s: %d caption chunk(s)", video_id, len(result.chunks))

        if player is not None and player.video is not None and player.video.id == video_id:
            player.set_caption_chunks(result.chunks)
        return video

    def update_progress(self, video_id: str, position: float, duration: float | None = None) -> Video:
        """Record a playback position; duration defaults to the stored one."""
        video = self.get_info(video_id)
        return self._repo.update_video_progress(
            video_id, position, duration if duration is not None else video.duration
        )

    def mark_complete(self, video_id: str, completed: bool = True) -> Video:
        return self._repo.mark_video_complete(video_id, completed)

    def remove_video(self, video_id: str) -> None:
        """Remove a video from the library.

        Raises:
            VideoNotFoundError: If the video is not in the library.
        """
        if not self._repo.exists(video_id):
            raise VideoNotFoundError(f"Video not found: {video_id}")
        self._repo.delete_video(video_id)
        logger.info("Video removed: %s", video_id)

    def create_player(self, transport: MediaTransport | None = None, **callbacks) -> PlaybackSessionController:
        """Build a playback controller bound to this service's session."""
        return PlaybackSessionController(
            self._resolver,
            self._repo,
            settings=self._settings,
            transport=transport,
            **callbacks,
        )
