"""Media source resolution — maps a video record to playable bytes."""

import logging

from courseplay.media.handles import HandleError
from courseplay.media.remote import remote_target
from courseplay.media.session import MediaSession
from courseplay.media.sources import LocalSource, NeedsFolderAccess, RemoteSource, SourceDescriptor
from courseplay.models import Video
from courseplay.storage.repository import LibraryRepository

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when a file handle exists but read access was refused."""


class MediaLoadError(Exception):
    """Raised when a granted local source cannot be read."""


class MediaSourceResolver:
    """Resolves a video to a SourceDescriptor — tiered strategy.

    Tier 1: Remote embed (YouTube / Drive id or URL) — no checks
    Tier 2: Direct file handle — permission verified, re-grant requested
    Tier 3: Relative path — fallback index, then root folder traversal
    Tier 4: Bare file name — fallback index only
    Otherwise the folder has to be picked again.

    Needing folder access is an ordinary return value. Only a refused
    permission and real I/O failures are raised.
    """

    def __init__(self, session: MediaSession, repository: LibraryRepository) -> None:
        self._session = session
        self._repo = repository

    @property
    def session(self) -> MediaSession:
        return self._session

    async def resolve(self, video: Video, course_id: str | None = None) -> SourceDescriptor:
        """Resolve a video to exactly one source descriptor.

        Args:
            video: The video record to play.
            course_id: Owning course; defaults to video.course_id.

        Returns:
            RemoteSource, LocalSource (caller must release it) or NeedsFolderAccess.

        Raises:
            PermissionDeniedError: If the video's file handle was refused.
            MediaLoadError: If a granted file can no longer be read.
        """
        course_id = course_id or video.course_id

        # Tier 1: Remote embed
        target = remote_target(video)
        if target is not None:
            logger.info("Resolved %s as remote %s", video.id, target.provider)
            return RemoteSource(target)

        # Tier 2: capability handle is authoritative, never falls through
        if video.file_handle is not None:
            if not await self._session.permissions.verify(video.file_handle):
                raise PermissionDeniedError(
                    f"Permission denied for {video.file_handle.name}. Grant access and try again."
                )
            return await self._open_local(video.file_handle, origin="handle")

        # Tier 3: Relative path
        if video.relative_path:
            folder_name = self._course_folder_name(course_id) or video.relative_path.split("/")[0]

            picked = self._session.files.find_file_by_path(folder_name, video.relative_path)
            if picked is not None:
                return self._local(picked, origin="index")

            if self._session.has_root_folder_access:
                source = await self._open_through_root(folder_name, video.relative_path)
                if source is not None:
                    return self._local(source, origin="root")

            logger.info("No reachable file for %s, folder %r needed", video.id, folder_name)
            return NeedsFolderAccess(folder_name)

        # Tier 4: Bare file name (legacy records)
        if video.file_name:
            folder_name = self._course_folder_name(course_id)
            if folder_name:
                picked = self._session.files.find_file_by_name(folder_name, video.file_name)
                if picked is not None:
                    return self._local(picked, origin="name")
            return NeedsFolderAccess(folder_name)

        return NeedsFolderAccess()

    def _course_folder_name(self, course_id: str | None) -> str | None:
        if not course_id:
            return None
        course = self._repo.get_course(course_id)
        if course is None:
            return None
        return course.original_title or None

    async def _open_local(self, handle, *, origin: str) -> LocalSource:
        """Dereference a granted handle and allocate a transient URL for it."""
        try:
            source = await handle.get_file()
        except (HandleError, OSError) as e:
            raise MediaLoadError(
                "Failed to load video file. The file may have been moved or deleted."
            ) from e
        return self._local(source, origin=origin)

    def _local(self, source, *, origin: str) -> LocalSource:
        media_url = self._session.blobs.create(source)
        logger.info("Resolved local source via %s: %s", origin, source.name)
        return LocalSource(media_url=media_url, origin=origin)

    async def _open_through_root(self, folder_name: str, relative_path: str):
        """Walk root → course folder → path segments → leaf file.

        Any failure along the way means "not found" and yields None.
        """
        try:
            current = await self._session.find_course_folder(folder_name)
            if current is None:
                return None

            parts = relative_path.split("/")[1:]
            if not parts:
                return None
            for segment in parts[:-1]:
                current = await current.get_directory(segment)
            handle = await current.get_file(parts[-1])
            return await handle.get_file()
        except Exception as e:
            logger.warning("Could not access %s through root folder: %s", relative_path, e)
            return None
