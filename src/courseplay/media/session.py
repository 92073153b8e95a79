"""Process-scoped media session shared by every video in a run."""

import json
import logging
from pathlib import Path

from courseplay.config import settings
from courseplay.media.blobs import BlobRegistry
from courseplay.media.fallback import FallbackFileIndex
from courseplay.media.handles import DirectoryHandle, HandleError, PickedFolder
from courseplay.media.permissions import PermissionCache

logger = logging.getLogger(__name__)


class MediaSession:
    """Holds the session caches that the resolver reads from.

    Created once at session start and torn down with clear(). Only the
    root folder's display name survives a restart; the handle itself and
    every grant have to be re-established in each session.
    """

    def __init__(self, state_path: Path | None = None) -> None:
        self.files = FallbackFileIndex()
        self.permissions = PermissionCache()
        self.blobs = BlobRegistry()
        self._state_path = state_path or settings.session_path
        self._root: DirectoryHandle | None = None
        self._root_name: str | None = None

    # --- fallback files ---

    def cache_picked_folder(self, picked: PickedFolder) -> None:
        self.files.cache(picked.folder_name, picked.files)

    # --- root folder capability ---

    def set_root_folder(self, handle: DirectoryHandle, name: str | None = None) -> None:
        self._root = handle
        self._root_name = name or handle.name
        self._remember_name(self._root_name)
        logger.info("Root folder set: %s", self._root_name)

    def clear_root_folder(self) -> None:
        self._root = None
        self._root_name = None
        self._remember_name(None)

    @property
    def root_folder(self) -> DirectoryHandle | None:
        return self._root

    @property
    def has_root_folder_access(self) -> bool:
        return self._root is not None

    @property
    def root_folder_name(self) -> str | None:
        """Name of the root folder, falling back to the one remembered from a past run."""
        return self._root_name or self._load_name()

    async def find_course_folder(self, folder_name: str) -> DirectoryHandle | None:
        """Locate a course folder directly under the root folder."""
        if self._root is None:
            return None
        try:
            return await self._root.get_directory(folder_name)
        except HandleError:
            pass

        try:
            for entry in await self._root.entries():
                if getattr(entry, "kind", None) == "directory" and entry.name == folder_name:
                    return entry
        except HandleError as e:
            logger.warning("Error searching root folder: %s", e)
        return None

    def clear(self) -> None:
        """Tear down all session state."""
        self.files.clear()
        self.permissions.clear()
        self.blobs.clear()
        self._root = None
        self._root_name = None

    # --- remembered folder identity ---

    def _remember_name(self, name: str | None) -> None:
        try:
            if name is None:
                self._state_path.unlink(missing_ok=True)
                return
            self._state_path.parent.mkdir(parents=True, exist_ok=True)
            self._state_path.write_text(json.dumps({"root_folder_name": name}), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not persist root folder name: %s", e)

    def _load_name(self) -> str | None:
        try:
            data = json.loads(self._state_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        return data.get("root_folder_name")
