"""In-memory index of files delivered by bulk folder picks."""

import logging

from courseplay.media.handles import PickedFile

logger = logging.getLogger(__name__)


class FallbackFileIndex:
    """Maps a course folder name to the flat list of files picked for it.

    Lookups scan the list, so results do not depend on insertion order.
    Caching a folder replaces its previous entry wholesale.
    """

    def __init__(self) -> None:
        self._files: dict[str, list[PickedFile]] = {}

    def cache(self, folder_name: str, files: list[PickedFile]) -> None:
        self._files[folder_name] = list(files)
        logger.info("Cached %d file(s) for folder %r", len(files), folder_name)

    def get(self, folder_name: str) -> list[PickedFile] | None:
        return self._files.get(folder_name)

    def find_file_by_path(self, folder_name: str, relative_path: str) -> PickedFile | None:
        """Find a file by its exact folder-relative path."""
        files = self._files.get(folder_name)
        if not files:
            return None
        return next((f for f in files if f.relative_path == relative_path), None)

    def find_file_by_name(self, folder_name: str, file_name: str) -> PickedFile | None:
        """Find a file by bare name, for legacy records without a relative path."""
        files = self._files.get(folder_name)
        if not files:
            return None
        suffix = "/" + file_name
        return next(
            (f for f in files if f.name == file_name or f.relative_path.endswith(suffix)),
            None,
        )

    def clear(self) -> None:
        self._files.clear()

    def __contains__(self, folder_name: str) -> bool:
        return folder_name in self._files

    def __len__(self) -> int:
        return len(self._files)
