"""Capability interfaces for local media and their filesystem implementations.

Two shapes of local access exist:

* Handles (``FileHandle`` / ``DirectoryHandle``) carry a read capability that
  must be checked and may need re-granting. Every operation is async and
  may fail.
* Picked files (``PickedFile``) come from a bulk folder pick. They carry no
  permission model and are readable for as long as the session lasts.
"""

import asyncio
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class HandleError(Exception):
    """Raised when a handle cannot be traversed or opened."""


class PermissionState(str, Enum):
    """Result of a permission query or request."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class ByteSource(Protocol):
    """Anything that can hand over the current bytes of a media file."""

    name: str

    def read_bytes(self) -> bytes: ...


class FileHandle(Protocol):
    """A permission-gated handle to a single file."""

    name: str

    async def query_permission(self) -> PermissionState: ...

    async def request_permission(self) -> PermissionState: ...

    async def get_file(self) -> ByteSource: ...


class DirectoryHandle(Protocol):
    """A permission-gated handle to a folder."""

    name: str

    async def query_permission(self) -> PermissionState: ...

    async def request_permission(self) -> PermissionState: ...

    async def entries(self) -> list["FileHandle | DirectoryHandle"]: ...

    async def get_directory(self, name: str) -> "DirectoryHandle": ...

    async def get_file(self, name: str) -> FileHandle: ...


def natural_sort_key(s: str) -> list:
    """Sort strings naturally (e.g. '2' before '10')."""
    return [int(text) if text.isdigit() else text.lower() for text in re.split(r"(\d+)", s)]


@dataclass
class PickedFile:
    """A file delivered by a bulk folder pick.

    ``relative_path`` always starts with the picked folder's name, e.g.
    ``"Course/Module 1/01-intro.mp4"``.
    """

    path: Path
    relative_path: str

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass
class PickedFolder:
    """Result of a bulk folder pick: the folder name plus every file under it."""

    folder_name: str
    files: list[PickedFile] = field(default_factory=list)


def pick_folder_files(folder: Path) -> PickedFolder:
    """Walk a folder once and return all files with folder-relative paths.

    Raises:
        HandleError: If the path is not a readable directory.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise HandleError(f"Not a directory: {folder}")

    files = []
    for path in sorted(folder.rglob("*"), key=lambda p: natural_sort_key(str(p))):
        if path.is_file():
            rel = path.relative_to(folder).as_posix()
            files.append(PickedFile(path=path, relative_path=f"{folder.name}/{rel}"))

    logger.info("Picked %d file(s) from %s", len(files), folder)
    return PickedFolder(folder_name=folder.name, files=files)


def _permission_for(path: Path) -> PermissionState:
    return PermissionState.GRANTED if os.access(path, os.R_OK) else PermissionState.PROMPT


class LocalFileHandle:
    """FileHandle backed by a path on the local filesystem."""

    kind = "file"

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    async def query_permission(self) -> PermissionState:
        return _permission_for(self.path)

    async def request_permission(self) -> PermissionState:
        if _permission_for(self.path) is PermissionState.GRANTED:
            return PermissionState.GRANTED
        return PermissionState.DENIED

    async def get_file(self) -> PickedFile:
        """Dereference the handle into its current bytes provider.

        Raises:
            HandleError: If the file has been moved or deleted.
        """
        exists = await asyncio.to_thread(self.path.is_file)
        if not exists:
            raise HandleError(f"File not found: {self.path}")
        return PickedFile(path=self.path, relative_path=self.path.name)

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self.path)!r})"


class LocalDirectoryHandle:
    """DirectoryHandle backed by a folder on the local filesystem."""

    kind = "directory"

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    async def query_permission(self) -> PermissionState:
        return _permission_for(self.path)

    async def request_permission(self) -> PermissionState:
        if _permission_for(self.path) is PermissionState.GRANTED:
            return PermissionState.GRANTED
        return PermissionState.DENIED

    async def entries(self) -> list["LocalFileHandle | LocalDirectoryHandle"]:
        """Enumerate immediate children, naturally sorted by name.

        Raises:
            HandleError: If the folder cannot be listed.
        """
        try:
            children = await asyncio.to_thread(lambda: list(self.path.iterdir()))
        except OSError as e:
            raise HandleError(f"Cannot list {self.path}: {e}") from e

        result = []
        for child in sorted(children, key=lambda p: natural_sort_key(p.name)):
            if child.is_dir():
                result.append(LocalDirectoryHandle(child))
            elif child.is_file():
                result.append(LocalFileHandle(child))
        return result

    async def get_directory(self, name: str) -> "LocalDirectoryHandle":
        child = self.path / name
        if not await asyncio.to_thread(child.is_dir):
            raise HandleError(f"No folder named {name!r} in {self.path}")
        return LocalDirectoryHandle(child)

    async def get_file(self, name: str) -> LocalFileHandle:
        child = self.path / name
        if not await asyncio.to_thread(child.is_file):
            raise HandleError(f"No file named {name!r} in {self.path}")
        return LocalFileHandle(child)

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self.path)!r})"
