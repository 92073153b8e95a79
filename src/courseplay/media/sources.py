"""SourceDescriptor: the single outcome of resolving a video.

A tagged union of three variants. Playback code matches on the variant
once at load time and never sniffs the video record again.
"""

from dataclasses import dataclass

from courseplay.media.blobs import MediaURL
from courseplay.media.remote import RemoteTarget


@dataclass(frozen=True)
class LocalSource:
    """Local bytes behind a transient URL the holder must release."""

    media_url: MediaURL
    origin: str  # "handle", "index", "root" or "name"

    def release(self) -> None:
        self.media_url.release()


@dataclass(frozen=True)
class RemoteSource:
    """A remote embed; no permission or release involved."""

    target: RemoteTarget

    @property
    def url(self) -> str:
        return self.target.url

    def release(self) -> None:
        pass


@dataclass(frozen=True)
class NeedsFolderAccess:
    """The bytes are not reachable in this session; the user must pick the folder again."""

    folder_name: str | None = None

    def release(self) -> None:
        pass


SourceDescriptor = LocalSource | RemoteSource | NeedsFolderAccess
