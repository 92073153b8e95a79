"""Transient byte-access URLs for local media.

A ``MediaURL`` is allocated when a local source is resolved and must be
released exactly once when playback moves on. Reading from it, or
releasing it again, after release raises ``ReleasedSourceError``.
"""

import logging
from uuid import uuid4

from courseplay.media.handles import ByteSource

logger = logging.getLogger(__name__)


class ReleasedSourceError(Exception):
    """Raised when a transient media URL is used after it was released."""


class UnknownSourceError(Exception):
    """Raised when a URL was never allocated by this registry."""


class MediaURL:
    """A transient, releasable URL pointing at a local byte source."""

    def __init__(self, registry: "BlobRegistry", href: str, source: ByteSource) -> None:
        self._registry = registry
        self._href = href
        self._source = source
        self._released = False

    @property
    def href(self) -> str:
        if self._released:
            raise ReleasedSourceError(f"Media URL already released: {self._href}")
        return self._href

    @property
    def released(self) -> bool:
        return self._released

    @property
    def source(self) -> ByteSource:
        if self._released:
            raise ReleasedSourceError(f"Media URL already released: {self._href}")
        return self._source

    def read_bytes(self) -> bytes:
        return self.source.read_bytes()

    def release(self) -> None:
        """Revoke the URL. A second call is an error, not a no-op."""
        if self._released:
            raise ReleasedSourceError(f"Media URL already released: {self._href}")
        self._registry._revoke(self._href)
        self._released = True

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"MediaURL({self._href!r}, {state})"


class BlobRegistry:
    """Allocates and tracks transient media URLs for one session."""

    _SCHEME = "blob:courseplay/"

    def __init__(self) -> None:
        self._active: dict[str, ByteSource] = {}

    def create(self, source: ByteSource) -> MediaURL:
        href = f"{self._SCHEME}{uuid4()}"
        self._active[href] = source
        logger.debug("Allocated %s for %s", href, source.name)
        return MediaURL(self, href, source)

    def lookup(self, href: str) -> ByteSource:
        """Return the source behind an active URL.

        Raises:
            UnknownSourceError: If the URL is not active in this registry.
        """
        try:
            return self._active[href]
        except KeyError:
            raise UnknownSourceError(f"Unknown or released media URL: {href}") from None

    def _revoke(self, href: str) -> None:
        self._active.pop(href, None)
        logger.debug("Released %s", href)

    @property
    def active_count(self) -> int:
        return len(self._active)

    def clear(self) -> None:
        self._active.clear()
