"""Tracking of read capabilities granted during the current session."""

import logging

from courseplay.media.handles import PermissionState

logger = logging.getLogger(__name__)


class PermissionCache:
    """Remembers which handles were granted read access in this session.

    Grants are never persisted: the OS-level capability does not survive a
    restart, so a new session starts empty. An abandoned or failing prompt
    is treated exactly like a denial.
    """

    def __init__(self) -> None:
        self._granted: dict[int, object] = {}

    def is_granted(self, handle: object) -> bool:
        return id(handle) in self._granted

    def forget(self, handle: object) -> None:
        self._granted.pop(id(handle), None)

    def clear(self) -> None:
        self._granted.clear()

    def __len__(self) -> int:
        return len(self._granted)

    async def request(self, handle) -> bool:
        """Ask for (re-)grant of read access.

        Returns:
            True only on an explicit grant.
        """
        request = getattr(handle, "request_permission", None)
        if request is None:
            return self._record(handle, PermissionState.GRANTED)
        try:
            state = await request()
        except Exception as e:
            logger.warning("Permission request for %r failed: %s", getattr(handle, "name", handle), e)
            state = PermissionState.DENIED
        return self._record(handle, state)

    async def verify(self, handle) -> bool:
        """Check a handle is still readable, prompting for re-grant if needed.

        Handles with no permission model at all count as granted. A query
        that is unavailable or raises falls through to a request.
        """
        query = getattr(handle, "query_permission", None)
        if query is None and getattr(handle, "request_permission", None) is None:
            return self._record(handle, PermissionState.GRANTED)

        if query is not None:
            try:
                if await query() == PermissionState.GRANTED:
                    return self._record(handle, PermissionState.GRANTED)
            except Exception as e:
                logger.warning("Permission query for %r failed: %s", getattr(handle, "name", handle), e)

        return await self.request(handle)

    def _record(self, handle, state) -> bool:
        granted = state == PermissionState.GRANTED
        if granted:
            self._granted[id(handle)] = handle
        else:
            self.forget(handle)
        return granted
