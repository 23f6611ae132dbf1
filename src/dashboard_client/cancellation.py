"""
Cancellation handles for in-flight requests.

Every outbound call gets a fresh handle stored under its identity. A new
handle under the same identity replaces the previous one without
cancelling it, so only the latest of two identical concurrent calls is
reachable through ``cancel_by_key``.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from .request_key import base_request_key

logger = logging.getLogger("dashboard_client.cancellation")

MANUAL_CANCEL_REASON = "request cancelled manually"
CANCEL_ALL_REASON = "all requests cancelled"


class CancellationHandle:
    """Cancels the task of one in-flight request."""

    def __init__(
        self,
        key: str,
        method: str,
        url: str,
        task: Optional["asyncio.Task"] = None,
    ) -> None:
        self.key = key
        self.method = method.upper()
        self.url = url
        self.task = task
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Signal the transport task to abort. Returns False if it already settled."""
        if self.reason is None:
            self.reason = reason or MANUAL_CANCEL_REASON
        if self.task is None or self.task.done():
            return False
        return self.task.cancel(self.reason)

    def __repr__(self) -> str:
        return f"CancellationHandle(key={self.key!r}, cancelled={self.cancelled})"


class CancellationRegistry:
    """Tracks one cancellation handle per in-flight request identity."""

    def __init__(self) -> None:
        self._handles: Dict[str, CancellationHandle] = {}

    def create(
        self,
        key: str,
        method: str,
        url: str,
        task: Optional["asyncio.Task"] = None,
    ) -> CancellationHandle:
        """Issue a handle for ``key``, replacing any handle already stored there."""
        handle = CancellationHandle(key, method, url, task)
        if key in self._handles:
            logger.debug(f"CancellationRegistry.create: replacing handle for {key}")
        self._handles[key] = handle
        return handle

    def get(self, key: str) -> Optional[CancellationHandle]:
        return self._handles.get(key)

    def discard(self, key: str, handle: Optional[CancellationHandle] = None) -> bool:
        """Forget the handle for ``key``; a no-op when it is already gone."""
        current = self._handles.get(key)
        if current is None:
            return False
        if handle is not None and current is not handle:
            return False
        del self._handles[key]
        return True

    def cancel_by_key(self, method: str, url: str, reason: Optional[str] = None) -> int:
        """
        Cancel every tracked request sent with ``method`` to ``url``.

        Matches on method and url, so requests that carry a payload are
        cancelled too. Returns the number of handles cancelled.
        """
        method = method.upper()
        matched: List[CancellationHandle] = [
            handle
            for handle in self._handles.values()
            if handle.method == method and handle.url == url
        ]
        for handle in matched:
            handle.cancel(reason or MANUAL_CANCEL_REASON)
            self._handles.pop(handle.key, None)

        logger.debug(
            f"CancellationRegistry.cancel_by_key: {base_request_key(method, url)} "
            f"cancelled={len(matched)}"
        )
        return len(matched)

    def cancel_all(self, reason: Optional[str] = None) -> int:
        """Cancel every tracked handle and empty the registry."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel(reason or CANCEL_ALL_REASON)
        logger.debug(f"CancellationRegistry.cancel_all: cancelled={len(handles)}")
        return len(handles)

    def keys(self) -> List[str]:
        return list(self._handles)

    def size(self) -> int:
        return len(self._handles)

    def clear(self) -> None:
        """Drop every handle without cancelling it."""
        self._handles.clear()
