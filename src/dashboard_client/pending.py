"""
In-flight request tracking.

While a request is outstanding, callers issuing the same identity join
its task instead of starting a second transport call.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cancellation import CancellationHandle


@dataclass
class PendingEntry:
    """In-flight request tracker."""

    key: str
    """Request identity that produced the task."""

    task: "asyncio.Task"
    """Task that settles with the response or an ApiError."""

    handle: Optional[CancellationHandle] = None
    """Cancellation handle issued for the task; carries the cancel reason."""

    subscribers: int = 1
    """Number of callers awaiting this task."""

    started_at: float = field(default_factory=time.time)
    """When the request was issued (Unix timestamp)."""


class PendingRequestStore(ABC):
    """Store interface for in-flight requests."""

    @abstractmethod
    def get(self, key: str) -> Optional[PendingEntry]:
        """Get an in-flight request by identity."""
        pass

    @abstractmethod
    def set(self, key: str, entry: PendingEntry) -> None:
        """Register an in-flight request."""
        pass

    @abstractmethod
    def delete(self, key: str, task: Optional["asyncio.Task"] = None) -> bool:
        """Remove an in-flight request, optionally only if it still holds ``task``."""
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        """Check if a request is in-flight."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Get current number of in-flight requests."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Identities currently in flight."""
        pass

    @abstractmethod
    def entries(self) -> List[PendingEntry]:
        """Entries currently in flight."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all in-flight requests."""
        pass


class MemoryPendingRequestStore(PendingRequestStore):
    """
    In-memory store of in-flight requests, one per client instance.
    """

    def __init__(self) -> None:
        self._in_flight: Dict[str, PendingEntry] = {}

    def get(self, key: str) -> Optional[PendingEntry]:
        return self._in_flight.get(key)

    def set(self, key: str, entry: PendingEntry) -> None:
        self._in_flight[key] = entry

    def delete(self, key: str, task: Optional["asyncio.Task"] = None) -> bool:
        entry = self._in_flight.get(key)
        if entry is None:
            return False
        # A newer call may already own the key
        if task is not None and entry.task is not task:
            return False
        del self._in_flight[key]
        return True

    def has(self, key: str) -> bool:
        return key in self._in_flight

    def size(self) -> int:
        return len(self._in_flight)

    def keys(self) -> List[str]:
        return list(self._in_flight)

    def entries(self) -> List[PendingEntry]:
        return list(self._in_flight.values())

    def clear(self) -> None:
        self._in_flight.clear()


def create_memory_pending_store() -> MemoryPendingRequestStore:
    """Create a memory pending-request store."""
    return MemoryPendingRequestStore()
