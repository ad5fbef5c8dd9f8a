"""Counter store interfaces.

The window policy should depend on this abstraction (not the concrete
implementation) so we can swap storage backends later (e.g., Redis) with
minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass


@dataclass(frozen=True)
class ClientKey:
    """Identity + route composite used to namespace rate counters.

    Attributes:
        address: Attributed client address (or the "unknown" sentinel).
        route: Request path the counter applies to.
    """

    address: str
    route: str

    def __str__(self) -> str:
        return f"{self.address}:{self.route}"


@dataclass
class WindowCounter:
    """Request count for one client key within its current window.

    Attributes:
        count: Requests counted since window_start (accepted or rejected).
        window_start: Epoch milliseconds at which the window opened.
    """

    count: int
    window_start: int


class AbstractCounterStore(ABC):
    """Interface for counter storage backends."""

    @abstractmethod
    def get(self, key: ClientKey) -> WindowCounter | None:
        """Return the counter stored for key, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    def put(self, key: ClientKey, counter: WindowCounter) -> None:
        """Store counter for key, replacing any existing value."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, max_age_ms: int, now_ms: int) -> int:
        """Evict every counter whose window started more than max_age_ms ago.

        Args:
            max_age_ms: Retention horizon in milliseconds.
            now_ms: Current time in epoch milliseconds.

        Returns:
            Number of evicted counters.
        """
        raise NotImplementedError

    @abstractmethod
    def locked(self) -> AbstractContextManager:
        """Context manager serializing read-modify-write sequences and sweeps."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
