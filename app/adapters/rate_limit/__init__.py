"""Rate limiting adapters.

This package provides a small abstraction layer over the counter storage so
the service can start with an in-memory store and later migrate to Redis or
another shared store without changing the window policy or the HTTP layer.
"""

from app.adapters.rate_limit.base import AbstractCounterStore, ClientKey, WindowCounter
from app.adapters.rate_limit.in_memory import InMemoryCounterStore

__all__ = ["AbstractCounterStore", "ClientKey", "InMemoryCounterStore", "WindowCounter"]
