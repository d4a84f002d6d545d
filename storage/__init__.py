"""Storage backends."""

from .abstract_storage import AbstractUserStore
from .memory_storage import InMemoryUserStore

__all__ = ["AbstractUserStore", "InMemoryUserStore"]
