"""
Adapters layer - Repository implementations.
"""

from .json_store import JSONFileStore
from .memory_store import InMemoryStore

__all__ = ["InMemoryStore", "JSONFileStore"]
