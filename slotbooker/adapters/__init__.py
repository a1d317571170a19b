"""
Adapters layer - Storage and notification implementations.
"""

from .console_notifier import ConsoleNotifier
from .json_store import JsonFileStore
from .memory_store import InMemoryStore

__all__ = ["ConsoleNotifier", "InMemoryStore", "JsonFileStore"]
