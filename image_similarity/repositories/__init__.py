"""Data access layer - image stores and search history ledgers."""
from typing import Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from .interfaces import HistoryItem, ImageStore, SearchHistoryLedger
from .memory import MemoryImageStore, MemorySearchHistoryLedger
from .base import BaseRepository
from .image_repository import ImageRepository, DatabaseImageStore
from .search_history_repository import SearchHistoryRepository, DatabaseSearchHistoryLedger

__all__ = [
    "HistoryItem",
    "ImageStore",
    "SearchHistoryLedger",
    "MemoryImageStore",
    "MemorySearchHistoryLedger",
    "BaseRepository",
    "ImageRepository",
    "DatabaseImageStore",
    "SearchHistoryRepository",
    "DatabaseSearchHistoryLedger",
    "create_memory_backend",
    "create_database_backend",
]


def create_memory_backend() -> Tuple[MemoryImageStore, MemorySearchHistoryLedger]:
    """Create an in-memory image store and its ledger."""
    images = MemoryImageStore()
    return images, MemorySearchHistoryLedger(images)


def create_database_backend(
    session_factory: async_sessionmaker,
) -> Tuple[DatabaseImageStore, DatabaseSearchHistoryLedger]:
    """
    Create a database image store and ledger sharing one writer lock.

    Args:
        session_factory: Session factory bound to the target database

    Returns:
        Tuple of (image store, search history ledger)
    """
    images = DatabaseImageStore(session_factory)
    history = DatabaseSearchHistoryLedger(session_factory, write_lock=images.write_lock)
    return images, history
