"""Search history service."""
from typing import List

from image_similarity.repositories import HistoryItem, SearchHistoryLedger


class HistoryService:
    """Service for listing and clearing the search history."""

    def __init__(self, history: SearchHistoryLedger):
        self.history = history

    async def list_history(self) -> List[HistoryItem]:
        """
        Get all searches with their source images, most recent first.

        Raises:
            IntegrityException: If an entry references a missing image
        """
        return await self.history.list_all()

    async def clear_history(self):
        """Remove all searches; safe to call on an empty history."""
        await self.history.clear()
