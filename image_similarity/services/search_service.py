"""Similarity search over the image store."""
import asyncio
import heapq
import logging
import time
from contextlib import aclosing
from typing import List, Optional, Tuple

from image_similarity.core.config import Settings, settings as default_settings
from image_similarity.core.exceptions import DimensionMismatchException, NotFoundException
from image_similarity.core.vector_math import as_vector, cosine_similarity, to_display_score
from image_similarity.models.records import ImageRecord, SimilarityResult
from image_similarity.repositories import ImageStore, SearchHistoryLedger

logger = logging.getLogger(__name__)


def _log_detached_failure(search: asyncio.Task) -> None:
    """Report a search that failed after its caller stopped waiting."""
    if search.cancelled():
        return
    exc = search.exception()
    if exc is not None:
        logger.error(
            f"Similarity search failed after its caller was cancelled: {exc}",
            exc_info=exc
        )


class SimilaritySearchService:
    """
    Ranks stored images by cosine similarity to a source image.

    Every call scans the whole store (exact search, O(N * D)) and appends
    exactly one entry to the search history. Results are always recomputed;
    the history is an audit trail, not a cache.
    """

    def __init__(
        self,
        images: ImageStore,
        history: SearchHistoryLedger,
        settings: Optional[Settings] = None
    ):
        """
        Initialize search service.

        Args:
            images: Image store to scan
            history: Ledger receiving one entry per search
            settings: Limits configuration
        """
        self.images = images
        self.history = history
        self.settings = settings or default_settings

    def resolve_limit(self, limit: Optional[int]) -> int:
        """
        Clamp a requested result count into [1, max_search_limit].

        Args:
            limit: Requested count, None for the default

        Returns:
            Effective result count
        """
        if limit is None:
            limit = self.settings.default_search_limit
        return max(1, min(int(limit), self.settings.max_search_limit))

    async def find_similar(
        self,
        source_image_id: int,
        limit: Optional[int] = None
    ) -> List[SimilarityResult]:
        """
        Find the images most similar to a stored image.

        Once entered the search runs to completion, history append
        included, even if the awaiting caller is cancelled.

        Args:
            source_image_id: ID of the query image
            limit: Maximum number of results (default 10, clamped to 1..100)

        Returns:
            Results ordered by score descending, then id ascending

        Raises:
            NotFoundException: If the source image does not exist
            DimensionMismatchException: If stored vectors disagree in length
        """
        search = asyncio.ensure_future(
            self._find_similar(source_image_id, self.resolve_limit(limit))
        )
        try:
            return await asyncio.shield(search)
        except asyncio.CancelledError:
            search.add_done_callback(_log_detached_failure)
            raise

    async def _find_similar(self, source_image_id: int, limit: int) -> List[SimilarityResult]:
        start_time = time.perf_counter()

        source = await self.images.get(source_image_id)
        if source is None:
            raise NotFoundException("Image", source_image_id)

        ranked = await self._rank(source, limit)
        results = [
            SimilarityResult.from_record(record, to_display_score(score))
            for score, record in ranked
        ]

        await self.history.append(source.id, len(results))

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Similarity search for image {source.id}: "
            f"{len(results)} results (limit {limit}) in {elapsed_ms:.1f}ms"
        )
        return results

    async def _rank(self, source: ImageRecord, limit: int) -> List[Tuple[float, ImageRecord]]:
        """
        Keep the best `limit` candidates with a bounded min-heap.

        Heap entries are (score, -id, record): the root is the weakest
        candidate, lower score first and then higher id.
        """
        query = as_vector(source.feature_vector)
        heap: List[Tuple[float, int, ImageRecord]] = []
        scanned = 0

        async with aclosing(self.images.get_all()) as candidates:
            async for candidate in candidates:
                if candidate.id == source.id:
                    continue
                scanned += 1

                try:
                    score = cosine_similarity(query, candidate.feature_vector)
                except DimensionMismatchException:
                    logger.error(
                        f"Image {candidate.id} has a {candidate.dimension}-dimensional vector, "
                        f"source image {source.id} has {source.dimension}; the store is inconsistent"
                    )
                    raise

                item = (score, -candidate.id, candidate)
                if len(heap) < limit:
                    heapq.heappush(heap, item)
                elif item[:2] > heap[0][:2]:
                    heapq.heapreplace(heap, item)

        logger.debug(f"Scanned {scanned} candidates for image {source.id}")
        return [
            (score, record)
            for score, _, record in sorted(heap, key=lambda item: (-item[0], -item[1]))
        ]
