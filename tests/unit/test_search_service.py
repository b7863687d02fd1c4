"""Unit tests for SimilaritySearchService."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from image_similarity.core.config import Settings
from image_similarity.core.exceptions import DimensionMismatchException, NotFoundException
from image_similarity.models.records import ImageRecord
from image_similarity.repositories import MemoryImageStore, MemorySearchHistoryLedger
from image_similarity.services import SimilaritySearchService
from tests.factories import ImageCreateFactory


async def save_vectors(store, *vectors):
    return [
        await store.save(ImageCreateFactory.with_vector(vector, filename=f"{i}.jpg"))
        for i, vector in enumerate(vectors, start=1)
    ]


class GatedImageStore(MemoryImageStore):
    """Memory store whose scans wait until the gate opens."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def get_all(self):
        await self.gate.wait()
        async for record in super().get_all():
            yield record


class SlowLookupStore(MemoryImageStore):
    """Memory store whose lookups wait until the gate opens."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def get(self, image_id):
        await self.gate.wait()
        return await super().get(image_id)


class InconsistentImageStore(MemoryImageStore):
    """Memory store holding a vector of the wrong length."""

    def __init__(self):
        super().__init__()
        self.scan_closed = False

    async def get_all(self):
        try:
            async for record in super().get_all():
                yield record
            yield ImageRecord(
                id=999,
                filename="broken.jpg",
                mime_type="image/jpeg",
                width=1,
                height=1,
                size=1,
                source="user-upload",
                feature_vector=(1.0, 0.0, 0.0),
                image_data=b"",
                uploaded_at=datetime.now(timezone.utc),
            )
        finally:
            self.scan_closed = True


@pytest.mark.asyncio
class TestFindSimilar:
    """Test find_similar ranking and history recording."""

    @pytest.fixture
    def service(self, image_store, history_ledger, test_settings):
        return SimilaritySearchService(image_store, history_ledger, test_settings)

    async def test_ranks_by_cosine_similarity(self, service, image_store):
        a, b, c = await save_vectors(image_store, [1.0, 0.0], [1.0, 0.0], [0.0, 1.0])

        results = await service.find_similar(a.id)

        assert [(r.id, r.similarity_score) for r in results] == [(b.id, 1.0), (c.id, 0.0)]

    async def test_excludes_source_image(self, service, image_store):
        a, b = await save_vectors(image_store, [1.0, 0.0], [1.0, 0.0])

        results = await service.find_similar(a.id)

        assert [r.id for r in results] == [b.id]

    async def test_ties_broken_by_ascending_id(self, service, image_store):
        a, *others = await save_vectors(
            image_store, [1.0, 0.0], [2.0, 0.0], [1.0, 0.0], [3.0, 0.0]
        )

        results = await service.find_similar(a.id)

        assert [r.id for r in results] == [other.id for other in others]
        assert all(r.similarity_score == 1.0 for r in results)

    async def test_negative_similarity_ranked_but_displayed_as_zero(self, service, image_store):
        a, b, c = await save_vectors(image_store, [1.0, 0.0], [-1.0, 0.0], [0.0, 1.0])

        results = await service.find_similar(a.id)

        assert [r.id for r in results] == [c.id, b.id]
        assert [r.similarity_score for r in results] == [0.0, 0.0]

    async def test_scores_rounded_to_two_places(self, service, image_store):
        a, b = await save_vectors(image_store, [1.0, 0.0], [0.8, 0.6])

        [result] = await service.find_similar(a.id)

        assert result.id == b.id
        assert result.similarity_score == 0.8

    async def test_results_carry_image_fields(self, service, image_store):
        a, b = await save_vectors(image_store, [1.0, 0.0], [0.5, 0.5])

        [result] = await service.find_similar(a.id)

        assert result.filename == b.filename
        assert result.source == b.source
        assert result.image_data == b.image_data
        assert (result.width, result.height, result.size) == (b.width, b.height, b.size)

    async def test_deterministic(self, service, image_store):
        a, *_ = await save_vectors(
            image_store, [0.9, 0.1], [0.1, 0.9], [0.5, 0.5], [0.7, 0.2], [0.3, 0.3]
        )

        first = await service.find_similar(a.id)
        second = await service.find_similar(a.id)

        assert first == second

    async def test_single_image_gives_empty_results(self, service, image_store, history_ledger):
        [a] = await save_vectors(image_store, [1.0, 0.0])

        results = await service.find_similar(a.id)

        assert results == []
        [(entry, _)] = await history_ledger.list_all()
        assert entry.result_count == 0

    async def test_each_call_appends_one_history_entry(self, service, image_store, history_ledger):
        a, _, _ = await save_vectors(image_store, [1.0, 0.0], [0.0, 1.0], [1.0, 1.0])

        await service.find_similar(a.id)
        await service.find_similar(a.id, limit=1)

        items = await history_ledger.list_all()
        assert [entry.result_count for entry, _ in items] == [1, 2]
        assert all(entry.source_image_id == a.id for entry, _ in items)

    async def test_missing_source_raises_and_records_nothing(self, service, history_ledger):
        with pytest.raises(NotFoundException):
            await service.find_similar(404)

        assert await history_ledger.count() == 0

    @pytest.mark.parametrize("image_id", [0, 2**31, 2**63])
    async def test_out_of_range_source_not_found(self, service, image_store, history_ledger, image_id):
        await save_vectors(image_store, [1.0, 0.0])

        with pytest.raises(NotFoundException):
            await service.find_similar(image_id)

        assert await history_ledger.count() == 0

    @pytest.mark.parametrize("limit, expected", [
        (None, 10),
        (3, 3),
        (0, 1),
        (-5, 1),
        (50, 12),
    ])
    async def test_limit(self, service, image_store, limit, expected):
        a, *_ = await save_vectors(image_store, *([[1.0, float(i)] for i in range(13)]))

        results = await service.find_similar(a.id, limit=limit)

        assert len(results) == expected

    async def test_limit_keeps_best_candidates(self, service, image_store):
        a, b, c, d = await save_vectors(
            image_store, [1.0, 0.0], [0.0, 1.0], [1.0, 0.1], [1.0, 0.5]
        )

        results = await service.find_similar(a.id, limit=2)

        assert [r.id for r in results] == [c.id, d.id]

    async def test_concurrent_searches_each_recorded(self, service, image_store, history_ledger):
        a, b, _ = await save_vectors(image_store, [1.0, 0.0], [0.0, 1.0], [1.0, 1.0])

        batches = await asyncio.gather(*[
            service.find_similar(a.id if i % 2 else b.id) for i in range(10)
        ])

        assert all(len(results) == 2 for results in batches)
        assert await history_ledger.count() == 10


class TestResolveLimit:
    """Test limit clamping."""

    @pytest.mark.parametrize("limit, expected", [
        (None, 10),
        (1, 1),
        (0, 1),
        (-1, 1),
        (100, 100),
        (101, 100),
        (10_000, 100),
    ])
    def test_clamps_into_range(self, limit, expected):
        service = SimilaritySearchService(None, None, Settings(_env_file=None))
        assert service.resolve_limit(limit) == expected

    def test_uses_configured_bounds(self):
        settings = Settings(_env_file=None, default_search_limit=5, max_search_limit=20)
        service = SimilaritySearchService(None, None, settings)

        assert service.resolve_limit(None) == 5
        assert service.resolve_limit(21) == 20


@pytest.mark.asyncio
class TestSearchFailures:
    """Searches that cannot complete or whose caller goes away."""

    async def test_inconsistent_store_raises(self, test_settings):
        images = InconsistentImageStore()
        history = MemorySearchHistoryLedger(images)
        service = SimilaritySearchService(images, history, test_settings)
        a, _ = await save_vectors(images, [1.0, 0.0], [0.0, 1.0])

        with pytest.raises(DimensionMismatchException):
            await service.find_similar(a.id)

        assert await history.count() == 0
        assert images.scan_closed

    async def test_failure_after_cancellation_is_logged(self, test_settings, caplog):
        caplog.set_level(logging.ERROR, logger="image_similarity.services.search_service")
        images = SlowLookupStore()
        service = SimilaritySearchService(images, MemorySearchHistoryLedger(images), test_settings)

        task = asyncio.create_task(service.find_similar(42))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        task.cancel()
        images.gate.set()

        with pytest.raises(asyncio.CancelledError):
            await task

        for _ in range(100):
            if caplog.records:
                break
            await asyncio.sleep(0.01)

        [record] = caplog.records
        assert "after its caller was cancelled" in record.getMessage()
        assert isinstance(record.exc_info[1], NotFoundException)

    async def test_cancelled_caller_still_records_search(self, test_settings):
        images = GatedImageStore()
        history = MemorySearchHistoryLedger(images)
        service = SimilaritySearchService(images, history, test_settings)
        a, _ = await save_vectors(images, [1.0, 0.0], [0.0, 1.0])

        task = asyncio.create_task(service.find_similar(a.id))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        task.cancel()
        images.gate.set()

        with pytest.raises(asyncio.CancelledError):
            await task

        for _ in range(100):
            if await history.count() == 1:
                break
            await asyncio.sleep(0.01)

        [(entry, _)] = await history.list_all()
        assert entry.result_count == 1
