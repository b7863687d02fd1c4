"""Unit tests for the search history ledgers."""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from image_similarity.core.exceptions import (
    DanglingReferenceException,
    IntegrityException,
    ValidationException,
)
from image_similarity.repositories import (
    DatabaseImageStore,
    DatabaseSearchHistoryLedger,
    MemoryImageStore,
    MemorySearchHistoryLedger,
    SearchHistoryRepository,
)
from tests.factories import FrozenClock, ImageCreateFactory


@pytest.mark.asyncio
class TestSearchHistoryLedger:
    """Behaviour shared by the memory and database ledgers."""

    async def test_append_records_entry(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())

        entry = await history_ledger.append(image.id, 3)

        assert entry.id == 1
        assert entry.source_image_id == image.id
        assert entry.result_count == 3
        assert entry.searched_at is not None
        assert await history_ledger.count() == 1

    async def test_append_zero_results(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())

        entry = await history_ledger.append(image.id, 0)

        assert entry.result_count == 0

    async def test_append_missing_image_rejected(self, history_ledger):
        with pytest.raises(DanglingReferenceException) as exc_info:
            await history_ledger.append(42, 1)

        assert exc_info.value.image_id == 42
        assert await history_ledger.count() == 0

    @pytest.mark.parametrize("image_id", [0, -3, 2**31, 2**63])
    async def test_append_out_of_range_id_rejected(self, image_store, history_ledger, image_id):
        await image_store.save(ImageCreateFactory.create())

        with pytest.raises(DanglingReferenceException):
            await history_ledger.append(image_id, 1)

        assert await history_ledger.count() == 0

    async def test_searched_at_is_utc(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())
        appended = await history_ledger.append(image.id, 1)

        [(listed, source)] = await history_ledger.list_all()

        assert appended.searched_at.utcoffset() == timedelta(0)
        assert listed.searched_at.utcoffset() == timedelta(0)
        assert source.uploaded_at.utcoffset() == timedelta(0)

    async def test_append_negative_count_rejected(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())

        with pytest.raises(ValidationException):
            await history_ledger.append(image.id, -1)

        assert await history_ledger.count() == 0

    async def test_list_most_recent_first(self, image_store, history_ledger):
        first = await image_store.save(ImageCreateFactory.create(filename="first.jpg"))
        second = await image_store.save(ImageCreateFactory.create(filename="second.jpg"))

        await history_ledger.append(first.id, 1)
        await history_ledger.append(second.id, 1)
        await history_ledger.append(first.id, 1)

        items = await history_ledger.list_all()

        assert [entry.id for entry, _ in items] == [3, 2, 1]
        assert [image.filename for _, image in items] == ["first.jpg", "second.jpg", "first.jpg"]

    async def test_list_joins_source_image(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create(source="crawler"))
        await history_ledger.append(image.id, 5)

        [(entry, source)] = await history_ledger.list_all()

        assert entry.source_image_id == source.id == image.id
        assert source.source == "crawler"
        assert source.feature_vector == image.feature_vector

    async def test_list_empty(self, history_ledger):
        assert await history_ledger.list_all() == []

    async def test_clear_keeps_images(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())
        await history_ledger.append(image.id, 1)
        await history_ledger.append(image.id, 1)

        await history_ledger.clear()

        assert await history_ledger.count() == 0
        assert await history_ledger.list_all() == []
        assert await image_store.get(image.id) is not None
        assert await image_store.count() == 1

    async def test_clear_is_idempotent(self, history_ledger):
        await history_ledger.clear()
        await history_ledger.clear()

        assert await history_ledger.count() == 0

    async def test_ids_not_reused_after_clear(self, image_store, history_ledger):
        image = await image_store.save(ImageCreateFactory.create())
        before = await history_ledger.append(image.id, 1)

        await history_ledger.clear()
        after = await history_ledger.append(image.id, 1)

        assert after.id > before.id


@pytest.mark.asyncio
class TestSameInstantOrdering:
    """Entries with equal timestamps list by descending id."""

    async def test_memory_ledger(self):
        images = MemoryImageStore()
        ledger = MemorySearchHistoryLedger(images, clock=FrozenClock())
        image = await images.save(ImageCreateFactory.create())

        for _ in range(3):
            await ledger.append(image.id, 0)

        assert [entry.id for entry, _ in await ledger.list_all()] == [3, 2, 1]

    async def test_database_ledger(self, session_factory):
        images = DatabaseImageStore(session_factory)
        ledger = DatabaseSearchHistoryLedger(
            session_factory, clock=FrozenClock(), write_lock=images.write_lock
        )
        image = await images.save(ImageCreateFactory.create())

        for _ in range(3):
            await ledger.append(image.id, 0)

        assert [entry.id for entry, _ in await ledger.list_all()] == [3, 2, 1]


@pytest.mark.asyncio
class TestMissingSourceImage:
    """Listing fails loudly when an entry's image has vanished."""

    async def test_memory_ledger(self):
        images = MemoryImageStore()
        ledger = MemorySearchHistoryLedger(images)
        image = await images.save(ImageCreateFactory.create())
        await ledger.append(image.id, 0)

        # Simulate external corruption of the store
        images._images.clear()

        with pytest.raises(IntegrityException):
            await ledger.list_all()

    async def test_database_ledger(self, test_db_engine, session_factory):
        images = DatabaseImageStore(session_factory)
        ledger = DatabaseSearchHistoryLedger(session_factory, write_lock=images.write_lock)
        image = await images.save(ImageCreateFactory.create())
        await ledger.append(image.id, 0)

        async with test_db_engine.connect() as conn:
            await conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            await conn.exec_driver_sql(f"DELETE FROM images WHERE id = {image.id}")
            await conn.commit()

        with pytest.raises(IntegrityException):
            await ledger.list_all()

    async def test_foreign_key_blocks_image_delete(self, test_db_engine, session_factory):
        images = DatabaseImageStore(session_factory)
        ledger = DatabaseSearchHistoryLedger(session_factory, write_lock=images.write_lock)
        image = await images.save(ImageCreateFactory.create())
        await ledger.append(image.id, 0)

        with pytest.raises(IntegrityError):
            async with test_db_engine.begin() as conn:
                await conn.exec_driver_sql(f"DELETE FROM images WHERE id = {image.id}")


@pytest.mark.asyncio
class TestSearchHistoryRepository:
    """Test SearchHistoryRepository queries."""

    async def test_delete_all_reports_rowcount(self, session_factory):
        images = DatabaseImageStore(session_factory)
        ledger = DatabaseSearchHistoryLedger(session_factory, write_lock=images.write_lock)
        image = await images.save(ImageCreateFactory.create())
        for _ in range(4):
            await ledger.append(image.id, 1)

        async with session_factory() as db:
            repo = SearchHistoryRepository(db)
            assert await repo.count() == 4
            assert await repo.delete_all() == 4
            await db.commit()

        assert await ledger.count() == 0
