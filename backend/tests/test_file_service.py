"""Unit tests for tubed.services.file_service - upload intake, deletes, cleanup."""

import os

import pytest

from tubed.errors import NotFoundError, StorageFailure, ValidationError
from tubed.services.file_service import UploadPayload
from tubed.services.file_types import MB


def payload(name="cat.png", data=b"x" * 2048, mime="image/png"):
    return UploadPayload(filename=name, content_type=mime, data=data)


def stored_files(storage):
    return sorted(os.listdir(storage.base_path))


class TestUpload:

    @pytest.mark.asyncio
    async def test_size_matches_bytes_on_disk(self, file_service, store, storage):
        [record] = await file_service.upload([payload()])
        assert record.category == "image"
        assert record.size == 2048
        assert (await store.get_by_id(record.id)).size == 2048
        assert storage.path_for_url(record.url).stat().st_size == 2048

    @pytest.mark.asyncio
    async def test_urls_are_distinct(self, file_service):
        records = await file_service.upload([payload() for _ in range(5)])
        assert len({r.url for r in records}) == 5

    @pytest.mark.asyncio
    async def test_empty_request_rejected(self, file_service):
        with pytest.raises(ValidationError):
            await file_service.upload([])

    @pytest.mark.asyncio
    async def test_oversized_file_aborts_whole_batch(self, file_service, store, storage):
        batch = [payload(), payload("big.png", data=b"x" * (10 * MB + 1))]
        with pytest.raises(ValidationError):
            await file_service.upload(batch)
        assert stored_files(storage) == []
        assert (await store.stats()).total_files == 0

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults(self, file_service):
        [record] = await file_service.upload([payload("notes.txt", b"hi", None)])
        assert record.type == "application/octet-stream"
        assert record.category == "document"

    @pytest.mark.asyncio
    async def test_insert_failure_removes_file(self, file_service, store, storage, monkeypatch):
        async def broken_insert(record):
            raise StorageFailure("Failed to save file metadata")

        monkeypatch.setattr(store, "insert", broken_insert)
        with pytest.raises(StorageFailure):
            await file_service.upload([payload()])
        assert stored_files(storage) == []


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_file(self, file_service, store, storage):
        [record] = await file_service.upload([payload()])
        deleted = await file_service.delete(record.id)
        assert deleted.id == record.id
        assert await store.get_by_id(record.id) is None
        assert stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, file_service):
        with pytest.raises(NotFoundError):
            await file_service.delete("does-not-exist")

    @pytest.mark.asyncio
    async def test_row_deleted_even_if_file_already_gone(self, file_service, store, storage):
        [record] = await file_service.upload([payload()])
        os.remove(storage.path_for_url(record.url))
        await file_service.delete(record.id)
        assert await store.get_by_id(record.id) is None


class TestBatchDelete:

    @pytest.mark.asyncio
    async def test_mixed_ids(self, file_service, store, storage):
        [record] = await file_service.upload([payload()])
        result = await file_service.batch_delete([record.id, "missing-id"])

        assert result.successful == [record.id]
        assert len(result.failed) == 1
        assert result.failed[0].id == "missing-id"
        assert result.failed[0].error == "File not found"
        assert result.total_size == 2048
        assert await store.get_by_id(record.id) is None
        assert stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_database_failure_is_per_item(self, file_service, store, storage, monkeypatch):
        first, second = await file_service.upload([payload("a.png"), payload("b.png")])
        real_delete = store.delete

        async def flaky_delete(file_id):
            if file_id == first.id:
                raise StorageFailure("Failed to delete file metadata")
            return await real_delete(file_id)

        monkeypatch.setattr(store, "delete", flaky_delete)
        result = await file_service.batch_delete([first.id, second.id])

        assert result.successful == [second.id]
        assert result.failed[0].error == "Failed to delete from database"
        # The failed item's file is left untouched
        assert storage.path_for_url(first.url).exists()

    @pytest.mark.asyncio
    async def test_empty_list_rejected(self, file_service):
        with pytest.raises(ValidationError):
            await file_service.batch_delete([])


class TestCleanup:

    @pytest.mark.asyncio
    async def test_removes_only_orphaned_rows(self, file_service, store, storage):
        kept, orphan = await file_service.upload([payload("keep.png"), payload("lost.png")])
        os.remove(storage.path_for_url(orphan.url))
        # A file with no row is not touched
        (storage.base_path / "stray.bin").write_bytes(b"?")

        result = await file_service.cleanup_orphans()

        assert [r.id for r in result.deleted_files] == [orphan.id]
        assert result.remaining_count == 1
        assert await store.get_by_id(kept.id) is not None
        assert await store.get_by_id(orphan.id) is None
        assert (storage.base_path / "stray.bin").exists()

    @pytest.mark.asyncio
    async def test_idempotent(self, file_service):
        await file_service.upload([payload()])
        assert (await file_service.cleanup_orphans()).deleted_files == []
        assert (await file_service.cleanup_orphans()).deleted_files == []
