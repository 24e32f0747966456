"""Upload intake, deletion and orphan reconciliation.

The metadata row and the object on disk are two separate systems with no
shared transaction:

- upload writes the file first and inserts the row second; a failed insert
  removes the file again.
- delete removes the row first and the file second; the row is
  authoritative, so a failed file removal is only logged.

Anything left inconsistent is repaired by ``cleanup_orphans``.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from tubed.errors import ForbiddenError, NotFoundError, StorageFailure, ValidationError
from tubed.models import FileRecord
from tubed.services.file_storage import FileStorageService
from tubed.services.file_types import format_file_size, validate_upload
from tubed.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


@dataclass
class UploadPayload:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class BatchDeleteFailure:
    id: str
    error: str


@dataclass
class BatchDeleteResult:
    successful: list[str] = field(default_factory=list)
    failed: list[BatchDeleteFailure] = field(default_factory=list)
    total_size: int = 0


@dataclass
class CleanupResult:
    deleted_files: list[FileRecord] = field(default_factory=list)
    remaining_count: int = 0


class FileService:
    def __init__(self, store: MetadataStore, storage: FileStorageService):
        self.store = store
        self.storage = storage

    async def upload(self, payloads: list[UploadPayload]) -> list[FileRecord]:
        """Store every payload, or reject the whole request on any type/size violation."""
        if not payloads:
            raise ValidationError("No files uploaded")

        # Validate everything before touching the disk
        categories = [
            validate_upload(p.filename, p.content_type, len(p.data)) for p in payloads
        ]

        created: list[FileRecord] = []
        for payload, category in zip(payloads, categories):
            created.append(await self._store_one(payload, category))
        return created

    async def _store_one(self, payload: UploadPayload, category: str) -> FileRecord:
        try:
            url = await self.storage.save(payload.data, payload.filename)
        except OSError as e:
            raise StorageFailure("Failed to write file") from e

        record = FileRecord(
            name=payload.filename,
            url=url,
            size=len(payload.data),
            type=payload.content_type or "application/octet-stream",
            category=category,
        )
        try:
            record = await self.store.insert(record)
        except StorageFailure:
            logger.error("Metadata insert failed for %s, removing %s", payload.filename, url)
            try:
                await self.storage.delete(url)
            except OSError:
                logger.exception("Failed to remove %s after metadata insert failure", url)
            raise

        logger.info(
            "Stored %s as %s (%s, %s)",
            payload.filename, url, category, format_file_size(record.size),
        )
        return record

    async def get(self, file_id: str) -> FileRecord:
        record = await self.store.get_by_id(file_id)
        if record is None:
            raise NotFoundError("File not found")
        return record

    async def delete(self, file_id: str) -> FileRecord:
        """Delete one record and its file. Returns the deleted record."""
        record = await self.get(file_id)
        if not await self.store.delete(file_id):
            raise StorageFailure("Failed to delete file from database")
        await self._remove_object(record)
        return record

    async def batch_delete(self, file_ids: list[str]) -> BatchDeleteResult:
        """Delete each id independently and report per-item outcomes.

        ``total_size`` is summed from metadata, not from reclaimed disk space.
        """
        if not file_ids:
            raise ValidationError("Invalid file IDs provided")

        results = BatchDeleteResult()
        for file_id in file_ids:
            try:
                record = await self.store.get_by_id(file_id)
            except StorageFailure:
                logger.exception("Lookup failed for %s", file_id)
                results.failed.append(BatchDeleteFailure(file_id, "Failed to read from database"))
                continue
            if record is None:
                results.failed.append(BatchDeleteFailure(file_id, "File not found"))
                continue

            try:
                deleted = await self.store.delete(file_id)
            except StorageFailure:
                logger.exception("Database delete failed for %s", file_id)
                deleted = False
            if not deleted:
                results.failed.append(BatchDeleteFailure(file_id, "Failed to delete from database"))
                continue

            await self._remove_object(record)
            results.successful.append(file_id)
            results.total_size += record.size

        logger.info(
            "Batch delete: %d succeeded, %d failed, %s freed",
            len(results.successful), len(results.failed), format_file_size(results.total_size),
        )
        return results

    async def cleanup_orphans(self) -> CleanupResult:
        """Delete rows whose backing file is missing. Files without rows are left alone."""
        records = await self.store.all_records()
        orphans: list[FileRecord] = []
        for record in records:
            try:
                present = await self.storage.exists(record.url)
            except ForbiddenError:
                logger.warning("Record %s has a url outside the storage root, skipping", record.id)
                continue
            if not present:
                logger.info("Missing file for %s (%s)", record.url, record.id)
                orphans.append(record)

        result = CleanupResult()
        for record in orphans:
            if await self.store.delete(record.id):
                result.deleted_files.append(record)
        result.remaining_count = len(records) - len(result.deleted_files)
        logger.info(
            "Cleanup removed %d orphaned record(s), %d remaining",
            len(result.deleted_files), result.remaining_count,
        )
        return result

    async def _remove_object(self, record: FileRecord) -> None:
        try:
            removed = await self.storage.delete(record.url)
        except (OSError, ForbiddenError):
            logger.exception("Failed to delete physical file for %s", record.id)
            return
        if not removed:
            logger.warning("Physical file already missing for %s (%s)", record.id, record.url)
