"""Metadata store: the ``files`` table behind every listing, lookup and delete.

Usage:
    store = MetadataStore(build_engine(settings.DATABASE_URL))
    await store.create_schema()
    record = await store.insert(FileRecord(name="cat.png", ...))

Writes raise ``StorageFailure``. The read paths used for display
(``list_files``, ``search``, ``count``, ``stats``) log and degrade to an
empty result instead.

Search is case-insensitive for ASCII letters only. SQLite's ``lower()``
folds nothing outside A-Z, so the query is folded the same way before it is
compared against ``lower(name)``.
"""
import logging
import string
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import String, asc, delete, desc, func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from tubed.database import build_session_factory
from tubed.errors import DuplicateKeyError, StorageFailure, ValidationError
from tubed.models import Base, FileRecord

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "uploadedAt": FileRecord.uploaded_at,
    "name": FileRecord.name,
    "size": FileRecord.size,
}
SORT_ORDERS = {"ASC": asc, "DESC": desc}

# Largest value SQLite binds as INTEGER; deeper pages are simply empty
MAX_OFFSET = 2**63 - 1

# Mirrors SQLite lower(): A-Z only
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


@dataclass
class FileStats:
    total_files: int = 0
    total_size: int = 0
    categories: dict[str, int] = field(default_factory=dict)


class MetadataStore:
    """Owns the engine and hands out one session per operation."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = build_session_factory(engine)

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized")

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def ping(self) -> None:
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    # -- writes ------------------------------------------------------------

    async def insert(self, record: FileRecord) -> FileRecord:
        async with self.session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateKeyError("Failed to save file metadata") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageFailure("Failed to save file metadata") from e
            await session.refresh(record)
            return record

    async def delete(self, file_id: str) -> bool:
        """Remove the row. False when there was nothing to remove."""
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    delete(FileRecord).where(FileRecord.id == file_id)
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageFailure("Failed to delete file metadata") from e
            return result.rowcount > 0

    # -- point lookups -----------------------------------------------------

    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        return await self._get_one(FileRecord.id == file_id)

    async def get_by_url(self, url: str) -> Optional[FileRecord]:
        return await self._get_one(FileRecord.url == url)

    async def _get_one(self, condition) -> Optional[FileRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(select(FileRecord).where(condition))
            except SQLAlchemyError as e:
                raise StorageFailure("Failed to read file metadata") from e
            return result.scalar_one_or_none()

    # -- listing -----------------------------------------------------------

    async def list_files(
        self,
        category: Optional[str] = None,
        sort_by: str = "uploadedAt",
        sort_order: str = "DESC",
        limit: int = 50,
        offset: int = 0,
    ) -> list[FileRecord]:
        """Filtered, sorted, paginated listing. Ties break on id."""
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(f"Invalid sortBy: {sort_by}")
        direction = SORT_ORDERS.get(sort_order.upper())
        if direction is None:
            raise ValidationError(f"Invalid sortOrder: {sort_order}")

        stmt = select(FileRecord)
        if category:
            stmt = stmt.where(FileRecord.category == category)
        stmt = (
            stmt.order_by(direction(SORT_COLUMNS[sort_by]), direction(FileRecord.id))
            .limit(limit)
            .offset(min(offset, MAX_OFFSET))
        )
        return await self._read_many(stmt, "list files")

    async def search(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[FileRecord]:
        stmt = select(FileRecord).where(_name_matches(query))
        if category:
            stmt = stmt.where(FileRecord.category == category)
        stmt = (
            stmt.order_by(desc(FileRecord.uploaded_at), desc(FileRecord.id))
            .limit(limit)
            .offset(min(offset, MAX_OFFSET))
        )
        return await self._read_many(stmt, "search files")

    async def count(self, category: Optional[str] = None, query: Optional[str] = None) -> int:
        """Rows matching the same filters list_files/search apply."""
        stmt = select(func.count()).select_from(FileRecord)
        if category:
            stmt = stmt.where(FileRecord.category == category)
        if query:
            stmt = stmt.where(_name_matches(query))
        async with self.session_factory() as session:
            try:
                return (await session.execute(stmt)).scalar_one()
            except SQLAlchemyError:
                logger.exception("Failed to count files")
                return 0

    async def all_records(self) -> list[FileRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(select(FileRecord).order_by(FileRecord.uploaded_at))
            except SQLAlchemyError as e:
                raise StorageFailure("Failed to read file metadata") from e
            return list(result.scalars().all())

    async def stats(self) -> FileStats:
        """Full-table aggregate, recomputed on every call."""
        async with self.session_factory() as session:
            try:
                totals = await session.execute(
                    select(func.count(FileRecord.id), func.coalesce(func.sum(FileRecord.size), 0))
                )
                total_files, total_size = totals.one()
                by_category = await session.execute(
                    select(FileRecord.category, func.count(FileRecord.id))
                    .group_by(FileRecord.category)
                )
            except SQLAlchemyError:
                logger.exception("Failed to get file stats")
                return FileStats()
            return FileStats(
                total_files=total_files,
                total_size=int(total_size),
                categories={category: n for category, n in by_category.all()},
            )

    async def _read_many(self, stmt, action: str) -> list[FileRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError:
                logger.exception("Failed to %s", action)
                return []
            return list(result.scalars().all())


def _name_matches(query: str):
    return func.lower(FileRecord.name, type_=String).contains(query.translate(_ASCII_LOWER), autoescape=True)
