"""Files API routes: listing, lookup, delete, batch delete, cleanup."""
import math
from typing import Optional
from fastapi import APIRouter, Depends, Query

from tubed.auth import require_auth
from tubed.config import Settings
from tubed.dependencies import get_file_service, get_settings, get_storage, get_store
from tubed.errors import ValidationError
from tubed.schemas.file import (
    BatchDeleteFailure,
    BatchDeleteRequest,
    BatchDeleteResponse,
    BatchDeleteResults,
    CleanedFile,
    CleanupResponse,
    FileCheckResponse,
    FileDetailResponse,
    FileListResponse,
    FileResponse,
    FileStatsResponse,
    MessageResponse,
    PaginationInfo,
)
from tubed.services.file_service import FileService
from tubed.services.file_storage import FileStorageService
from tubed.services.file_types import CATEGORIES
from tubed.services.metadata_store import MetadataStore

router = APIRouter(prefix="/api/files", tags=["files"], dependencies=[Depends(require_auth)])


@router.get("", response_model=FileListResponse, response_model_exclude_none=True)
async def list_files(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = Query(None),
    sort_by: str = Query("uploadedAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    search: Optional[str] = Query(None),
    stats: bool = Query(False),
    store: MetadataStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """List, filter, sort and search files. ``stats=true`` returns only aggregates."""
    statistics = FileStatsResponse.model_validate(await store.stats())
    if stats:
        return FileListResponse(stats=statistics)

    if category and category not in CATEGORIES:
        raise ValidationError(f"Invalid category: {category}")
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    offset = (page - 1) * limit

    if search:
        files = await store.search(search, category=category, limit=limit, offset=offset)
    else:
        files = await store.list_files(
            category=category,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    total_files = await store.count(category=category, query=search or None)
    total_pages = math.ceil(total_files / limit)

    return FileListResponse(
        files=[FileResponse.model_validate(f) for f in files],
        pagination=PaginationInfo(
            current_page=page,
            total_pages=total_pages,
            total_files=total_files,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
        stats=statistics,
    )


@router.get("/check", response_model=FileCheckResponse)
async def check_file(
    url: str = Query(..., min_length=1),
    storage: FileStorageService = Depends(get_storage),
):
    """Report whether the object behind a record url exists on disk."""
    return FileCheckResponse(url=url, exists=await storage.exists(url))


@router.post("/batch-delete", response_model=BatchDeleteResponse)
async def batch_delete(
    body: BatchDeleteRequest,
    files: FileService = Depends(get_file_service),
):
    """Delete several files, reporting success or failure per id."""
    result = await files.batch_delete(body.file_ids)
    return BatchDeleteResponse(
        message=f"Successfully deleted {len(result.successful)} files",
        results=BatchDeleteResults(
            successful=result.successful,
            failed=[BatchDeleteFailure(id=f.id, error=f.error) for f in result.failed],
            total_size=result.total_size,
        ),
    )


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_orphans(
    files: FileService = Depends(get_file_service),
):
    """Remove records whose file no longer exists on disk."""
    result = await files.cleanup_orphans()
    return CleanupResponse(
        message=f"Cleanup complete, removed {len(result.deleted_files)} orphaned file record(s)",
        deleted_files=[CleanedFile.model_validate(r) for r in result.deleted_files],
        remaining_count=result.remaining_count,
    )


@router.get("/{file_id}", response_model=FileDetailResponse)
async def get_file_metadata(
    file_id: str,
    files: FileService = Depends(get_file_service),
):
    """Get file metadata by ID."""
    record = await files.get(file_id)
    return FileDetailResponse(file=FileResponse.model_validate(record))


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    files: FileService = Depends(get_file_service),
):
    """Delete a file record and its bytes on disk."""
    record = await files.delete(file_id)
    return MessageResponse(message=f"File {record.name} deleted successfully")
