"""File request/response schemas."""
from typing import Optional
from pydantic import Field
from tubed.schemas.base import CamelModel, CamelORMModel, SuccessResponse


class FileResponse(CamelORMModel):
    id: str
    name: str
    url: str
    size: int
    type: str
    category: str
    uploaded_at: str


class FileStatsResponse(CamelORMModel):
    total_files: int = 0
    total_size: int = 0
    categories: dict[str, int] = {}


class PaginationInfo(CamelModel):
    current_page: int
    total_pages: int
    total_files: int
    limit: int
    has_next: bool
    has_prev: bool


class FileListResponse(SuccessResponse):
    files: Optional[list[FileResponse]] = None
    pagination: Optional[PaginationInfo] = None
    stats: FileStatsResponse


class FileDetailResponse(SuccessResponse):
    file: FileResponse


class UploadResponse(SuccessResponse):
    files: list[FileResponse]
    message: str


class MessageResponse(SuccessResponse):
    message: str


class BatchDeleteRequest(CamelModel):
    file_ids: list[str] = Field(min_length=1)


class BatchDeleteFailure(CamelModel):
    id: str
    error: str


class BatchDeleteResults(CamelModel):
    successful: list[str] = []
    failed: list[BatchDeleteFailure] = []
    total_size: int = 0


class BatchDeleteResponse(SuccessResponse):
    message: str
    results: BatchDeleteResults


class CleanedFile(CamelORMModel):
    id: str
    name: str
    url: str


class CleanupResponse(SuccessResponse):
    message: str
    deleted_files: list[CleanedFile]
    remaining_count: int


class FileCheckResponse(CamelModel):
    url: str
    exists: bool
