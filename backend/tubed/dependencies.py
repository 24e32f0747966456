"""FastAPI dependencies exposing the objects the app factory owns.

Usage in routes:
    from tubed.dependencies import get_file_service

    @router.get("/items")
    async def list_items(files: FileService = Depends(get_file_service)):
        ...
"""
from fastapi import Request

from tubed.config import Settings
from tubed.services.file_service import FileService
from tubed.services.file_storage import FileStorageService
from tubed.services.metadata_store import MetadataStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> MetadataStore:
    return request.app.state.store


def get_storage(request: Request) -> FileStorageService:
    return request.app.state.storage


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service
