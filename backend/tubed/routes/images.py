"""Image proxy: serves stored files, optionally resized / converted on the fly.

Stored names embed a timestamp and random suffix, so a given path and query
always produce the same bytes and responses are cached as immutable. The
route is mounted at ``/api/images`` here and again at the configured public
url prefix by the app factory, so record urls resolve directly.
"""
import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, Response

from tubed.config import Settings
from tubed.dependencies import get_settings, get_storage
from tubed.errors import NotFoundError, StorageFailure
from tubed.services.file_storage import FileStorageService
from tubed.services.file_types import guess_mime_type
from tubed.services.image_transform import (
    MAX_DIMENSION,
    FitMode,
    OutputFormat,
    TransformParams,
    transform_image,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

CACHE_CONTROL = "public, max-age=31536000, immutable"

# Vector sources are never rasterised
_PASSTHROUGH_TYPES = {"image/svg+xml"}


def _is_raster(media_type: str) -> bool:
    """Only raster images go through Pillow; everything else is served as stored."""
    return media_type.startswith("image/") and media_type not in _PASSTHROUGH_TYPES


@router.get("/api/images/{path:path}")
async def serve_image(
    path: str,
    format: Optional[OutputFormat] = Query(None),
    quality: Optional[int] = Query(None, ge=1, le=100),
    width: Optional[int] = Query(None, ge=1, le=MAX_DIMENSION),
    w: Optional[int] = Query(None, ge=1, le=MAX_DIMENSION),
    height: Optional[int] = Query(None, ge=1, le=MAX_DIMENSION),
    h: Optional[int] = Query(None, ge=1, le=MAX_DIMENSION),
    fit: Optional[FitMode] = Query(None),
    storage: FileStorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Serve a stored file by path, applying transform parameters if any are given."""
    file_path = storage.resolve(path)
    if not file_path.is_file():
        raise NotFoundError("Not Found")

    media_type = guess_mime_type(file_path.name)
    params = TransformParams(
        format=format,
        quality=quality,
        width=width if width is not None else w,
        height=height if height is not None else h,
        fit=fit,
    )

    if params.is_empty or not _is_raster(media_type):
        return FileResponse(
            file_path,
            media_type=media_type,
            headers={"Cache-Control": CACHE_CONTROL},
        )

    source = await storage.read(file_path)
    try:
        body, out_type = await asyncio.to_thread(
            transform_image,
            source,
            params,
            settings.IMAGE_DEFAULT_FORMAT,
            settings.IMAGE_DEFAULT_QUALITY,
        )
    except Exception as e:
        logger.exception("Image transform failed for %s", path)
        raise StorageFailure("Internal Server Error") from e

    return Response(
        content=body,
        media_type=out_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )
