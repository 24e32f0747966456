"""File storage on the local filesystem under a single storage root.

Records address stored objects by ``url`` (``<prefix>/<storage name>``);
this service maps urls and request paths back onto the disk and refuses any
path that escapes the root.
"""
import logging
import re
import secrets
import time
from pathlib import Path

import aiofiles
import aiofiles.os

from tubed.errors import ForbiddenError

logger = logging.getLogger(__name__)

MAX_STEM_LENGTH = 100
_UNSAFE_STEM_CHARS = re.compile(r"[^\w.-]+")
_UNSAFE_EXT_CHARS = re.compile(r"[^.a-z0-9]")


def sanitize_stem(stem: str) -> str:
    cleaned = _UNSAFE_STEM_CHARS.sub("_", stem).lstrip(".")
    cleaned = cleaned[:MAX_STEM_LENGTH].strip("_")
    return cleaned or "file"


def generate_storage_name(original_name: str) -> str:
    """``<sanitized stem>_<epoch millis>_<16 hex chars><ext>``; never retried."""
    # Browsers may send a full client-side path on some platforms
    base = Path(original_name.replace("\\", "/")).name
    path = Path(base)
    ext = _UNSAFE_EXT_CHARS.sub("", path.suffix.lower())
    stem = sanitize_stem(path.stem if path.suffix else base)
    timestamp = int(time.time() * 1000)
    return f"{stem}_{timestamp}_{secrets.token_hex(8)}{ext}"


class FileStorageService:
    """Handles file read/write/delete under the storage root."""

    def __init__(self, root: str | Path, url_prefix: str = "/uploads"):
        self.base_path = Path(root).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.url_prefix = "/" + url_prefix.strip("/")

    def resolve(self, relative_path: str) -> Path:
        """Join a request path onto the root and reject anything outside it."""
        try:
            candidate = (self.base_path / relative_path.lstrip("/")).resolve()
        except (OSError, ValueError) as e:
            # Embedded NUL bytes and similar garbage
            raise ForbiddenError("Forbidden") from e
        if not candidate.is_relative_to(self.base_path):
            logger.warning("Rejected path outside storage root: %r", relative_path)
            raise ForbiddenError("Forbidden")
        return candidate

    def path_for_url(self, url: str) -> Path:
        """Disk location for a record url such as ``/uploads/cat_1700000000000_ab12.png``."""
        relative = url
        if url.startswith(self.url_prefix + "/"):
            relative = url[len(self.url_prefix) + 1:]
        return self.resolve(relative)

    def url_for(self, storage_name: str) -> str:
        return f"{self.url_prefix}/{storage_name}"

    async def save(self, file_bytes: bytes, original_name: str) -> str:
        """Write bytes under a freshly generated name. Returns the record url."""
        storage_name = generate_storage_name(original_name)
        file_path = self.base_path / storage_name
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(file_bytes)
        return self.url_for(storage_name)

    async def read(self, path: Path) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def exists(self, url: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for_url(url))

    async def delete(self, url: str) -> bool:
        """Remove the object behind ``url``. Returns False if it was already gone."""
        path = self.path_for_url(url)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        return True
