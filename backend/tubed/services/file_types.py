"""File categories, size ceilings and MIME lookups.

Categories are data: adding one means adding a ``CategoryRule`` to
``CATEGORY_RULES``. Detection is a pure function of (filename, MIME type).
"""
import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath

from tubed.errors import ValidationError

MB = 1024 * 1024

IMAGE = "image"
DOCUMENT = "document"
PDF = "pdf"
SPREADSHEET = "spreadsheet"
VIDEO = "video"
AUDIO = "audio"
ARCHIVE = "archive"
CODE = "code"
OTHER = "other"


@dataclass(frozen=True)
class CategoryRule:
    name: str
    max_size_mb: int
    extensions: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()
    # MIME families ("image/") accepted even when the exact type is unknown
    mime_prefixes: tuple[str, ...] = ()

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * MB


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name=IMAGE,
        max_size_mb=10,
        extensions=(".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".ico"),
        mime_types=(
            "image/jpeg", "image/png", "image/gif", "image/webp",
            "image/svg+xml", "image/bmp", "image/x-icon",
        ),
        mime_prefixes=("image/",),
    ),
    CategoryRule(
        name=DOCUMENT,
        max_size_mb=50,
        extensions=(".doc", ".docx", ".txt", ".rtf", ".odt"),
        mime_types=(
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
            "text/rtf",
            "application/vnd.oasis.opendocument.text",
        ),
    ),
    CategoryRule(
        name=PDF,
        max_size_mb=50,
        extensions=(".pdf",),
        mime_types=("application/pdf",),
    ),
    CategoryRule(
        name=SPREADSHEET,
        max_size_mb=50,
        extensions=(".xls", ".xlsx", ".csv", ".ods"),
        mime_types=(
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "text/csv",
            "application/vnd.oasis.opendocument.spreadsheet",
        ),
    ),
    CategoryRule(
        name=VIDEO,
        max_size_mb=500,
        extensions=(".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv"),
        mime_types=(
            "video/mp4", "video/avi", "video/quicktime", "video/x-ms-wmv",
            "video/x-flv", "video/webm", "video/x-matroska",
        ),
        mime_prefixes=("video/",),
    ),
    CategoryRule(
        name=AUDIO,
        max_size_mb=100,
        extensions=(".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma"),
        mime_types=(
            "audio/mpeg", "audio/wav", "audio/flac", "audio/aac",
            "audio/ogg", "audio/x-ms-wma",
        ),
        mime_prefixes=("audio/",),
    ),
    CategoryRule(
        name=ARCHIVE,
        max_size_mb=200,
        extensions=(".zip", ".rar", ".7z", ".tar", ".gz", ".bz2"),
        mime_types=(
            "application/zip", "application/x-rar-compressed",
            "application/x-7z-compressed", "application/x-tar",
            "application/gzip", "application/x-bzip2",
        ),
    ),
    CategoryRule(
        name=CODE,
        max_size_mb=10,
        extensions=(
            ".js", ".ts", ".jsx", ".tsx", ".html", ".css", ".json", ".xml",
            ".py", ".java", ".cpp", ".c", ".php",
        ),
        mime_types=(
            "text/javascript", "text/typescript", "text/html", "text/css",
            "application/json", "application/xml", "text/x-python",
            "text/x-java-source", "text/x-c", "application/x-php",
        ),
    ),
    CategoryRule(name=OTHER, max_size_mb=100),
)

RULES_BY_NAME: dict[str, CategoryRule] = {rule.name: rule for rule in CATEGORY_RULES}
CATEGORIES: tuple[str, ...] = tuple(RULES_BY_NAME)

# Extensions the stdlib mimetypes table misses or gets wrong on some platforms
_EXTRA_MIME_TYPES = {
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",
    ".mkv": "video/x-matroska",
    ".flv": "video/x-flv",
    ".wmv": "video/x-ms-wmv",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
    ".wma": "audio/x-ms-wma",
    ".7z": "application/x-7z-compressed",
    ".rar": "application/x-rar-compressed",
    ".bz2": "application/x-bzip2",
    ".gz": "application/gzip",
    ".ts": "text/typescript",
    ".tsx": "text/typescript",
    ".jsx": "text/javascript",
    ".js": "text/javascript",
    ".py": "text/x-python",
    ".php": "text/x-php",
}


def detect_category(filename: str, mime_type: str | None) -> str:
    """Classify a file by extension first, then exact MIME type, then MIME family."""
    name = (filename or "").lower()
    mime = (mime_type or "").lower().split(";")[0].strip()
    candidates = [rule for rule in CATEGORY_RULES if rule.name != OTHER]

    for rule in candidates:
        if any(name.endswith(ext) for ext in rule.extensions):
            return rule.name
    if mime:
        for rule in candidates:
            if mime in rule.mime_types:
                return rule.name
        for rule in candidates:
            if any(mime.startswith(prefix) for prefix in rule.mime_prefixes):
                return rule.name
    return OTHER


def validate_upload(filename: str, mime_type: str | None, size: int) -> str:
    """Return the file's category, or raise ValidationError if it exceeds its ceiling."""
    category = detect_category(filename, mime_type)
    rule = RULES_BY_NAME[category]
    if size > rule.max_size_bytes:
        raise ValidationError(
            f"File {filename} is too large for category {category} (max {rule.max_size_mb}MB)"
        )
    return category


def guess_mime_type(path: str) -> str:
    """MIME type for serving a stored file, inferred from its extension."""
    ext = PurePosixPath(path).suffix.lower()
    if ext in _EXTRA_MIME_TYPES:
        return _EXTRA_MIME_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or "application/octet-stream"


def format_file_size(size: int) -> str:
    """Human readable size, used in log lines and messages."""
    units = ("B", "KB", "MB", "GB")
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            break
        value /= 1024
    return f"{int(value)} {unit}" if unit == "B" else f"{value:.2f} {unit}"
