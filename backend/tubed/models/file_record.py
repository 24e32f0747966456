"""FileRecord model - file metadata (actual bytes live under the storage root)."""
import secrets
from datetime import datetime, timezone
from sqlalchemy import String, BigInteger
from sqlalchemy.orm import Mapped, mapped_column
from tubed.models.base import Base, CreatedAtMixin


def new_file_id() -> str:
    return secrets.token_hex(16)


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T10:00:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FileRecord(Base, CreatedAtMixin):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_file_id)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False, unique=True)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    # Stored as text so ordering matches the serialized value
    uploaded_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_timestamp, index=True)

    def __repr__(self) -> str:
        return f"<FileRecord id={self.id} url={self.url}>"
