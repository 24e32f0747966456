"""Import all models so SQLAlchemy metadata knows about them."""
from tubed.models.base import Base
from tubed.models.file_record import FileRecord

__all__ = ["Base", "FileRecord"]
