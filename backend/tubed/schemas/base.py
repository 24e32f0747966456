"""Base schema classes with camelCase alias generation.

Backend Python code stays snake_case. API JSON output becomes camelCase,
matching the field names the dashboard client already uses (uploadedAt,
fileIds, totalSize...).
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class CamelORMModel(CamelModel):
    """Also reads from SQLAlchemy rows and plain dataclasses."""
    model_config = {
        **CamelModel.model_config,
        "from_attributes": True,
    }


class SuccessResponse(CamelModel):
    """Envelope for every successful JSON body: ``{"success": true, ...}``."""
    success: bool = True
