"""Pydantic schemas."""
from backend.app.schemas.anime import (
    ApiResponse,
    PaginationResponse,
    camelize,
)

__all__ = [
    "ApiResponse",
    "PaginationResponse",
    "camelize",
]
