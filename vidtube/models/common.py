from typing import Any, List, TypeVar, Generic, Optional
from pydantic import BaseModel, Field
from uuid import UUID

DataT = TypeVar("DataT")

# ---------------------------------------------------------------------------
# Universal ID aliases used across the domain models
# ---------------------------------------------------------------------------
UserID = UUID
VideoID = UUID
CommentID = UUID
TweetID = UUID

__all__ = [
    "ApiResponse",
    "ApiErrorResponse",
    "Pagination",
    "PaginatedResponse",
    "UserID",
    "VideoID",
    "CommentID",
    "TweetID",
]


class ApiResponse(BaseModel, Generic[DataT]):
    """Uniform success envelope wrapping every endpoint payload."""

    statusCode: int = 200
    data: Optional[DataT] = None
    message: str = "Success"
    success: bool = True


class ApiErrorResponse(BaseModel):
    """Uniform error envelope produced by the exception handlers."""

    statusCode: int
    data: None = None
    message: str
    success: bool = False
    errors: List[Any] = Field(default_factory=list)
    instance: Optional[str] = None


class Pagination(BaseModel):
    currentPage: int
    pageSize: int
    totalItems: int
    totalPages: int


class PaginatedResponse(BaseModel, Generic[DataT]):
    items: List[DataT]
    pagination: Pagination
