"""Helpers that wrap endpoint results in the uniform response envelope."""

from typing import List, TypeVar

from vidtube.api.v1.dependencies import PaginationParams
from vidtube.models.common import ApiResponse, PaginatedResponse, Pagination

T = TypeVar("T")


def ok(data: T, message: str = "Success", status_code: int = 200) -> ApiResponse[T]:
    return ApiResponse(statusCode=status_code, data=data, message=message)


def build_page(
    items: List[T], total_items: int, pagination: PaginationParams
) -> PaginatedResponse[T]:
    total_pages = (total_items + pagination.limit - 1) // pagination.limit
    return PaginatedResponse(
        items=items,
        pagination=Pagination(
            currentPage=pagination.page,
            pageSize=pagination.limit,
            totalItems=total_items,
            totalPages=total_pages,
        ),
    )
