"""Page slicing for list endpoints.

A page never hides the rest of the result set: ``total`` is the full match
count and ``next_page`` is set whenever more items remain.
"""

from collections.abc import Sequence
from typing import Generic, TypeVar

from pydantic import BaseModel

from .exceptions import ValidationError

T = TypeVar("T")


class PaginatedResults(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    next_page: int | None = None

    @classmethod
    def paginate(cls, matches: Sequence[T], page: int, page_size: int) -> "PaginatedResults[T]":
        """Cut page ``page`` (1-based) out of an already filtered, ordered sequence."""
        total = len(matches)
        start = (page - 1) * page_size
        pages = -(-total // page_size)
        more = page < pages
        return cls(
            items=list(matches[start : start + page_size]),
            total=total,
            page=page,
            page_size=page_size,
            total_pages=pages,
            has_next=more,
            has_previous=page > 1,
            next_page=page + 1 if more else None,
        )


def validate_pagination_params(
    page: int, page_size: int, max_page_size: int = 100
) -> tuple[int, int]:
    """Reject out-of-range paging input.

    Raises:
        ValidationError: page below 1, or page_size outside 1..max_page_size
    """
    if page < 1:
        raise ValidationError("must be at least 1", field="page", value=page)
    if not 1 <= page_size <= max_page_size:
        raise ValidationError(
            f"must be between 1 and {max_page_size}",
            field="page_size",
            value=page_size,
        )
    return page, page_size
