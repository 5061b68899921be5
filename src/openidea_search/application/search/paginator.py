"""
Paginator - Slice a ranked list into one page.

Pagination is applied after ranking, over the merged list of one request;
nothing is cached between requests, so page 2 of a query re-runs the
fan-out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from openidea_search.core.config import MAX_PAGE_SIZE
from openidea_search.core.exceptions import InvalidParameterError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from openidea_search.domain.entities.resource import RankedResult


@dataclass(frozen=True)
class Page:
    """One page of ranked results."""

    items: tuple[RankedResult, ...]
    total: int
    page: int
    page_size: int
    has_more: bool


def paginate(ranked: Sequence[RankedResult], page: int, page_size: int) -> Page:
    """
    Return page ``page`` (1-based) of ``ranked``.

    ``page_size`` above MAX_PAGE_SIZE is clamped. A page past the end is
    empty with ``has_more=False``.

    Raises:
        InvalidParameterError: page < 1 or page_size < 1
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidParameterError("page", page, "an integer >= 1")
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise InvalidParameterError("pageSize", page_size, f"an integer in [1, {MAX_PAGE_SIZE}]")
    page_size = min(page_size, MAX_PAGE_SIZE)

    total = len(ranked)
    start = (page - 1) * page_size
    end = page * page_size
    return Page(
        items=tuple(ranked[start:end]),
        total=total,
        page=page,
        page_size=page_size,
        has_more=end < total,
    )
