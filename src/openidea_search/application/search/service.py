"""
Query Service - The single entry point for one search request.

    raw parameters ──► parse_query ──► FanOutCoordinator ──► ResultAggregator ──► paginate
                           │
                           └─ CallerError (400) before any provider is called

Both surfaces (HTTP route, MCP tool) call ``QueryService.search`` with the
raw request parameters.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from openidea_search.application.search.coordinator import FanOutCoordinator
from openidea_search.application.search.paginator import paginate
from openidea_search.application.search.registry import build_default_registry
from openidea_search.application.search.result_aggregator import ResultAggregator
from openidea_search.core.config import MAX_PAGE_SIZE, SearchSettings
from openidea_search.core.exceptions import (
    InvalidParameterError,
    InvalidQueryError,
    OpenIdeaSearchError,
    SystemFault,
)
from openidea_search.domain.entities.resource import Query, SearchResponse, TypeFilter

if TYPE_CHECKING:
    from collections.abc import Mapping

    from openidea_search.application.search.registry import ProviderRegistry

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_positive_int(name: str, value: Any, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise InvalidParameterError(name, value, "an integer >= 1")
    if isinstance(value, int):
        parsed = value
    else:
        try:
            parsed = int(str(value).strip())
        except ValueError as e:
            raise InvalidParameterError(name, value, "an integer >= 1") from e
    if parsed < 1:
        raise InvalidParameterError(name, value, "an integer >= 1")
    return parsed


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and str(value).strip().lower() in _TRUTHY


def parse_query(raw: Mapping[str, Any], default_page_size: int = 30) -> tuple[Query, bool]:
    """
    Validate raw request parameters.

    Accepts ``q``, ``type``, ``page``, ``limit`` (alias ``pageSize``) and
    ``debug``. ``limit`` above MAX_PAGE_SIZE is clamped.

    Returns:
        (query, debug)

    Raises:
        InvalidQueryError: ``q`` missing or blank
        InvalidParameterError: bad ``type``, ``page`` or ``limit``
    """
    text = raw.get("q")
    if text is None or not str(text).strip():
        raise InvalidQueryError(text)

    type_filter = TypeFilter.parse(raw.get("type"))
    page = _parse_positive_int("page", raw.get("page"), 1)

    limit_name = "limit" if raw.get("limit") not in (None, "") else "pageSize"
    limit = _parse_positive_int(limit_name, raw.get(limit_name), default_page_size)

    query = Query(
        text=str(text),
        type_filter=type_filter,
        page=page,
        page_size=min(limit, MAX_PAGE_SIZE),
    )
    return query, _parse_flag(raw.get("debug"))


class QueryService:
    """
    Facade over registry, coordinator, aggregator and paginator.

    Usage:
        service = QueryService.from_settings(load_settings())
        response = await service.search({"q": "climate model", "type": "paper"})
        payload = response.to_dict()
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        settings: SearchSettings | None = None,
        coordinator: FanOutCoordinator | None = None,
        aggregator: ResultAggregator | None = None,
    ):
        self._settings = settings or SearchSettings()
        self._registry = registry
        self._coordinator = coordinator or FanOutCoordinator(registry, self._settings.request_deadline)
        self._aggregator = aggregator or ResultAggregator()

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> QueryService:
        """Build the service with the default provider registry."""
        return cls(build_default_registry(settings), settings=settings)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def search(self, raw_query: Mapping[str, Any]) -> SearchResponse:
        """
        Run one search request.

        Raises:
            ValidationError: Invalid parameters (no provider is called)
            SystemFault: Unexpected failure inside the aggregator
        """
        query, debug = parse_query(raw_query, self._settings.default_page_size)

        started = time.monotonic()
        try:
            outcomes, coverage = await self._coordinator.dispatch(query)
            ranked, stats, decisions = self._aggregator.aggregate_and_rank(outcomes, query)
            page = paginate(ranked, query.page, query.page_size)
        except OpenIdeaSearchError:
            raise
        except Exception as e:
            logger.exception(f"Search failed for {query.text!r}: {e}")
            raise SystemFault() from e
        elapsed_ms = (time.monotonic() - started) * 1000

        failed = [o.source for o in outcomes if o.received_count == 0 and o.error_detail]
        logger.info(
            f"search q={query.text!r} type={query.type_filter.value} page={query.page}: "
            f"{page.total} results in {elapsed_ms:.0f}ms, coverage={coverage}"
            + (f", failed={failed}" if failed else "")
        )

        return SearchResponse(
            results=page.items,
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            has_more=page.has_more,
            coverage=coverage,
            stats={
                **stats.to_dict(),
                "elapsed_ms": round(elapsed_ms, 1),
                "providers": [o.to_dict() for o in outcomes],
            },
            decisions=[d.to_dict() for d in decisions] if debug else None,
        )

    def describe_providers(self) -> list[dict[str, Any]]:
        return self._registry.describe()

    async def close(self) -> None:
        await self._registry.close()
