"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio

import pytest

from openidea_search.application.search.registry import ProviderRegistry
from openidea_search.application.search.result_aggregator import RankingConfig, ResultAggregator
from openidea_search.core.config import SearchSettings
from openidea_search.domain.entities.resource import NormalizedResult, Query, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

# ============================================================
# Fake Providers
# ============================================================


class FakeAdapter(BaseProviderAdapter):
    """
    In-process adapter with canned results.

    Records every query it receives; can be slowed down with ``delay`` or
    made to fail with ``error``.
    """

    def __init__(
        self,
        name: str,
        types: set[ResourceType] | frozenset[ResourceType],
        results: list[NormalizedResult] | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
        timeout: float = 8.0,
    ):
        self.name = name  # type: ignore[misc]
        self.types = frozenset(types)  # type: ignore[misc]
        super().__init__(timeout=timeout)
        self.results = list(results or [])
        self.delay = delay
        self.error = error
        self.calls: list[Query] = []
        self.cancelled = False

    async def _search(self, query: Query) -> list[NormalizedResult]:
        self.calls.append(query)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return list(self.results)


class EnrichingAdapter(FakeAdapter):
    """
    Returns its hits after a second, enrichment call that never answers.

    The enrichment call is bounded by ``enrich_timeout``; its failure must
    not lose the hits.
    """

    def __init__(self, *args, enrich_timeout: float = 0.05, **kwargs):
        super().__init__(*args, **kwargs)
        self.enrich_timeout = enrich_timeout
        self.enrich_timed_out = False

    async def _search(self, query: Query) -> list[NormalizedResult]:
        hits = await super()._search(query)
        try:
            async with asyncio.timeout(self.enrich_timeout):
                await asyncio.Event().wait()
        except TimeoutError:
            self.enrich_timed_out = True
        return hits


def make_result(
    source: str = "arxiv",
    title: str = "Climate model intercomparison",
    *,
    id: str | None = None,
    type: ResourceType = ResourceType.PAPER,
    **kwargs,
) -> NormalizedResult:
    """Build a NormalizedResult with sensible defaults."""
    return NormalizedResult(
        id=id if id is not None else f"{source}-{title.lower().replace(' ', '-')}",
        source=source,
        type=type,
        title=title,
        **kwargs,
    )


# ============================================================
# Fixtures
# ============================================================


@pytest.fixture
def result_factory():
    """Factory for NormalizedResult objects."""
    return make_result


@pytest.fixture
def settings():
    """Settings with a short request deadline for fast tests."""
    return SearchSettings(request_deadline=0.5, provider_timeout=0.5)


@pytest.fixture
def aggregator():
    """Aggregator with a pinned year so recency boosts are reproducible."""
    return ResultAggregator(RankingConfig(current_year=2024))


@pytest.fixture
def paper_adapter():
    return FakeAdapter(
        "papers",
        {ResourceType.PAPER},
        [
            make_result("papers", "Climate model intercomparison project", year=2023),
            make_result("papers", "Regional climate model downscaling", year=2019),
        ],
    )


@pytest.fixture
def code_adapter():
    return FakeAdapter(
        "code",
        {ResourceType.CODE},
        [make_result("code", "climate-model-toolkit", type=ResourceType.CODE, year=2022)],
    )


@pytest.fixture
def registry(paper_adapter, code_adapter):
    """Registry with one paper and one code provider."""
    return ProviderRegistry.from_adapters([paper_adapter, code_adapter])
