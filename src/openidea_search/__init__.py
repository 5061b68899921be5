"""
OpenIdea Search - Federated Research-Resource Search

Sends one free-text query to many open-science providers concurrently
(OpenAlex, arXiv, Zenodo, Software Heritage, GitHub, Hugging Face,
YouTube and curated open-hardware catalogs), then merges, de-duplicates,
ranks and paginates the answers.

Usage:
    from openidea_search import QueryService, load_settings

    service = QueryService.from_settings(load_settings())
    response = await service.search({"q": "climate model", "type": "dataset"})

    for result in response.results:
        print(f"{result.score:.3f} [{result.source}] {result.title}")

Features:
    - Shared per-request deadline; slow providers never block the response
    - Partial results with per-provider coverage
    - Cross-provider deduplication (URL, title + type)
    - Deterministic ranking independent of provider arrival order
"""

from .application.search import (
    FanOutCoordinator,
    ProviderRegistry,
    QueryService,
    ResultAggregator,
    build_default_registry,
    paginate,
)
from .core.config import SearchSettings, load_settings
from .domain.entities import (
    AdapterOutcome,
    NormalizedResult,
    Query,
    RankedResult,
    ResourceType,
    SearchResponse,
    TypeFilter,
)

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "QueryService",
    "SearchSettings",
    "load_settings",
    # Components
    "FanOutCoordinator",
    "ProviderRegistry",
    "ResultAggregator",
    "build_default_registry",
    "paginate",
    # Data model
    "AdapterOutcome",
    "NormalizedResult",
    "Query",
    "RankedResult",
    "ResourceType",
    "SearchResponse",
    "TypeFilter",
]
