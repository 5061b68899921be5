"""
Federated Search

Fans one query out to every eligible provider and merges the answers.

Key Components:
- ProviderRegistry: Which adapters exist and which types they serve
- FanOutCoordinator: Concurrent adapter calls under a shared deadline
- ResultAggregator: Dedup + scoring on one scale
- paginate: Page slicing after ranking
- QueryService: Facade used by the HTTP and MCP surfaces

Architecture:
    Raw parameters
        │
        ▼
    ┌──────────────────┐
    │   parse_query    │  ← CallerError before any provider call
    └────────┬─────────┘
             │
             ▼
    ┌──────────────────┐
    │ ProviderRegistry │  ← Selects adapters by type affinity
    └────────┬─────────┘
             │
    ┌────────┴────────┐
    ▼        ▼        ▼
  arXiv   Zenodo   GitHub  ...  ← Parallel, shared deadline
    │        │        │
    └────────┴────────┘
             │
             ▼
    ┌──────────────────┐
    │ ResultAggregator │  ← Dedup + ranking
    └────────┬─────────┘
             │
             ▼
    paginate → SearchResponse
"""

from __future__ import annotations

from .coordinator import FanOutCoordinator
from .paginator import Page, paginate
from .registry import ProviderRegistry, ProviderSettings, build_default_registry
from .result_aggregator import (
    AggregationStats,
    MergeDecision,
    RankingConfig,
    ResultAggregator,
    UnionFind,
    normalize_title,
    normalize_url,
    rank_results,
)
from .service import QueryService, parse_query

__all__ = [
    "AggregationStats",
    "FanOutCoordinator",
    "MergeDecision",
    "Page",
    "ProviderRegistry",
    "ProviderSettings",
    "QueryService",
    "RankingConfig",
    "ResultAggregator",
    "UnionFind",
    "build_default_registry",
    "normalize_title",
    "normalize_url",
    "paginate",
    "parse_query",
    "rank_results",
]
