"""
ResultAggregator - Multi-Provider Result Merging and Ranking

This module merges the outcomes of one fan-out into a single ranked list:
1. Deduplication (normalized URL, normalized title + type, or similar
   title + shared author + close year) using Union-Find
2. Merging of duplicate groups, keeping the best data from each provider
3. Scoring on a common scale and a total, deterministic ordering

Architecture Decision:
    ResultAggregator operates on NormalizedResult objects.
    It does NOT make API calls - purely processes existing outcomes.

    Provider-native scores (``raw_score``) are never compared. Every result
    is re-scored against the query:

        score = relevance + boost_scale * (agreement_boost + recency_boost)

    relevance is the weighted token overlap. boost_scale shrinks the boosts
    below half the smallest gap between distinct relevance values of the
    result set, so a higher overlap always ranks first and the boosts only
    order results of equal overlap.

Example:
    >>> aggregator = ResultAggregator()
    >>> ranked, stats, decisions = aggregator.aggregate_and_rank(outcomes, query)
"""

from __future__ import annotations

import dataclasses
import logging
import re
import unicodedata
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ConfigurationError
from openidea_search.domain.entities.resource import OutcomeStatus, RankedResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from openidea_search.domain.entities.resource import AdapterOutcome, NormalizedResult, Query

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Titles too generic to identify a resource
GENERIC_TITLES = frozenset({"", "dataset", "introduction", "readme"})

# Query parameters that only track the referrer
_TRACKING_PARAM_RE = re.compile(r"^(utm_|ref)", re.IGNORECASE)

_DOI_URL_RE = re.compile(r"^https?://(dx\.)?doi\.org/", re.IGNORECASE)

# Similar-title merge: minimum token overlap, maximum year distance
TITLE_SIMILARITY_THRESHOLD = 0.92
MAX_YEAR_DISTANCE = 1

_TERM_RE = re.compile(r"\b\w{3,}\b")
_SHORT_TERM_RE = re.compile(r"\w+")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class RankingConfig:
    """
    Configuration for result scoring.

    Relevance weights should sum to 1.0 (normalized if not). Boosts are
    scaled down per result set whenever relevance values sit closer together
    than the boosts, so they never reorder different overlaps.
    """

    # Relevance weights (token overlap per field)
    title_weight: float = 0.5
    description_weight: float = 0.3
    tags_weight: float = 0.2

    # Equal overlaps compare equal after rounding to this many decimals
    relevance_precision: int = 9

    # Cross-provider agreement: per extra provider, capped
    agreement_step: float = 0.002
    agreement_cap: float = 0.006

    # Recency: max boost, halving every N years
    recency_max: float = 0.003
    recency_half_life_years: float = 5.0

    # Pin "now" for reproducible scores (tests); None = current UTC year
    current_year: int | None = None

    def __post_init__(self) -> None:
        if min(self.agreement_step, self.agreement_cap, self.recency_max) < 0:
            raise ConfigurationError("Ranking boosts must not be negative")
        if self.recency_half_life_years <= 0:
            raise ConfigurationError("recency_half_life_years must be positive")

    @property
    def max_boost(self) -> float:
        return self.agreement_cap + self.recency_max

    def normalized_weights(self) -> dict[str, float]:
        """Get normalized weights that sum to 1.0."""
        total = self.title_weight + self.description_weight + self.tags_weight
        if total == 0:
            total = 1.0
        return {
            "title": self.title_weight / total,
            "description": self.description_weight / total,
            "tags": self.tags_weight / total,
        }

    def year_now(self) -> int:
        return self.current_year or datetime.now(timezone.utc).year


@dataclass
class AggregationStats:
    """Statistics from aggregation process."""

    total_input: int = 0
    unique_results: int = 0
    duplicates_removed: int = 0
    merged_records: int = 0
    by_source: dict[str, int] = field(default_factory=dict)
    dedup_by_url: int = 0
    dedup_by_title: int = 0
    dedup_by_similarity: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_input": self.total_input,
            "unique_results": self.unique_results,
            "duplicates_removed": self.duplicates_removed,
            "merged_records": self.merged_records,
            "by_source": dict(sorted(self.by_source.items())),
            "dedup_by_url": self.dedup_by_url,
            "dedup_by_title": self.dedup_by_title,
            "dedup_by_similarity": self.dedup_by_similarity,
        }


@dataclass(frozen=True)
class MergeDecision:
    """One duplicate folded into a primary result."""

    winner_id: str
    loser_id: str
    reason: str  # "url" | "title" | "tya" (title + year + authors)

    def to_dict(self) -> dict[str, str]:
        return {"winner_id": self.winner_id, "loser_id": self.loser_id, "reason": self.reason}


# =============================================================================
# Union-Find for near-linear Deduplication
# =============================================================================


class UnionFind:
    """
    Union-Find (Disjoint Set Union) data structure for efficient deduplication.

    Time Complexity:
    - find: O(α(n)) ≈ O(1) amortized (inverse Ackermann)
    - union: O(α(n)) ≈ O(1) amortized
    """

    def __init__(self, n: int):
        """Initialize with n elements (0 to n-1)."""
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        """Find root with path compression."""
        if self.parent[x] != x:
            self.parent[x] = self.find(self.parent[x])
        return self.parent[x]

    def union(self, x: int, y: int) -> bool:
        """
        Union by rank. Returns True if x and y were in different sets.
        """
        px, py = self.find(x), self.find(y)
        if px == py:
            return False

        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px

        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1

        return True

    def get_groups(self) -> list[list[int]]:
        """All groups, each sorted, ordered by smallest member."""
        groups: dict[int, list[int]] = {}
        for i in range(len(self.parent)):
            groups.setdefault(self.find(i), []).append(i)
        return sorted(groups.values(), key=lambda members: members[0])


# =============================================================================
# Normalization
# =============================================================================


def normalize_url(url: str) -> str:
    """
    Identity key for a URL.

    Lower-cased, fragment dropped, ``utm_*``/``ref*`` query parameters
    dropped, trailing slash dropped. doi.org links reduce to ``doi:<doi>``
    so dx.doi.org and doi.org spellings agree.
    """
    url = (url or "").strip().lower()
    if not url:
        return ""
    if _DOI_URL_RE.match(url):
        return "doi:" + _DOI_URL_RE.sub("", url).rstrip("/")

    parts = urllib.parse.urlsplit(url)
    params = [
        (key, value)
        for key, value in urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
        if not _TRACKING_PARAM_RE.match(key)
    ]
    path = parts.path.rstrip("/")
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, path, urllib.parse.urlencode(params), ""))


def normalize_title(title: str) -> str:
    """Lower-case, Unicode punctuation and symbols (``™``, ``©``, ``_``) removed, whitespace collapsed."""
    title = (title or "").lower()
    title = "".join(" " if unicodedata.category(ch)[0] in "PS" else ch for ch in title)
    return " ".join(title.split())


def title_similarity(a: str, b: str) -> float:
    """Share of title tokens (3+ characters) found in the other title, over the longer title."""
    tokens_a = [t for t in normalize_title(a).split() if len(t) > 2]
    tokens_b = [t for t in normalize_title(b).split() if len(t) > 2]
    set_b = set(tokens_b)
    overlap = sum(1 for t in tokens_a if t in set_b)
    return min(1.0, overlap / max(len(tokens_a), len(tokens_b), 1))


def _authors_overlap(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    return bool({name.strip().lower() for name in a} & {name.strip().lower() for name in b})


def _terms(text: str) -> set[str]:
    return set(_TERM_RE.findall(text.lower()))


def canonical_key(result: NormalizedResult) -> tuple[Any, ...]:
    """Total order over results, used to make grouping input-order independent."""
    return (
        result.source,
        result.id,
        result.title.lower(),
        result.url,
        result.title,
        result.description,
        result.authors,
        result.year is None,
        result.year or 0,
        result.license or "",
        tuple(sorted(result.tags)),
    )


# =============================================================================
# ResultAggregator
# =============================================================================


class ResultAggregator:
    """
    Merges and ranks the results of one fan-out.

    Responsibilities:
    1. Deduplicate results across providers (Union-Find)
    2. Merge data from the same resource in different providers
    3. Score every merged result on one scale
    4. Sort with a total order (output independent of input order)

    Usage:
        aggregator = ResultAggregator()
        ranked = aggregator.rank(outcomes, query)

        # With statistics and merge decisions
        ranked, stats, decisions = aggregator.aggregate_and_rank(outcomes, query)
    """

    def __init__(self, config: RankingConfig | None = None):
        """
        Initialize ResultAggregator.

        Args:
            config: Scoring configuration
        """
        self._config = config or RankingConfig()

    @property
    def config(self) -> RankingConfig:
        return self._config

    def rank(self, outcomes: Iterable[AdapterOutcome], query: Query) -> list[RankedResult]:
        """Deduplicate, score and sort the results of the given outcomes."""
        ranked, _, _ = self.aggregate_and_rank(outcomes, query)
        return ranked

    def aggregate_and_rank(
        self,
        outcomes: Iterable[AdapterOutcome],
        query: Query,
    ) -> tuple[list[RankedResult], AggregationStats, list[MergeDecision]]:
        """
        Aggregate and rank in one call.

        Only ``ok`` outcomes contribute results.

        Returns:
            Tuple of (ranked results, aggregation statistics, merge decisions)
        """
        stats = AggregationStats()
        results: list[NormalizedResult] = []
        for outcome in outcomes:
            if outcome.status is not OutcomeStatus.OK:
                continue
            results.extend(outcome.results)
            stats.by_source[outcome.source] = stats.by_source.get(outcome.source, 0) + len(outcome.results)

        stats.total_input = len(results)
        if not results:
            return [], stats, []

        merged, decisions = self._deduplicate_union_find(results, stats)
        stats.unique_results = len(merged)
        stats.duplicates_removed = stats.total_input - stats.unique_results

        year_now = self._config.year_now()
        relevances = [
            round(self._calculate_relevance(result, query.text), self._config.relevance_precision)
            for result, _ in merged
        ]
        scale = self._boost_scale(relevances)
        scored = [
            RankedResult.from_result(
                result,
                score=relevance + scale * self._calculate_boost(result, sources, year_now),
                merged_from=sources,
            )
            for (result, sources), relevance in zip(merged, relevances)
        ]
        scored.sort(key=self._sort_key)

        decisions.sort(key=lambda d: (d.winner_id, d.loser_id))
        return scored, stats, decisions

    # =========================================================================
    # Deduplication (Union-Find based)
    # =========================================================================

    def _deduplicate_union_find(
        self,
        results: list[NormalizedResult],
        stats: AggregationStats,
    ) -> tuple[list[tuple[NormalizedResult, frozenset[str]]], list[MergeDecision]]:
        """
        Group duplicates and merge each group.

        Algorithm:
        1. Sort input canonically so grouping is order independent
        2. Index by URL key and (title key, type), union on collision
        3. Union remaining pairs with similar titles, a shared author and
           close years
        4. Merge every group into its primary
        """
        items = sorted(results, key=canonical_key)
        uf = UnionFind(len(items))
        # First rule that joined each item to another
        joined_by: dict[int, str] = {}

        def join(i: int, j: int, reason: str) -> bool:
            if not uf.union(i, j):
                return False
            joined_by.setdefault(i, reason)
            joined_by.setdefault(j, reason)
            return True

        url_keys = [normalize_url(r.url) for r in items]
        title_keys = [normalize_title(r.title) for r in items]

        url_to_idx: dict[str, int] = {}
        title_to_idx: dict[tuple[str, str], int] = {}

        for i, result in enumerate(items):
            url_key = url_keys[i]
            if url_key:
                if url_key in url_to_idx:
                    if join(i, url_to_idx[url_key], "url"):
                        stats.dedup_by_url += 1
                else:
                    url_to_idx[url_key] = i

            title_key = title_keys[i]
            if title_key not in GENERIC_TITLES:
                key = (title_key, result.type.value)
                if key in title_to_idx:
                    if join(i, title_to_idx[key], "title"):
                        stats.dedup_by_title += 1
                else:
                    title_to_idx[key] = i

        for i in range(len(items)):
            for j in range(i + 1, len(items)):
                if uf.find(i) == uf.find(j):
                    continue
                if self._similar(items[i], items[j], title_keys[i], title_keys[j]) and join(i, j, "tya"):
                    stats.dedup_by_similarity += 1

        merged: list[tuple[NormalizedResult, frozenset[str]]] = []
        decisions: list[MergeDecision] = []
        for group in uf.get_groups():
            members = [items[i] for i in group]
            if len(members) == 1:
                merged.append((members[0], frozenset({members[0].source})))
                continue

            primary_idx = self._select_primary(group, items)
            primary = items[primary_idx]
            for i in group:
                if i == primary_idx:
                    continue
                decisions.append(MergeDecision(winner_id=primary.id, loser_id=items[i].id, reason=joined_by[i]))

            merged.append((self._merge_group(primary, members), frozenset(m.source for m in members)))
            stats.merged_records += 1

        return merged, decisions

    @staticmethod
    def _similar(a: NormalizedResult, b: NormalizedResult, title_key_a: str, title_key_b: str) -> bool:
        """
        Same resource under slightly different titles.

        Requires the same type, both years (when known) at most
        MAX_YEAR_DISTANCE apart, title similarity of at least
        TITLE_SIMILARITY_THRESHOLD and at least one shared author.
        Generic titles never match.
        """
        if a.type is not b.type:
            return False
        if title_key_a in GENERIC_TITLES or title_key_b in GENERIC_TITLES:
            return False
        if a.year is not None and b.year is not None and abs(a.year - b.year) > MAX_YEAR_DISTANCE:
            return False
        if title_similarity(a.title, b.title) < TITLE_SIMILARITY_THRESHOLD:
            return False
        return _authors_overlap(a.authors, b.authors)

    def _select_primary(self, group: list[int], items: list[NormalizedResult]) -> int:
        """
        Select the primary member of a duplicate group.

        Priority:
        1. Richest metadata (most optional fields filled)
        2. Lowest (source, id), so the choice never depends on input order
        """

        def score(i: int) -> tuple[int, str, str]:
            result = items[i]
            return (-result.metadata_richness, result.source, result.id)

        return min(group, key=score)

    def _merge_group(self, primary: NormalizedResult, members: list[NormalizedResult]) -> NormalizedResult:
        """
        Merge a duplicate group into one result.

        Keeps the primary's identity (id, source, url, title, type); other
        fields take the best data across members, visited in (source, id)
        order.
        """
        ordered = sorted(members, key=lambda r: (r.source, r.id))

        description = primary.description
        for member in ordered:
            if len(member.description) > len(description):
                description = member.description

        license_ = next((m.license for m in ordered if m.license), None)
        year = next((m.year for m in ordered if m.year is not None), None)

        tags = frozenset(tag.lower() for m in ordered for tag in m.tags)

        authors: list[str] = []
        seen_authors: set[str] = set()
        for member in [primary, *ordered]:
            for author in member.authors:
                if author.lower() not in seen_authors:
                    seen_authors.add(author.lower())
                    authors.append(author)

        return dataclasses.replace(
            primary,
            description=description,
            license=license_,
            year=year,
            tags=tags,
            authors=tuple(authors),
            meta=self._merge_meta(primary, ordered),
        )

    @staticmethod
    def _merge_meta(primary: NormalizedResult, ordered: list[NormalizedResult]) -> Any:
        """Fill the primary's empty meta fields from members of the same type."""
        meta = primary.meta
        donors = [m.meta for m in ordered if m is not primary and type(m.meta) is type(meta)]
        filled = {}
        for meta_field in dataclasses.fields(meta):  # type: ignore[arg-type]
            if getattr(meta, meta_field.name) is not None:
                continue
            for donor in donors:
                value = getattr(donor, meta_field.name)
                if value is not None:
                    filled[meta_field.name] = value
                    break
        return dataclasses.replace(meta, **filled) if filled else meta  # type: ignore[type-var]

    # =========================================================================
    # Scoring
    # =========================================================================

    def _boost_scale(self, relevances: list[float]) -> float:
        """
        Factor for the boosts of one result set.

        Keeps the largest possible boost below half the smallest gap between
        distinct relevance values; 1.0 when the gaps are already wider.
        """
        levels = sorted(set(relevances))
        max_boost = self._config.max_boost
        if len(levels) < 2 or max_boost == 0:
            return 1.0
        gap = min(high - low for low, high in zip(levels, levels[1:]))
        return min(1.0, gap / (2 * max_boost))

    def _calculate_boost(self, result: NormalizedResult, sources: frozenset[str], year_now: int) -> float:
        config = self._config
        agreement = min(config.agreement_step * (len(sources) - 1), config.agreement_cap)
        return agreement + self._calculate_recency(result, year_now)

    def _calculate_relevance(self, result: NormalizedResult, query: str) -> float:
        """
        Relevance score in [0, 1] from query term overlap.

        Terms are words of 3+ characters; queries made only of shorter
        words (e.g. "AI", "3D") fall back to all words.
        """
        query_terms = _terms(query)
        pattern = _TERM_RE
        if not query_terms:
            query_terms = set(_SHORT_TERM_RE.findall(query.lower()))
            pattern = _SHORT_TERM_RE
        if not query_terms:
            return 0.0

        def overlap(text: str) -> float:
            return len(query_terms & set(pattern.findall(text.lower()))) / len(query_terms)

        weights = self._config.normalized_weights()
        relevance = (
            overlap(result.title) * weights["title"]
            + overlap(result.description) * weights["description"]
            + overlap(" ".join(result.tags)) * weights["tags"]
        )
        return min(relevance, 1.0)

    def _calculate_recency(self, result: NormalizedResult, year_now: int) -> float:
        """
        Recency boost with exponential decay.

        Unknown year gets no boost; future years count as this year.
        """
        if result.year is None:
            return 0.0
        age = max(0, year_now - result.year)
        return self._config.recency_max * 0.5 ** (age / self._config.recency_half_life_years)

    @staticmethod
    def _sort_key(result: RankedResult) -> tuple[float, int, int, str, str, str]:
        """score desc, year desc (unknown last), title asc, then (source, id)."""
        return (
            -result.score,
            0 if result.year is not None else 1,
            -(result.year or 0),
            result.title.lower(),
            result.source,
            result.id,
        )


# =============================================================================
# Convenience Functions
# =============================================================================


def rank_results(
    outcomes: Iterable[AdapterOutcome],
    query: Query,
    config: RankingConfig | None = None,
) -> list[RankedResult]:
    """
    Deduplicate and rank outcomes.

    Args:
        outcomes: Adapter outcomes from one fan-out
        query: The query the outcomes answer
        config: Scoring configuration

    Returns:
        Sorted list of ranked results
    """
    return ResultAggregator(config).rank(outcomes, query)
