"""
Resource entities - Canonical data model for federated resource search.

Every provider adapter maps its native payload into ``NormalizedResult``.
Type-specific metadata is a closed tagged union keyed by ``ResourceType``:

    model    -> ModelMeta(pipeline)
    hardware -> HardwareMeta(cert_id)
    video    -> VideoMeta(duration, channel)
    paper / dataset / code -> NoMeta()

Pairing a payload with the wrong resource type is a construction-time
``ParseError``, never a silently missing field.

Example:
    >>> result = NormalizedResult(
    ...     id="bert-base-uncased",
    ...     source="huggingface",
    ...     type=ResourceType.MODEL,
    ...     title="bert-base-uncased",
    ...     url="https://huggingface.co/bert-base-uncased",
    ...     meta=ModelMeta(pipeline="fill-mask"),
    ... )
    >>> result.to_dict()["meta"]
    {'pipeline': 'fill-mask'}
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from openidea_search.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from openidea_search.core.exceptions import (
    InvalidParameterError,
    InvalidQueryError,
    ParseError,
)

# License placeholders that mean "no license asserted"
_NO_LICENSE = {"", "noassertion", "none"}


class ResourceType(Enum):
    """Resource kinds returned by providers."""

    PAPER = "paper"
    DATASET = "dataset"
    CODE = "code"
    MODEL = "model"
    HARDWARE = "hardware"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: str | ResourceType) -> ResourceType:
        """Parse a resource type, raising ParseError for unknown values."""
        if isinstance(value, ResourceType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ParseError(f"unknown resource type {value!r}") from e


class TypeFilter(Enum):
    """Requested type restriction: ``all`` or a single resource type."""

    ALL = "all"
    PAPER = "paper"
    DATASET = "dataset"
    CODE = "code"
    MODEL = "model"
    HARDWARE = "hardware"
    VIDEO = "video"

    @property
    def resource_type(self) -> ResourceType | None:
        """The single type this filter selects, or None for ``all``."""
        if self is TypeFilter.ALL:
            return None
        return ResourceType(self.value)

    def accepts(self, resource_type: ResourceType) -> bool:
        return self is TypeFilter.ALL or self.value == resource_type.value

    @classmethod
    def parse(cls, value: str | TypeFilter | None) -> TypeFilter:
        """Parse a filter value; None and empty mean ``all``."""
        if isinstance(value, TypeFilter):
            return value
        if value is None or not str(value).strip():
            return cls.ALL
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            expected = "|".join(f.value for f in cls)
            raise InvalidParameterError("type", value, expected) from e


# =============================================================================
# Type-specific metadata (tagged union)
# =============================================================================


@dataclass(frozen=True)
class NoMeta:
    """Payload for types without extra fields (paper, dataset, code)."""

    @property
    def is_empty(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ModelMeta:
    """Machine-learning model payload."""

    pipeline: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.pipeline is None

    def to_dict(self) -> dict[str, Any]:
        return {"pipeline": self.pipeline}


@dataclass(frozen=True)
class HardwareMeta:
    """Open hardware payload (certification id from OSHWA and similar)."""

    cert_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.cert_id is None

    def to_dict(self) -> dict[str, Any]:
        return {"cert_id": self.cert_id}


@dataclass(frozen=True)
class VideoMeta:
    """Video payload. ``duration`` is the provider's ISO-8601 duration string."""

    duration: str | None = None
    channel: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.duration is None and self.channel is None

    def to_dict(self) -> dict[str, Any]:
        return {"duration": self.duration, "channel": self.channel}


type TypeMeta = NoMeta | ModelMeta | HardwareMeta | VideoMeta

META_BY_TYPE: dict[ResourceType, type[NoMeta] | type[ModelMeta] | type[HardwareMeta] | type[VideoMeta]] = {
    ResourceType.PAPER: NoMeta,
    ResourceType.DATASET: NoMeta,
    ResourceType.CODE: NoMeta,
    ResourceType.MODEL: ModelMeta,
    ResourceType.HARDWARE: HardwareMeta,
    ResourceType.VIDEO: VideoMeta,
}


def meta_for(resource_type: ResourceType | str, **values: Any) -> TypeMeta:
    """
    Build the metadata payload for a resource type.

    Raises:
        ParseError: Unknown resource type, or fields the payload does not have
    """
    rtype = ResourceType.parse(resource_type)
    meta_cls = META_BY_TYPE[rtype]
    allowed = {f.name for f in fields(meta_cls)}
    unexpected = set(values) - allowed
    if unexpected:
        raise ParseError(f"{rtype.value} metadata has no fields {sorted(unexpected)}")
    return meta_cls(**{k: (str(v) if v is not None else None) for k, v in values.items()})


def synthesize_id(source: str, title: str) -> str:
    """Deterministic id for results whose provider supplies none."""
    digest = hashlib.sha1(f"{source}\x00{title.strip().lower()}".encode()).hexdigest()
    return f"{source}:{digest[:16]}"


def normalize_license(value: Any) -> str | None:
    """Map provider license placeholders (NOASSERTION, empty) to None."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _NO_LICENSE:
        return None
    return text


# =============================================================================
# Query
# =============================================================================


@dataclass(frozen=True)
class Query:
    """
    One search request. Immutable once constructed.

    ``page_size`` above MAX_PAGE_SIZE is clamped; below 1 is an error.
    """

    text: str
    type_filter: TypeFilter = TypeFilter.ALL
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise InvalidQueryError(self.text)
        object.__setattr__(self, "text", self.text.strip())
        object.__setattr__(self, "type_filter", TypeFilter.parse(self.type_filter))
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidParameterError("page", self.page, "an integer >= 1")
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 1:
            raise InvalidParameterError("pageSize", self.page_size, f"an integer in [1, {MAX_PAGE_SIZE}]")
        if self.page_size > MAX_PAGE_SIZE:
            object.__setattr__(self, "page_size", MAX_PAGE_SIZE)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class NormalizedResult:
    """
    Canonical result shape every adapter produces.

    ``id`` is unique within ``source`` only; collisions across sources are
    resolved by deduplication. ``raw_score`` is provider-native and never
    compared across providers.
    """

    id: str
    source: str
    type: ResourceType
    title: str
    url: str = ""
    description: str = ""
    authors: tuple[str, ...] = ()
    year: int | None = None
    license: str | None = None
    tags: frozenset[str] = frozenset()
    meta: TypeMeta | None = None
    raw_score: float | None = None

    def __post_init__(self) -> None:
        rtype = ResourceType.parse(self.type)
        object.__setattr__(self, "type", rtype)

        title = (self.title or "").strip()
        url = (self.url or "").strip()
        rid = str(self.id or "").strip()
        if not rid:
            if url:
                rid = url
            elif title:
                rid = synthesize_id(self.source, title)
            else:
                raise ParseError("result has neither id, url nor title", provider=self.source)
        object.__setattr__(self, "id", rid)
        object.__setattr__(self, "title", title)
        object.__setattr__(self, "url", url)
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(self, "authors", tuple(a.strip() for a in self.authors if a and a.strip()))
        object.__setattr__(self, "tags", frozenset(t.strip() for t in self.tags if t and t.strip()))
        object.__setattr__(self, "license", normalize_license(self.license))

        expected = META_BY_TYPE[rtype]
        if self.meta is None:
            object.__setattr__(self, "meta", expected())
        elif type(self.meta) is not expected:
            raise ParseError(
                f"{type(self.meta).__name__} payload is not valid for type '{rtype.value}'",
                provider=self.source,
            )

    @property
    def metadata_richness(self) -> int:
        """Count of optional fields carrying data (used to pick merge primaries)."""
        return sum(
            1
            for x in [
                self.description,
                self.authors,
                self.year,
                self.license,
                self.tags,
                not self.meta.is_empty,  # type: ignore[union-attr]
            ]
            if x
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire shape consumed by the UI and the workspace save sink."""
        return {
            "id": self.id,
            "source": self.source,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "authors": list(self.authors),
            "year": self.year,
            "license": self.license,
            "url": self.url,
            "tags": sorted(self.tags),
            "meta": self.meta.to_dict(),  # type: ignore[union-attr]
        }


@dataclass(frozen=True, kw_only=True)
class RankedResult(NormalizedResult):
    """A NormalizedResult with a globally comparable score."""

    score: float = 0.0
    merged_from: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_result(
        cls,
        result: NormalizedResult,
        *,
        score: float,
        merged_from: frozenset[str] | None = None,
    ) -> RankedResult:
        values = {f.name: getattr(result, f.name) for f in fields(NormalizedResult)}
        return cls(**values, score=score, merged_from=merged_from or frozenset({result.source}))

    def to_dict(self) -> dict[str, Any]:
        data = NormalizedResult.to_dict(self)
        data["score"] = round(self.score, 6)
        data["mergedFrom"] = sorted(self.merged_from)
        return data


# =============================================================================
# Adapter outcomes and the response
# =============================================================================


class OutcomeStatus(Enum):
    """Terminal state of one adapter call."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class AdapterOutcome:
    """Result of invoking one adapter for one request. Never persisted."""

    source: str
    status: OutcomeStatus
    results: tuple[NormalizedResult, ...] = ()
    elapsed_ms: float = 0.0
    error_detail: str | None = None

    @classmethod
    def success(cls, source: str, results: list[NormalizedResult] | tuple[NormalizedResult, ...], elapsed_ms: float) -> AdapterOutcome:
        """OK with results, or EMPTY when there are none."""
        status = OutcomeStatus.OK if results else OutcomeStatus.EMPTY
        return cls(source=source, status=status, results=tuple(results), elapsed_ms=elapsed_ms)

    @classmethod
    def failure(cls, source: str, detail: str, elapsed_ms: float) -> AdapterOutcome:
        return cls(source=source, status=OutcomeStatus.ERROR, elapsed_ms=elapsed_ms, error_detail=detail)

    @classmethod
    def timed_out(cls, source: str, elapsed_ms: float) -> AdapterOutcome:
        return cls(
            source=source,
            status=OutcomeStatus.TIMEOUT,
            elapsed_ms=elapsed_ms,
            error_detail="deadline exceeded",
        )

    @property
    def received_count(self) -> int:
        """Coverage contribution: result count for OK, zero otherwise."""
        return len(self.results) if self.status is OutcomeStatus.OK else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "status": self.status.value,
            "count": self.received_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "error": self.error_detail,
        }


@dataclass(frozen=True)
class SearchResponse:
    """Response returned by the query service for one request."""

    results: tuple[RankedResult, ...]
    total: int
    page: int
    page_size: int
    has_more: bool
    coverage: dict[str, int]
    stats: dict[str, Any] | None = None
    decisions: list[dict[str, str]] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "results": [r.to_dict() for r in self.results],
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "hasMore": self.has_more,
            "coverage": dict(self.coverage),
        }
        if self.stats is not None:
            data["stats"] = self.stats
        if self.decisions is not None:
            data["decisions"] = self.decisions
        return data
