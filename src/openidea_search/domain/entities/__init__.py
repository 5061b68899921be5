"""Domain entities."""

from .resource import (
    AdapterOutcome,
    HardwareMeta,
    ModelMeta,
    NoMeta,
    NormalizedResult,
    OutcomeStatus,
    Query,
    RankedResult,
    ResourceType,
    SearchResponse,
    TypeFilter,
    VideoMeta,
    meta_for,
)

__all__ = [
    "AdapterOutcome",
    "HardwareMeta",
    "ModelMeta",
    "NoMeta",
    "NormalizedResult",
    "OutcomeStatus",
    "Query",
    "RankedResult",
    "ResourceType",
    "SearchResponse",
    "TypeFilter",
    "VideoMeta",
    "meta_for",
]
