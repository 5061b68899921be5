"""
Tests for resource entities: types, metadata payloads, Query, results,
adapter outcomes and the response shape.
"""

import pytest

from openidea_search.core.exceptions import InvalidParameterError, InvalidQueryError, ParseError
from openidea_search.domain.entities.resource import (
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
    normalize_license,
    synthesize_id,
)

# ============================================================
# Types
# ============================================================


class TestResourceType:
    def test_parse(self):
        assert ResourceType.parse(" Dataset ") is ResourceType.DATASET
        assert ResourceType.parse(ResourceType.CODE) is ResourceType.CODE

    def test_parse_unknown(self):
        with pytest.raises(ParseError, match="podcast"):
            ResourceType.parse("podcast")


class TestTypeFilter:
    @pytest.mark.parametrize("value", [None, "", "  ", "all", "ALL"])
    def test_parse_all(self, value):
        assert TypeFilter.parse(value) is TypeFilter.ALL

    def test_parse_specific(self):
        assert TypeFilter.parse("Video") is TypeFilter.VIDEO
        assert TypeFilter.VIDEO.resource_type is ResourceType.VIDEO
        assert TypeFilter.ALL.resource_type is None

    def test_parse_unknown_is_caller_error(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            TypeFilter.parse("podcast")
        assert exc_info.value.param_name == "type"

    def test_accepts(self):
        assert TypeFilter.ALL.accepts(ResourceType.MODEL)
        assert TypeFilter.MODEL.accepts(ResourceType.MODEL)
        assert not TypeFilter.MODEL.accepts(ResourceType.CODE)


# ============================================================
# Metadata
# ============================================================


class TestMeta:
    def test_meta_for(self):
        assert meta_for("model", pipeline="fill-mask") == ModelMeta(pipeline="fill-mask")
        assert meta_for(ResourceType.HARDWARE, cert_id=42) == HardwareMeta(cert_id="42")
        assert meta_for("paper") == NoMeta()

    def test_meta_for_rejects_foreign_fields(self):
        with pytest.raises(ParseError, match="duration"):
            meta_for("model", duration="PT1M")

    def test_emptiness(self):
        assert NoMeta().is_empty
        assert ModelMeta().is_empty
        assert not VideoMeta(channel="NASA").is_empty

    def test_to_dict(self):
        assert VideoMeta("PT3M", "NASA").to_dict() == {"duration": "PT3M", "channel": "NASA"}
        assert NoMeta().to_dict() == {}


class TestHelpers:
    def test_synthesize_id_is_stable(self):
        first = synthesize_id("oshwa", "Open Printer")
        assert first == synthesize_id("oshwa", "  open printer ")
        assert first.startswith("oshwa:")
        assert first != synthesize_id("wikifactory", "Open Printer")

    @pytest.mark.parametrize("value", [None, "", "NOASSERTION", "none", "  "])
    def test_normalize_license_placeholders(self, value):
        assert normalize_license(value) is None

    def test_normalize_license_keeps_value(self):
        assert normalize_license(" MIT ") == "MIT"


# ============================================================
# Query
# ============================================================


class TestQuery:
    def test_defaults(self):
        query = Query("  climate model ")
        assert query.text == "climate model"
        assert query.type_filter is TypeFilter.ALL
        assert query.page == 1
        assert query.page_size == 30

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_text(self, text):
        with pytest.raises(InvalidQueryError):
            Query(text)

    def test_type_filter_from_string(self):
        assert Query("x", type_filter="code").type_filter is TypeFilter.CODE

    def test_page_size_clamped(self):
        assert Query("x", page_size=500).page_size == 100

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"page_size": 0}, {"page": True}, {"page_size": "10"}])
    def test_invalid_paging(self, kwargs):
        with pytest.raises(InvalidParameterError):
            Query("x", **kwargs)


# ============================================================
# Results
# ============================================================


class TestNormalizedResult:
    def test_cleans_fields(self):
        result = NormalizedResult(
            id=" 1 ",
            source="github",
            type="code",
            title="  repo ",
            authors=("alice", " ", ""),
            tags=frozenset({"ml", " "}),
            license="NOASSERTION",
        )
        assert result.id == "1"
        assert result.type is ResourceType.CODE
        assert result.title == "repo"
        assert result.authors == ("alice",)
        assert result.tags == frozenset({"ml"})
        assert result.license is None
        assert result.meta == NoMeta()

    def test_id_falls_back_to_url_then_title(self):
        with_url = NormalizedResult(id="", source="swh", type="code", title="t", url="https://x.org/r")
        assert with_url.id == "https://x.org/r"
        with_title = NormalizedResult(id="", source="oshwa", type="hardware", title="Open Printer")
        assert with_title.id == synthesize_id("oshwa", "Open Printer")

    def test_requires_some_identity(self):
        with pytest.raises(ParseError):
            NormalizedResult(id="", source="x", type="paper", title="")

    def test_meta_must_match_type(self):
        with pytest.raises(ParseError, match="VideoMeta"):
            NormalizedResult(id="1", source="hf", type="model", title="m", meta=VideoMeta())

    def test_default_meta_per_type(self):
        result = NormalizedResult(id="1", source="hf", type="model", title="m")
        assert result.meta == ModelMeta()

    def test_metadata_richness(self):
        bare = NormalizedResult(id="1", source="s", type="model", title="m")
        rich = NormalizedResult(
            id="2",
            source="s",
            type="model",
            title="m",
            description="d",
            authors=("a",),
            year=2020,
            license="MIT",
            tags=frozenset({"t"}),
            meta=ModelMeta("fill-mask"),
        )
        assert bare.metadata_richness == 0
        assert rich.metadata_richness == 6

    def test_to_dict(self):
        result = NormalizedResult(
            id="bert",
            source="huggingface",
            type=ResourceType.MODEL,
            title="bert",
            tags=frozenset({"b", "a"}),
            meta=ModelMeta("fill-mask"),
        )
        data = result.to_dict()
        assert data["type"] == "model"
        assert data["tags"] == ["a", "b"]
        assert data["meta"] == {"pipeline": "fill-mask"}
        assert data["authors"] == []
        assert "raw_score" not in data


class TestRankedResult:
    def test_from_result(self):
        base = NormalizedResult(id="1", source="arxiv", type="paper", title="t", year=2020)
        ranked = RankedResult.from_result(base, score=0.5031234567)
        assert ranked.year == 2020
        assert ranked.merged_from == frozenset({"arxiv"})

        data = ranked.to_dict()
        assert data["score"] == 0.503123
        assert data["mergedFrom"] == ["arxiv"]


# ============================================================
# Outcomes and response
# ============================================================


class TestAdapterOutcome:
    def test_success_and_empty(self):
        result = NormalizedResult(id="1", source="arxiv", type="paper", title="t")
        ok = AdapterOutcome.success("arxiv", [result], 12.0)
        empty = AdapterOutcome.success("arxiv", [], 12.0)
        assert ok.status is OutcomeStatus.OK
        assert ok.received_count == 1
        assert empty.status is OutcomeStatus.EMPTY
        assert empty.received_count == 0

    def test_failure_and_timeout_count_zero(self):
        assert AdapterOutcome.failure("x", "boom", 1.0).received_count == 0
        timed_out = AdapterOutcome.timed_out("x", 1.0)
        assert timed_out.status is OutcomeStatus.TIMEOUT
        assert timed_out.received_count == 0

    def test_to_dict(self):
        data = AdapterOutcome.failure("github", "HTTP 503", 41.26).to_dict()
        assert data == {"source": "github", "status": "error", "count": 0, "elapsed_ms": 41.3, "error": "HTTP 503"}


class TestSearchResponse:
    def test_optional_sections(self):
        response = SearchResponse(results=(), total=0, page=1, page_size=30, has_more=False, coverage={"a": 0})
        data = response.to_dict()
        assert data == {
            "results": [],
            "total": 0,
            "page": 1,
            "pageSize": 30,
            "hasMore": False,
            "coverage": {"a": 0},
        }

        with_debug = SearchResponse(
            results=(), total=0, page=1, page_size=30, has_more=False, coverage={}, stats={}, decisions=[]
        ).to_dict()
        assert with_debug["stats"] == {}
        assert with_debug["decisions"] == []
