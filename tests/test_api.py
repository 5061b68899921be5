"""
Tests for the HTTP API (FastAPI TestClient, in-process providers).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from openidea_search.api.server import create_app
from openidea_search.application.search.registry import ProviderRegistry
from openidea_search.application.search.service import QueryService
from openidea_search.core.config import SearchSettings
from openidea_search.core.exceptions import SystemFault
from openidea_search.domain.entities.resource import ResourceType

from conftest import FakeAdapter, make_result


@pytest.fixture
def service():
    registry = ProviderRegistry.from_adapters(
        [
            FakeAdapter(
                "arxiv",
                {ResourceType.PAPER},
                [
                    make_result("arxiv", "Climate model intercomparison", year=2023),
                    make_result("arxiv", "Ocean circulation", year=2020),
                ],
            ),
            FakeAdapter("github", {ResourceType.CODE}, error=RuntimeError("rate limited")),
        ]
    )
    return QueryService(registry, settings=SearchSettings(request_deadline=1.0))


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


class TestSearchEndpoint:
    def test_success_body(self, client):
        response = client.get("/api/search", params={"q": "climate model", "limit": 1})

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        body = response.json()
        assert body["total"] == 2
        assert body["page"] == 1
        assert body["pageSize"] == 1
        assert body["hasMore"] is True
        assert body["coverage"] == {"arxiv": 2, "github": 0}
        (result,) = body["results"]
        assert result["title"] == "Climate model intercomparison"
        assert set(result) >= {"id", "source", "type", "title", "description", "authors", "year", "license", "url", "tags", "meta", "score"}
        assert "decisions" not in body

    def test_debug_adds_decisions(self, client):
        body = client.get("/api/search", params={"q": "climate", "debug": "true"}).json()
        assert body["decisions"] == []

    def test_type_filter(self, client):
        body = client.get("/api/search", params={"q": "climate", "type": "code"}).json()
        assert body["coverage"] == {"github": 0}
        assert body["results"] == []

    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"q": "   "},
            {"q": "x", "type": "podcast"},
            {"q": "x", "page": "0"},
            {"q": "x", "limit": "abc"},
        ],
    )
    def test_caller_errors(self, client, params):
        response = client.get("/api/search", params=params)
        assert response.status_code == 400
        assert set(response.json()) == {"error"}
        assert response.json()["error"]

    def test_system_fault(self):
        broken = MagicMock()
        broken.search = AsyncMock(side_effect=SystemFault())
        client = TestClient(create_app(broken))

        response = client.get("/api/search", params={"q": "x"})

        assert response.status_code == 500
        assert response.json() == {"error": "internal error"}

    def test_unexpected_exception(self):
        broken = MagicMock()
        broken.search = AsyncMock(side_effect=KeyError("boom"))
        client = TestClient(create_app(broken), raise_server_exceptions=False)

        response = client.get("/api/search", params={"q": "x"})

        assert response.status_code == 500
        assert response.json() == {"error": "internal error"}


class TestHealth:
    def test_health_lists_providers(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert [p["name"] for p in body["providers"]] == ["arxiv", "github"]
        assert body["providers"][0]["types"] == ["paper"]
