"""
Tests for the MCP server: creation through the DI container and the
search tools.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from dependency_injector import providers

from openidea_search.application.search.registry import ProviderRegistry
from openidea_search.application.search.service import QueryService
from openidea_search.container import ApplicationContainer
from openidea_search.core.config import SearchSettings
from openidea_search.core.exceptions import SystemFault
from openidea_search.domain.entities.resource import ResourceType
from openidea_search.presentation.mcp_server import create_server, register_search_tools
from openidea_search.presentation.mcp_server.tools import REGISTERED_TOOLS

from conftest import FakeAdapter, make_result


@pytest.fixture
def service():
    registry = ProviderRegistry.from_adapters(
        [
            FakeAdapter("arxiv", {ResourceType.PAPER}, [make_result("arxiv", "Climate model intercomparison")]),
            FakeAdapter("github", {ResourceType.CODE}, [make_result("github", "climate-model", type=ResourceType.CODE)]),
        ]
    )
    return QueryService(registry, settings=SearchSettings(request_deadline=1.0))


@pytest.fixture
def container(service):
    container = ApplicationContainer()
    container.query_service.override(providers.Object(service))
    yield container
    container.query_service.reset_override()


@pytest.fixture
def mcp(container):
    return create_server(container=container)


def _tool(mcp, name):
    return mcp._tool_manager._tools[name]


class TestServerCreation:
    def test_tools_registered(self, mcp):
        names = [t.name for t in mcp._tool_manager.list_tools()]
        assert sorted(names) == sorted(REGISTERED_TOOLS)

    def test_server_name(self, mcp):
        assert mcp.name == "openidea-search"

    def test_register_returns_tool_names(self, service):
        mock_server = MagicMock()
        mock_server.tool = MagicMock(return_value=lambda f: f)
        assert register_search_tools(mock_server, service) == REGISTERED_TOOLS
        assert mock_server.tool.call_count == len(REGISTERED_TOOLS)


class TestSearchResourcesTool:
    async def test_search(self, mcp):
        payload = json.loads(await _tool(mcp, "search_resources").fn(query="climate model"))
        assert payload["total"] == 2
        assert payload["coverage"] == {"arxiv": 1, "github": 1}
        assert payload["pageSize"] == 30

    async def test_type_and_paging(self, mcp):
        payload = json.loads(await _tool(mcp, "search_resources").fn(query="climate model", type="code", limit=1))
        assert payload["coverage"] == {"github": 1}
        assert payload["results"][0]["source"] == "github"

    async def test_caller_error_is_reported(self, mcp):
        payload = json.loads(await _tool(mcp, "search_resources").fn(query="  "))
        assert payload["category"] == "caller"
        assert "Query cannot be empty" in payload["error"]

    async def test_bad_type_is_reported(self, mcp):
        payload = json.loads(await _tool(mcp, "search_resources").fn(query="x", type="podcast"))
        assert "type" in payload["error"]

    async def test_system_fault_hides_details(self):
        broken = MagicMock()
        broken.search = AsyncMock(side_effect=SystemFault("aggregator exploded"))
        mock_server = MagicMock()
        registered = {}

        def tool():
            def decorator(fn):
                registered[fn.__name__] = fn
                return fn

            return decorator

        mock_server.tool = tool
        register_search_tools(mock_server, broken)

        payload = json.loads(await registered["search_resources"](query="x"))
        assert payload == {"error": "internal error"}


class TestListProvidersTool:
    async def test_list(self, mcp):
        payload = json.loads(await _tool(mcp, "list_providers").fn())
        assert [p["name"] for p in payload] == ["arxiv", "github"]
        assert payload[1]["types"] == ["code"]


class TestContainer:
    def test_singletons(self, monkeypatch):
        monkeypatch.delenv("OPENIDEA_PROVIDERS_FILE", raising=False)
        container = ApplicationContainer()
        assert container.settings() is container.settings()
        assert container.query_service() is container.query_service()
        assert container.query_service().registry is container.registry()

    def test_registry_override(self, service):
        container = ApplicationContainer()
        container.registry.override(providers.Object(service.registry))
        try:
            assert container.query_service().registry is service.registry
        finally:
            container.registry.reset_override()
