"""
Search tools for the MCP server.

Both tools return JSON text, mirroring the HTTP API body.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import OpenIdeaSearchError, ValidationError

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from openidea_search.application.search.service import QueryService

logger = logging.getLogger(__name__)

REGISTERED_TOOLS = ["search_resources", "list_providers"]


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def register_search_tools(mcp: FastMCP, service: QueryService) -> list[str]:
    """Register the search tools on ``mcp``. Returns the tool names."""

    @mcp.tool()
    async def search_resources(
        query: str,
        type: str = "all",
        page: int = 1,
        limit: int = 30,
    ) -> str:
        """
        Search papers, datasets, code, models, hardware designs and videos
        across all providers at once.

        Args:
            query: Free-text search, e.g. "climate model"
            type: all | paper | dataset | code | model | hardware | video
            page: 1-based page number
            limit: Results per page (1-100, default 30)

        Returns:
            JSON with results, total, page, pageSize, hasMore, coverage, stats.
            coverage[provider] == 0 means that provider contributed nothing
            (no hits, error or timeout).
        """
        try:
            response = await service.search({"q": query, "type": type, "page": page, "limit": limit})
        except ValidationError as e:
            return _dumps(e.to_dict())
        except OpenIdeaSearchError as e:
            logger.error(f"search_resources failed: {e}")
            return _dumps({"error": "internal error"})
        return _dumps(response.to_dict())

    @mcp.tool()
    async def list_providers() -> str:
        """
        List the registered providers.

        Returns:
            JSON list of {name, types, enabled, timeout}
        """
        return _dumps(service.describe_providers())

    logger.info(f"Registered MCP tools: {', '.join(REGISTERED_TOOLS)}")
    return list(REGISTERED_TOOLS)
