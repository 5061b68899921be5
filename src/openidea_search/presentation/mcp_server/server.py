"""
OpenIdea Search MCP Server

A Model Context Protocol server exposing federated resource search.

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tools.py: Tool implementations
- container: DI container (dependency-injector) for service lifecycle
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from mcp.server.fastmcp import FastMCP

from openidea_search.container import ApplicationContainer

from .instructions import SERVER_INSTRUCTIONS
from .tools import register_search_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from openidea_search.application.search.service import QueryService

logger = logging.getLogger(__name__)


def _make_lifespan(
    service: QueryService,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[QueryService]]:
    """Create a FastMCP lifespan handler bound to *service*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[QueryService]:
        """Application lifecycle: startup → yield → shutdown."""
        logger.info("Lifecycle: startup, providers ready")
        try:
            yield service
        finally:
            await service.close()
            logger.info("Lifecycle: shutdown, provider clients closed")

    return _lifespan


def create_server(
    name: str = "openidea-search",
    container: ApplicationContainer | None = None,
) -> FastMCP:
    """
    Create and configure the OpenIdea Search MCP server.

    Args:
        name: Server name.
        container: DI container; a fresh one (settings from the environment)
                   if None. Tests pass a container with overridden providers.

    Returns:
        Configured FastMCP server instance.
    """
    logger.info("Initializing OpenIdea Search MCP Server...")

    container = container or ApplicationContainer()
    service = cast("QueryService", container.query_service())

    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=_make_lifespan(service),
    )

    tools = register_search_tools(mcp, service)
    logger.info(f"OpenIdea Search MCP Server initialized with {len(tools)} tools")
    return mcp


def main():
    """Run the MCP server (stdio)."""
    container = ApplicationContainer()
    settings = container.settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    server = create_server(container=container)
    server.run()


if __name__ == "__main__":
    main()
