"""
OpenIdea Search MCP Server

Usage as standalone server:
    python -m openidea_search.presentation.mcp_server

Or in mcp.json:
    {
        "servers": {
            "openidea-search": {
                "type": "stdio",
                "command": "openidea-search-mcp"
            }
        }
    }
"""

from .server import create_server, main
from .tools import register_search_tools

__all__ = ["create_server", "main", "register_search_tools"]
