"""
Allow running MCP server as module: python -m openidea_search.presentation.mcp_server
"""

from __future__ import annotations

from .server import main

if __name__ == "__main__":
    main()
