#!/usr/bin/env python3
"""
OpenIdea Search MCP Server - HTTP Mode

This script runs the OpenIdea Search MCP server over HTTP (SSE or
streamable-http), allowing remote clients to connect. The plain REST API
is served separately by ``openidea-search-api``.

Usage:
    # Run with SSE transport (default, more compatible)
    python run_server.py --transport sse --port 8766

    # Run with streamable-http transport
    python run_server.py --transport streamable-http --port 8766

Environment Variables:
    MCP_PORT: Server port (default: 8766)
    MCP_HOST: Server host (default: 127.0.0.1)
    OPENIDEA_*: Search settings (deadline, providers file, log level)
"""

import argparse
import logging
import os

from openidea_search.container import ApplicationContainer
from openidea_search.presentation.mcp_server import create_server

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Run OpenIdea Search MCP Server in HTTP mode")
    parser.add_argument(
        "--transport",
        choices=["sse", "streamable-http"],
        default="sse",
        help="Transport protocol (default: sse)",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("MCP_HOST", "127.0.0.1"),
        help="Server host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MCP_PORT", "8766")),
        help="Server port (default: 8766)",
    )
    args = parser.parse_args()

    container = ApplicationContainer()
    settings = container.settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Creating OpenIdea Search MCP Server...")
    logger.info(f"  Transport: {args.transport}")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Request deadline: {settings.request_deadline}s")

    server = create_server(container=container)

    if args.transport == "sse":
        logger.info("SSE endpoint: /sse")
        mcp_app = server.sse_app()
    else:
        logger.info("Streamable HTTP endpoint: /mcp")
        mcp_app = server.streamable_http_app()

    import uvicorn

    logger.info(f"Starting server at http://{args.host}:{args.port}")
    uvicorn.run(mcp_app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
