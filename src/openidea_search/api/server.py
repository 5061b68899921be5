"""
HTTP API Server for federated resource search.

Endpoints:
    GET /api/search?q=...&type=...&page=...&limit=...[&debug=1]
    GET /health

Caller errors answer 400 ``{"error": ...}``; unexpected failures answer
500 ``{"error": "internal error"}``. Provider failures never produce a
non-2xx status: they show up as zeros in ``coverage``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..application.search import QueryService
from ..container import ApplicationContainer
from ..core.config import DEFAULT_API_HOST, DEFAULT_API_PORT, load_settings
from ..core.exceptions import OpenIdeaSearchError, ValidationError

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


# Pydantic models for API responses
class ProviderInfo(BaseModel):
    """One registered provider."""

    name: str
    types: list[str]
    enabled: bool
    timeout: float


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    providers: list[ProviderInfo]


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=NO_STORE)


def create_app(service: Optional[QueryService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Pre-built query service (tests). If None, one is built from
                 environment settings at startup and closed at shutdown.

    Returns:
        Configured FastAPI instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "service", None) is None:
            owned = ApplicationContainer().query_service()
            app.state.service = owned
            logger.info("HTTP API server initialized")

        yield

        logger.info("HTTP API server shutting down")
        if owned is not None:
            await owned.close()

    app = FastAPI(
        title="OpenIdea Search API",
        description="Federated search over papers, datasets, code, models, hardware and videos.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def handle_caller_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info(f"Rejected request {request.url.path}: {exc}")
        return _error(400, str(exc))

    @app.exception_handler(OpenIdeaSearchError)
    async def handle_search_error(request: Request, exc: OpenIdeaSearchError) -> JSONResponse:
        logger.error(f"Request {request.url.path} failed: {exc}")
        return _error(500, "internal error")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return _error(500, "internal error")

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint with the provider registry."""
        current: Optional[QueryService] = request.app.state.service
        if current is None:
            return {"status": "initializing", "providers": []}
        return {"status": "healthy", "providers": current.describe_providers()}

    @app.get(
        "/api/search",
        responses={
            400: {"model": ErrorResponse, "description": "Invalid query parameters"},
            500: {"model": ErrorResponse, "description": "Internal error"},
        },
    )
    async def search(request: Request) -> JSONResponse:
        """
        Federated search.

        Query parameters are read raw so validation errors use this API's
        error shape instead of FastAPI's 422 body.
        """
        current: Optional[QueryService] = request.app.state.service
        if current is None:
            return _error(503, "server not initialized")

        response = await current.search(dict(request.query_params))
        return JSONResponse(content=response.to_dict(), headers=NO_STORE)

    return app


def run_api_server(host: str = DEFAULT_API_HOST, port: int = DEFAULT_API_PORT, log_level: str = "info"):
    """
    Run the HTTP API server.

    Args:
        host: Host to bind to (default: 127.0.0.1 for local only)
        port: Port to bind to (default: 8765)
        log_level: uvicorn log level
    """
    import uvicorn

    logger.info(f"Starting HTTP API server on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=log_level)


def main():
    """Entry point for the ``openidea-search-api`` command."""
    import argparse

    settings = load_settings()

    parser = argparse.ArgumentParser(description="OpenIdea Search HTTP API Server")
    parser.add_argument("--host", default=settings.api_host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to bind to")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    run_api_server(host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
