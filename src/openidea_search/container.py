"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management for both surfaces
(HTTP API and MCP server).

Usage::

    from openidea_search.container import ApplicationContainer

    container = ApplicationContainer()
    service = container.query_service()

    # In tests, override any provider:
    container.registry.override(providers.Object(fake_registry))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)


def _create_settings() -> object:
    """Settings from the environment (lazy import keeps startup cheap)."""
    from openidea_search.core.config import load_settings

    return load_settings()


def _create_registry(settings: object) -> object:
    from openidea_search.application.search.registry import build_default_registry

    return build_default_registry(settings)  # type: ignore[arg-type]


def _create_query_service(registry: object, settings: object) -> object:
    from openidea_search.application.search.service import QueryService

    return QueryService(registry, settings=settings)  # type: ignore[arg-type]


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for OpenIdea Search.

    Manages creation of the core services:
    - ``settings``: environment-derived ``SearchSettings``
    - ``registry``: provider registry with all adapters
    - ``query_service``: the search facade
    """

    settings = providers.Singleton(_create_settings)

    registry = providers.Singleton(_create_registry, settings=settings)

    query_service = providers.Singleton(
        _create_query_service,
        registry=registry,
        settings=settings,
    )


__all__ = ["ApplicationContainer"]
