"""
Provider Registry - Which adapters exist and which serve a given type.

The registry is built once at startup and is read-only afterwards:

    registry = build_default_registry(load_settings())
    adapters = registry.adapters_for(TypeFilter.CODE)   # github, swh

Order of returned adapters is registration order and carries no ranking
meaning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ConfigurationError
from openidea_search.domain.entities.resource import ResourceType, TypeFilter
from openidea_search.infrastructure.providers import (
    ArxivAdapter,
    GitHubAdapter,
    HuggingFaceAdapter,
    OpenAlexAdapter,
    OpenComputeAdapter,
    OshwaAdapter,
    SoftwareHeritageAdapter,
    WikifactoryAdapter,
    YouTubeAdapter,
    ZenodoAdapter,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from openidea_search.core.config import SearchSettings
    from openidea_search.infrastructure.providers import BaseProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSettings:
    """Operational settings for one registered provider."""

    name: str
    types: frozenset[ResourceType]
    timeout: float
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "types": sorted(t.value for t in self.types),
            "enabled": self.enabled,
            "timeout": self.timeout,
        }


@dataclass(frozen=True)
class RegistryEntry:
    adapter: BaseProviderAdapter
    settings: ProviderSettings


class ProviderRegistry:
    """
    Read-only catalog of adapters and their settings.

    Raises:
        ConfigurationError: Two entries share a provider name
    """

    def __init__(self, entries: Iterable[tuple[BaseProviderAdapter, ProviderSettings]]):
        built: list[RegistryEntry] = []
        seen: set[str] = set()
        for adapter, settings in entries:
            if settings.name in seen:
                raise ConfigurationError(f"Duplicate provider name: {settings.name}")
            if settings.name != adapter.name:
                raise ConfigurationError(
                    f"Provider settings name {settings.name!r} does not match adapter {adapter.name!r}"
                )
            seen.add(settings.name)
            built.append(RegistryEntry(adapter=adapter, settings=settings))
        self._entries: tuple[RegistryEntry, ...] = tuple(built)

    @classmethod
    def from_adapters(cls, adapters: Iterable[BaseProviderAdapter]) -> ProviderRegistry:
        """Register adapters with their own affinity and timeout, all enabled."""
        return cls(
            (adapter, ProviderSettings(name=adapter.name, types=adapter.types, timeout=adapter.timeout))
            for adapter in adapters
        )

    @property
    def entries(self) -> tuple[RegistryEntry, ...]:
        return self._entries

    @property
    def names(self) -> list[str]:
        return [entry.settings.name for entry in self._entries]

    def adapters_for(self, type_filter: TypeFilter) -> list[RegistryEntry]:
        """
        Enabled entries serving ``type_filter``.

        ``all`` selects every enabled entry; a specific type selects only
        enabled entries whose affinity includes it.
        """
        wanted = type_filter.resource_type
        return [
            entry
            for entry in self._entries
            if entry.settings.enabled and (wanted is None or wanted in entry.settings.types)
        ]

    def describe(self) -> list[dict[str, Any]]:
        """All entries, including disabled ones."""
        return [entry.settings.to_dict() for entry in self._entries]

    async def close(self) -> None:
        """Close every adapter's HTTP client."""
        for entry in self._entries:
            await entry.adapter.close()

    def __len__(self) -> int:
        return len(self._entries)


def build_default_registry(settings: SearchSettings) -> ProviderRegistry:
    """
    Build the production registry from settings.

    YouTube is disabled unless an API key is configured. Per-provider
    overrides from the providers YAML file may disable any adapter or
    change its timeout.

    Raises:
        ConfigurationError: An override names an unknown provider
    """
    timeout = settings.provider_timeout
    adapters: list[BaseProviderAdapter] = [
        OpenAlexAdapter(email=settings.contact_email, timeout=timeout),
        ArxivAdapter(timeout=timeout),
        ZenodoAdapter(timeout=timeout),
        SoftwareHeritageAdapter(timeout=timeout),
        GitHubAdapter(token=settings.github_token, timeout=timeout),
        HuggingFaceAdapter(timeout=timeout),
        YouTubeAdapter(api_key=settings.youtube_api_key or "", timeout=timeout),
        OpenComputeAdapter(timeout=timeout),
        OshwaAdapter(timeout=timeout),
        WikifactoryAdapter(timeout=timeout),
    ]

    known = {adapter.name for adapter in adapters}
    unknown = set(settings.provider_overrides) - known
    if unknown:
        raise ConfigurationError(f"Provider overrides name unknown providers: {sorted(unknown)}")

    entries = []
    for adapter in adapters:
        override = settings.override_for(adapter.name)
        enabled = override.enabled if override.enabled is not None else True
        if adapter.name == "youtube" and not settings.youtube_api_key:
            if override.enabled:
                logger.warning("youtube enabled in providers file but YOUTUBE_API_KEY is not set; keeping it disabled")
            enabled = False
        if override.timeout is not None:
            adapter.timeout = override.timeout

        entries.append(
            (
                adapter,
                ProviderSettings(
                    name=adapter.name,
                    types=adapter.types,
                    timeout=adapter.timeout,
                    enabled=enabled,
                ),
            )
        )

    registry = ProviderRegistry(entries)
    enabled_names = [entry.settings.name for entry in registry.entries if entry.settings.enabled]
    logger.info(f"Provider registry: {len(enabled_names)}/{len(registry)} enabled ({', '.join(enabled_names)})")
    return registry
