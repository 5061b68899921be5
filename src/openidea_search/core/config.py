"""
Runtime settings for OpenIdea Search.

Settings come from environment variables with module-level defaults.
Per-provider overrides (enabled flag, timeout) can be supplied in a YAML file
pointed to by ``OPENIDEA_PROVIDERS_FILE``:

    providers:
      github:
        enabled: false
      arxiv:
        timeout: 4
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_REQUEST_DEADLINE = 6.0
DEFAULT_PROVIDER_TIMEOUT = 8.0
DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100
DEFAULT_CONTACT_EMAIL = "openidea-search@example.com"
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8765
DEFAULT_LOG_LEVEL = "INFO"
USER_AGENT = "openidea-search/0.1"


@dataclass(frozen=True)
class ProviderOverride:
    """Operational override for one provider, from the YAML file."""

    enabled: bool | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class SearchSettings:
    """Process-wide settings, built once at startup."""

    request_deadline: float = DEFAULT_REQUEST_DEADLINE
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    default_page_size: int = DEFAULT_PAGE_SIZE
    contact_email: str = DEFAULT_CONTACT_EMAIL
    github_token: str | None = None
    youtube_api_key: str | None = None
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    provider_overrides: dict[str, ProviderOverride] = field(default_factory=dict)

    def override_for(self, provider: str) -> ProviderOverride:
        return self.provider_overrides.get(provider, ProviderOverride())


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int, *, maximum: int | None = None) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1 or (maximum is not None and value > maximum):
        raise ConfigurationError(f"{name} out of range: {value}")
    return value


def load_provider_overrides(path: str | Path) -> dict[str, ProviderOverride]:
    """
    Parse the provider override YAML file.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    file_path = Path(path)
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read providers file {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in providers file {file_path}: {e}") from e

    providers = data.get("providers", {}) if isinstance(data, dict) else None
    if not isinstance(providers, dict):
        raise ConfigurationError(f"{file_path}: expected a 'providers' mapping")

    overrides: dict[str, ProviderOverride] = {}
    for name, entry in providers.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{file_path}: provider '{name}' must be a mapping")
        unknown = set(entry) - {"enabled", "timeout"}
        if unknown:
            raise ConfigurationError(f"{file_path}: provider '{name}' has unknown keys {sorted(unknown)}")

        enabled = entry.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            raise ConfigurationError(f"{file_path}: provider '{name}'.enabled must be a boolean")

        timeout = entry.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigurationError(f"{file_path}: provider '{name}'.timeout must be a positive number")
            timeout = float(timeout)

        overrides[str(name)] = ProviderOverride(enabled=enabled, timeout=timeout)

    logger.info(f"Loaded provider overrides for: {', '.join(sorted(overrides)) or '(none)'}")
    return overrides


def load_settings() -> SearchSettings:
    """Build settings from environment variables."""
    providers_file = os.environ.get("OPENIDEA_PROVIDERS_FILE", "").strip()
    overrides = load_provider_overrides(providers_file) if providers_file else {}

    return SearchSettings(
        request_deadline=_env_float("OPENIDEA_REQUEST_DEADLINE", DEFAULT_REQUEST_DEADLINE),
        provider_timeout=_env_float("OPENIDEA_PROVIDER_TIMEOUT", DEFAULT_PROVIDER_TIMEOUT),
        default_page_size=_env_int("OPENIDEA_DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE),
        contact_email=os.environ.get("OPENIDEA_CONTACT_EMAIL", "").strip() or DEFAULT_CONTACT_EMAIL,
        github_token=os.environ.get("GITHUB_TOKEN", "").strip() or None,
        youtube_api_key=os.environ.get("YOUTUBE_API_KEY", "").strip() or None,
        api_host=os.environ.get("OPENIDEA_API_HOST", "").strip() or DEFAULT_API_HOST,
        api_port=_env_int("OPENIDEA_API_PORT", DEFAULT_API_PORT, maximum=65535),
        log_level=(os.environ.get("OPENIDEA_LOG_LEVEL", "").strip() or DEFAULT_LOG_LEVEL).upper(),
        provider_overrides=overrides,
    )
