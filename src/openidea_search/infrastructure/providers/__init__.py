"""
Provider adapters.

One adapter per external source. Every adapter maps its native payload to
``NormalizedResult`` and reports an ``AdapterOutcome``; none of them raise
past ``fetch()``.
"""

from .arxiv import ArxivAdapter
from .base_client import BaseProviderAdapter
from .curated import OpenComputeAdapter, OshwaAdapter, WikifactoryAdapter
from .github import GitHubAdapter
from .huggingface import HuggingFaceAdapter
from .openalex import OpenAlexAdapter
from .swh import SoftwareHeritageAdapter
from .youtube import YouTubeAdapter
from .zenodo import ZenodoAdapter

__all__ = [
    "ArxivAdapter",
    "BaseProviderAdapter",
    "GitHubAdapter",
    "HuggingFaceAdapter",
    "OpenAlexAdapter",
    "OpenComputeAdapter",
    "OshwaAdapter",
    "SoftwareHeritageAdapter",
    "WikifactoryAdapter",
    "YouTubeAdapter",
    "ZenodoAdapter",
]
