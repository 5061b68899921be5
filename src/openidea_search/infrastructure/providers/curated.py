"""
Curated Hardware Catalogs

Open hardware registries (OCP, OSHWA certification, Wikifactory) have no
usable search API, so these adapters serve small in-process catalogs with
keyword matching. They share the adapter contract and are fanned out like
any network provider.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from openidea_search.domain.entities.resource import HardwareMeta, NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class CatalogEntry:
    """One curated hardware design."""

    id: str
    title: str
    url: str
    description: str
    authors: tuple[str, ...]
    year: int
    license: str
    cert_id: str
    tags: frozenset[str] = field(default_factory=frozenset)

    def matches(self, text: str) -> bool:
        """
        Keyword match: every query token must occur in the title,
        description or tags.
        """
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return False
        haystack = " ".join([self.title, self.description, *self.tags]).lower()
        return all(token in haystack for token in tokens)


OCP_CATALOG = (
    CatalogEntry(
        id="hw-001",
        title="Open Compute Project Server",
        url="https://www.opencompute.org/wiki/Server/Specs",
        description="Open-source server hardware spec from OCP.",
        authors=("OCP Foundation",),
        year=2021,
        license="CC-BY-4.0",
        cert_id="OCP-2021-001",
        tags=frozenset({"server", "open hardware"}),
    ),
)

OSHWA_CATALOG = (
    CatalogEntry(
        id="oshwa-2021-001",
        title="OSHWA Certified Open Source 3D Printer",
        url="https://certification.oshwa.org/us000001.html",
        description="Certified open source 3D printer hardware.",
        authors=("OSHWA",),
        year=2021,
        license="CERN-OHL-S-2.0",
        cert_id="US000001",
        tags=frozenset({"3d printer", "oshwa", "open hardware"}),
    ),
)

WIKIFACTORY_CATALOG = (
    CatalogEntry(
        id="wikifactory-001",
        title="Open Source Drone Frame",
        url="https://wikifactory.com/@community/open-drone-frame",
        description="A fully open-source drone frame design.",
        authors=("Wikifactory Community",),
        year=2022,
        license="CERN-OHL-P-2.0",
        cert_id="WF-2022-001",
        tags=frozenset({"drone", "wikifactory", "open design"}),
    ),
)


class CuratedCatalogAdapter(BaseProviderAdapter):
    """Keyword search over a fixed catalog. No network access."""

    types = frozenset({ResourceType.HARDWARE})
    catalog: ClassVar[tuple[CatalogEntry, ...]] = ()

    async def _search(self, query: Query) -> list[NormalizedResult]:
        hits = [entry for entry in self.catalog if entry.matches(query.text)]
        return [self._to_result(entry) for entry in hits[: self.max_results]]

    def _to_result(self, entry: CatalogEntry) -> NormalizedResult:
        return NormalizedResult(
            id=entry.id,
            source=self.name,
            type=ResourceType.HARDWARE,
            title=entry.title,
            url=entry.url,
            description=entry.description,
            authors=entry.authors,
            year=entry.year,
            license=entry.license,
            tags=entry.tags,
            meta=HardwareMeta(cert_id=entry.cert_id),
        )


class OpenComputeAdapter(CuratedCatalogAdapter):
    name = "hardware"
    catalog = OCP_CATALOG


class OshwaAdapter(CuratedCatalogAdapter):
    name = "oshwa"
    catalog = OSHWA_CATALOG


class WikifactoryAdapter(CuratedCatalogAdapter):
    name = "wikifactory"
    catalog = WIKIFACTORY_CATALOG
