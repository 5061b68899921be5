"""
Zenodo Adapter

Research outputs (datasets, publications) via the Zenodo records API.

API Documentation: https://developers.zenodo.org/
"""

from __future__ import annotations

import html
import logging
import re
import urllib.parse
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

ZENODO_RECORDS_URL = "https://zenodo.org/api/records"

_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(text: str | None) -> str:
    """Zenodo descriptions are HTML fragments; reduce them to plain text."""
    if not text:
        return ""
    return " ".join(html.unescape(_TAG_RE.sub(" ", text)).split())


class ZenodoAdapter(BaseProviderAdapter):
    """Zenodo record search. Datasets map to ``dataset``, everything else to ``paper``."""

    name = "zenodo"
    types = frozenset({ResourceType.PAPER, ResourceType.DATASET})

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {"q": query.text, "size": str(self.max_results)}
        url = f"{ZENODO_RECORDS_URL}?{urllib.parse.urlencode(params)}"
        data = self._require_mapping(await self._make_request(url))
        hits = self._require_mapping(data.get("hits") or {}, "hits")

        results = []
        for record in self._require_list(hits.get("hits")):
            try:
                results.append(self._normalize_record(record))
            except ParseError as e:
                logger.debug(f"Skipping Zenodo record: {e}")
        return results

    def _normalize_record(self, record: Any) -> NormalizedResult:
        record = self._require_mapping(record, "record")
        metadata = record.get("metadata") or {}
        record_id = record.get("id")
        doi = record.get("doi") or metadata.get("doi")

        url = (record.get("links") or {}).get("html") or ""
        if not url and record_id:
            url = f"https://zenodo.org/records/{record_id}"
        if not url and doi:
            url = f"https://doi.org/{doi}"

        resource_type = (metadata.get("resource_type") or {}).get("type")
        rtype = ResourceType.DATASET if resource_type == "dataset" else ResourceType.PAPER

        creators = [c.get("name", "") for c in metadata.get("creators") or [] if isinstance(c, dict)]

        return NormalizedResult(
            id=str(doi or record_id or ""),
            source=self.name,
            type=rtype,
            title=self._clean_text(metadata.get("title")),
            url=url,
            description=strip_html(metadata.get("description")),
            authors=tuple(creators),
            year=self._parse_year(metadata.get("publication_date")),
            license=(metadata.get("license") or {}).get("id"),
            tags=frozenset(k for k in metadata.get("keywords") or [] if isinstance(k, str)),
        )
