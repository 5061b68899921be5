"""
arXiv Adapter

Preprint search via the arXiv Atom API.

API Documentation: https://info.arxiv.org/help/api/
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import TYPE_CHECKING

import defusedxml.ElementTree as ET

from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api/query"

ATOM_NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
}

_ARXIV_ID_RE = re.compile(r"arxiv\.org/abs/(.+)$")


class ArxivAdapter(BaseProviderAdapter):
    """arXiv preprint search (physics, CS, math, climate science...)."""

    name = "arxiv"
    types = frozenset({ResourceType.PAPER})

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {
            "search_query": f"all:{query.text}",
            "start": 0,
            "max_results": min(self.max_results, 100),
        }
        url = f"{ARXIV_API_URL}?{urllib.parse.urlencode(params)}"
        xml_text = await self._make_request(url, expect_json=False)
        return self._parse_atom_response(xml_text)

    def _parse_atom_response(self, xml_text: str) -> list[NormalizedResult]:
        """Parse Atom XML response from arXiv."""
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise ParseError(f"invalid Atom XML: {e}", provider=self.name) from e

        results = []
        for entry in root.findall("atom:entry", ATOM_NS):
            try:
                results.append(self._normalize_entry(entry))
            except ParseError as e:
                logger.debug(f"Skipping arXiv entry: {e}")
        return results

    def _normalize_entry(self, entry: Element) -> NormalizedResult:
        entry_id = _text(entry, "atom:id")
        match = _ARXIV_ID_RE.search(entry_id)
        arxiv_id = match.group(1) if match else entry_id

        url = ""
        for link in entry.findall("atom:link", ATOM_NS):
            if link.get("rel") == "alternate" and link.get("href"):
                url = link.get("href", "")
                break
        url = (url or entry_id).replace("http://", "https://", 1)

        authors = [
            name
            for author in entry.findall("atom:author", ATOM_NS)
            if (name := _text(author, "atom:name"))
        ]
        categories = [cat.get("term", "") for cat in entry.findall("atom:category", ATOM_NS)]

        return NormalizedResult(
            id=arxiv_id,
            source=self.name,
            type=ResourceType.PAPER,
            title=self._clean_text(_text(entry, "atom:title")),
            url=url,
            description=self._clean_text(_text(entry, "atom:summary")),
            authors=tuple(authors),
            year=self._parse_year(_text(entry, "atom:published")),
            license=_text(entry, "arxiv:license") or None,
            tags=frozenset(categories),
        )


def _text(element: Element, path: str) -> str:
    found = element.find(path, ATOM_NS)
    if found is None or not found.text:
        return ""
    return found.text.strip()
