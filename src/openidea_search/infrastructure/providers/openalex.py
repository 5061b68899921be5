"""
OpenAlex Adapter

Scholarly works search via the OpenAlex API.

API Documentation: https://docs.openalex.org/

Features:
- Completely free and open (no API key required)
- Polite pool via ``mailto`` (higher rate limits)
- Abstracts are shipped as an inverted index and rebuilt here
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from openidea_search.core.config import DEFAULT_CONTACT_EMAIL
from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

OA_WORKS_URL = "https://api.openalex.org/works"


def rebuild_abstract(inverted_index: dict[str, list[int]] | None) -> str:
    """
    Rebuild abstract text from OpenAlex's ``abstract_inverted_index``.

    The index maps each word to the positions it occupies:
        {"Climate": [0], "models": [1, 5], ...}
    """
    if not inverted_index or not isinstance(inverted_index, dict):
        return ""
    positioned: list[tuple[int, str]] = []
    for word, positions in inverted_index.items():
        if not isinstance(positions, list):
            continue
        positioned.extend((pos, word) for pos in positions if isinstance(pos, int))
    positioned.sort()
    return " ".join(word for _, word in positioned)


class OpenAlexAdapter(BaseProviderAdapter):
    """
    OpenAlex works search.

    Usage:
        adapter = OpenAlexAdapter(email="your@email.com")
        outcome = await adapter.fetch(Query("climate model"), deadline)
    """

    name = "openalex"
    types = frozenset({ResourceType.PAPER})

    def __init__(self, email: str | None = None, **kwargs: Any):
        """
        Initialize adapter.

        Args:
            email: Email for polite pool (higher rate limits)
        """
        self._email = email or DEFAULT_CONTACT_EMAIL
        super().__init__(
            headers={
                "User-Agent": f"openidea-search/0.1 (mailto:{self._email})",
                "Accept": "application/json",
            },
            **kwargs,
        )

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {
            "search": query.text,
            "per_page": str(min(self.max_results, 200)),
            "mailto": self._email,
        }
        url = f"{OA_WORKS_URL}?{urllib.parse.urlencode(params)}"
        data = self._require_mapping(await self._make_request(url))

        results = []
        for work in self._require_list(data.get("results")):
            try:
                results.append(self._normalize_work(work))
            except ParseError as e:
                logger.debug(f"Skipping OpenAlex work: {e}")
        return results

    def _normalize_work(self, work: Any) -> NormalizedResult:
        """Map one OpenAlex work to a NormalizedResult."""
        work = self._require_mapping(work, "work")

        doi = work.get("doi") or ""
        openalex_id = work.get("id") or ""

        authors = []
        for authorship in work.get("authorships") or []:
            author = (authorship or {}).get("author") or {}
            if author.get("display_name"):
                authors.append(author["display_name"])

        location = work.get("primary_location") or work.get("best_oa_location") or {}
        keywords = work.get("keywords") or []
        tags = [k.get("display_name", "") for k in keywords if isinstance(k, dict)]

        return NormalizedResult(
            id=doi or openalex_id,
            source=self.name,
            type=ResourceType.PAPER,
            title=self._clean_text(work.get("title") or work.get("display_name")),
            url=doi or openalex_id,
            description=rebuild_abstract(work.get("abstract_inverted_index")),
            authors=tuple(authors),
            year=self._parse_year(work.get("publication_year")),
            license=location.get("license") if isinstance(location, dict) else None,
            tags=frozenset(tags),
            raw_score=work.get("relevance_score"),
        )
