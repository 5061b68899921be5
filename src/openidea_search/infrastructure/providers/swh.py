"""
Software Heritage Adapter

Searches archived software origins (repository URLs) in the Software
Heritage archive.

API Documentation: https://archive.softwareheritage.org/api/1/origin/search/doc/
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

import httpx

from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import _CONTINUE, BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

SWH_ORIGIN_SEARCH_URL = "https://archive.softwareheritage.org/api/1/origin/search"


def origin_title(origin_url: str) -> str:
    """
    Human title for an origin URL.

    https://github.com/ecmwf/climetlab -> ecmwf/climetlab
    """
    parsed = urllib.parse.urlparse(origin_url)
    path = parsed.path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return path or parsed.netloc or origin_url


class SoftwareHeritageAdapter(BaseProviderAdapter):
    """Software Heritage origin search. Results carry only the origin URL."""

    name = "swh"
    types = frozenset({ResourceType.CODE})

    async def _search(self, query: Query) -> list[NormalizedResult]:
        pattern = urllib.parse.quote(query.text, safe="")
        params = {"limit": str(self.max_results), "with_visit": "true"}
        url = f"{SWH_ORIGIN_SEARCH_URL}/{pattern}/?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        results = []
        for origin in self._require_list(data, "origins"):
            try:
                results.append(self._normalize_origin(origin))
            except ParseError as e:
                logger.debug(f"Skipping SWH origin: {e}")
        return results

    def _handle_expected_status(self, response: httpx.Response) -> Any:
        # SWH answers 404 when nothing matches the pattern
        if response.status_code == 404:
            return []
        return _CONTINUE

    def _normalize_origin(self, origin: Any) -> NormalizedResult:
        origin = self._require_mapping(origin, "origin")
        origin_url = str(origin.get("url") or "").strip()
        if not origin_url:
            raise ParseError("origin without url", provider=self.name)

        return NormalizedResult(
            id=origin_url,
            source=self.name,
            type=ResourceType.CODE,
            title=origin_title(origin_url),
            url=origin_url,
        )
