"""
GitHub Adapter

Repository search via the GitHub REST API.

Unauthenticated search is limited to 10 requests per minute; set
``GITHUB_TOKEN`` to raise the limit.

API Documentation: https://docs.github.com/en/rest/search/search#search-repositories
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"


class GitHubAdapter(BaseProviderAdapter):
    """GitHub repository search."""

    name = "github"
    types = frozenset({ResourceType.CODE})

    def __init__(self, token: str | None = None, **kwargs: Any):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        super().__init__(headers=headers, **kwargs)

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {"q": query.text, "per_page": str(min(self.max_results, 100))}
        url = f"{GITHUB_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = self._require_mapping(await self._make_request(url))

        results = []
        for repo in self._require_list(data.get("items")):
            try:
                results.append(self._normalize_repo(repo))
            except ParseError as e:
                logger.debug(f"Skipping GitHub repository: {e}")
        return results

    def _normalize_repo(self, repo: Any) -> NormalizedResult:
        repo = self._require_mapping(repo, "repository")
        owner = (repo.get("owner") or {}).get("login")
        license_info = repo.get("license") or {}

        return NormalizedResult(
            id=str(repo["id"]) if repo.get("id") is not None else "",
            source=self.name,
            type=ResourceType.CODE,
            title=repo.get("full_name") or repo.get("name") or "",
            url=repo.get("html_url") or "",
            description=self._clean_text(repo.get("description")),
            authors=(owner,) if owner else (),
            year=self._parse_year(repo.get("created_at")),
            license=license_info.get("spdx_id") or license_info.get("name"),
            tags=frozenset(t for t in repo.get("topics") or [] if isinstance(t, str)),
            raw_score=repo.get("score"),
        )
