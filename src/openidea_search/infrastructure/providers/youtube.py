"""
YouTube Adapter

Video search via the YouTube Data API v3. Requires ``YOUTUBE_API_KEY``;
the registry keeps this adapter disabled without one.

The search endpoint does not return durations. They are fetched with a
second ``videos`` call; if that call fails or runs out of time the
search hits are still returned, without durations.

API Documentation: https://developers.google.com/youtube/v3/docs/search/list
"""

from __future__ import annotations

import asyncio
import html
import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ParseError, ProviderError
from openidea_search.domain.entities.resource import NormalizedResult, ResourceType, VideoMeta
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

YT_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YT_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
YT_WATCH_URL = "https://www.youtube.com/watch"

# Budget for the duration lookup; the request deadline still applies.
DETAILS_TIMEOUT = 1.5


class YouTubeAdapter(BaseProviderAdapter):
    """YouTube video search."""

    name = "youtube"
    types = frozenset({ResourceType.VIDEO})

    def __init__(self, api_key: str, *, max_results: int = 20, **kwargs: Any):
        self._api_key = api_key
        super().__init__(max_results=max_results, **kwargs)

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {
            "part": "snippet",
            "type": "video",
            "maxResults": str(min(self.max_results, 50)),
            "q": query.text,
            "key": self._api_key,
        }
        url = f"{YT_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = self._require_mapping(await self._make_request(url))

        items = []
        for item in self._require_list(data.get("items")):
            video_id = self._video_id(item)
            if video_id:
                items.append((video_id, item))
            else:
                logger.debug("Skipping YouTube item without videoId")

        durations = await self._fetch_durations([vid for vid, _ in items])

        results = []
        for video_id, item in items:
            try:
                results.append(self._normalize_video(video_id, item, durations.get(video_id)))
            except ParseError as e:
                logger.debug(f"Skipping YouTube video {video_id}: {e}")
        return results

    async def _fetch_durations(self, video_ids: list[str]) -> dict[str, str]:
        """ISO-8601 durations keyed by video id; empty on any failure."""
        if not video_ids:
            return {}
        params = {"part": "contentDetails", "id": ",".join(video_ids), "key": self._api_key}
        url = f"{YT_VIDEOS_URL}?{urllib.parse.urlencode(params)}"
        try:
            async with asyncio.timeout(DETAILS_TIMEOUT):
                data = self._require_mapping(await self._make_request(url))
        except TimeoutError:
            logger.info("youtube: duration lookup timed out, returning hits without durations")
            return {}
        except ProviderError as e:
            logger.info(f"youtube: duration lookup failed ({e}), returning hits without durations")
            return {}

        durations = {}
        for item in data.get("items") or []:
            if not isinstance(item, dict):
                continue
            duration = (item.get("contentDetails") or {}).get("duration")
            if item.get("id") and duration:
                durations[item["id"]] = duration
        return durations

    @staticmethod
    def _video_id(item: Any) -> str:
        if not isinstance(item, dict):
            return ""
        raw_id = item.get("id")
        if isinstance(raw_id, str):
            return raw_id
        if isinstance(raw_id, dict):
            return raw_id.get("videoId") or ""
        return ""

    def _normalize_video(self, video_id: str, item: dict[str, Any], duration: str | None) -> NormalizedResult:
        snippet = item.get("snippet") or {}
        channel = snippet.get("channelTitle")

        return NormalizedResult(
            id=video_id,
            source=self.name,
            type=ResourceType.VIDEO,
            title=html.unescape(self._clean_text(snippet.get("title"))),
            url=f"{YT_WATCH_URL}?{urllib.parse.urlencode({'v': video_id})}",
            description=html.unescape(self._clean_text(snippet.get("description"))),
            authors=(channel,) if channel else (),
            year=self._parse_year(snippet.get("publishedAt")),
            tags=frozenset(t for t in snippet.get("tags") or [] if isinstance(t, str)),
            meta=VideoMeta(duration=duration, channel=channel),
        )
