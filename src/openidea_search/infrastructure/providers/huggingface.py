"""
Hugging Face Adapter

Model search via the Hugging Face Hub API.

API Documentation: https://huggingface.co/docs/hub/api
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from openidea_search.core.exceptions import ParseError
from openidea_search.domain.entities.resource import ModelMeta, NormalizedResult, ResourceType
from openidea_search.infrastructure.providers.base_client import BaseProviderAdapter

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)

HF_MODELS_URL = "https://huggingface.co/api/models"
HF_MODEL_PAGE = "https://huggingface.co"


def split_hub_tags(tags: list[Any]) -> tuple[str | None, list[str]]:
    """
    Separate the ``license:<id>`` tag from ordinary hub tags.

    Hub tags such as ``arxiv:1810.04805`` or ``region:us`` are bookkeeping
    and are dropped.
    """
    license_id = None
    kept = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        prefix, sep, value = tag.partition(":")
        if sep and prefix == "license":
            license_id = license_id or value
        elif not sep:
            kept.append(tag)
    return license_id, kept


class HuggingFaceAdapter(BaseProviderAdapter):
    """Hugging Face Hub model search."""

    name = "huggingface"
    types = frozenset({ResourceType.MODEL})

    async def _search(self, query: Query) -> list[NormalizedResult]:
        params = {"search": query.text, "limit": str(self.max_results), "full": "true"}
        url = f"{HF_MODELS_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        results = []
        for model in self._require_list(data, "models"):
            try:
                results.append(self._normalize_model(model))
            except ParseError as e:
                logger.debug(f"Skipping Hugging Face model: {e}")
        return results

    def _normalize_model(self, model: Any) -> NormalizedResult:
        model = self._require_mapping(model, "model")
        model_id = model.get("id") or model.get("modelId") or ""
        if not model_id:
            raise ParseError("model without id", provider=self.name)

        author = model.get("author") or (model_id.split("/", 1)[0] if "/" in model_id else None)
        card = model.get("cardData") or {}
        tag_license, tags = split_hub_tags(model.get("tags") or [])
        card_license = card.get("license")

        return NormalizedResult(
            id=model_id,
            source=self.name,
            type=ResourceType.MODEL,
            title=model.get("modelId") or model_id,
            url=f"{HF_MODEL_PAGE}/{model_id}",
            description=self._clean_text(card.get("summary") or model.get("description")),
            authors=(author,) if author else (),
            year=self._parse_year(model.get("createdAt")),
            license=card_license if isinstance(card_license, str) else tag_license,
            tags=frozenset(tags),
            meta=ModelMeta(pipeline=model.get("pipeline_tag")),
            raw_score=model.get("downloads"),
        )
