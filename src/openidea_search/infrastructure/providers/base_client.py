"""
Base Provider Adapter - Common request pattern for every external provider.

Provides a reusable base class with:
- Lazily created ``httpx.AsyncClient`` (connection pooling, default headers)
- Retry on 429 (rate limit) with Retry-After support
- Retry with short backoff on transient network errors
- Circuit breaker for fault tolerance
- The adapter boundary: ``fetch()`` never raises. Deadline expiry becomes
  ``status=timeout``; any provider or parsing failure becomes ``status=error``.

Subclasses set ``name`` and ``types`` and implement ``_search()``:

    class MyAdapter(BaseProviderAdapter):
        name = "myapi"
        types = frozenset({ResourceType.DATASET})

        async def _search(self, query: Query) -> list[NormalizedResult]:
            data = await self._make_request("https://api.example.com/search", params={"q": query.text})
            return [self._normalize(item) for item in data["items"]]
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, ClassVar

import httpx
from typing_extensions import Self

from openidea_search.core.async_utils import CircuitBreaker
from openidea_search.core.config import DEFAULT_PROVIDER_TIMEOUT, USER_AGENT
from openidea_search.core.exceptions import (
    NetworkError,
    OpenIdeaSearchError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
    get_retry_delay,
)
from openidea_search.domain.entities.resource import AdapterOutcome

if TYPE_CHECKING:
    from openidea_search.domain.entities.resource import NormalizedResult, Query, ResourceType

logger = logging.getLogger(__name__)

# Upper bound for a single backoff sleep; the request deadline bounds the total.
_MAX_BACKOFF = 2.0


class BaseProviderAdapter:
    """
    Base class for provider adapters.

    Subclasses can override:
    - ``_search()``: required, returns NormalizedResults for a query
    - ``_handle_expected_status()``: service-specific status codes (e.g. 404 = no hits)
    """

    name: ClassVar[str] = "provider"
    types: ClassVar[frozenset[ResourceType]] = frozenset()
    _MAX_RETRIES: ClassVar[int] = 2

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        max_results: int = 30,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        """
        Initialize adapter.

        Args:
            timeout: Per-adapter timeout in seconds (the registry default;
                     the coordinator combines it with the request deadline)
            max_results: Results requested from the provider per call
            headers: Default headers for all requests
            client: Pre-built httpx client (tests, shared pools)
            circuit_breaker: Optional circuit breaker. If None, a default one
                             is created (threshold=5, recovery=60s).
        """
        self.timeout = timeout
        self.max_results = max_results
        self._headers = {"User-Agent": USER_AGENT, **(headers or {})}
        self._client = client
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5, recovery_timeout=60.0, name=self.name
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers,
                follow_redirects=True,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    # =========================================================================
    # Adapter boundary
    # =========================================================================

    async def fetch(self, query: Query, deadline: float) -> AdapterOutcome:
        """
        Run one search against this provider, bounded by ``deadline``.

        Args:
            query: The normalized query
            deadline: Absolute event-loop time after which the call is abandoned

        Returns:
            AdapterOutcome (ok / empty / error / timeout). Never raises,
            except for cancellation by the caller.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()

        def elapsed_ms() -> float:
            return (loop.time() - started) * 1000

        try:
            async with asyncio.timeout_at(deadline):
                async with self._circuit_breaker:
                    results = await self._search(query)
        except TimeoutError:
            logger.warning(f"{self.name}: deadline exceeded after {elapsed_ms():.0f}ms")
            return AdapterOutcome.timed_out(self.name, elapsed_ms())
        except OpenIdeaSearchError as e:
            logger.warning(f"{self.name} search failed: {e}")
            return AdapterOutcome.failure(self.name, str(e), elapsed_ms())
        except Exception as e:
            logger.exception(f"{self.name} search failed unexpectedly: {e}")
            return AdapterOutcome.failure(self.name, f"{type(e).__name__}: {e}", elapsed_ms())

        accepted = [r for r in results if r.type in self.types]
        if len(accepted) != len(results):
            logger.debug(f"{self.name}: dropped {len(results) - len(accepted)} results outside type affinity")

        logger.debug(f"{self.name}: {len(accepted)} results in {elapsed_ms():.0f}ms")
        return AdapterOutcome.success(self.name, accepted, elapsed_ms())

    async def _search(self, query: Query) -> list[NormalizedResult]:
        raise NotImplementedError

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _make_request(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        expect_json: bool = True,
    ) -> Any:
        """
        GET ``url`` with retry on 429 and on transient network errors.

        Returns:
            Parsed JSON, response text, or the value from
            ``_handle_expected_status``

        Raises:
            RateLimitError: Still rate limited after retries
            NetworkError: Connection failed after retries
            ServiceUnavailableError: Non-success HTTP status
            ParseError: Body is not valid JSON when JSON was expected
        """
        for attempt in range(self._MAX_RETRIES + 1):
            try:
                response = await self.client.get(url, params=params, headers=headers)
            except httpx.RequestError as e:
                if attempt < self._MAX_RETRIES:
                    delay = get_retry_delay(e, attempt, cap=_MAX_BACKOFF)
                    logger.warning(f"{self.name} request error (attempt {attempt + 1}): {e!r}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(f"request failed: {e!r}", provider=self.name) from e

            expected = self._handle_expected_status(response)
            if expected is not _CONTINUE:
                return expected

            if response.status_code == 429:
                if attempt < self._MAX_RETRIES:
                    retry_after = self._get_retry_after(response, attempt)
                    logger.warning(
                        f"{self.name}: Rate limited (429), retry {attempt + 1}/{self._MAX_RETRIES} in {retry_after:.1f}s"
                    )
                    await asyncio.sleep(retry_after)
                    continue
                raise RateLimitError("rate limit exceeded after retries", provider=self.name)

            if response.is_error:
                raise ServiceUnavailableError(
                    f"HTTP {response.status_code} {response.reason_phrase}",
                    provider=self.name,
                    status_code=response.status_code,
                )
            return self._parse_response(response, expect_json)

        raise NetworkError("retries exhausted", provider=self.name)

    def _handle_expected_status(self, response: httpx.Response) -> Any:
        """
        Handle expected non-200 status codes that shouldn't trigger an error.

        Return a value to short-circuit, or the sentinel _CONTINUE for
        normal processing. Default: no special handling.
        """
        return _CONTINUE

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        if not expect_json:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"invalid JSON body: {e}", provider=self.name) from e

    @staticmethod
    def _get_retry_after(response: httpx.Response, attempt: int) -> float:
        """Extract Retry-After from response headers, with exponential backoff fallback."""
        try:
            value = float(response.headers.get("Retry-After", 0.5 * 2**attempt))
        except (ValueError, TypeError):
            value = 0.5 * 2**attempt
        return min(max(value, 0.0), _MAX_BACKOFF)

    # =========================================================================
    # Normalization helpers
    # =========================================================================

    def _require_mapping(self, data: Any, what: str = "response") -> dict[str, Any]:
        """Raise ParseError unless ``data`` is a JSON object."""
        if not isinstance(data, dict):
            raise ParseError(f"expected {what} object, got {type(data).__name__}", provider=self.name)
        return data

    def _require_list(self, data: Any, what: str = "results") -> list[Any]:
        """Raise ParseError unless ``data`` is a JSON array (None means empty)."""
        if data is None:
            return []
        if not isinstance(data, list):
            raise ParseError(f"expected {what} array, got {type(data).__name__}", provider=self.name)
        return data

    @staticmethod
    def _parse_year(value: Any) -> int | None:
        """
        Best-effort year extraction.

        - None / "" -> None
        - int -> int
        - "2021-05-01", "2021" -> 2021
        - anything else -> None
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value if 1000 <= value <= 9999 else None
        text = str(value).strip()
        if len(text) >= 4 and text[:4].isdigit():
            return int(text[:4])
        return None

    @staticmethod
    def _clean_text(value: Any) -> str:
        """Collapse whitespace; None becomes empty."""
        if value is None:
            return ""
        return " ".join(str(value).split())

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        types = ",".join(sorted(t.value for t in self.types))
        return f"{type(self).__name__}(name={self.name!r}, types=[{types}])"


# Sentinel object to indicate "continue normal processing" from _handle_expected_status
_CONTINUE = object()
