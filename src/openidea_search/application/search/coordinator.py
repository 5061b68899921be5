"""
Fan-Out Coordinator - Concurrent provider calls under one shared deadline.

    User Query
        │
        ▼
    ProviderRegistry.adapters_for(type)
        │
    ┌───┴──────┬──────────┐
    ▼          ▼          ▼
  arxiv     zenodo     github      ← one task each, min(shared, own) deadline
    │          │          │
    └──────────┴──────────┘
        │  asyncio.wait(timeout=shared deadline)
        ▼
    AdapterOutcome[] + coverage

Provider failures never fail the request. Outcomes are collected after the
join; adapters still running at the deadline are cancelled and not awaited.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from openidea_search.core.async_utils import gather_until_deadline
from openidea_search.core.config import DEFAULT_REQUEST_DEADLINE
from openidea_search.domain.entities.resource import AdapterOutcome, OutcomeStatus

if TYPE_CHECKING:
    from openidea_search.application.search.registry import ProviderRegistry, RegistryEntry
    from openidea_search.domain.entities.resource import Query

logger = logging.getLogger(__name__)


class FanOutCoordinator:
    """
    Dispatch one query to every eligible adapter concurrently.

    Usage:
        coordinator = FanOutCoordinator(registry, request_deadline=6.0)
        outcomes, coverage = await coordinator.dispatch(query)
    """

    def __init__(self, registry: ProviderRegistry, request_deadline: float = DEFAULT_REQUEST_DEADLINE):
        self._registry = registry
        self._request_deadline = request_deadline

    @property
    def request_deadline(self) -> float:
        return self._request_deadline

    async def dispatch(self, query: Query) -> tuple[list[AdapterOutcome], dict[str, int]]:
        """
        Fan the query out and collect one outcome per selected adapter.

        Returns:
            (outcomes, coverage), both in registration order.
            coverage[source] is the result count for ok outcomes, 0 otherwise.
        """
        entries = self._registry.adapters_for(query.type_filter)
        if not entries:
            logger.info(f"No providers serve type '{query.type_filter.value}'")
            return [], {}

        loop = asyncio.get_running_loop()
        started = loop.time()
        shared_deadline = started + self._request_deadline

        calls = {
            entry.settings.name: entry.adapter.fetch(
                query, min(shared_deadline, started + entry.settings.timeout)
            )
            for entry in entries
        }
        finished, timed_out = await gather_until_deadline(calls, shared_deadline)
        elapsed_ms = (loop.time() - started) * 1000

        if timed_out:
            logger.warning(f"Deadline reached after {elapsed_ms:.0f}ms; abandoned: {', '.join(timed_out)}")

        outcomes = []
        for entry in entries:
            name = entry.settings.name
            if name in finished:
                outcome = self._as_outcome(name, finished[name], elapsed_ms)
            else:
                outcome = AdapterOutcome.timed_out(name, elapsed_ms)
            outcomes.append(self._filter_outcome(outcome, entry, query))

        coverage = {outcome.source: outcome.received_count for outcome in outcomes}
        return outcomes, coverage

    @staticmethod
    def _as_outcome(name: str, value: AdapterOutcome | BaseException, elapsed_ms: float) -> AdapterOutcome:
        """Turn a finished task slot into an outcome."""
        if isinstance(value, AdapterOutcome):
            return value
        if isinstance(value, asyncio.CancelledError):
            return AdapterOutcome.timed_out(name, elapsed_ms)
        # Adapter broke its contract and raised
        logger.error(f"{name} raised past the adapter boundary: {value!r}")
        return AdapterOutcome.failure(name, f"{type(value).__name__}: {value}", elapsed_ms)

    @staticmethod
    def _filter_outcome(outcome: AdapterOutcome, entry: RegistryEntry, query: Query) -> AdapterOutcome:
        """
        Drop results outside the adapter's affinity or the requested type,
        and pin the outcome to the registered source name.
        """
        name = entry.settings.name
        if outcome.status is not OutcomeStatus.OK:
            if outcome.source != name:
                return AdapterOutcome(
                    source=name,
                    status=outcome.status,
                    elapsed_ms=outcome.elapsed_ms,
                    error_detail=outcome.error_detail,
                )
            return outcome

        kept = [
            r
            for r in outcome.results
            if r.type in entry.settings.types and query.type_filter.accepts(r.type) and r.source == name
        ]
        if len(kept) != len(outcome.results):
            logger.debug(f"{name}: coordinator dropped {len(outcome.results) - len(kept)} off-type results")
        if len(kept) == len(outcome.results) and outcome.source == name:
            return outcome
        return AdapterOutcome.success(name, kept, outcome.elapsed_ms)
