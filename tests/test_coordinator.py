"""
Tests for FanOutCoordinator - concurrent dispatch under one shared deadline.
"""

import asyncio
import time
from unittest.mock import AsyncMock

from openidea_search.application.search.coordinator import FanOutCoordinator
from openidea_search.application.search.registry import ProviderRegistry, ProviderSettings
from openidea_search.domain.entities.resource import (
    AdapterOutcome,
    OutcomeStatus,
    Query,
    ResourceType,
)

from conftest import FakeAdapter, make_result


def _statuses(outcomes):
    return {o.source: o.status for o in outcomes}


class TestDispatch:
    async def test_all_succeed(self, registry, paper_adapter, code_adapter):
        coordinator = FanOutCoordinator(registry, request_deadline=1.0)
        outcomes, coverage = await coordinator.dispatch(Query("climate model"))

        assert [o.source for o in outcomes] == ["papers", "code"]
        assert coverage == {"papers": 2, "code": 1}
        assert len(paper_adapter.calls) == 1
        assert len(code_adapter.calls) == 1

    async def test_adapters_run_concurrently(self):
        adapters = [FakeAdapter(f"p{i}", {ResourceType.PAPER}, delay=0.2) for i in range(5)]
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters(adapters), request_deadline=2.0)

        started = time.monotonic()
        outcomes, _ = await coordinator.dispatch(Query("x"))
        elapsed = time.monotonic() - started

        assert elapsed < 0.8
        assert all(o.status is OutcomeStatus.EMPTY for o in outcomes)

    async def test_partial_failure(self, paper_adapter):
        broken = FakeAdapter("broken", {ResourceType.PAPER}, error=RuntimeError("boom"))
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([paper_adapter, broken]), 1.0)

        outcomes, coverage = await coordinator.dispatch(Query("climate model"))

        assert coverage == {"papers": 2, "broken": 0}
        assert _statuses(outcomes)["broken"] is OutcomeStatus.ERROR

    async def test_total_failure_is_not_an_error(self):
        adapters = [
            FakeAdapter("a", {ResourceType.PAPER}, error=RuntimeError("down")),
            FakeAdapter("b", {ResourceType.PAPER}, delay=5.0),
        ]
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters(adapters), request_deadline=0.1)

        outcomes, coverage = await coordinator.dispatch(Query("x"))

        assert coverage == {"a": 0, "b": 0}
        assert _statuses(outcomes) == {"a": OutcomeStatus.ERROR, "b": OutcomeStatus.TIMEOUT}

    async def test_shared_deadline_bounds_request(self, paper_adapter):
        slow = FakeAdapter("slow", {ResourceType.PAPER}, [make_result("slow")], delay=10.0)
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([paper_adapter, slow]), 0.2)

        started = time.monotonic()
        outcomes, coverage = await coordinator.dispatch(Query("climate model"))
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert coverage == {"papers": 2, "slow": 0}
        assert _statuses(outcomes)["slow"] is OutcomeStatus.TIMEOUT

    async def test_per_adapter_timeout_tighter_than_shared(self, paper_adapter):
        slow = FakeAdapter("slow", {ResourceType.PAPER}, delay=10.0)
        registry = ProviderRegistry(
            [
                (paper_adapter, ProviderSettings("papers", paper_adapter.types, 8.0)),
                (slow, ProviderSettings("slow", slow.types, 0.05)),
            ]
        )
        coordinator = FanOutCoordinator(registry, request_deadline=5.0)

        started = time.monotonic()
        outcomes, _ = await coordinator.dispatch(Query("x"))

        assert time.monotonic() - started < 1.0
        assert _statuses(outcomes)["slow"] is OutcomeStatus.TIMEOUT

    async def test_adapter_raising_past_boundary(self, paper_adapter):
        rogue = FakeAdapter("rogue", {ResourceType.PAPER})
        rogue.fetch = AsyncMock(side_effect=ValueError("contract broken"))
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([paper_adapter, rogue]), 1.0)

        outcomes, coverage = await coordinator.dispatch(Query("x"))

        assert coverage["rogue"] == 0
        rogue_outcome = outcomes[1]
        assert rogue_outcome.status is OutcomeStatus.ERROR
        assert "contract broken" in rogue_outcome.error_detail

    async def test_no_eligible_adapters(self, registry):
        coordinator = FanOutCoordinator(registry, 1.0)
        outcomes, coverage = await coordinator.dispatch(Query("x", type_filter="video"))
        assert outcomes == []
        assert coverage == {}


class TestTypeSelection:
    async def test_only_matching_adapters_are_called(self, registry, paper_adapter, code_adapter):
        coordinator = FanOutCoordinator(registry, 1.0)
        outcomes, coverage = await coordinator.dispatch(Query("climate", type_filter="code"))

        assert coverage == {"code": 1}
        assert paper_adapter.calls == []
        assert len(code_adapter.calls) == 1

    async def test_off_type_results_dropped(self):
        repository = FakeAdapter(
            "repository",
            {ResourceType.PAPER, ResourceType.DATASET},
            [
                make_result("repository", "A paper"),
                make_result("repository", "A dataset", type=ResourceType.DATASET),
            ],
        )
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([repository]), 1.0)

        outcomes, coverage = await coordinator.dispatch(Query("x", type_filter="dataset"))

        assert coverage == {"repository": 1}
        assert [r.title for r in outcomes[0].results] == ["A dataset"]

    async def test_only_off_type_results_leave_empty(self):
        repository = FakeAdapter("repository", {ResourceType.PAPER, ResourceType.DATASET}, [make_result("repository")])
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([repository]), 1.0)

        outcomes, coverage = await coordinator.dispatch(Query("x", type_filter="dataset"))

        assert coverage == {"repository": 0}
        assert outcomes[0].status is OutcomeStatus.EMPTY

    async def test_results_pinned_to_registered_source(self):
        impostor = FakeAdapter(
            "github",
            {ResourceType.CODE},
            [
                make_result("github", "mine", type=ResourceType.CODE),
                make_result("gitlab", "not mine", type=ResourceType.CODE),
            ],
        )
        coordinator = FanOutCoordinator(ProviderRegistry.from_adapters([impostor]), 1.0)
        outcomes, coverage = await coordinator.dispatch(Query("x"))
        assert coverage == {"github": 1}


class TestOutcomeHelpers:
    def test_as_outcome_passes_outcomes_through(self):
        outcome = AdapterOutcome.success("a", [], 1.0)
        assert FanOutCoordinator._as_outcome("a", outcome, 5.0) is outcome

    def test_cancelled_slot_is_timeout(self):
        outcome = FanOutCoordinator._as_outcome("a", asyncio.CancelledError(), 5.0)
        assert outcome.status is OutcomeStatus.TIMEOUT
