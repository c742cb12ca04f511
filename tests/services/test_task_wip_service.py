"""
Tests for TaskWipService.

Covers:
- End-to-end task view (normalize, aggregate, profitability)
- Completeness fields
- Not-found handling
- Caching, including no caching on failure
"""

from datetime import datetime
from decimal import Decimal

import pytest

from wip_config import CacheConfig, EngineConfig
from wip_kernel.exceptions import TaskNotFoundError
from wip_services.cache import InMemoryCache, task_wip_key
from wip_services.task_wip_service import TaskWipService


class _FixedCodes:
    def __init__(self, codes=()):
        self.calls = 0
        self._codes = frozenset(codes)

    def excluded_cost_codes(self):
        self.calls += 1
        return self._codes


class _FailingCodes:
    def excluded_cost_codes(self):
        raise ConnectionError("reference store unavailable")


@pytest.fixture
def config():
    return EngineConfig(
        transaction_limit=100,
        excluded_cost_categories=("CARL",),
        cache=CacheConfig(ttl_seconds=60, key_prefix="test"),
    )


@pytest.fixture
def seeded_task(create_client, create_task, add_wip):
    create_client("CLI-001")
    create_task("TASK-001", client_external_id="CLI-001")
    add_wip(1000, subtype="T", hours="6", cost="300", employee_code="STAFF1",
            updated_at=datetime(2024, 2, 1, 9, 0))
    add_wip(200, subtype="T", type_code="F", hours="1", employee_code="STAFF1",
            updated_at=datetime(2024, 2, 3, 9, 0))
    add_wip(50, subtype="D", hours="3", cost="999", employee_code="PARTNER1",
            updated_at=datetime(2024, 1, 5, 9, 0))


class TestTaskWipService:
    """Tests for the task view payload."""

    def test_task_payload(self, session, config, seeded_task, add_balance):
        add_balance("TASK-001", bal_wip="600", bal_time="550", bal_disb="50")
        service = TaskWipService(session, config, cost_codes=_FixedCodes({"PARTNER1"}))

        payload = service.get_task_wip("TASK-001")

        assert payload["taskId"] == "TASK-001"
        assert payload["clientId"] == "CLI-001"
        assert Decimal(payload["ltdTime"]) == Decimal("800")
        assert Decimal(payload["ltdDisb"]) == Decimal("50")
        assert Decimal(payload["grossProduction"]) == Decimal("850")
        assert Decimal(payload["averageChargeoutRate"]) == Decimal("85")
        assert Decimal(payload["ltdCost"]) == Decimal("300")
        assert Decimal(payload["balWIP"]) == Decimal("600")
        assert Decimal(payload["balTime"]) == Decimal("550")
        assert payload["taskCount"] == 1
        assert payload["lastUpdated"].startswith("2024-02-03T09:00")

    def test_completeness_fields(self, session, config, seeded_task):
        payload = TaskWipService(session, config, cost_codes=_FixedCodes()).get_task_wip("TASK-001")

        assert payload["transactionCount"] == 3
        assert payload["transactionLimit"] == 100
        assert payload["limitReached"] is False

    def test_limit_reached_surfaced(self, session, seeded_task):
        config = EngineConfig(transaction_limit=2)

        payload = TaskWipService(session, config, cost_codes=_FixedCodes()).get_task_wip("TASK-001")

        assert payload["transactionCount"] == 2
        assert payload["transactionLimit"] == 2
        assert payload["limitReached"] is True

    def test_legacy_fields_are_zero(self, session, config, seeded_task):
        payload = TaskWipService(session, config, cost_codes=_FixedCodes()).get_task_wip("TASK-001")

        for name in ("ltdAdjTime", "ltdAdjDisb", "ltdFeeTime", "ltdFeeDisb"):
            assert payload[name] == "0"

    def test_missing_balance_feed_yields_zero_balances(self, session, config, seeded_task):
        payload = TaskWipService(session, config, cost_codes=_FixedCodes()).get_task_wip("TASK-001")
        assert Decimal(payload["balWIP"]) == Decimal("0")

    def test_default_cost_source_uses_employee_categories(
        self, session, config, seeded_task, create_employee
    ):
        create_employee("PARTNER1", "CARL")

        payload = TaskWipService(session, config).get_task_wip("TASK-001")

        assert Decimal(payload["ltdCost"]) == Decimal("300")

    def test_unknown_task(self, session, config):
        service = TaskWipService(session, config, cost_codes=_FixedCodes())

        with pytest.raises(TaskNotFoundError) as exc_info:
            service.get_task_wip("NOPE")

        assert exc_info.value.task_external_id == "NOPE"
        assert exc_info.value.code == "TASK_NOT_FOUND"

    def test_logs_computation(self, session, config, seeded_task, captured_logs):
        TaskWipService(session, config, cost_codes=_FixedCodes()).get_task_wip("TASK-001")

        records = [r for r in captured_logs() if r["message"] == "task_wip_computed"]
        assert len(records) == 1
        assert records[0]["task_id"] == "TASK-001"
        assert records[0]["transaction_count"] == 3


class TestTaskWipCaching:
    """Tests for the cache port integration."""

    def test_second_call_served_from_cache(
        self, session, config, seeded_task, add_wip, deterministic_clock
    ):
        cache = InMemoryCache(deterministic_clock)
        codes = _FixedCodes()
        service = TaskWipService(session, config, cost_codes=codes, cache=cache)

        first = service.get_task_wip("TASK-001")
        add_wip(5000)
        second = service.get_task_wip("TASK-001")

        assert second == first
        assert codes.calls == 1
        assert cache.get(task_wip_key("test", "TASK-001")) == first

    def test_expired_entry_recomputed(
        self, session, config, seeded_task, add_wip, deterministic_clock
    ):
        cache = InMemoryCache(deterministic_clock)
        service = TaskWipService(session, config, cost_codes=_FixedCodes(), cache=cache)

        service.get_task_wip("TASK-001")
        add_wip(5000)
        deterministic_clock.advance(61)
        payload = service.get_task_wip("TASK-001")

        assert payload["transactionCount"] == 4

    def test_nothing_cached_on_failure(self, session, config, seeded_task):
        cache = InMemoryCache()
        service = TaskWipService(session, config, cost_codes=_FailingCodes(), cache=cache)

        with pytest.raises(ConnectionError):
            service.get_task_wip("TASK-001")

        assert len(cache) == 0

    def test_not_found_is_not_cached(self, session, config):
        cache = InMemoryCache()
        service = TaskWipService(session, config, cost_codes=_FixedCodes(), cache=cache)

        with pytest.raises(TaskNotFoundError):
            service.get_task_wip("NOPE")

        assert len(cache) == 0
