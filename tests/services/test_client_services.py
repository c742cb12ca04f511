"""
Tests for ClientBalanceService, ClientWipService and ClientDebtorService.

Covers:
- Client balance payload (signed WIP, debtors, last updated)
- Both join paths contributing to the client scope
- limitReached as the OR of both scans
- Per-master-service-line profitability
- Debtor aging, payment days and service line split from stored rows
- Not-found handling and caching
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from wip_config import CacheConfig, EngineConfig
from wip_kernel.exceptions import ClientNotFoundError, ScopeNotFoundError
from wip_services.cache import InMemoryCache
from wip_services.client_balance_service import (
    ClientBalanceService,
    ClientDebtorService,
    ClientWipService,
)


class _FixedCodes:
    def __init__(self, codes=()):
        self._codes = frozenset(codes)

    def excluded_cost_codes(self):
        return self._codes


@pytest.fixture
def config():
    return EngineConfig(
        transaction_limit=100,
        cache=CacheConfig(ttl_seconds=60, key_prefix="test"),
    )


@pytest.fixture
def seeded_client(create_client, create_task):
    create_client("CLI-001", client_code="C001", name="Acme Ltd")
    create_task("TASK-A", client_external_id="CLI-001", task_code="A", service_line_code="AUD1")
    create_task("TASK-B", client_external_id="CLI-001", task_code="B", service_line_code="TAX1")


class TestClientBalanceService:
    """Tests for the client balance payload."""

    def test_client_balance_example(self, session, config, seeded_client, add_wip, add_debtor):
        add_wip(500, task_external_id="TASK-A")
        add_wip(300, task_external_id="TASK-A", type_code="F")
        add_debtor(150)
        add_debtor(150)

        payload = ClientBalanceService(session, config).get_client_balances("CLI-001")

        assert Decimal(payload["wipBalance"]) == Decimal("200")
        assert Decimal(payload["debtorBalance"]) == Decimal("300")
        assert payload["clientCode"] == "C001"
        assert payload["transactionCount"] == 2
        assert payload["debtorTransactionCount"] == 2
        assert payload["transactionLimit"] == 100
        assert payload["limitReached"] is False

    def test_task_only_rows_included(self, session, config, seeded_client, add_wip):
        add_wip(100, task_external_id="TASK-B", client_external_id=None)
        add_wip(40, task_external_id=None, client_external_id="CLI-001")

        payload = ClientBalanceService(session, config).get_client_balances("CLI-001")

        assert Decimal(payload["wipBalance"]) == Decimal("140")
        assert Decimal(payload["wipByTask"]["TASK-B"]) == Decimal("100")

    def test_time_disbursement_split(self, session, config, seeded_client, add_wip):
        add_wip(400, subtype="T", task_external_id="TASK-A")
        add_wip(60, subtype="D", task_external_id="TASK-A")
        add_wip(-10, subtype="AD", task_external_id="TASK-A")
        add_wip(25, subtype="P", type_code="P", task_external_id="TASK-A")

        payload = ClientBalanceService(session, config).get_client_balances("CLI-001")

        assert Decimal(payload["balTime"]) == Decimal("400")
        assert Decimal(payload["balDisb"]) == Decimal("50")
        assert Decimal(payload["wipBalance"]) == Decimal("475")

    def test_last_updated(self, session, config, seeded_client, add_wip, add_debtor):
        add_wip(1, task_external_id="TASK-A", updated_at=datetime(2024, 4, 1, 8, 30))
        add_debtor(1, updated_at=datetime(2024, 6, 1, 8, 30))

        payload = ClientBalanceService(session, config).get_client_balances("CLI-001")

        assert payload["lastUpdated"].startswith("2024-06-01T08:30")

    def test_limit_reached_if_either_scan_capped(
        self, session, seeded_client, add_wip, add_debtor
    ):
        config = EngineConfig(transaction_limit=2)
        add_wip(1, task_external_id="TASK-A")
        for _ in range(3):
            add_debtor(1)

        payload = ClientBalanceService(session, config).get_client_balances("CLI-001")

        assert payload["transactionCount"] == 1
        assert payload["debtorTransactionCount"] == 2
        assert payload["limitReached"] is True

    def test_unknown_client(self, session, config):
        with pytest.raises(ClientNotFoundError) as exc_info:
            ClientBalanceService(session, config).get_client_balances("NOPE")

        assert isinstance(exc_info.value, ScopeNotFoundError)
        assert exc_info.value.client_external_id == "NOPE"

    def test_cached(self, session, config, seeded_client, add_wip, deterministic_clock):
        cache = InMemoryCache(deterministic_clock)
        service = ClientBalanceService(session, config, cache=cache)
        add_wip(10, task_external_id="TASK-A")

        first = service.get_client_balances("CLI-001")
        add_wip(90, task_external_id="TASK-A")
        second = service.get_client_balances("CLI-001")

        assert second == first
        assert Decimal(second["wipBalance"]) == Decimal("10")

    def test_logs_computation(self, session, config, seeded_client, captured_logs):
        ClientBalanceService(session, config).get_client_balances("CLI-001")

        records = [r for r in captured_logs() if r["message"] == "client_balance_computed"]
        assert len(records) == 1
        assert records[0]["client_id"] == "CLI-001"


class TestClientWipService:
    """Tests for client-scoped profitability."""

    MAPPING = {"AUD1": "AUDIT", "TAX1": "TAX"}

    def test_overall_and_by_service_line(
        self, session, config, seeded_client, add_wip, add_balance
    ):
        add_wip(1000, task_external_id="TASK-A", service_line_code="AUD1", hours="10", cost="400")
        add_wip(300, task_external_id="TASK-B", service_line_code="TAX1", hours="5", cost="100")
        add_wip(20, task_external_id="TASK-B", service_line_code="ZZZ")
        add_balance("TASK-A", bal_wip="700")
        add_balance("TASK-B", bal_wip="200")

        payload = ClientWipService(session, config, cost_codes=_FixedCodes()).get_client_wip(
            "CLI-001", self.MAPPING
        )

        assert Decimal(payload["ltdTime"]) == Decimal("1320")
        assert Decimal(payload["balWIP"]) == Decimal("900")
        assert payload["taskCount"] == 2

        by_line = payload["byMasterServiceLine"]
        assert set(by_line) == {"AUDIT", "TAX", "UNKNOWN"}
        assert Decimal(by_line["AUDIT"]["ltdTime"]) == Decimal("1000")
        assert Decimal(by_line["AUDIT"]["balWIP"]) == Decimal("700")
        assert Decimal(by_line["AUDIT"]["grossProfit"]) == Decimal("600")
        assert by_line["AUDIT"]["taskCount"] == 1
        assert Decimal(by_line["TAX"]["balWIP"]) == Decimal("200")
        assert Decimal(by_line["UNKNOWN"]["ltdTime"]) == Decimal("20")

    def test_excluded_costs_zeroed(self, session, config, seeded_client, add_wip):
        add_wip(100, task_external_id="TASK-A", employee_code="P1", cost="80")
        add_wip(100, task_external_id="TASK-A", employee_code="S1", cost="20")

        payload = ClientWipService(
            session, config, cost_codes=_FixedCodes({"P1"})
        ).get_client_wip("CLI-001", self.MAPPING)

        assert Decimal(payload["ltdCost"]) == Decimal("20")

    def test_completeness_fields(self, session, seeded_client, add_wip):
        config = EngineConfig(transaction_limit=1)
        add_wip(1, task_external_id="TASK-A")
        add_wip(2, task_external_id="TASK-A")

        payload = ClientWipService(session, config, cost_codes=_FixedCodes()).get_client_wip(
            "CLI-001"
        )

        assert payload["transactionCount"] == 1
        assert payload["transactionLimit"] == 1
        assert payload["limitReached"] is True

    def test_unknown_client(self, session, config):
        with pytest.raises(ClientNotFoundError):
            ClientWipService(session, config, cost_codes=_FixedCodes()).get_client_wip("NOPE")

    def test_cache_keyed_by_mapping(self, session, config, seeded_client, add_wip):
        cache = InMemoryCache()
        service = ClientWipService(session, config, cost_codes=_FixedCodes(), cache=cache)
        add_wip(10, task_external_id="TASK-A", service_line_code="AUD1")

        by_audit = service.get_client_wip("CLI-001", {"AUD1": "AUDIT"})
        unmapped = service.get_client_wip("CLI-001", {})

        assert set(by_audit["byMasterServiceLine"]) == {"AUDIT"}
        assert set(unmapped["byMasterServiceLine"]) == {"UNKNOWN"}
        assert len(cache) == 2


class TestClientDebtorService:
    """Tests for client debtor recoverability."""

    MAPPING = {"AUD1": "AUDIT", "TAX1": "TAX"}
    AS_OF = date(2024, 6, 30)

    def test_aging_and_service_lines(self, session, config, seeded_client, add_debtor):
        add_debtor(1000, invoice_number="INV-1", transaction_date=date(2024, 5, 31),
                   service_line_code="AUD1")
        add_debtor(-400, invoice_number="INV-1", transaction_date=date(2024, 6, 10),
                   service_line_code="AUD1")
        add_debtor(250, invoice_number="INV-2", transaction_date=date(2024, 2, 1),
                   service_line_code="TAX1")
        add_debtor(-75, invoice_number="CRN-9", transaction_date=date(2024, 6, 1),
                   service_line_code="TAX1")

        payload = ClientDebtorService(session, config).get_client_debtors(
            "CLI-001", self.MAPPING, as_of=self.AS_OF
        )

        overall = payload["overall"]
        assert Decimal(overall["totalBalance"]) == Decimal("850")
        assert Decimal(overall["aging"]["current"]) == Decimal("600")
        assert Decimal(overall["aging"]["days120Plus"]) == Decimal("250")
        assert Decimal(overall["aging"]["days31_60"]) == Decimal("0")
        assert overall["invoiceCount"] == 2
        assert overall["transactionCount"] == 4
        assert overall["avgPaymentDaysPaid"] is None

        by_line = payload["byMasterServiceLine"]
        assert set(by_line) == {"AUDIT", "TAX"}
        assert Decimal(by_line["AUDIT"]["totalBalance"]) == Decimal("600")
        assert by_line["TAX"]["transactionCount"] == 2

        assert payload["asOfDate"] == "2024-06-30"
        assert payload["transactionCount"] == 4
        assert payload["limitReached"] is False

    def test_as_of_defaults_to_clock(self, session, config, seeded_client, deterministic_clock):
        payload = ClientDebtorService(
            session, config, clock=deterministic_clock
        ).get_client_debtors("CLI-001")

        assert payload["asOfDate"] == deterministic_clock.now().date().isoformat()
        assert payload["byMasterServiceLine"] == {}

    def test_unknown_client(self, session, config):
        with pytest.raises(ClientNotFoundError):
            ClientDebtorService(session, config).get_client_debtors("NOPE", as_of=self.AS_OF)

    def test_cache_keyed_by_as_of(self, session, config, seeded_client, add_debtor):
        cache = InMemoryCache()
        service = ClientDebtorService(session, config, cache=cache)
        add_debtor(100, invoice_number="INV-1", transaction_date=date(2024, 6, 1))

        june = service.get_client_debtors("CLI-001", as_of=self.AS_OF)
        later = service.get_client_debtors("CLI-001", as_of=date(2024, 9, 15))

        assert Decimal(june["overall"]["aging"]["current"]) == Decimal("100")
        assert Decimal(later["overall"]["aging"]["days91_120"]) == Decimal("100")
        assert len(cache) == 2
