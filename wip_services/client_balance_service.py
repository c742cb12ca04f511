"""
wip_services.client_balance_service -- Client-level balance and WIP views.

Responsibility:
    ClientBalanceService: the client summary balances (signed WIP balance
    from the raw scan, debtor balance, last-updated timestamp).
    ClientWipService: client-scoped profitability, overall and per master
    service line.
    ClientDebtorService: invoice-level debtor recoverability (aging and
    payment days), overall and per master service line.

Architecture position:
    Services -- orchestration over selectors (I/O) and engines (pure).

Invariants enforced:
    - Scope is resolved first; an unknown client raises
      ClientNotFoundError and nothing is fetched.
    - The client scan covers both join paths (client id OR any of the
      client's task ids).
    - ``limitReached`` is true when any contributing scan was capped.
    - The client balance is derived from the scan; the per-task balance
      feed is only used by the profitability view.
    - Nothing is cached unless the whole computation succeeded.

Failure modes:
    - ClientNotFoundError for an unknown client id.
    - SQLAlchemy errors from the selectors propagate unchanged.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from wip_config import EngineConfig, get_engine_config
from wip_engines.aggregator import (
    WipTotals,
    aggregate_by_service_line,
    aggregate_wip,
    count_unique_tasks,
    master_service_line,
    sum_balances,
)
from wip_engines.balance import calculate_client_balance
from wip_engines.cost_normalizer import normalize_costs
from wip_engines.debtors import aggregate_debtors, aggregate_debtors_by_service_line
from wip_engines.profitability import calculate_profitability
from wip_kernel.domain.clock import Clock, SystemClock
from wip_kernel.exceptions import ClientNotFoundError
from wip_kernel.logging_config import LogContext, get_logger
from wip_kernel.selectors.reference_selector import (
    EmployeeSelector,
    ExcludedCostCodeSource,
    ScopeSelector,
)
from wip_kernel.selectors.transaction_selector import (
    DebtorTransactionSelector,
    WipTransactionSelector,
)
from wip_services.cache import (
    CachePort,
    client_balance_key,
    client_debtors_key,
    client_wip_key,
)
from wip_services.serialization import (
    iso_or_none,
    latest_update,
    serialize_client_balance,
    serialize_debtor_metrics,
    serialize_metrics,
    serialize_service_lines,
    window_fields,
)

logger = get_logger("services.client_balance")


def _service_line_fingerprint(service_line_map: Mapping[str, str]) -> str:
    canonical = json.dumps(sorted(service_line_map.items()), separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


class ClientBalanceService:
    """
    Computes the balance summary for one client.

    Contract:
        Receives Session, config and cache via constructor injection.
        Read-only.
    """

    def __init__(
        self,
        session: Session,
        config: EngineConfig | None = None,
        cache: CachePort | None = None,
    ):
        self._config = config or get_engine_config()
        self._scopes = ScopeSelector(session)
        self._wip = WipTransactionSelector(session)
        self._debtors = DebtorTransactionSelector(session)
        self._cache = cache

    def get_client_balances(self, client_external_id: str) -> dict[str, Any]:
        with LogContext.bind(client_id=client_external_id):
            client = self._scopes.get_client(client_external_id)
            if client is None:
                logger.info(
                    "client_not_found",
                    extra={"client_external_id": client_external_id},
                )
                raise ClientNotFoundError(client_external_id)

            key = client_balance_key(self._config.cache.key_prefix, client_external_id)
            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug("client_balance_cache_hit", extra={"cache_key": key})
                    return cached

            limit = self._config.transaction_limit
            wip_window = self._wip.fetch_for_client(client_external_id, limit=limit)
            debtor_window = self._debtors.fetch_for_client(client_external_id, limit=limit)

            snapshot = calculate_client_balance(wip_window.records, debtor_window.records)
            payload: dict[str, Any] = {
                "clientId": client.external_id,
                "clientCode": client.client_code,
                **serialize_client_balance(snapshot, wip_window, debtor_window),
            }

            if self._cache is not None:
                self._cache.set(key, payload, self._config.cache.ttl_seconds)

            logger.info(
                "client_balance_computed",
                extra={
                    "transaction_count": wip_window.count,
                    "debtor_transaction_count": debtor_window.count,
                    "limit_reached": payload["limitReached"],
                },
            )
            return payload


class ClientWipService:
    """
    Computes client-scoped profitability, overall and per master service line.

    Balance fields are the sum of the pre-aggregated feed rows of the
    client's tasks; each task's balance is attributed to the master line
    of the task's own service line.
    """

    def __init__(
        self,
        session: Session,
        config: EngineConfig | None = None,
        cost_codes: ExcludedCostCodeSource | None = None,
        cache: CachePort | None = None,
    ):
        self._config = config or get_engine_config()
        self._scopes = ScopeSelector(session)
        self._wip = WipTransactionSelector(session)
        self._cost_codes = cost_codes or EmployeeSelector(
            session, self._config.excluded_cost_categories
        )
        self._cache = cache

    def get_client_wip(
        self,
        client_external_id: str,
        service_line_map: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Args:
            client_external_id: Client identifier.
            service_line_map: Service line code -> master service line code.
                Codes missing from the map are grouped under ``UNKNOWN``.
        """
        service_line_map = service_line_map or {}
        with LogContext.bind(client_id=client_external_id):
            client = self._scopes.get_client(client_external_id)
            if client is None:
                logger.info(
                    "client_not_found",
                    extra={"client_external_id": client_external_id},
                )
                raise ClientNotFoundError(client_external_id)

            key = "{}:{}".format(
                client_wip_key(self._config.cache.key_prefix, client_external_id),
                _service_line_fingerprint(service_line_map),
            )
            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug("client_wip_cache_hit", extra={"cache_key": key})
                    return cached

            window = self._wip.fetch_for_client(
                client_external_id, limit=self._config.transaction_limit
            )
            tasks = self._scopes.list_tasks_for_client(client_external_id)
            balances = self._wip.fetch_task_balances(t.external_id for t in tasks)
            excluded = self._cost_codes.excluded_cost_codes()

            transactions = normalize_costs(window.records, excluded)
            ltd_by_line = aggregate_by_service_line(transactions, service_line_map)

            balances_by_line: dict[str, list] = {}
            task_ids_by_line: dict[str, set[str]] = {master: set() for master in ltd_by_line}
            for txn in transactions:
                if txn.task_external_id:
                    master = master_service_line(txn.service_line_code, service_line_map)
                    task_ids_by_line[master].add(txn.task_external_id)
            for task in tasks:
                balance = balances.get(task.external_id)
                if balance is None:
                    continue
                master = master_service_line(task.service_line_code, service_line_map)
                balances_by_line.setdefault(master, []).append(balance)
                task_ids_by_line.setdefault(master, set()).add(task.external_id)

            by_line = {}
            for master in sorted(set(ltd_by_line) | set(balances_by_line)):
                line_totals = ltd_by_line.get(master, WipTotals()).combine(
                    sum_balances(balances_by_line.get(master, ()))
                )
                by_line[master] = calculate_profitability(
                    line_totals, task_count=len(task_ids_by_line.get(master, ()))
                )

            all_task_ids = set().union(*task_ids_by_line.values()) if task_ids_by_line else set()
            overall_totals: WipTotals = aggregate_wip(transactions).combine(
                sum_balances(balances.values())
            )
            overall = calculate_profitability(overall_totals, task_count=len(all_task_ids))

            payload: dict[str, Any] = {
                "clientId": client.external_id,
                "clientCode": client.client_code,
                "clientName": client.name,
                "groupCode": client.group_code,
                **serialize_metrics(overall),
                "byMasterServiceLine": serialize_service_lines(by_line),
                "transactionCount": window.count,
                **window_fields(window),
                "lastUpdated": iso_or_none(latest_update(window.records)),
            }

            if self._cache is not None:
                self._cache.set(key, payload, self._config.cache.ttl_seconds)

            logger.info(
                "client_wip_computed",
                extra={
                    "transaction_count": window.count,
                    "limit_reached": window.limit_reached,
                    "task_count": overall.task_count,
                    "scanned_task_count": count_unique_tasks(transactions),
                    "service_line_count": len(by_line),
                },
            )
            return payload


class ClientDebtorService:
    """
    Computes debtor recoverability for one client: net balance per
    invoice, aging buckets and weighted payment days, overall and per
    master service line.

    Aging is as of ``as_of`` when given, otherwise the clock's current
    date.  The as-of date is part of the cache key.
    """

    def __init__(
        self,
        session: Session,
        config: EngineConfig | None = None,
        cache: CachePort | None = None,
        clock: Clock | None = None,
    ):
        self._config = config or get_engine_config()
        self._scopes = ScopeSelector(session)
        self._debtors = DebtorTransactionSelector(session)
        self._cache = cache
        self._clock = clock or SystemClock()

    def get_client_debtors(
        self,
        client_external_id: str,
        service_line_map: Mapping[str, str] | None = None,
        as_of: date | None = None,
    ) -> dict[str, Any]:
        service_line_map = service_line_map or {}
        as_of = as_of or self._clock.now().date()
        with LogContext.bind(client_id=client_external_id):
            client = self._scopes.get_client(client_external_id)
            if client is None:
                logger.info(
                    "client_not_found",
                    extra={"client_external_id": client_external_id},
                )
                raise ClientNotFoundError(client_external_id)

            key = "{}:{}:{}".format(
                client_debtors_key(self._config.cache.key_prefix, client_external_id),
                as_of.isoformat(),
                _service_line_fingerprint(service_line_map),
            )
            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug("client_debtors_cache_hit", extra={"cache_key": key})
                    return cached

            window = self._debtors.fetch_for_client(
                client_external_id, limit=self._config.transaction_limit
            )
            overall = aggregate_debtors(window.records, as_of)
            by_line = aggregate_debtors_by_service_line(
                window.records, service_line_map, as_of
            )

            payload: dict[str, Any] = {
                "clientId": client.external_id,
                "clientCode": client.client_code,
                "asOfDate": as_of.isoformat(),
                "overall": serialize_debtor_metrics(overall),
                "byMasterServiceLine": {
                    code: serialize_debtor_metrics(metrics)
                    for code, metrics in by_line.items()
                },
                "transactionCount": window.count,
                **window_fields(window),
                "lastUpdated": iso_or_none(latest_update(window.records)),
            }

            if self._cache is not None:
                self._cache.set(key, payload, self._config.cache.ttl_seconds)

            logger.info(
                "client_debtors_computed",
                extra={
                    "transaction_count": window.count,
                    "limit_reached": window.limit_reached,
                    "invoice_count": overall.invoice_count,
                    "service_line_count": len(by_line),
                },
            )
            return payload
