"""
wip_services.task_wip_service -- Task-level WIP and profitability view.

Responsibility:
    Resolve a task, scan its WIP transactions under the configured row
    cap, zero excluded employees' cost, aggregate into life-to-date
    totals joined with the task's pre-aggregated balance feed, derive
    profitability and serialize the result.

Architecture position:
    Services -- orchestration over selectors (I/O) and engines (pure).
    The only layer that touches the cache.

Invariants enforced:
    - Scope is resolved before any scan; an unknown task raises
      TaskNotFoundError and nothing is fetched.
    - The payload always reports ``transactionCount``,
      ``transactionLimit`` and ``limitReached`` so truncation is visible.
    - Nothing is cached unless the whole computation succeeded.

Failure modes:
    - TaskNotFoundError for an unknown task id.
    - SQLAlchemy errors from the selectors propagate unchanged.

Usage:
    service = TaskWipService(session, cache=InMemoryCache())
    payload = service.get_task_wip("TASK-001")
    payload["grossProfit"]   # "1234.50"
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from wip_config import EngineConfig, get_engine_config
from wip_engines.aggregator import aggregate_wip
from wip_engines.cost_normalizer import normalize_costs
from wip_engines.profitability import calculate_profitability
from wip_kernel.exceptions import TaskNotFoundError
from wip_kernel.logging_config import LogContext, get_logger
from wip_kernel.selectors.reference_selector import (
    EmployeeSelector,
    ExcludedCostCodeSource,
    ScopeSelector,
)
from wip_kernel.selectors.transaction_selector import WipTransactionSelector
from wip_services.cache import CachePort, task_wip_key
from wip_services.serialization import (
    iso_or_none,
    latest_update,
    serialize_metrics,
    window_fields,
)

logger = get_logger("services.task_wip")


class TaskWipService:
    """
    Computes the WIP/profitability payload for one task.

    Contract:
        Receives Session, config, cost-code source and cache via
        constructor injection.  Never commits; read-only.
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
        self._transactions = WipTransactionSelector(session)
        self._cost_codes = cost_codes or EmployeeSelector(
            session, self._config.excluded_cost_categories
        )
        self._cache = cache

    def get_task_wip(self, task_external_id: str) -> dict[str, Any]:
        with LogContext.bind(task_id=task_external_id):
            task = self._scopes.get_task(task_external_id)
            if task is None:
                logger.info("task_not_found", extra={"task_external_id": task_external_id})
                raise TaskNotFoundError(task_external_id)

            key = task_wip_key(self._config.cache.key_prefix, task_external_id)
            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug("task_wip_cache_hit", extra={"cache_key": key})
                    return cached

            window = self._transactions.fetch_for_task(
                task_external_id, limit=self._config.transaction_limit
            )
            balance = self._transactions.fetch_task_balance(task_external_id)
            excluded = self._cost_codes.excluded_cost_codes()

            transactions = normalize_costs(window.records, excluded)
            totals = aggregate_wip(transactions, balance=balance)
            metrics = calculate_profitability(totals, task_count=1)

            payload: dict[str, Any] = {
                "taskId": task.external_id,
                "taskCode": task.task_code,
                "clientId": task.client_external_id,
                **serialize_metrics(metrics),
                "transactionCount": window.count,
                **window_fields(window),
                "lastUpdated": iso_or_none(latest_update(window.records)),
            }

            if self._cache is not None:
                self._cache.set(key, payload, self._config.cache.ttl_seconds)

            logger.info(
                "task_wip_computed",
                extra={
                    "transaction_count": window.count,
                    "limit_reached": window.limit_reached,
                    "has_balance_feed": balance is not None,
                },
            )
            return payload
