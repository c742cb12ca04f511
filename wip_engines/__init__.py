"""
Module: wip_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for wip_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wip_kernel.domain and wip_kernel.logging_config.
    MUST NOT import wip_services, wip_config or selectors.

Invariants enforced:
    - Purity: engines never read the clock, the cache or the database.
    - Decimal-only arithmetic for amounts, costs and hours.
    - Determinism: identical inputs always produce identical outputs,
      regardless of input order.

Pipelines:
    Task view:   normalize_costs -> aggregate_wip -> calculate_profitability
    Client view: calculate_client_balance
    Debtors:     match_invoices -> calculate_aging / calculate_payment_days
"""

from wip_engines.aggregator import (
    UNKNOWN_SERVICE_LINE,
    WipTotals,
    aggregate_by_service_line,
    aggregate_wip,
    aggregate_wip_sharded,
    count_unique_tasks,
    group_by_service_line,
    master_service_line,
    sum_balances,
)
from wip_engines.balance import (
    ClientBalanceSnapshot,
    calculate_client_balance,
    calculate_wip_by_task,
)
from wip_engines.cost_normalizer import normalize_cost, normalize_costs
from wip_engines.debtors import (
    DEBTOR_AGING_BUCKETS,
    AgeBucket,
    DebtorMetrics,
    InvoiceBalance,
    aggregate_debtors,
    aggregate_debtors_by_service_line,
    calculate_aging,
    calculate_payment_days,
    classify_age,
    match_invoices,
)
from wip_engines.profitability import (
    ProfitabilityMetrics,
    calculate_profitability,
    safe_ratio,
)

__all__ = [
    # Cost normalizer
    "normalize_cost",
    "normalize_costs",
    # Aggregator
    "WipTotals",
    "aggregate_wip",
    "aggregate_wip_sharded",
    "aggregate_by_service_line",
    "count_unique_tasks",
    "group_by_service_line",
    "master_service_line",
    "sum_balances",
    "UNKNOWN_SERVICE_LINE",
    # Profitability
    "ProfitabilityMetrics",
    "calculate_profitability",
    "safe_ratio",
    # Balance
    "ClientBalanceSnapshot",
    "calculate_client_balance",
    "calculate_wip_by_task",
    # Debtors
    "AgeBucket",
    "DEBTOR_AGING_BUCKETS",
    "InvoiceBalance",
    "DebtorMetrics",
    "classify_age",
    "match_invoices",
    "calculate_aging",
    "calculate_payment_days",
    "aggregate_debtors",
    "aggregate_debtors_by_service_line",
]
