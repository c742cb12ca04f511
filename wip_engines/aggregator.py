"""
Module: wip_engines.aggregator
Responsibility:
    Reduce a set of WIP transactions into life-to-date totals per bucket
    (time, disbursements, adjustments, fees) plus hours and cost, and
    attach the task's pre-aggregated balance figures.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wip_kernel.domain and wip_kernel.logging_config.

Invariants enforced:
    - Sign rule: each contribution goes through ``signed_amount``
      (reversals subtract, provisions are never reversed).
    - Order independence: the reduction is a field-wise Decimal sum, so
      shuffling or sharding the input never changes the result.
      ``WipTotals.combine`` is commutative and associative with
      ``WipTotals()`` as identity.
    - Cost is summed unconditionally; excluded employees are zeroed
      beforehand by the cost normalizer.
    - Balance fields come only from the supplied WipBalance; they are
      never derived from the scan.

Failure modes:
    - None.  Empty input yields all-zero totals.

Usage:
    from wip_engines.aggregator import aggregate_wip

    totals = aggregate_wip(transactions, balance=task_balance)
    totals.ltd_time  # Decimal
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from decimal import Decimal

from wip_kernel.domain.transactions import (
    WipBalance,
    WipCategory,
    WipTransaction,
)
from wip_kernel.logging_config import get_logger
from wip_engines.tracer import traced_engine

logger = get_logger("engines.aggregator")

_ZERO = Decimal("0")

UNKNOWN_SERVICE_LINE = "UNKNOWN"


@dataclass(frozen=True)
class WipTotals:
    """
    Aggregated WIP totals for a task, client or service line.

    Contract:
        Frozen, ephemeral; produced fresh per request.
    Guarantees:
        - Every field is a Decimal.
        - ``combine`` is a field-wise sum.
    """

    ltd_time: Decimal = _ZERO
    ltd_disb: Decimal = _ZERO
    ltd_adj: Decimal = _ZERO
    ltd_fee: Decimal = _ZERO
    ltd_hours: Decimal = _ZERO
    ltd_cost: Decimal = _ZERO
    bal_wip: Decimal = _ZERO
    bal_time: Decimal = _ZERO
    bal_disb: Decimal = _ZERO
    wip_provision: Decimal = _ZERO

    def combine(self, other: WipTotals) -> WipTotals:
        """Field-wise sum of two totals."""
        return WipTotals(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })

    def with_balance(self, balance: WipBalance | None) -> WipTotals:
        """Replace the balance fields with those of ``balance`` (zero when absent)."""
        if balance is None:
            return WipTotals(
                ltd_time=self.ltd_time,
                ltd_disb=self.ltd_disb,
                ltd_adj=self.ltd_adj,
                ltd_fee=self.ltd_fee,
                ltd_hours=self.ltd_hours,
                ltd_cost=self.ltd_cost,
            )
        return WipTotals(
            ltd_time=self.ltd_time,
            ltd_disb=self.ltd_disb,
            ltd_adj=self.ltd_adj,
            ltd_fee=self.ltd_fee,
            ltd_hours=self.ltd_hours,
            ltd_cost=self.ltd_cost,
            bal_wip=balance.bal_wip,
            bal_time=balance.bal_time,
            bal_disb=balance.bal_disb,
            wip_provision=balance.wip_provision,
        )


def _sum_ltd(transactions: Iterable[WipTransaction]) -> tuple[WipTotals, int]:
    buckets = {category: _ZERO for category in WipCategory}
    hours = _ZERO
    cost = _ZERO
    count = 0

    for txn in transactions:
        count += 1
        hours += txn.hours
        cost += txn.cost
        buckets[txn.category] += txn.signed_amount

    totals = WipTotals(
        ltd_time=buckets[WipCategory.TIME],
        ltd_disb=buckets[WipCategory.DISBURSEMENT],
        ltd_adj=buckets[WipCategory.ADJUSTMENT],
        ltd_fee=buckets[WipCategory.FEE],
        ltd_hours=hours,
        ltd_cost=cost,
    )
    return totals, count


@traced_engine("wip_aggregator", "1.0", fingerprint_fields=("balance",))
def aggregate_wip(
    transactions: Iterable[WipTransaction],
    balance: WipBalance | None = None,
) -> WipTotals:
    """
    Reduce transactions into WipTotals.

    Args:
        transactions: Cost-normalized WIP transactions, in any order.
        balance: Pre-aggregated balance feed row for the task, if any.

    Returns:
        WipTotals with life-to-date buckets from the scan and balance
        fields from ``balance`` (zero when absent).
    """
    totals, count = _sum_ltd(transactions)
    logger.debug(
        "wip_aggregated",
        extra={
            "transaction_count": count,
            "has_balance_feed": balance is not None,
        },
    )
    return totals.with_balance(balance)


def aggregate_wip_sharded(
    shards: Iterable[Iterable[WipTransaction]],
    balance: WipBalance | None = None,
) -> WipTotals:
    """
    Aggregate pre-split shards and merge the partial totals.

    Equivalent to ``aggregate_wip`` over the concatenation of all shards.
    Partials are merged with the balance feed only once, at the end.
    """
    merged = WipTotals()
    for shard in shards:
        partial, _ = _sum_ltd(shard)
        merged = merged.combine(partial)
    return merged.with_balance(balance)


def master_service_line(
    service_line_code: str | None,
    service_line_map: Mapping[str, str],
) -> str:
    """Master service line for a code; unmapped or missing codes map to ``UNKNOWN``."""
    return service_line_map.get(service_line_code or "", UNKNOWN_SERVICE_LINE)


def group_by_service_line(
    transactions: Iterable[WipTransaction],
    service_line_map: Mapping[str, str],
) -> dict[str, list[WipTransaction]]:
    """Partition transactions by master service line, preserving input order."""
    grouped: dict[str, list[WipTransaction]] = {}
    for txn in transactions:
        master = master_service_line(txn.service_line_code, service_line_map)
        grouped.setdefault(master, []).append(txn)
    return grouped


def aggregate_by_service_line(
    transactions: Iterable[WipTransaction],
    service_line_map: Mapping[str, str],
) -> dict[str, WipTotals]:
    """
    Aggregate transactions per master service line.

    Args:
        transactions: Cost-normalized WIP transactions.
        service_line_map: Service line code -> master service line code.
            Unmapped or missing codes are grouped under ``UNKNOWN``.

    Returns:
        Master code -> WipTotals (balance fields zero).
    """
    grouped = group_by_service_line(transactions, service_line_map)
    return {master: _sum_ltd(txns)[0] for master, txns in grouped.items()}


def sum_balances(balances: Iterable[WipBalance]) -> WipTotals:
    """Totals holding only the summed balance fields of several tasks."""
    merged = WipTotals()
    for balance in balances:
        merged = merged.combine(WipTotals().with_balance(balance))
    return merged


def count_unique_tasks(transactions: Iterable[WipTransaction]) -> int:
    """Number of distinct task ids among the transactions."""
    return len({t.task_external_id for t in transactions if t.task_external_id})
