"""
Module: wip_engines.cost_normalizer
Responsibility:
    Zero the cost of transactions booked by employees in an excluded-cost
    category (partner categories whose time is not a cost to the task).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wip_kernel.domain and wip_kernel.logging_config.

Invariants enforced:
    - Purity: never mutates the source record; returns a copy.
    - Totality: every input yields a result; there are no error cases.
    - A transaction with no employee code is never excluded.
"""

from __future__ import annotations

from collections.abc import Iterable, Set
from decimal import Decimal

from wip_kernel.domain.transactions import WipTransaction
from wip_kernel.logging_config import get_logger

logger = get_logger("engines.cost_normalizer")

_ZERO = Decimal("0")


def normalize_cost(
    transaction: WipTransaction,
    excluded_codes: Set[str],
) -> WipTransaction:
    """
    Return ``transaction`` with its cost forced to zero when its employee
    is in ``excluded_codes``; otherwise return it unchanged.
    """
    if transaction.employee_code is not None and transaction.employee_code in excluded_codes:
        return transaction.with_cost(_ZERO)
    return transaction


def normalize_costs(
    transactions: Iterable[WipTransaction],
    excluded_codes: Set[str],
) -> tuple[WipTransaction, ...]:
    """Apply ``normalize_cost`` to every transaction."""
    normalized = tuple(normalize_cost(t, excluded_codes) for t in transactions)
    logger.debug(
        "costs_normalized",
        extra={
            "transaction_count": len(normalized),
            "excluded_code_count": len(excluded_codes),
        },
    )
    return normalized
