"""
Module: wip_engines.balance
Responsibility:
    Compute a client's signed WIP balance, debtor balance and "last
    updated" timestamp directly from the raw transaction scan, for client
    summary views.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The WIP balance applies the same sign rule as the aggregator, at the
      raw-amount level: reversals subtract, provisions add.
    - The balance is derived from the scan; the task-level pre-aggregated
      balance feed is never consulted here.
    - last_updated is the latest ``updated_at`` across both sources, or
      None when neither source carries a timestamp.

Failure modes:
    - None.  Scope resolution (and the not-found error) happens in the
      calling layer before this engine runs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType

from wip_kernel.domain.transactions import (
    DebtorTransaction,
    TransactionFlag,
    WipTransaction,
    is_disbursement_side,
)
from wip_kernel.logging_config import get_logger
from wip_engines.tracer import traced_engine

logger = get_logger("engines.balance")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ClientBalanceSnapshot:
    """
    Client-level balances.

    Guarantees:
        - wip_balance == bal_time + bal_disb + the provision rows' amounts.
          Provisions move the overall balance only.
        - Disbursements and disbursement adjustments (``AD``/``ADD``) are
          in bal_disb; every other non-provision row is in bal_time.
        - wip_by_task values sum to the WIP balance of the rows that carry
          a task id.
    """

    wip_balance: Decimal
    debtor_balance: Decimal
    last_updated: datetime | None
    bal_time: Decimal = _ZERO
    bal_disb: Decimal = _ZERO
    wip_by_task: Mapping[str, Decimal] = field(
        default_factory=lambda: MappingProxyType({})
    )


def _latest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def calculate_wip_by_task(
    wip_transactions: Iterable[WipTransaction],
) -> dict[str, Decimal]:
    """Signed net WIP per task id; rows without a task id are skipped."""
    by_task: dict[str, Decimal] = {}
    for txn in wip_transactions:
        if not txn.task_external_id:
            continue
        by_task[txn.task_external_id] = (
            by_task.get(txn.task_external_id, _ZERO) + txn.signed_amount
        )
    return by_task


@traced_engine("client_balance", "1.0")
def calculate_client_balance(
    wip_transactions: Sequence[WipTransaction],
    debtor_transactions: Sequence[DebtorTransaction],
) -> ClientBalanceSnapshot:
    """
    Compute a ClientBalanceSnapshot.

    Args:
        wip_transactions: The client's WIP transactions (both join paths).
        debtor_transactions: The client's debtor transactions.

    Returns:
        ClientBalanceSnapshot.
    """
    wip_balance = _ZERO
    bal_time = _ZERO
    bal_disb = _ZERO
    last_updated: datetime | None = None

    for txn in wip_transactions:
        amount = txn.signed_amount
        wip_balance += amount
        if txn.flag is not TransactionFlag.PROVISION:
            if is_disbursement_side(txn.transaction_subtype):
                bal_disb += amount
            else:
                bal_time += amount
        last_updated = _latest(last_updated, txn.updated_at)

    debtor_balance = _ZERO
    for debtor in debtor_transactions:
        debtor_balance += debtor.total_amount
        last_updated = _latest(last_updated, debtor.updated_at)

    snapshot = ClientBalanceSnapshot(
        wip_balance=wip_balance,
        debtor_balance=debtor_balance,
        last_updated=last_updated,
        bal_time=bal_time,
        bal_disb=bal_disb,
        wip_by_task=MappingProxyType(calculate_wip_by_task(wip_transactions)),
    )
    logger.debug(
        "client_balance_calculated",
        extra={
            "wip_transaction_count": len(wip_transactions),
            "debtor_transaction_count": len(debtor_transactions),
        },
    )
    return snapshot
